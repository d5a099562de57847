import threading
import time
from typing import Callable, Optional

import uvicorn

from shared.config import settings
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)


class ServerManager:
    """Manages the backend server lifecycle"""

    def __init__(self, on_error: Optional[Callable[[str], None]] = None):
        self.server = None
        self.server_thread = None
        self.on_error = on_error
        self.config = uvicorn.Config(
            "backend.server:app",
            host=settings.http_host,
            port=settings.http_port,
            log_level=settings.log_level.lower(),
            reload=False,
            workers=1,
            loop="asyncio",
            timeout_keep_alive=30,
            timeout_graceful_shutdown=10
        )

    def start(self):
        """Start the server in a non-blocking way"""
        try:
            logger.info(f"Starting backend server on {settings.http_host}:{settings.http_port}")
            self.server = uvicorn.Server(self.config)
            self.server_thread = threading.Thread(target=self._run_server, daemon=True)
            self.server_thread.start()
            logger.info("Backend server thread started")
        except Exception as e:
            logger.error(f"Failed to start server: {str(e)}", exc_info=True)
            self._report_error(str(e))

    def _run_server(self):
        try:
            self.server.run()
        except Exception as e:
            logger.error(f"Server error: {str(e)}", exc_info=True)
            self._report_error(str(e))

    def _report_error(self, message: str):
        if self.on_error:
            self.on_error(message)

    def is_running(self) -> bool:
        return self.server_thread is not None and self.server_thread.is_alive()

    def stop(self):
        """Stop the server gracefully"""
        if self.server:
            try:
                self.server.should_exit = True
                logger.info("Server graceful shutdown requested.")
            except Exception as e:
                logger.error(f"Error stopping server: {str(e)}", exc_info=True)


def main():
    """Run the API server until interrupted."""
    logger.info(f"Main: Storage root is {settings.storage_root}")
    server_manager = ServerManager(on_error=lambda msg: logger.error(f"Server runtime error: {msg}"))
    server_manager.start()
    try:
        while server_manager.is_running():
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Main: Received keyboard interrupt, stopping server")
    finally:
        server_manager.stop()
        if server_manager.server_thread is not None:
            server_manager.server_thread.join(timeout=15)
        logger.info("Main: Application shutdown complete.")


if __name__ == "__main__":
    main()
