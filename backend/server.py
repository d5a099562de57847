# vibeshare/backend/server.py

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend import project_routes, upload_routes
from shared.config import settings
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

app = FastAPI(title="VibeShare")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

projects_prefix = settings.preview_prefix
app.include_router(upload_routes.router, prefix=projects_prefix, tags=["Upload"])
app.include_router(project_routes.router, prefix=projects_prefix, tags=["Projects"])
logger.info(f"Project routes mounted under {projects_prefix}")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request payloads are reported as 400 with the field errors."""
    logger.warning(f"Validation failed for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.get("/ping")
async def ping():
    """Simple endpoint to check if the server is online"""
    logger.debug("Received ping request")
    return {"status": "online"}


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting server...")
    uvicorn.run(
        "backend.server:app",
        host=settings.http_host,
        port=settings.http_port,
    )
