# vibeshare/backend/storage.py

import os
import shutil
import tempfile
from pathlib import Path

from shared.config import settings
from shared.errors import FilesystemFailure
from shared.logging_config import setup_logger
from shared.project_store import validate_project_id

# Set up logger
logger = setup_logger(__name__)

STAGING_DIR_NAME = ".staging"


def project_root(project_id: str) -> Path:
    """<storage_root>/<project_id>; not created here."""
    return Path(settings.storage_root).resolve() / validate_project_id(project_id)


def ensure_project_root(project_id: str) -> Path:
    root = project_root(project_id)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Could not create storage root {root}: {e}", exc_info=True)
        raise FilesystemFailure(f"Could not create project directory: {e}")
    return root


def remove_project_root(project_id: str) -> bool:
    root = project_root(project_id)
    if not root.exists():
        logger.debug(f"No storage root to remove for project {project_id}")
        return False
    shutil.rmtree(root)
    logger.info(f"Removed storage root {root}")
    return True


def make_staging_dir(prefix: str = "upload-") -> Path:
    """
    Scratch directory on the same filesystem as the project roots,
    so staged files can be moved into place with os.replace.
    """
    base = Path(settings.storage_root).resolve() / STAGING_DIR_NAME
    try:
        base.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=prefix, dir=base))
    except OSError as e:
        logger.error(f"Could not create staging directory under {base}: {e}", exc_info=True)
        raise FilesystemFailure(f"Could not create staging directory: {e}")


def cleanup_dir(path: Path) -> None:
    try:
        if path and path.exists():
            shutil.rmtree(path)
            logger.debug(f"Cleaned up temporary directory: {path}")
    except OSError as e:
        logger.warning(f"Failed to clean up temporary directory {path}: {str(e)}")


def write_file_atomic(target: Path, data: bytes) -> int:
    """
    Write data to target in one replace, creating parent directories as needed.
    Returns the number of bytes written.
    """
    tmp_path = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
        with os.fdopen(fd, "wb") as out_file:
            out_file.write(data)
        os.replace(tmp_path, target)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError as cleanup_error:
                logger.error(f"Error cleaning up partial file: {str(cleanup_error)}")
        logger.error(f"Error writing {target}: {e}")
        raise FilesystemFailure(f"Error saving file {target.name}: {e}")
    return len(data)
