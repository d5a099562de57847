# vibeshare/shared/errors.py

from fastapi import HTTPException


class VibeShareError(HTTPException):
    """Base class for request failures raised below the route layer.

    Each subclass fixes its HTTP status so callers only pass a message.
    They render as {"detail": message} through FastAPI's HTTPException handler.
    """
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(status_code=type(self).status_code, detail=detail)


class NotFound(VibeShareError):
    status_code = 404


class Forbidden(VibeShareError):
    status_code = 403


class ValidationFailed(VibeShareError):
    status_code = 400


class NoFilesProvided(VibeShareError):
    status_code = 400

    def __init__(self, detail: str = "No files uploaded"):
        super().__init__(detail)


class PathTraversal(VibeShareError):
    status_code = 400


class UnsupportedFileType(VibeShareError):
    status_code = 400


class ArchiveMalformed(VibeShareError):
    status_code = 400


class FilesystemFailure(VibeShareError):
    status_code = 500


class UnsupportedCommand(VibeShareError):
    status_code = 400
