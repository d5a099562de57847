# vibeshare/backend/upload_routes.py

import json
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from backend.upload_pipeline import IncomingFile, commit_upload, store_archive, store_files, store_folder
from shared.auth import ensure_owner, require_user
from shared.config import settings
from shared.errors import NoFilesProvided, ValidationFailed
from shared.logging_config import setup_logger
from shared.project_store import project_store

# Set up logger
logger = setup_logger(__name__)

router = APIRouter()


def parse_json_field(raw: Optional[str], field_name: str, expected_type: type) -> Any:
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationFailed(f"Invalid JSON in {field_name}: {e}")
    if not isinstance(value, expected_type):
        raise ValidationFailed(f"{field_name} must be a JSON {expected_type.__name__}")
    return value


async def read_uploads(uploads: Optional[List[UploadFile]], declared_paths: Optional[list] = None) -> List[IncomingFile]:
    """Read multipart uploads into memory, rejecting oversized ones early."""
    if not uploads:
        raise NoFilesProvided()
    files = []
    for i, upload in enumerate(uploads):
        data = await upload.read()
        if len(data) > settings.max_file_size:
            raise ValidationFailed(
                f"File too large: {upload.filename}. Maximum allowed: {settings.max_file_size // (1024 * 1024)}MB per file."
            )
        declared = None
        if declared_paths and i < len(declared_paths) and declared_paths[i]:
            declared = str(declared_paths[i])
        files.append(IncomingFile(
            filename=upload.filename or "",
            data=data,
            declared_path=declared,
            content_type=upload.content_type,
        ))
    return files


def _load_owned_project(project_id: str, user_id: str):
    project = project_store.get(project_id)
    ensure_owner(project, user_id, "upload to")
    return project


@router.post("/{project_id}/upload")
async def upload_files(
    project_id: str,
    files: Optional[List[UploadFile]] = File(None),
    relative_paths: Optional[str] = Form(None, alias="relativePaths"),
    user_id: str = Depends(require_user),
):
    """
    Upload individual files. Each lands at the project root unless the
    optional relativePaths JSON list gives it a nested location.
    """
    logger.info(f"File upload started for project {project_id}")
    _load_owned_project(project_id, user_id)
    try:
        declared_paths = parse_json_field(relative_paths, "relativePaths", list)
        incoming = await read_uploads(files, declared_paths)
        records = store_files(project_id, incoming)
        project = commit_upload(project_id, records)
        return {"message": "Files uploaded successfully", "uploadedFiles": records, "project": project}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"File upload error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during file upload")


@router.post("/{project_id}/upload/folder")
async def upload_folder(
    project_id: str,
    folder: Optional[List[UploadFile]] = File(None),
    path_mapping_raw: Optional[str] = Form(None, alias="pathMapping"),
    folder_structure_raw: Optional[str] = Form(None, alias="folderStructure"),
    user_id: str = Depends(require_user),
):
    """
    Upload a folder. pathMapping is a JSON object of file name -> relative
    path; folderStructure (folder -> [file names]) is accepted as a fallback.
    """
    logger.info(f"Folder upload started for project {project_id}: {len(folder or [])} files received")
    _load_owned_project(project_id, user_id)
    try:
        path_mapping = parse_json_field(path_mapping_raw, "pathMapping", dict)
        folder_structure = parse_json_field(folder_structure_raw, "folderStructure", dict)
        incoming = await read_uploads(folder)
        records = store_folder(project_id, incoming, path_mapping, folder_structure)
        project = commit_upload(project_id, records)
        return {"message": "Folder uploaded successfully", "uploadedFiles": records, "project": project}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Folder upload error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during folder upload")


@router.post("/{project_id}/upload/zip")
async def upload_zip(
    project_id: str,
    archive: Optional[UploadFile] = File(None, alias="zip"),
    user_id: str = Depends(require_user),
):
    """Upload a zip archive and extract it into the project."""
    logger.info(f"Zip upload started for project {project_id}")
    _load_owned_project(project_id, user_id)
    try:
        incoming = None
        if archive is not None:
            incoming = IncomingFile(filename=archive.filename or "", data=await archive.read(), content_type=archive.content_type)
        records = store_archive(project_id, incoming)
        commit_upload(project_id, records)
        return {
            "message": "Zip file uploaded and extracted successfully",
            "extractedFiles": len(records),
            "files": [
                {
                    "filename": r.filename,
                    "relativePath": r.relative_path,
                    "filetype": r.filetype,
                    "size": r.size,
                }
                for r in records
            ],
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Zip upload error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during zip upload")
