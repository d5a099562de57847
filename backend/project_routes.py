# vibeshare/backend/project_routes.py

import posixpath

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, Response

from backend.paths import clean_relative_path, resolve_in_root
from backend.preview import content_type_for, framing_headers, is_text_content, rewrite_css, rewrite_html
from backend.storage import project_root, remove_project_root, write_file_atomic
from backend.terminal import run_command
from backend.tree import build_structure_index, build_tree
from shared.auth import ensure_can_view, ensure_owner, require_user
from shared.config import settings
from shared.errors import NotFound
from shared.logging_config import setup_logger
from shared.models import Project, ProjectCreate, ProjectUpdate, SaveFileRequest, TerminalRequest
from shared.project_store import project_store

# Set up logger
logger = setup_logger(__name__)

router = APIRouter()


@router.post("", status_code=201)
def create_project(data: ProjectCreate, user_id: str = Depends(require_user)):
    """Create an empty project owned by the caller."""
    project = project_store.create(user_id, data)
    return {"message": "Project created successfully", "project": project}


@router.get("")
def list_projects(user_id: str = Depends(require_user)):
    """The caller's projects, newest first."""
    return {"projects": project_store.list_for_owner(user_id)}


# More specific routes come before the bare /{project_id} ones


@router.get("/{project_id}/structure")
def get_project_structure(project_id: str, user_id: str = Depends(require_user)):
    """
    File tree of the project, read from the filesystem rather than the metadata.
    Entries are in filesystem order.
    """
    project = project_store.get(project_id)
    ensure_can_view(project, user_id)

    root = project_root(project_id)
    if not root.is_dir():
        raise NotFound("Project directory not found")
    try:
        structure = build_tree(root)
    except OSError as e:
        logger.error(f"Error getting project structure for {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error reading project structure")
    logger.info(f"Built structure for project {project_id}: {len(structure)} top-level items")
    return {"success": True, "structure": structure}


@router.get("/{project_id}/files/{file_path:path}")
def get_file_content(project_id: str, file_path: str, user_id: str = Depends(require_user)):
    """Text content of one file for the editor."""
    project = project_store.get(project_id)
    ensure_can_view(project, user_id)

    relative_path = clean_relative_path(file_path)
    record = project.find_file(relative_path)
    if record is None:
        raise NotFound("File not found")
    target = resolve_in_root(project_root(project_id), relative_path)
    if not target.is_file():
        raise NotFound("File not found on filesystem")

    try:
        content = target.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.error(f"Error reading file {target}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error reading file content")
    return {
        "content": content,
        "filename": record.filename,
        "filepath": record.filepath,
        "relativePath": record.relative_path,
        "filetype": record.filetype,
        "size": record.size,
    }


@router.put("/{project_id}/files/{file_path:path}")
def save_file_content(
    project_id: str,
    file_path: str,
    body: SaveFileRequest,
    user_id: str = Depends(require_user),
):
    """Overwrite a file from the editor and record its new size."""
    project = project_store.get(project_id)
    ensure_owner(project, user_id, "edit")

    relative_path = clean_relative_path(file_path)
    if project.find_file(relative_path) is None:
        raise NotFound("File not found")
    target = resolve_in_root(project_root(project_id), relative_path)
    if not target.is_file():
        raise NotFound("File not found on filesystem")

    size = write_file_atomic(target, body.content.encode("utf-8"))

    def apply(p: Project) -> None:
        record = p.find_file(relative_path)
        if record is not None:
            record.size = size

    project_store.update(project_id, apply)
    logger.info(f"Saved {relative_path} in project {project_id} ({size} bytes)")
    return {
        "message": "File saved successfully",
        "file": {"filename": target.name, "relativePath": relative_path, "size": size},
    }


@router.delete("/{project_id}/files/{file_path:path}")
def delete_file(project_id: str, file_path: str, user_id: str = Depends(require_user)):
    """Remove one file from disk and from the project's metadata."""
    project = project_store.get(project_id)
    ensure_owner(project, user_id, "delete from")

    relative_path = clean_relative_path(file_path)
    if project.find_file(relative_path) is None:
        raise NotFound("File not found")

    target = resolve_in_root(project_root(project_id), relative_path)
    try:
        if target.is_file():
            target.unlink()
    except OSError as e:
        logger.error(f"Error deleting {target}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting file")

    def apply(p: Project) -> None:
        p.remove_file(relative_path)
        p.project_structure = build_structure_index(p.files)
        if p.main_file == relative_path:
            p.main_file = p.files[0].relative_path if p.files else "index.html"
            logger.info(f"Main file of project {project_id} reset to {p.main_file}")

    project = project_store.update(project_id, apply)
    logger.info(f"Deleted {relative_path} from project {project_id}")
    return {"message": "File deleted successfully", "project": project}


def _serve_preview(project_id: str, relative_path: str) -> Response:
    root = project_root(project_id)
    target = resolve_in_root(root, relative_path)
    if not target.is_file():
        logger.warning(f"Preview file not found: {project_id}/{relative_path}")
        raise NotFound("File not found on filesystem")

    content_type = content_type_for(target.name)
    if not is_text_content(content_type):
        return FileResponse(target, media_type=content_type)

    try:
        content = target.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.error(f"Error reading preview file {target}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error reading file content")

    file_directory = posixpath.dirname(relative_path)
    headers = {}
    if content_type == "text/html":
        content = rewrite_html(content, project_id, file_directory)
        headers = framing_headers()
    elif content_type == "text/css":
        content = rewrite_css(content, project_id, file_directory)
    logger.debug(f"Serving preview {project_id}/{relative_path} as {content_type}")
    return Response(content=content, media_type=content_type, headers=headers)


@router.get("/{project_id}/preview")
def preview_main_file(project_id: str):
    """The project's main file. Public so the iframe can load it."""
    project = project_store.get(project_id)
    return _serve_preview(project_id, clean_relative_path(project.main_file))


@router.get("/{project_id}/preview/{file_path:path}")
def preview_file(project_id: str, file_path: str):
    """
    Serve a project file for the preview iframe. Public access.
    HTML and CSS are rewritten so their relative assets load through this endpoint.
    """
    project_store.get(project_id)
    return _serve_preview(project_id, clean_relative_path(file_path))


@router.post("/{project_id}/terminal")
async def run_terminal_command(project_id: str, body: TerminalRequest, user_id: str = Depends(require_user)):
    """Run an allow-listed command inside the project directory."""
    project = project_store.get(project_id)
    ensure_owner(project, user_id, "execute commands in")

    root = project_root(project_id)
    if not root.is_dir():
        raise NotFound("Project directory not found")
    return await run_command(root, body.command, settings.terminal_timeout)


@router.get("/{project_id}")
def get_project(project_id: str, user_id: str = Depends(require_user)):
    project = project_store.get(project_id)
    ensure_can_view(project, user_id)
    return {"project": project}


@router.put("/{project_id}")
def update_project(project_id: str, data: ProjectUpdate, user_id: str = Depends(require_user)):
    project = project_store.get(project_id)
    ensure_owner(project, user_id, "update")

    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    def apply(p: Project) -> None:
        for field_name, value in changes.items():
            setattr(p, field_name, value)

    project = project_store.update(project_id, apply)
    logger.info(f"Updated project {project_id}: {sorted(changes)}")
    return {"project": project}


@router.delete("/{project_id}")
def delete_project(project_id: str, user_id: str = Depends(require_user)):
    """Delete the project and its storage root."""
    project = project_store.get(project_id)
    ensure_owner(project, user_id, "delete")

    try:
        remove_project_root(project_id)
    except OSError as e:
        # The metadata still goes; an orphaned directory is harmless
        logger.error(f"Error deleting project files for {project_id}: {e}", exc_info=True)

    project_store.delete(project_id)
    return {"message": "Project deleted successfully"}
