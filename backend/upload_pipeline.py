# vibeshare/backend/upload_pipeline.py

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from backend.archive import extract_archive
from backend.paths import (
    base_name,
    get_file_type,
    is_allowed_upload,
    normalize_relative_path,
    resolve_in_root,
)
from backend.storage import cleanup_dir, ensure_project_root, make_staging_dir, project_root, write_file_atomic
from backend.tree import build_structure_index
from shared.config import settings
from shared.errors import FilesystemFailure, NoFilesProvided, UnsupportedFileType, ValidationFailed
from shared.logging_config import setup_logger
from shared.models import FileRecord, Project
from shared.project_store import ProjectStore, project_store

# Set up logger
logger = setup_logger(__name__)


@dataclass
class IncomingFile:
    """One uploaded file, fully read, with the client's optional placement hint."""
    filename: str
    data: bytes
    declared_path: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def name(self) -> str:
        return base_name(self.filename)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def path_hint(self) -> Optional[str]:
        """Declared path, else the multipart filename when it carries a folder."""
        if self.declared_path:
            return self.declared_path
        if self.filename != self.name:
            return self.filename
        return None


def validate_batch(files: Sequence[IncomingFile], check_types: Optional[bool] = None) -> None:
    if not files:
        raise NoFilesProvided()
    if len(files) > settings.max_files:
        raise ValidationFailed(
            f"Too many files. Maximum allowed: {settings.max_files} files. You tried to upload: {len(files)}"
        )
    limit_mb = settings.max_file_size / 1024 / 1024
    if check_types is None:
        check_types = settings.enforce_allowlist
    for f in files:
        if f.size > settings.max_file_size:
            raise ValidationFailed(f"File too large: {f.name}. Maximum allowed: {limit_mb:g}MB per file.")
        if check_types and not is_allowed_upload(f.name):
            ext = os.path.splitext(f.name)[1].lower()
            raise UnsupportedFileType(f"File type {ext} is not allowed")


def _record(target: Path, relative_path: str, size: int) -> FileRecord:
    return FileRecord(
        filename=target.name,
        filepath=str(target),
        relative_path=relative_path,
        filetype=get_file_type(target.name),
        size=size,
    )


def _log_summary(mode: str, records: List[FileRecord]) -> None:
    file_type_counts: Dict[str, int] = {}
    for record in records:
        file_type_counts[record.filetype] = file_type_counts.get(record.filetype, 0) + 1
    total_size = sum(record.size for record in records)
    logger.info(f"{mode} upload summary: {len(records)} files, {total_size / 1024 / 1024:.2f} MB total")
    logger.debug(f"File type summary: {file_type_counts}")


def store_files(project_id: str, files: Sequence[IncomingFile]) -> List[FileRecord]:
    """
    Files mode: each file goes to the project root by name unless it
    carries a declared path or a slashed filename, in which case nested
    folders are created.
    """
    validate_batch(files)
    # Resolve every path before the first write so a bad one writes nothing
    relative_paths = [normalize_relative_path(f.filename, f.path_hint) for f in files]

    root = ensure_project_root(project_id)
    records = []
    for f, relative_path in zip(files, relative_paths):
        target = resolve_in_root(root, relative_path)
        size = write_file_atomic(target, f.data)
        logger.debug(f"Processing file: {f.filename} -> Type: {get_file_type(f.name)} -> Path: {relative_path}")
        records.append(_record(target, relative_path, size))

    _log_summary("Files", records)
    return records


def resolve_folder_paths(
    files: Sequence[IncomingFile],
    path_mapping: Optional[Dict[str, str]] = None,
    folder_structure: Optional[Dict[str, List[str]]] = None,
) -> List[Optional[str]]:
    """
    Declared path for each file of a folder upload.

    pathMapping (name -> relative path) wins; the older folderStructure
    form (folder -> [names]) is the fallback; anything else lands at the root.
    """
    path_mapping = path_mapping or {}
    folder_structure = folder_structure or {}
    declared: List[Optional[str]] = []
    for f in files:
        mapped = f.declared_path or path_mapping.get(f.filename) or path_mapping.get(f.name)
        if not mapped and f.filename != f.name:
            # Browsers that keep the folder in the multipart filename
            mapped = f.filename
        if not mapped:
            for folder_path, file_names in folder_structure.items():
                if f.name in file_names:
                    mapped = f"{folder_path}/{f.name}" if folder_path else f.name
                    break
        declared.append(mapped)
    return declared


def _place_landed_file(landed: Path, root: Path, relative_path: str, name: str) -> Tuple[Path, str]:
    """Move a staged file to its declared location, falling back to the project root."""
    target = resolve_in_root(root, relative_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(landed, target)
        logger.debug(f"Moved file to: {target}")
        return target, relative_path
    except OSError as move_error:
        logger.error(f"Error moving file {name} to {relative_path}: {move_error}. Keeping it at the project root.")

    flat_path = normalize_relative_path(name)
    target = resolve_in_root(root, flat_path)
    try:
        os.replace(landed, target)
    except OSError as e:
        logger.error(f"Error placing file {name} at the project root: {e}")
        raise FilesystemFailure(f"Error saving file {name}: {e}")
    return target, flat_path


def store_folder(
    project_id: str,
    files: Sequence[IncomingFile],
    path_mapping: Optional[Dict[str, str]] = None,
    folder_structure: Optional[Dict[str, List[str]]] = None,
) -> List[FileRecord]:
    """
    Folder mode: files land flat in a staging directory, then move into
    the folder their declared path names.
    """
    validate_batch(files)
    declared = resolve_folder_paths(files, path_mapping, folder_structure)
    relative_paths = [normalize_relative_path(f.filename, d) for f, d in zip(files, declared)]

    staging = make_staging_dir()
    records = []
    try:
        landed_files = []
        for i, f in enumerate(files):
            # Index prefix keeps same-named files from different folders apart
            landed = staging / f"{i}_{f.name}"
            landed_files.append((landed, write_file_atomic(landed, f.data)))

        # The project directory only appears once the whole batch is staged
        root = ensure_project_root(project_id)
        for f, relative_path, (landed, size) in zip(files, relative_paths, landed_files):
            target, placed_path = _place_landed_file(landed, root, relative_path, f.name)
            logger.debug(f"Folder upload: {f.filename} -> {placed_path}")
            records.append(_record(target, placed_path, size))
    finally:
        cleanup_dir(staging)

    _log_summary("Folder", records)
    return records


def is_zip_upload(upload: IncomingFile) -> bool:
    content_type = (upload.content_type or "").lower()
    return upload.name.lower().endswith(".zip") or "zip" in content_type


def store_archive(project_id: str, upload: Optional[IncomingFile]) -> List[FileRecord]:
    """Zip mode: spool the archive to a temporary file and extract it."""
    if upload is None or not upload.data:
        raise NoFilesProvided("No zip file provided")
    if not is_zip_upload(upload):
        raise ValidationFailed("File must be a zip archive")

    temp_dir = make_staging_dir(prefix="zip-")
    zip_path = temp_dir / "upload.zip"
    try:
        write_file_atomic(zip_path, upload.data)
        logger.info(f"Zip file received for project {project_id}: {upload.size} bytes")
        # extract_archive creates the directory only after every entry unpacked cleanly
        records = extract_archive(zip_path, project_root(project_id))
    finally:
        cleanup_dir(temp_dir)

    _log_summary("Zip", records)
    return records


def pick_main_file(records: Sequence[FileRecord]) -> Optional[str]:
    """A root index.html if the batch has one, else the first index.html anywhere."""
    for record in records:
        if record.relative_path == "index.html":
            return record.relative_path
    for record in records:
        if record.filename == "index.html":
            return record.relative_path
    return None


def commit_upload(project_id: str, records: List[FileRecord], store: Optional[ProjectStore] = None) -> Project:
    """
    Upsert the batch into the project's file list and rebuild the derived
    structure index. mainFile is only chosen for the project's first batch.
    """
    store = store or project_store

    def apply(project: Project) -> None:
        first_batch = not project.files
        project.upsert_files(records)
        project.project_structure = build_structure_index(project.files)
        if first_batch:
            main_file = pick_main_file(records)
            if main_file:
                project.main_file = main_file
                logger.info(f"Main file for project {project_id} set to {main_file}")

    project = store.update(project_id, apply)
    logger.info(f"Committed {len(records)} files to project {project_id}. Total files: {len(project.files)}")
    return project
