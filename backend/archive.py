# vibeshare/backend/archive.py

import io
import os
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, List, Union

from backend.paths import get_file_type, is_system_artifact, normalize_relative_path, resolve_in_root
from backend.storage import cleanup_dir, make_staging_dir
from shared.config import settings
from shared.errors import ArchiveMalformed, FilesystemFailure, NoFilesProvided, PathTraversal, ValidationFailed
from shared.logging_config import setup_logger
from shared.models import FileRecord

# Set up logger
logger = setup_logger(__name__)

ArchiveSource = Union[bytes, str, Path, BinaryIO]


def is_symlink(info: zipfile.ZipInfo) -> bool:
    # Unix mode lives in the high 16 bits of external_attr
    unix_mode = (info.external_attr >> 16) & 0xFFFF
    return (unix_mode & 0o170000) == 0o120000


def _open_archive(source: ArchiveSource) -> zipfile.ZipFile:
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        return zipfile.ZipFile(source, "r")
    except zipfile.BadZipFile as e:
        logger.error(f"Invalid zip file format: {str(e)}")
        raise ArchiveMalformed(f"Invalid zip file format: {str(e)}")


def plan_entries(zipf: zipfile.ZipFile) -> Dict[str, zipfile.ZipInfo]:
    """
    Map each extractable entry to its normalized relative path.

    Directory entries and system artifacts are skipped; any unsafe name
    rejects the whole archive before anything is written.
    """
    infos = zipf.infolist()
    if len(infos) > settings.max_archive_entries:
        raise ValidationFailed(
            f"Too many files in archive: {len(infos)} (max: {settings.max_archive_entries})"
        )

    planned: Dict[str, zipfile.ZipInfo] = {}
    total_size = 0
    for info in infos:
        if info.is_dir():
            continue
        if is_system_artifact(info.filename):
            logger.debug(f"Skipping system file in archive: {info.filename}")
            continue
        if is_symlink(info):
            raise PathTraversal(f"Invalid path in zip: {info.filename} (symbolic links are not allowed)")

        relative_path = normalize_relative_path(os.path.basename(info.filename), info.filename)

        total_size += info.file_size
        if total_size > settings.max_archive_size:
            raise ValidationFailed(
                f"Total uncompressed size exceeds limit of {settings.max_archive_size} bytes"
            )
        # Repeated names: the later entry wins, as it would on disk
        planned[relative_path] = info
    return planned


def extract_archive(source: ArchiveSource, project_root: Path) -> List[FileRecord]:
    """
    Extract a zip archive into project_root.

    Everything is unpacked into a staging directory first and only moved
    into the project once every entry decompressed cleanly, so a corrupt
    archive leaves the project tree as it was. project_root is created
    here, after staging succeeds, when it does not exist yet.
    """
    with _open_archive(source) as zipf:
        planned = plan_entries(zipf)
        if not planned:
            raise NoFilesProvided("Zip archive contains no files")

        try:
            bad_entry = zipf.testzip()
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise ArchiveMalformed(f"Zip file integrity check failed: {e}")
        if bad_entry is not None:
            logger.error(f"Zip integrity check failed at: {bad_entry}")
            raise ArchiveMalformed(f"Zip file integrity check failed at: {bad_entry}")

        staging = make_staging_dir(prefix="extract-")
        try:
            total_files = len(planned)
            for i, (relative_path, info) in enumerate(planned.items()):
                staged_path = resolve_in_root(staging, relative_path)
                try:
                    staged_path.parent.mkdir(parents=True, exist_ok=True)
                    with zipf.open(info) as source_file, open(staged_path, "wb") as target:
                        shutil.copyfileobj(source_file, target)
                except (zipfile.BadZipFile, zlib.error, EOFError) as e:
                    logger.error(f"Error extracting {info.filename}: {str(e)}")
                    raise ArchiveMalformed(f"Error extracting {info.filename}: {str(e)}")
                except OSError as e:
                    logger.error(f"Error extracting {info.filename}: {str(e)}")
                    raise FilesystemFailure(f"Error extracting {info.filename}: {str(e)}")

                if (i + 1) % 10 == 0:
                    progress = int(((i + 1) / total_files) * 100)
                    logger.debug(f"Extraction progress: {progress}%")

            return _move_into_project(staging, planned, project_root)
        finally:
            cleanup_dir(staging)


def _move_into_project(staging: Path, planned: Dict[str, zipfile.ZipInfo], project_root: Path) -> List[FileRecord]:
    try:
        project_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Could not create project directory {project_root}: {e}", exc_info=True)
        raise FilesystemFailure(f"Could not create project directory: {e}")

    records = []
    for relative_path in planned:
        staged_path = resolve_in_root(staging, relative_path)
        target = resolve_in_root(project_root, relative_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(staged_path, target)
            size = target.stat().st_size
        except OSError as e:
            logger.error(f"Error placing {relative_path} into {project_root}: {e}")
            raise FilesystemFailure(f"Error extracting {relative_path}: {str(e)}")

        records.append(FileRecord(
            filename=target.name,
            filepath=str(target),
            relative_path=relative_path,
            filetype=get_file_type(relative_path),
            size=size,
        ))
    logger.info(f"Extracted {len(records)} files into {project_root}")
    return records
