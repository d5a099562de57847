# vibeshare/backend/tree.py

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from shared.logging_config import setup_logger
from shared.models import FileRecord

# Set up logger
logger = setup_logger(__name__)


def build_tree(root: Path, relative_path: str = "") -> List[Dict[str, Any]]:
    """
    Mirror the directory at root as nested file/folder nodes.
    Entries come back in filesystem enumeration order; callers sort for display.
    """
    items = []
    with os.scandir(root) as entries:
        for entry in entries:
            item_relative_path = f"{relative_path}/{entry.name}" if relative_path else entry.name
            if entry.is_dir(follow_symlinks=False):
                items.append({
                    "type": "folder",
                    "name": entry.name,
                    "relativePath": item_relative_path,
                    "children": build_tree(Path(entry.path), item_relative_path),
                })
            else:
                try:
                    stat_info = entry.stat()
                except OSError as e:
                    logger.warning(f"Could not stat {entry.path}, skipping: {e}")
                    continue
                items.append({
                    "type": "file",
                    "name": entry.name,
                    "relativePath": item_relative_path,
                    "size": stat_info.st_size,
                    "modified": datetime.fromtimestamp(stat_info.st_mtime, tz=timezone.utc).isoformat(),
                })
    return items


def build_structure_index(files: Iterable[FileRecord]) -> Dict[str, List[str]]:
    """
    Folder path ("" for the root) -> names of the files directly inside it.
    Intermediate folders are listed too, with whatever files they hold.
    """
    structure: Dict[str, List[str]] = {}
    for record in files:
        parts = record.relative_path.split("/")
        current_path = ""
        for part in parts[:-1]:
            current_path = f"{current_path}/{part}" if current_path else part
            structure.setdefault(current_path, [])
        structure.setdefault(current_path, []).append(record.filename)
    return structure
