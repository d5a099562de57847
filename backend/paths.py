# vibeshare/backend/paths.py

import os
import re
from pathlib import Path, PurePosixPath
from typing import Optional

from shared.errors import PathTraversal, ValidationFailed
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

MAX_COMPONENT_LENGTH = 255

DRIVE_RE = re.compile(r"^[A-Za-z]:(/|$)")

# Extensionless names that still deserve a recognizable file type
SPECIAL_FILE_TYPES = [
    ("Dockerfile", ".dockerfile"),
    ("Makefile", ".makefile"),
    ("README", ".readme"),
    ("LICENSE", ".license"),
    (".gitignore", ".gitignore"),
    (".env", ".env"),
]
EXACT_FILE_TYPES = {
    "package-lock.json": ".json",
    "yarn.lock": ".lock",
    ".npmrc": ".npmrc",
    ".nvmrc": ".nvmrc",
}

SYSTEM_ARTIFACT_DIRS = {"__MACOSX"}
SYSTEM_ARTIFACT_NAMES = {".DS_Store", "Thumbs.db", "desktop.ini"}

ALLOWED_EXTENSIONS = {
    # Web files
    ".html", ".htm", ".css", ".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte",
    ".json", ".md", ".txt", ".xml", ".yaml", ".yml",
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp", ".bmp", ".tiff",
    # Fonts
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    # Source maps and preprocessors
    ".map", ".scss", ".sass", ".less", ".styl", ".coffee",
    # Programming languages
    ".py", ".php", ".rb", ".go", ".rs", ".java", ".cpp", ".c", ".h", ".cs",
    ".swift", ".kt", ".dart", ".r", ".m", ".pl", ".sh", ".bat", ".ps1",
    # Data files
    ".csv", ".xlsx", ".xls", ".sql", ".db", ".sqlite",
    # Archives
    ".zip", ".tar", ".gz", ".rar",
    # Documents
    ".pdf", ".doc", ".docx", ".rtf",
}


def base_name(original_name: str) -> str:
    """Bare file name of a client-supplied name, whichever separator it used."""
    return original_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def clean_relative_path(raw_path: str) -> str:
    """
    Canonicalize a client-supplied relative path.

    - Convert backslashes to slashes
    - Reject absolute paths, drive letters, NUL bytes and any `..` segment
    - Drop empty and `.` segments
    """
    if not isinstance(raw_path, str):
        raise ValidationFailed("Invalid file path")
    if "\x00" in raw_path:
        raise PathTraversal(f"Invalid path: {raw_path!r} (contains a NUL byte)")

    path = raw_path.replace("\\", "/").strip()
    if path.startswith("/") or DRIVE_RE.match(path):
        raise PathTraversal(f"Invalid path: {raw_path} (absolute paths are not allowed)")

    parts = []
    for part in PurePosixPath(path).parts:
        if part in ("", "."):
            continue
        if part == "..":
            raise PathTraversal(f"Invalid path: {raw_path} (contains parent directory reference)")
        if len(part) > MAX_COMPONENT_LENGTH:
            raise ValidationFailed(f"Path component too long in {raw_path}")
        parts.append(part)

    if not parts:
        raise ValidationFailed(f"Invalid file path: {raw_path!r}")
    return "/".join(parts)


def normalize_relative_path(original_name: str, declared_path: Optional[str] = None) -> str:
    """
    Project-relative path for an uploaded file.

    The declared path (folder mapping, archive entry name) wins when given;
    otherwise the file goes to the project root under its bare name.
    """
    if declared_path:
        return clean_relative_path(declared_path)
    return clean_relative_path(base_name(original_name or ""))


def resolve_in_root(root: Path, relative_path: str) -> Path:
    """Absolute location of relative_path, guaranteed to stay inside root."""
    resolved_root = Path(root).resolve()
    target = (resolved_root / relative_path).resolve()
    if target != resolved_root and not target.is_relative_to(resolved_root):
        logger.warning(f"Path escapes storage root: {relative_path} (resolved: {target})")
        raise PathTraversal(f"Path escapes the project directory: {relative_path}")
    return target


def get_file_type(filename: str) -> str:
    if not filename or not isinstance(filename, str):
        logger.warning(f"Invalid filename provided to get_file_type: {filename!r}")
        return "unknown"

    name = base_name(filename)
    if name in EXACT_FILE_TYPES:
        return EXACT_FILE_TYPES[name]

    ext = os.path.splitext(name)[1].lower()
    if ext:
        return ext

    for marker, file_type in SPECIAL_FILE_TYPES:
        if marker in name:
            return file_type

    logger.debug(f"No extension found for file: {name}, using 'unknown'")
    return "unknown"


def is_system_artifact(relative_path: str) -> bool:
    """Platform bookkeeping files that archives and folder drops drag along."""
    parts = relative_path.replace("\\", "/").split("/")
    if any(part in SYSTEM_ARTIFACT_DIRS for part in parts):
        return True
    name = parts[-1]
    return name in SYSTEM_ARTIFACT_NAMES or name.startswith("._")


def is_allowed_upload(filename: str) -> bool:
    ext = os.path.splitext(base_name(filename))[1].lower()
    return ext == "" or ext in ALLOWED_EXTENSIONS
