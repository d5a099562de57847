# vibeshare/backend/preview.py
#
# Preview responses are served one file at a time through
# <prefix>/<project_id>/preview/<path>, so the browser's idea of the current
# directory is not the project's. Relative references in HTML and CSS are
# rewritten into absolute preview URLs before the content is sent.

import os
import posixpath
import re
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from shared.config import settings
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

CONTENT_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".jsx": "application/javascript",
    ".ts": "application/javascript",
    ".tsx": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}
DEFAULT_CONTENT_TYPE = "text/plain"

TEXT_CONTENT_TYPES = {"application/javascript", "application/json", "application/xml"}

SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

ATTRIBUTE_RE = re.compile(
    r"""(?P<attr>\b[\w:-]*(?:href|src))(?P<eq>\s*=\s*)(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')""",
    re.IGNORECASE,
)
CSS_URL_RE = re.compile(
    r"""url\(\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^'")\s]+))\s*\)""",
    re.IGNORECASE,
)


def content_type_for(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def is_text_content(content_type: str) -> bool:
    return content_type.startswith("text/") or content_type in TEXT_CONTENT_TYPES


def framing_headers(frame_ancestors: Optional[List[str]] = None) -> Dict[str, str]:
    """Headers that let the preview be embedded in an iframe by the known frontends."""
    ancestors = settings.frame_ancestors if frame_ancestors is None else frame_ancestors
    return {
        "X-Frame-Options": "ALLOWALL",
        "Content-Security-Policy": " ".join(["frame-ancestors 'self'"] + list(ancestors)),
    }


def preview_url(project_id: str, relative_path: str, prefix: Optional[str] = None) -> str:
    base = (prefix or settings.preview_prefix).rstrip("/")
    return f"{base}/{project_id}/preview/{quote(relative_path, safe='/')}"


def resolve_reference(reference: str, file_directory: str, prefix: Optional[str] = None) -> Optional[str]:
    """
    Project-root-relative path a reference points to, or None when it must be
    left alone (external, data, fragment-only, template or already rewritten).
    Any query string or fragment is returned attached.
    """
    mount = (prefix or settings.preview_prefix).rstrip("/")
    base = mount + "/"
    reference = reference.strip()
    if not reference or reference == mount or reference.startswith(("#", "//", base)):
        return None
    if SCHEME_RE.match(reference) or "{{" in reference or "${" in reference:
        return None

    match = re.search(r"[?#]", reference)
    path, suffix = (reference[:match.start()], reference[match.start():]) if match else (reference, "")
    if not path:
        return None

    path = unquote(path)
    if path.startswith("/"):
        joined = path.lstrip("/")
    else:
        joined = posixpath.join(file_directory.strip("/"), path)

    # Clamp anything that climbs above the project root
    parts = [part for part in posixpath.normpath(joined).split("/") if part not in ("", ".", "..")]
    if not parts:
        return None
    return "/".join(parts) + suffix


def _rewrite(reference: str, project_id: str, file_directory: str, prefix: Optional[str]) -> Optional[str]:
    resolved = resolve_reference(reference, file_directory, prefix)
    if resolved is None:
        return None
    match = re.search(r"[?#]", resolved)
    path, suffix = (resolved[:match.start()], resolved[match.start():]) if match else (resolved, "")
    return preview_url(project_id, path, prefix) + suffix


def _rewrite_css_urls(content: str, project_id: str, file_directory: str, prefix: Optional[str]) -> str:
    def replace(match: re.Match) -> str:
        if match.group("dq") is not None:
            quote_char, reference = '"', match.group("dq")
        elif match.group("sq") is not None:
            quote_char, reference = "'", match.group("sq")
        else:
            quote_char, reference = "", match.group("bare")
        rewritten = _rewrite(reference, project_id, file_directory, prefix)
        if rewritten is None:
            return match.group(0)
        return f"url({quote_char}{rewritten}{quote_char})"

    return CSS_URL_RE.sub(replace, content)


def rewrite_html(content: str, project_id: str, file_directory: str, prefix: Optional[str] = None) -> str:
    """
    Point relative href/src attributes and CSS url() references at the preview endpoint.
    file_directory is the project-relative directory of the document ("" for the root).
    """
    def replace(match: re.Match) -> str:
        quote_char = '"' if match.group("dq") is not None else "'"
        reference = match.group("dq") if match.group("dq") is not None else match.group("sq")
        rewritten = _rewrite(reference, project_id, file_directory, prefix)
        if rewritten is None:
            return match.group(0)
        return f"{match.group('attr')}{match.group('eq')}{quote_char}{rewritten}{quote_char}"

    content = ATTRIBUTE_RE.sub(replace, content)
    return _rewrite_css_urls(content, project_id, file_directory, prefix)


def rewrite_css(content: str, project_id: str, file_directory: str, prefix: Optional[str] = None) -> str:
    return _rewrite_css_urls(content, project_id, file_directory, prefix)
