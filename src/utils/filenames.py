"""
Display filename resolution for relayed downloads.

Order of preference:
1. ``Content-Disposition`` filename (RFC 5987 ``filename*`` first)
2. Last path segment of the URL
3. ``downloaded_file``

A missing extension is filled in from the ``Content-Type`` header.
The returned name is still percent-encoded; callers unquote it.
"""

import logging
import re
from typing import Mapping, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "downloaded_file"

# Content-Type (without parameters) -> extension appended to bare names
MIME_EXTENSIONS = {
    "application/pdf": ".pdf",
    "application/json": ".json",
    "application/xml": ".xml",
    "application/zip": ".zip",
    "application/gzip": ".gz",
    "application/x-tar": ".tar",
    "application/x-7z-compressed": ".7z",
    "application/x-rar-compressed": ".rar",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.android.package-archive": ".apk",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "text/plain": ".txt",
    "text/html": ".html",
    "text/css": ".css",
    "text/csv": ".csv",
    "text/javascript": ".js",
    "audio/mpeg": ".mp3",
    "audio/ogg": ".ogg",
    "audio/wav": ".wav",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
}

_FILENAME_STAR_RE = re.compile(
    r"filename\*\s*=\s*(?:[\w!#$%&+^`{}~-]+)?'[^']*'([^;]+)", re.IGNORECASE
)
_FILENAME_RE = re.compile(r"filename\s*=\s*(\"[^\"]*\"|'[^']*'|[^;]+)", re.IGNORECASE)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that also works for plain dicts."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, val in headers.items():
        if key.lower() == lowered:
            return val
    return None


def mime_type(content_type: Optional[str]) -> str:
    """Strip parameters (``; charset=...``) from a Content-Type value."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def name_from_content_disposition(value: Optional[str]) -> Optional[str]:
    """Extract the filename from a Content-Disposition header value."""
    if not value:
        return None

    match = _FILENAME_STAR_RE.search(value)
    if match:
        name = match.group(1).strip()
        if name:
            return name

    match = _FILENAME_RE.search(value)
    if not match:
        return None
    name = match.group(1).strip().strip("\"'").strip()
    return name or None


def _has_extension(name: str) -> bool:
    stem, dot, ext = name.rpartition(".")
    return bool(dot and stem and ext)


def resolve_file_name(url: str, headers: Mapping[str, str]) -> str:
    """Pick a display filename for the resource at ``url``.

    Never raises; falls back to DEFAULT_FILE_NAME.
    """
    name = name_from_content_disposition(_header(headers, "content-disposition"))

    if name is None:
        try:
            path = urlparse(url).path
        except ValueError as e:
            logger.debug("Could not parse URL %r: %s", url, e)
            return DEFAULT_FILE_NAME
        name = path.rsplit("/", 1)[-1] or DEFAULT_FILE_NAME

    if not _has_extension(name):
        extension = MIME_EXTENSIONS.get(mime_type(_header(headers, "content-type")))
        if extension:
            name += extension

    return name
