"""
=============================================================================
CONTENT-TYPE LOOKUP
=============================================================================

Maps file extensions to media types for the Content-Type header of a
200 response.

The table below is built once at import time and never mutated. Every
worker thread reads it concurrently without locking.

    ┌────────────────────────────────────────────────────────────────────┐
    │                    LOOKUP CONTRACT                                 │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   get_mime_type(".html")   → "text/html"                           │
    │   get_mime_type("HTML")    → "text/html"     (dot optional,        │
    │                                               case-insensitive)   │
    │   get_mime_type(".xyz")    → "application/octet-stream"            │
    │   get_mime_type("")        → "application/octet-stream"            │
    │                                                                     │
    │   The function is TOTAL: it never raises and never returns None.   │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions including the leading dot.
#
# =============================================================================

MIME_TYPES: Mapping[str, str] = MappingProxyType({
    # -------------------------------------------------------------------------
    # TEXT
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO
    # -------------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # -------------------------------------------------------------------------
    # DOCUMENTS / ARCHIVES
    # -------------------------------------------------------------------------
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
})

# Fallback for extensions missing from the table
DEFAULT_MIME_TYPE = "application/octet-stream"


def normalize_extension(extension: str) -> str:
    """
    Lowercase an extension and make sure it starts with a dot.

        >>> normalize_extension("PNG")
        '.png'
        >>> normalize_extension("")
        ''
    """
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


def get_mime_type(extension: str) -> str:
    """
    Get the media type for a file extension.

    Args:
        extension: Extension with or without the leading dot
                   (".html", "html", ".HTML" all work).

    Returns:
        The media type, or application/octet-stream for anything unknown.
    """
    return MIME_TYPES.get(normalize_extension(extension), DEFAULT_MIME_TYPE)


def get_mime_type_for_path(path: Union[str, Path]) -> str:
    """Get the media type for a file path, based on its suffix."""
    return get_mime_type(Path(path).suffix)
