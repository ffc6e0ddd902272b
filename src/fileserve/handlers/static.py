"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps a validated request onto a file under the document root and builds
the 200 or 404 response for it.

=============================================================================
RESOLUTION RULES
=============================================================================

    target               doc_root = /srv/www
    ─────────────────    ─────────────────────────────────────────────────
    /index.html          /srv/www/index.html                  → 200
    /docs/               /srv/www/docs/index.html             → 200 if file
    /docs                /srv/www/docs  (a directory)         → 404
    /a/../b.txt          /srv/www/b.txt                       → 200 if file
    /../index.html       /srv/www/index.html                  → 200
    /../../etc/passwd    /srv/www/etc/passwd                  → 404 if missing
    /missing.png         does not exist                       → 404

Directories are never listed. A directory is only served through its
index.html, and only when the target ends with "/".

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The target is normalized on its own first, anchored at "/", so ".."
segments can never climb above it:

    posixpath.normpath("/../../etc/passwd")  →  "/etc/passwd"

Only then is it joined onto the root. As a second line of defense the
joined path must still be the root itself or start with root + os.sep.
A plain startswith(root) check is not enough: "/srv/www-private" starts
with "/srv/www".

=============================================================================
"""

import os
import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, not_found
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


@dataclass(frozen=True)
class ResolvedFile:
    """A file that passed resolution: absolute path, mtime (UTC) and size."""

    path: str
    modified: datetime
    size: int

    @property
    def extension(self) -> str:
        return os.path.splitext(self.path)[1]


def is_within(root: str, path: str) -> bool:
    """True if `path` is `root` or textually below it."""
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def resolve_path(doc_root: Union[str, Path], target: str) -> Optional[ResolvedFile]:
    """
    Resolve a request target to a file under `doc_root`.

    Args:
        doc_root: Absolute document root.
        target:   Request target, starting with "/".

    Returns:
        ResolvedFile on success, None for "not found" (missing file,
        directory without trailing slash or index, or a path outside the
        root).
    """
    root = os.path.normpath(os.fspath(doc_root))
    clean = posixpath.normpath("/" + target.lstrip("/"))
    full_path = os.path.normpath(os.path.join(root, clean.lstrip("/")))

    if not is_within(root, full_path):
        logger.warning(f"Path traversal attempt: {target}")
        return None

    if not os.path.exists(full_path):
        return None

    if os.path.isdir(full_path):
        if not target.endswith("/"):
            return None
        full_path = os.path.join(full_path, INDEX_FILE)

    if not os.path.isfile(full_path):
        return None

    try:
        stat = os.stat(full_path)
    except OSError:
        return None

    return ResolvedFile(
        path=full_path,
        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        size=stat.st_size,
    )


class StaticFileHandler:
    """
    Handler that answers a valid request with a 200 or a 404.

    The content-type lookup is injected once at construction and shared by
    every connection; it must be a total function extension → media type.

    Usage:
        handler = StaticFileHandler("/srv/www")
        response = handler.handle(request)
    """

    def __init__(
        self,
        doc_root: Union[str, Path],
        content_type: Callable[[str], str] = get_mime_type,
    ):
        self.doc_root = os.path.abspath(os.fspath(doc_root))
        self.content_type = content_type

        if not os.path.isdir(self.doc_root):
            raise ValueError(f"Document root is not a directory: {doc_root}")

    def handle(self, request: HTTPRequest, now: Optional[datetime] = None) -> HTTPResponse:
        resolved = resolve_path(self.doc_root, request.path)
        if resolved is None:
            return not_found(request, now=now)

        return ok(
            request,
            path=resolved.path,
            size=resolved.size,
            modified=resolved.modified,
            content_type=self.content_type(resolved.extension),
            now=now,
        )
