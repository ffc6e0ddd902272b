"""
Request handlers.

    StaticFileHandler   200 / 404 for a validated request
    resolve_path        target → ResolvedFile under the document root
"""

from .static import StaticFileHandler, ResolvedFile, resolve_path

__all__ = [
    "StaticFileHandler",
    "ResolvedFile",
    "resolve_path",
]
