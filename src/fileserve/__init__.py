"""
=============================================================================
FILESERVE - Static-File HTTP/1.1 Server
=============================================================================

A small HTTP/1.1 server built on raw sockets that serves files from a
document root:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  • GET only, HTTP/1.1 only, Host required                           │
    │  • Pipelined requests on one connection, answered in order          │
    │  • 5 second idle deadline, re-armed for every request               │
    │  • 200 / 400 / 404, headers sorted for deterministic output         │
    │  • "Connection: close" honored; every 400 closes the connection     │
    │  • Paths confined to the document root                              │
    └─────────────────────────────────────────────────────────────────────┘

QUICK START:

    from fileserve import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080, doc_root="htdocs"))
    server.run()

Or from the command line:

    python -m fileserve --port 8080 --doc-root htdocs

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "create_app",
    "__version__",
]
