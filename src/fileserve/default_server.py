"""
=============================================================================
COMPARISON SERVER
=============================================================================

Serves the same document root with the standard library's file server, so
fileserve's output can be compared side by side against a reference:

    python -m fileserve --doc-root htdocs --port 8080
    python -m fileserve --doc-root htdocs --port 8081 --use-default

    curl -i http://localhost:8080/index.html
    curl -i http://localhost:8081/index.html

The stdlib handler supports more than fileserve (HEAD, directory listings,
redirects for bare directories), which is exactly what makes it a useful
baseline.

=============================================================================
"""

import logging
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer

from .config import ServerConfig


logger = logging.getLogger(__name__)


class DefaultRequestHandler(SimpleHTTPRequestHandler):
    """SimpleHTTPRequestHandler that speaks HTTP/1.1 and logs via logging."""

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        logger.info(f"{self.address_string()} {format % args}")


def make_default_server(config: ServerConfig) -> ThreadingHTTPServer:
    """Build (but don't start) the comparison server for `config`."""
    config.validate()
    handler = partial(DefaultRequestHandler, directory=config.doc_root_path)
    server = ThreadingHTTPServer((config.host, config.port), handler)
    server.daemon_threads = True
    return server


def serve_default(config: ServerConfig):
    """Run the comparison server until interrupted (blocking)."""
    server = make_default_server(config)
    host, port = server.server_address[:2]
    logger.info(f"Starting default server on {host}:{port}, serving {config.doc_root_path}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        server.server_close()
        logger.info("Default server stopped")
