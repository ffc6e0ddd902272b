"""
=============================================================================
MAIN FILE SERVER
=============================================================================

Ties the components together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌─────────────────┐   ┌──────────────────┐   │
    │    │ SocketServer │    │ worker thread   │   │ StaticFileHandler│   │
    │    │ (accept)     │───►│ per connection  │──►│ (200 / 404)      │   │
    │    └──────────────┘    │ ConnectionLife- │   └──────────────────┘   │
    │                        │ cycle.run()     │                          │
    │                        └─────────────────┘                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection
    2. A new daemon thread takes ownership of it
    3. ConnectionLifecycle parses requests one at a time
    4. StaticFileHandler resolves each path → 200 or 404
    5. Responses go out in receipt order; the loop ends on EOF,
       timeout, 400, a write failure or Connection: close
    6. `with conn:` closes the socket on every exit path

Worker threads share nothing mutable: the document root, the parser and
the content-type table are all read-only.

=============================================================================
"""

import logging
import threading
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection
from .core.lifecycle import ConnectionLifecycle
from .handlers import StaticFileHandler
from .http import RequestParser, get_mime_type


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_level: str = "INFO"):
    """Configure the root logger and the fileserve logger tree."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("fileserve").setLevel(level)


class HTTPServer:
    """
    Static-file HTTP/1.1 server.

    Usage:
        server = HTTPServer(ServerConfig(port=8080, doc_root="htdocs"))
        server.run()  # Blocks until Ctrl+C / SIGTERM / shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Validated here, so a bad document
                    root fails before any socket is opened.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser()
        self._handler = StaticFileHandler(
            self.config.doc_root_path,
            content_type=get_mime_type,
        )
        self._running = False

    @property
    def address(self):
        """The bound (ip, port)."""
        return self._socket_server.address

    @property
    def doc_root(self) -> str:
        return self._handler.doc_root

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._running = True
        self._setup_logging()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.listen_address}, "
            f"serving {self.doc_root}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            logger.info("Server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting connections. In-flight connections finish on their own."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        setup_logging(self.config.log_level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand an accepted connection to its own worker thread.

        Called on the accept loop; returns immediately.
        """
        worker = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        worker.start()

    def _process_connection(self, conn: Connection):
        """Run the lifecycle for one connection (worker thread)."""
        with conn:  # Context manager ensures connection is closed
            try:
                lifecycle = ConnectionLifecycle(
                    conn,
                    handler=self._handler.handle,
                    parser=self._parser,
                    timeout=self.config.timeout,
                )
                lifecycle.run()
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Create a server from the given config, or from the environment."""
    return HTTPServer(config or ServerConfig.from_env())
