"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m fileserve --port 3000 --doc-root ./site         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 HTTP_DOC_ROOT=./site python -m fileserve   │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs before the listening socket is created. A document root
that is missing or not a directory stops the server at startup.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    Development:
        ServerConfig(port=8080, doc_root="htdocs", log_level="DEBUG")

    Tests:
        ServerConfig(port=0, doc_root=tmp_path, timeout=0.5)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IP address to bind to. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 asks the OS for a free port."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    doc_root: str = "htdocs"
    """Directory files are served from."""

    timeout: float = 5.0
    """
    Idle deadline in seconds, re-armed before every request.
    A client that sends nothing for this long is disconnected silently;
    one that stalls mid-request gets a 400 first.
    """

    max_request_size: int = 8192
    """Largest accepted request head (request line + headers) in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    server_name: str = "fileserve/1.0"

    @property
    def listen_address(self) -> str:
        """The bind address as "host:port"."""
        return f"{self.host}:{self.port}"

    @property
    def doc_root_path(self) -> str:
        """Absolute, normalized document root."""
        return os.path.abspath(self.doc_root)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        HTTP_HOST       Server host (default: 127.0.0.1)
        HTTP_PORT       Server port (default: 8080)
        HTTP_DOC_ROOT   Document root (default: htdocs)
        HTTP_TIMEOUT    Idle timeout in seconds (default: 5)
        HTTP_LOG_LEVEL  Logging level (default: INFO)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            doc_root=os.getenv("HTTP_DOC_ROOT", "htdocs"),
            timeout=float(os.getenv("HTTP_TIMEOUT", "5")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.timeout is None or self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_request_size < 64:
            raise ValueError("max_request_size must be >= 64")

        if not os.path.exists(self.doc_root):
            raise ValueError(f"doc_root does not exist: {self.doc_root}")

        if not os.path.isdir(self.doc_root):
            raise ValueError(f"doc_root is not a directory: {self.doc_root}")

    def with_overrides(self, **overrides: Optional[object]) -> "ServerConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return ServerConfig(**{**self.__dict__, **values})
