"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Callable, Dict, Generator, List, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserve import HTTPServer, ServerConfig
from fileserve.core import Connection


# 2006-01-02 15:04:05 UTC, a Monday
FIXED_MTIME = 1136214245
FIXED_HTTP_DATE = "Mon, 02 Jan 2006 15:04:05 GMT"


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A small document root:

        tmp/
        ├── outside.txt              (NOT under the root)
        ├── htdocs-private/secret.txt (sibling sharing the root's prefix)
        └── htdocs/
            ├── index.html
            ├── image.png
            ├── data.unknownext
            ├── big.bin              (larger than one write chunk)
            ├── empty/               (directory without index.html)
            └── subdir/
                ├── index.html
                └── notes.txt
    """
    root = tmp_path / "htdocs"
    (root / "subdir").mkdir(parents=True)
    (root / "empty").mkdir()

    (root / "index.html").write_bytes(b"<html><body>home</body></html>")
    (root / "subdir" / "index.html").write_bytes(b"<html><body>subdir</body></html>")
    (root / "subdir" / "notes.txt").write_bytes(b"plain notes\n")
    (root / "image.png").write_bytes(bytes(range(256)) * 4)
    (root / "data.unknownext").write_bytes(b"\x00\x01\x02")
    (root / "big.bin").write_bytes(os.urandom(200 * 1024))

    (tmp_path / "outside.txt").write_bytes(b"outside the root")
    (tmp_path / "htdocs-private").mkdir()
    (tmp_path / "htdocs-private" / "secret.txt").write_bytes(b"secret")

    for path in root.rglob("*"):
        if path.is_file():
            os.utime(path, (FIXED_MTIME, FIXED_MTIME))

    return root


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        doc_root=str(doc_root),
        timeout=0.5,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def conn_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """
    A server-side Connection and the raw client socket talking to it,
    built on socket.socketpair() (no TCP, no threads).
    """
    server_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5.0)
    conn = Connection(socket=server_sock, address=("127.0.0.1", 50000))

    yield conn, client_sock

    client_sock.close()
    conn.close()


ParsedResponse = Tuple[str, Dict[str, str], bytes]


def split_responses(raw: bytes) -> List[ParsedResponse]:
    """
    Split a byte stream into (status line, headers, body) tuples.

    Bodies are framed solely by Content-Length (0 when absent).
    """
    results: List[ParsedResponse] = []
    index = 0
    while True:
        header_end = raw.find(b"\r\n\r\n", index)
        if header_end == -1:
            break
        lines = raw[index:header_end].decode("iso-8859-1").split("\r\n")
        headers: Dict[str, str] = {}
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            headers[name] = value
        body_start = header_end + 4
        body_end = body_start + int(headers.get("Content-Length", "0"))
        results.append((lines[0], headers, raw[body_start:body_end]))
        index = body_end
    return results


@pytest.fixture
def parse_responses() -> Callable[[bytes], List[ParsedResponse]]:
    return split_responses


def recv_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def read_until_closed() -> Callable[[socket.socket], bytes]:
    return recv_all


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=timeout)
        return sock


@pytest.fixture
def test_server(config: ServerConfig, free_port: int) -> Generator[TestServer, None, None]:
    """A running file server over the doc_root fixture."""
    config.port = free_port
    test_srv = TestServer(HTTPServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
