"""
=============================================================================
HTTP REQUEST FRAMER / PARSER
=============================================================================

Reads one request head at a time off a Connection and turns it into an
immutable HTTPRequest or a classified failure.

=============================================================================
WHAT WE ACCEPT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  REQUEST LINE                                                       │
    │      GET /images/logo.png HTTP/1.1\r\n                              │
    │      ─┬─ ───────┬──────── ────┬───                                  │
    │       │         │             └── exactly "HTTP/1.1"                │
    │       │         └──────────────── must start with "/"               │
    │       └────────────────────────── exactly "GET"                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS                                                            │
    │      Host: www.example.com\r\n        ← mandatory                   │
    │      Connection: close\r\n            ← sets request.close          │
    │      user-agent: curl/8.0\r\n         ← stored as "User-Agent"      │
    │      \r\n                             ← end of head                 │
    └─────────────────────────────────────────────────────────────────────┘

There is never a body: GET only, no Content-Length, no chunking. The blank
line is the whole frame boundary, so the next pipelined request starts
right after it.

=============================================================================
OUTCOMES
=============================================================================

read_request() never raises for protocol or network conditions. It returns
a ReadResult whose `outcome` is one of:

    REQUEST          a complete, valid request
    CLEAN_EOF        peer closed before sending a byte of a new request
    TIMEOUT_IDLE     deadline passed, no byte of a new request received
    TIMEOUT_PARTIAL  deadline passed with part of a request received
    MALFORMED        anything else wrong (bad line, bad header, missing
                     Host, truncated by EOF, head too large)

`bytes_received` is recorded on every result, including failures.

=============================================================================
"""

import re
import socket
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from ..core.connection import Connection, RequestTooLargeError


logger = logging.getLogger(__name__)

SUPPORTED_METHOD = "GET"
SUPPORTED_VERSION = "HTTP/1.1"

HEADER_KEY_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Every parse error in this server is answered with 400 Bad Request and
    a closed connection, so the exception carries only its message.
    """


def canonical_header_key(name: str) -> str:
    """
    Canonicalize a header name: title case per hyphen segment.

        >>> canonical_header_key("content-type")
        'Content-Type'
        >>> canonical_header_key("X-FORWARDED-FOR")
        'X-Forwarded-For'
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed, validated HTTP request.

    Instances only exist for requests whose method, target and version
    validated and whose head carried a Host. They are frozen; the parser
    builds a new one per request.

    Attributes:
        method:   Always "GET".
        path:     Request target exactly as sent, starts with "/".
        version:  Always "HTTP/1.1".
        host:     Value of the Host header.
        close:    True if the client sent "Connection: close".
        headers:  Every other header, keyed by canonical name. A repeated
                  header keeps its last value.
    """

    method: str
    path: str
    version: str = SUPPORTED_VERSION
    host: str = ""
    close: bool = False
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def request_line(self) -> str:
        return f"{self.method} {self.path} {self.version}"


class ReadOutcome(Enum):
    """Classification of one read_request() attempt."""
    REQUEST = "request"
    CLEAN_EOF = "clean_eof"
    TIMEOUT_IDLE = "timeout_idle"
    TIMEOUT_PARTIAL = "timeout_partial"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ReadResult:
    """
    What a single read_request() attempt produced.

    Exactly one of `request` (for REQUEST) or `error` (for MALFORMED) is
    set; the EOF and timeout outcomes carry neither.
    """

    outcome: ReadOutcome
    bytes_received: bool
    request: Optional[HTTPRequest] = None
    error: Optional[HTTPParseError] = None


class RequestParser:
    """
    Parses request heads off a Connection.

    The parser is stateless; one instance can be shared by every worker.

    Usage:
        parser = RequestParser()
        conn.begin_request()
        result = parser.read_request(conn)
        if result.outcome is ReadOutcome.REQUEST:
            serve(result.request)
    """

    # Bytes are decoded as ISO-8859-1: every byte maps to a code point,
    # so decoding itself can never fail
    ENCODING = "iso-8859-1"

    def read_request(self, conn: Connection) -> ReadResult:
        """
        Read and classify the next request on `conn`.

        The caller must have called conn.begin_request() (and armed the
        deadline) first.

        Returns:
            A ReadResult; see the module docstring for the outcomes.
        """
        try:
            request = self._read_head(conn)
        except socket.timeout:
            if conn.bytes_received:
                return ReadResult(ReadOutcome.TIMEOUT_PARTIAL, True)
            return ReadResult(ReadOutcome.TIMEOUT_IDLE, False)
        except EOFError:
            if conn.bytes_received:
                return ReadResult(
                    ReadOutcome.MALFORMED, True,
                    error=HTTPParseError("incomplete request"),
                )
            return ReadResult(ReadOutcome.CLEAN_EOF, False)
        except RequestTooLargeError:
            return ReadResult(
                ReadOutcome.MALFORMED, True,
                error=HTTPParseError("request head too large"),
            )
        except HTTPParseError as e:
            return ReadResult(ReadOutcome.MALFORMED, True, error=e)

        conn.requests_handled += 1
        return ReadResult(ReadOutcome.REQUEST, True, request=request)

    def _read_head(self, conn: Connection) -> HTTPRequest:
        # ─────────────────────────────────────────────────────────────────
        # REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        line = self._decode(conn.read_line())
        method, path, version = self.parse_request_line(line)

        # ─────────────────────────────────────────────────────────────────
        # HEADERS (until the blank line)
        # ─────────────────────────────────────────────────────────────────
        headers: Dict[str, str] = {}
        host: Optional[str] = None
        close = False

        while True:
            line = self._decode(conn.read_line())
            if line == "":
                break

            key, value = self.parse_header_line(line)
            if key == "Host":
                host = value
            elif key == "Connection":
                close = value.strip().lower() == "close"
            else:
                headers[key] = value

        # Only checked once the whole head is in, so a complete-but-invalid
        # request is told apart from a truncated one
        if not host:
            raise HTTPParseError("missing Host")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            host=host,
            close=close,
            headers=headers,
        )

    def _decode(self, raw: bytes) -> str:
        return raw.decode(self.ENCODING)

    @staticmethod
    def parse_request_line(line: str) -> Tuple[str, str, str]:
        """
        Split and validate a request line.

        Returns:
            (method, target, version)

        Raises:
            HTTPParseError: wrong token count, non-GET method, target not
                starting with "/", or a version other than HTTP/1.1.
        """
        parts = line.split(" ")
        if len(parts) != 3:
            raise HTTPParseError(f"malformed request line: {line!r}")

        method, target, version = parts

        if method != SUPPORTED_METHOD:
            raise HTTPParseError(f"unsupported method: {method!r}")
        if not target.startswith("/"):
            raise HTTPParseError(f"invalid target: {target!r}")
        if version != SUPPORTED_VERSION:
            raise HTTPParseError(f"unsupported version: {version!r}")

        return method, target, version

    @staticmethod
    def parse_header_line(line: str) -> Tuple[str, str]:
        """
        Split one header line into (canonical key, value).

        The key is everything before the first colon, trimmed, and may only
        contain letters, digits and hyphens. The value has its leading
        whitespace removed.

        Raises:
            HTTPParseError: no colon, or an empty / invalid key.
        """
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not HEADER_KEY_PATTERN.match(key):
            raise HTTPParseError(f"malformed header: {line!r}")
        return canonical_header_key(key), value.lstrip(" \t")
