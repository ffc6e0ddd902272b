"""
=============================================================================
HTTP RESPONSE BUILDER & SERIALIZER
=============================================================================

Builds the three responses this server can send and renders them to wire
bytes.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  STATUS LINE        HTTP/1.1 200 OK\r\n                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS            Connection: close\r\n        ┐                  │
    │  (sorted by name)   Content-Length: 1742\r\n     │ lexicographic    │
    │                     Content-Type: text/html\r\n  │ order, always    │
    │                     Date: Mon, 02 Jan ...\r\n    │                  │
    │                     Last-Modified: ...\r\n       ┘                  │
    │                     \r\n                                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  BODY               <file bytes, streamed, exactly Content-Length>  │
    └─────────────────────────────────────────────────────────────────────┘

Headers are sorted so the output is a pure function of the response value:
serializing the same HTTPResponse twice gives the same bytes.

=============================================================================
WHICH HEADERS, WHEN
=============================================================================

    Status  Date  Last-Modified  Content-Type  Content-Length  Connection
    ──────  ────  ─────────────  ────────────  ──────────────  ──────────────
    200      ✓         ✓              ✓              ✓         close if asked
    400      ✓                                                 close (always)
    404      ✓                                                 close if asked

400 and 404 never carry a body, so they never carry body headers either.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from .request import HTTPRequest
from .status_codes import HTTPStatus


RESPONSE_VERSION = "HTTP/1.1"

# Body files are streamed in chunks of this size
WRITE_CHUNK_SIZE = 64 * 1024


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Attributes:
        status:     200, 400 or 404.
        version:    Protocol version for the status line.
        headers:    Header name → value, canonical names.
        file_path:  File to stream as the body; None means no body.
        request:    The request this answers; None for a 400.
    """

    status: HTTPStatus = HTTPStatus.OK
    version: str = RESPONSE_VERSION
    headers: Dict[str, str] = field(default_factory=dict)
    file_path: Optional[Path] = None
    request: Optional[HTTPRequest] = None

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def closes_connection(self) -> bool:
        return self.headers.get("Connection", "").lower() == "close"

    @property
    def content_length(self) -> int:
        return int(self.headers.get("Content-Length", "0"))

    def head_bytes(self) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

        Headers are emitted sorted by name.
        """
        lines = [self.status_line]
        for name in sorted(self.headers):
            lines.append(f"{name}: {self.headers[name]}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("iso-8859-1")

    def iter_bytes(self, chunk_size: int = WRITE_CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield the full response: head first, then the body in chunks.

        The body file is opened BEFORE the head is yielded, so a file that
        vanished after resolution raises OSError before anything is sent.

        Exactly Content-Length body bytes are yielded, even if the file grew
        after it was stat'ed. A file that shrank raises OSError mid-body;
        the frame is broken and the connection has to close.
        """
        if self.file_path is None:
            yield self.head_bytes()
            return

        remaining = self.content_length
        with open(self.file_path, "rb") as f:
            yield self.head_bytes()
            while remaining > 0:
                chunk = f.read(min(chunk_size, remaining))
                if not chunk:
                    raise OSError(f"{self.file_path} shrank by {remaining} bytes while being sent")
                remaining -= len(chunk)
                yield chunk

    def to_bytes(self) -> bytes:
        """The whole response as one bytes object (head + body)."""
        return b"".join(self.iter_bytes())


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Usage:
        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .for_request(request)
            .date()
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._file_path: Optional[Path] = None
        self._request: Optional[HTTPRequest] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def date(self, now: Optional[datetime] = None) -> "ResponseBuilder":
        """Set the Date header (defaults to the current time)."""
        return self.header("Date", format_http_date(now or datetime.now(timezone.utc)))

    def file(
        self,
        path: Union[str, Path],
        size: int,
        modified: datetime,
        content_type: str,
    ) -> "ResponseBuilder":
        """Attach a file body together with its body headers."""
        self._file_path = Path(path)
        self._headers["Content-Type"] = content_type
        self._headers["Content-Length"] = str(size)
        self._headers["Last-Modified"] = format_http_date(modified)
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Set Connection: close."""
        return self.header("Connection", "close")

    def for_request(self, request: Optional[HTTPRequest]) -> "ResponseBuilder":
        """
        Link the response to its request.

        Echoes Connection: close when the request asked for it.
        """
        self._request = request
        if request is not None and request.close:
            self.close_connection()
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            file_path=self._file_path,
            request=self._request,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 02 Jan 2006 15:04:05 GMT

    Day and month names come from fixed tables, not strftime, so the output
    does not depend on the process locale. Aware datetimes are converted to
    UTC; naive ones are assumed to already be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year:04d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One function per outcome the server can produce.
#
# =============================================================================

def ok(
    request: HTTPRequest,
    path: Union[str, Path],
    size: int,
    modified: datetime,
    content_type: str,
    now: Optional[datetime] = None,
) -> HTTPResponse:
    """Create a 200 OK response streaming `path`."""
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .for_request(request)
        .date(now)
        .file(path, size, modified, content_type)
        .build())


def bad_request(now: Optional[datetime] = None) -> HTTPResponse:
    """Create a 400 Bad Request response. Always closes the connection."""
    return (ResponseBuilder()
        .status(HTTPStatus.BAD_REQUEST)
        .date(now)
        .close_connection()
        .build())


def not_found(request: HTTPRequest, now: Optional[datetime] = None) -> HTTPResponse:
    """Create a 404 Not Found response."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .for_request(request)
        .date(now)
        .build())
