"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Protocol values and codecs, independent of sockets and threads:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      HTTPRequest, RequestParser, ReadOutcome, ReadResult │
    │ response.py     HTTPResponse, ResponseBuilder, ok / bad_request /   │
    │                 not_found, format_http_date                         │
    │ status_codes.py HTTPStatus (200 / 400 / 404)                        │
    │ mime_types.py   get_mime_type(extension)                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    HTTPParseError,
    RequestParser,
    ReadOutcome,
    ReadResult,
    canonical_header_key,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,             # 200 OK
    bad_request,    # 400 Bad Request
    not_found,      # 404 Not Found
    format_http_date,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_mime_type_for_path

__all__ = [
    # Request parsing
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "ReadOutcome",
    "ReadResult",
    "canonical_header_key",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "bad_request",
    "not_found",
    "format_http_date",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_mime_type_for_path",
]
