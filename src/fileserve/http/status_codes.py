"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The three status codes this server ever emits, with their reason phrases.

    ┌────────┬───────────────────┬──────────────────────────────────────┐
    │  Code  │  Reason phrase    │  When                                │
    ├────────┼───────────────────┼──────────────────────────────────────┤
    │  200   │  OK               │  File resolved under the doc root    │
    │  400   │  Bad Request      │  Malformed / truncated request       │
    │  404   │  Not Found        │  Missing file, bare directory,       │
    │        │                   │  or a path escaping the doc root     │
    └────────┴───────────────────┴──────────────────────────────────────┘

The reason phrase is written verbatim into the status line:

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase
              └───────── Status code

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the file server.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        """Get the reason phrase for this status code."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
}
