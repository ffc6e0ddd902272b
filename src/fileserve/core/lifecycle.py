"""
=============================================================================
CONNECTION LIFECYCLE STATE MACHINE
=============================================================================

Drives one accepted connection from its first byte to its close.

=============================================================================
STATES AND TRANSITIONS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │            ┌──────────────────────────────────────────┐             │
    │            ▼                                          │             │
    │   ┌─────────────────┐   REQUEST    ┌───────────┐  no close header   │
    │   │ AwaitingRequest │ ───────────► │  Serving  │ ───────┘           │
    │   └────────┬────────┘              └─────┬─────┘                    │
    │            │                             │ Connection: close        │
    │            │                             ▼                          │
    │            │                      CLOSED_BY_CLOSE_HEADER            │
    │            │                                                        │
    │            ├── CLEAN_EOF ─────────► CLOSED_CLEAN_EOF                │
    │            ├── TIMEOUT_IDLE ──────► CLOSED_AFTER_TIMEOUT_NO_BYTES   │
    │            ├── TIMEOUT_PARTIAL ─┐                                   │
    │            └── MALFORMED ───────┴─► 400 ─► CLOSED_AFTER_BAD_REQUEST │
    │                                                                     │
    │   Any failed write ───────────────► CLOSED_AFTER_WRITE_FAILURE      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Every iteration:

    1. Arm a fresh idle deadline (never once per connection)
    2. Parse one request head → ReadResult
    3. Look up the ReadOutcome in the dispatch table
    4. Either return a terminal Transition or loop

=============================================================================
WHY "NO BYTES" AND "PARTIAL" TIMEOUTS DIFFER
=============================================================================

Q: "A pipelining client goes quiet. Is that an error?"
A: "No. Between requests the client owes us nothing, so an idle timeout
   with an empty buffer closes silently. A client that stopped halfway
   through a request line or head gets a 400 so it learns why the
   connection dropped."

=============================================================================
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional

from ..http.request import HTTPRequest, RequestParser, ReadOutcome, ReadResult
from ..http.response import HTTPResponse, bad_request
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("fileserve.access")

RequestHandler = Callable[[HTTPRequest], HTTPResponse]


class Transition(Enum):
    """Terminal transitions; run() returns exactly one of these."""
    CLOSED_CLEAN_EOF = "closed_clean_eof"
    CLOSED_AFTER_BAD_REQUEST = "closed_after_bad_request"
    CLOSED_AFTER_TIMEOUT_NO_BYTES = "closed_after_timeout_no_bytes"
    CLOSED_BY_CLOSE_HEADER = "closed_by_close_header"
    CLOSED_AFTER_WRITE_FAILURE = "closed_after_write_failure"


class ConnectionLifecycle:
    """
    State machine for one connection.

    The lifecycle does not close the connection itself; the caller owns it
    and wraps run() in `with conn:` so every exit path releases the socket.

    Usage:
        with conn:
            transition = ConnectionLifecycle(conn, handler.handle).run()

    Args:
        conn:     The accepted connection.
        handler:  Turns a valid request into a 200/404 response.
        parser:   Request parser (shared, stateless).
        timeout:  Idle deadline in seconds, re-armed per request.
    """

    def __init__(
        self,
        conn: Connection,
        handler: RequestHandler,
        parser: Optional[RequestParser] = None,
        timeout: Optional[float] = 5.0,
    ):
        self.conn = conn
        self.handler = handler
        self.parser = parser or RequestParser()
        self.timeout = timeout

        self._dispatch: Dict[ReadOutcome, Callable[[ReadResult], Optional[Transition]]] = {
            ReadOutcome.REQUEST: self._on_request,
            ReadOutcome.CLEAN_EOF: self._on_clean_eof,
            ReadOutcome.TIMEOUT_IDLE: self._on_idle_timeout,
            ReadOutcome.TIMEOUT_PARTIAL: self._on_bad_request,
            ReadOutcome.MALFORMED: self._on_bad_request,
        }

    def run(self) -> Transition:
        """Serve requests until a terminal transition fires."""
        while True:
            transition = self.step()
            if transition is not None:
                logger.debug(f"[{self.conn.id}] {transition.name}")
                return transition

    def step(self) -> Optional[Transition]:
        """
        Run one AwaitingRequest iteration.

        Returns:
            A terminal Transition, or None to keep the connection open.
        """
        self.conn.arm_deadline(self.timeout)
        self.conn.begin_request()
        result = self.parser.read_request(self.conn)
        return self.dispatch(result)

    def dispatch(self, result: ReadResult) -> Optional[Transition]:
        """Route a ReadResult to its outcome handler."""
        return self._dispatch[result.outcome](result)

    # =========================================================================
    # OUTCOME HANDLERS
    # =========================================================================

    def _on_clean_eof(self, result: ReadResult) -> Transition:
        logger.debug(f"[{self.conn.id}] Client closed connection")
        return Transition.CLOSED_CLEAN_EOF

    def _on_idle_timeout(self, result: ReadResult) -> Transition:
        logger.debug(f"[{self.conn.id}] Idle timeout, closing silently")
        return Transition.CLOSED_AFTER_TIMEOUT_NO_BYTES

    def _on_bad_request(self, result: ReadResult) -> Transition:
        if result.outcome is ReadOutcome.TIMEOUT_PARTIAL:
            logger.info(f"[{self.conn.id}] Timed out mid-request")
        else:
            logger.info(f"[{self.conn.id}] Bad request: {result.error}")

        response = bad_request()
        if not self._send(response, "-"):
            return Transition.CLOSED_AFTER_WRITE_FAILURE
        return Transition.CLOSED_AFTER_BAD_REQUEST

    def _on_request(self, result: ReadResult) -> Optional[Transition]:
        request = result.request
        self.conn.state = ConnectionState.PROCESSING

        response = self.handler(request)
        if not self._send(response, request.request_line):
            return Transition.CLOSED_AFTER_WRITE_FAILURE

        if response.closes_connection:
            return Transition.CLOSED_BY_CLOSE_HEADER

        self.conn.set_keep_alive()
        return None

    # =========================================================================
    # WRITING
    # =========================================================================

    def _send(self, response: HTTPResponse, request_line: str) -> bool:
        """
        Write a full response; False means the connection must close.

        Nothing is retried: a failed write means the peer is gone.
        """
        try:
            for chunk in response.iter_bytes():
                if not self.conn.send_response(chunk):
                    return False
        except OSError as e:
            logger.error(f"[{self.conn.id}] Failed to read {response.file_path}: {e}")
            return False

        access_logger.info(f'{self.conn.label} "{request_line}" {int(response.status)}')
        return True
