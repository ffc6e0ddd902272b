"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the buffered, line-oriented
API the request parser needs.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does NOT preserve message boundaries. A pipelining client that sends two
requests back to back can be received as:

    recv() → "GET /a HTTP/1.1\r\nHost: x\r\n\r\nGET /b HT"
    recv() → "TP/1.1\r\nHost: x\r\n\r\n"

So the connection keeps a buffer. Lines are cut out of the buffer at each
CRLF. Whatever follows the current request stays in the buffer and becomes
the start of the next one.

=============================================================================
THE IDLE DEADLINE
=============================================================================

socket.settimeout() bounds ONE recv() call. A client that drips a byte every
four seconds would never trip a 5 second per-call timeout. So the connection
keeps an ABSOLUTE deadline instead:

    arm_deadline(5.0)            deadline = now + 5s
        │
        ├── recv()  settimeout(deadline - now)   4.2s left
        ├── recv()  settimeout(deadline - now)   1.1s left
        └── recv()  deadline passed → socket.timeout

The deadline is re-armed by the lifecycle before every request, never once
per connection.

=============================================================================
BYTES RECEIVED TRACKING
=============================================================================

    begin_request()      reset the per-request byte counter
         │
    read_line() ...      counter += len(line) + 2 for every consumed line
         │
    bytes_received       True if the counter is non-zero OR the buffer holds
                         unconsumed bytes (a partial line counts!)

The lifecycle uses this flag, not the exception type, to tell an idle client
apart from a client that stalled halfway through a request.

=============================================================================
"""

import socket
import time
import uuid
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)

CRLF = b"\r\n"


class ConnectionState(Enum):
    """
    Connection lifecycle states.

        NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ─┐
                   ▲                                              │
                   └──────────────────────────────────────────────┘
                         (any state) ──► CLOSING ──► CLOSED
    """
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLargeError(ValueError):
    """Raised when a request head grows past the configured limit."""


@dataclass
class Connection:
    """
    Represents a single client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        requests_handled: Number of requests parsed on this connection.
    """

    socket: socket.socket
    address: tuple = ("", 0)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    max_request_size: int = 8192

    _buffer: bytes = field(default=b"", repr=False)
    _deadline: Optional[float] = field(default=None, repr=False)
    _request_bytes: int = field(default=0, repr=False)

    def __post_init__(self):
        # Blocking mode; every recv() gets its own timeout from the deadline
        self.socket.setblocking(True)

    @property
    def label(self) -> str:
        """Printable peer, e.g. '127.0.0.1:51234'."""
        if isinstance(self.address, tuple) and len(self.address) >= 2:
            return f"{self.address[0]}:{self.address[1]}"
        return str(self.address) or "-"

    # =========================================================================
    # DEADLINE
    # =========================================================================

    def arm_deadline(self, seconds: Optional[float]):
        """
        Start a fresh idle deadline `seconds` from now.

        None disables the deadline (reads block forever).
        """
        if seconds is None:
            self._deadline = None
        else:
            self._deadline = time.monotonic() + seconds

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise socket.timeout("idle deadline exceeded")
        return remaining

    # =========================================================================
    # READING
    # =========================================================================

    def begin_request(self):
        """Reset the per-request byte counter before parsing a new request."""
        self.state = ConnectionState.READING
        self._request_bytes = 0

    @property
    def bytes_received(self) -> bool:
        """True once any byte of the current request has arrived."""
        return self._request_bytes > 0 or bool(self._buffer)

    def read_line(self) -> bytes:
        """
        Read one CRLF-terminated line, without the CRLF.

        Returns:
            The line bytes (may be empty for the blank line ending a head).

        Raises:
            EOFError: Peer closed the stream before a full line arrived.
            socket.timeout: The idle deadline passed.
            RequestTooLargeError: The current request head exceeds
                max_request_size.
        """
        while True:
            index = self._buffer.find(CRLF)
            if index != -1:
                line = self._buffer[:index]
                self._buffer = self._buffer[index + len(CRLF):]
                self._request_bytes += index + len(CRLF)
                self._check_size(0)
                return line

            self._check_size(len(self._buffer))

            chunk = self._recv()
            if not chunk:
                raise EOFError("connection closed by peer")
            self._buffer += chunk

    def _check_size(self, pending: int):
        total = self._request_bytes + pending
        if total > self.max_request_size:
            raise RequestTooLargeError(f"Request head too large: {total} bytes")

    def _recv(self) -> bytes:
        """
        Receive data from the socket under the current deadline.

        Returns:
            Received bytes, or empty bytes if the peer closed or reset.
        """
        self.socket.settimeout(self._remaining())
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so either everything is written or an error surfaces.
        Writes are not bounded by the read deadline.

        Returns:
            True if send succeeded, False if the connection is lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.settimeout(None)
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Mark connection as idle between pipelined requests."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end of response.
        2. Briefly drain unread input; closing with unread data makes the
           kernel send RST, which can discard the response we just wrote.
        3. close() releases the file descriptor.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            drain_until = time.monotonic() + 0.5
            while True:
                remaining = drain_until - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False
