"""
=============================================================================
CORE NETWORKING LAYER
=============================================================================

    socket_server.py   SocketServer: listening socket + accept loop
    connection.py      Connection: buffered reads, idle deadline, close
    lifecycle.py       ConnectionLifecycle: per-connection state machine

One worker thread per accepted connection:

    accept() ──► Connection ──► Thread(ConnectionLifecycle.run)
                                        │
                                        └── with conn: ... (always closed)

lifecycle.py is imported from its module directly (it depends on the http
layer, which depends on connection.py).

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLargeError

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
]
