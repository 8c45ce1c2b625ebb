"""
Transport layer: the listening socket and per-client connections.

    socket_server.py  bind, listen, accept loop, signal handling
    connection.py     buffered request reading, response writing, close
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
]
