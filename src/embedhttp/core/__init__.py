"""
Transport: listening socket, client connections and worker threads.

Nothing in here knows about routes or middleware; HTTPServer plugs the
dispatcher in as the per-connection callback.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPool",
]
