"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the file server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds host:port, runs the accept() loop                          │
    │  • SIGTERM / SIGINT → graceful shutdown                             │
    └─────────────────────────────────────────────────────────────────────┘
                                    │  one Connection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Bounded queue, min..max worker threads                           │
    │  • A full queue blocks the accept loop                              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │  worker runs FileServer._process_connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Reads the request line (bounded), writes the response            │
    │  • Graceful close: FIN, drain, close                                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .thread_pool import ThreadPool
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",
    "ThreadPool",
    "Connection",
    "ConnectionState",
]
