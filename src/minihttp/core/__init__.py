"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER    listening socket, accept loop, signals            │
    └──────────────────────────────┬──────────────────────────────────────┘
                                   │ Connection per client
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL      bounded queue, worker threads                     │
    └──────────────────────────────┬──────────────────────────────────────┘
                                   │ worker runs HTTPServer._process_connection
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION       framing policy → request bytes, sendall, close    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import (
    Connection,
    ConnectionState,
    ContentLengthFraming,
    Framing,
    RequestTooLarge,
    SingleReadFraming,
    create_framing,
)
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "Connection",
    "ConnectionState",
    "Framing",
    "SingleReadFraming",
    "ContentLengthFraming",
    "RequestTooLarge",
    "create_framing",
    "SocketServer",
    "ThreadPool",
]
