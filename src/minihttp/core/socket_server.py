"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The listening side of the server: create the socket, bind, listen, and
hand every accepted client socket to a callback wrapped in a Connection.

=============================================================================
SOCKET LIFECYCLE (SERVER SIDE)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Associate it with HOST:PORT (port 0 = OS picks one)
    3. listen()    Start queueing incoming connections (backlog)
    4. accept()    Take one queued connection, get a NEW client socket
    5. close()     Release the listening socket at shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   127.0.0.1:4221      │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Rebind immediately after a restart instead of waiting out
               TIME_WAIT ("Address already in use").
TCP_NODELAY    Disable Nagle's algorithm; small responses go out at once.
timeout 1.0    accept() wakes up every second to notice shutdown().

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) trigger shutdown().
Python only allows installing signal handlers from the main thread, so a
server started from any other thread (tests, embedding) skips this step
and relies on shutdown() being called directly.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection, create_framing


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            Create socket, set options, bind, listen        │
    │        │                                                             │
    │    start(cb)         bind() if needed, install signals, then         │
    │        │             accept loop (BLOCKS here)                       │
    │        └──► while running:                                           │
    │                accept() → Connection(...) → cb(conn)                 │
    │                                                                      │
    │    shutdown()        _running = False; the loop exits within 1 s     │
    │    _cleanup()        Restore signal handlers, close socket           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, framing, ...).

        The socket is created lazily in bind() / start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()
        self._shutdown_requested = False
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The configured (host, port)."""
        return (self.config.host, self.config.port)

    @property
    def bound_address(self) -> Tuple[str, int]:
        """
        The address actually bound, once bind() has run.

        Differs from `address` when the configured port is 0.
        """
        if self._socket is None:
            return self.address
        host, port = self._socket.getsockname()[:2]
        return (host, port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        # accept() times out so the loop can check the running flag
        sock.settimeout(1.0)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Create the listening socket, bind and listen.

        Returns:
            The bound (host, port).

        Raises:
            OSError: If the address is in use or not permitted.
        """
        if self._socket is not None:
            return self.bound_address

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        return self.bound_address

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections. BLOCKS until shutdown() is called.

        Args:
            connection_handler: Receives each new Connection. The HTTP
                                server hands it to the thread pool.
        """
        self.bind()

        if self._shutdown_requested:
            # shutdown() arrived before the loop started
            self._cleanup()
            return

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()
        self._ready_event.set()

        host, port = self.bound_address
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Normal: lets us re-check self._running once a second
                continue
            except OSError as e:
                # Usually means the socket was closed during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                framing=create_framing(
                    self.config.framing,
                    buffer_size=self.config.buffer_size,
                    max_request_size=self.config.max_request_size,
                ),
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Initiate graceful shutdown. Safe to call more than once, from a
        signal handler or from another thread.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._shutdown_requested = True
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the accept loop is running (for servers started on
        another thread).

        Returns:
            True once accepting, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the server stops.

        Returns:
            True if shutdown completed, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
