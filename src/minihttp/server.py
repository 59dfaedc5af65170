"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the pieces together: socket server, thread pool, decoder, middleware,
router, encoder.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │  ThreadPool  │    │    Router    │        │
    │    └──────┬───────┘    └──────────────┘    └──────┬───────┘        │
    │           ▼                                       ▼                 │
    │    ┌──────────────┐                        ┌──────────────┐        │
    │    │  Connection  │                        │  FileStore   │        │
    │    └──────────────┘                        └──────────────┘        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION, ONE REQUEST
=============================================================================

    1. read          conn.read_request()            b"" → close silently
    2. decode        RequestParser.parse()          MalformedRequest → close,
                                                    no response
                                                    HTTPParseError → its status
                                                    (500 if no phrase for it)
    3. dispatch      middleware → router → handler  any exception → 500
    4. encode        encode_response()              UnknownStatusCode → close
    5. send          conn.send_response()
    6. close         always

There is no keep-alive: every connection is closed after one response.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Tuple

from . import __version__
from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    MalformedRequest,
    RequestParser,
    Router,
    STATUS_PHRASES,
    UnknownStatusCode,
    encode_response,
    internal_error,
)
from .http.response import ResponseBuilder
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline
from .routes import create_router
from .storage import FileStore


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    The HTTP server.

    ==========================================================================
    USAGE
    ==========================================================================

        # Foreground, Ctrl+C to stop
        server = HTTPServer(ServerConfig(directory="/tmp/data"))
        server.run()

        # Background thread (tests, embedding)
        server = HTTPServer(ServerConfig(port=0))
        host, port = server.serve_in_background()
        ...
        server.shutdown()

    ==========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, store: Optional[FileStore] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            store: File store for /files/*. Defaults to one rooted at
                   config.directory.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.store = store or FileStore(self.config.directory, confine=self.config.confine_files)

        # Core components
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(
            max_request_size=self.config.max_request_size,
            strict_methods=self.config.strict_methods,
        )

        # Application components
        self._router = create_router(self.store)
        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        # middleware.wrap(router.handle), built when serving starts
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._thread: Optional[threading.Thread] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware, after the access logger. Call before serving."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port) once serving; the configured one before."""
        return self._socket_server.bound_address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """Serve in the foreground. Blocks until SIGINT/SIGTERM or shutdown()."""
        self._setup_logging()
        self._prepare()

        logger.info(f"Starting HTTP server on {self.address[0]}:{self.address[1]}")
        self._print_startup_banner()

        self._serve()

    def serve_in_background(self, ready_timeout: float = 5.0) -> Tuple[str, int]:
        """
        Serve from a daemon thread.

        Returns:
            The bound (host, port), useful with port=0.

        Raises:
            RuntimeError: If the accept loop does not come up in time.
        """
        self._prepare()

        self._thread = threading.Thread(target=self._serve, name="minihttp-accept", daemon=True)
        self._thread.start()

        if not self._socket_server.wait_until_ready(ready_timeout):
            raise RuntimeError("Server did not start in time")
        return self.address

    def shutdown(self, timeout: Optional[float] = 10.0):
        """
        Stop accepting connections, finish in-flight ones and stop workers.

        Safe to call from any thread, and more than once.
        """
        self._socket_server.shutdown()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            self._thread = None

    def _prepare(self):
        # Bind first so the banner (and callers using port 0) see the real port
        self._socket_server.bind()
        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

    def _serve(self):
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _print_startup_banner(self):
        host, port = self.address
        print()
        print("=" * 64)
        print(f"  minihttp {__version__} running")
        print(f"  http://{host}:{port}")
        print(f"  Files:   {self.store.root}" + ("" if self.store.confine else "  (unconfined)"))
        print(f"  Workers: {self.config.min_workers}-{self.config.max_workers} threads")
        print(f"  Framing: {self.config.framing}")
        print("  Press Ctrl+C to stop")
        print("=" * 64)
        self._router.print_routes()

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread: hand the connection to a worker."""
        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Dropping connection: {e}")
            conn.close()
            return

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            with conn:
                self._send_status(conn, HTTPStatus.INTERNAL_SERVER_ERROR)

    def _process_connection(self, conn: Connection):
        """Serve one request on a connection (runs on a worker thread)."""
        with conn:
            # ─────────────────────────────────────────────────────────────
            # READ
            # ─────────────────────────────────────────────────────────────
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                logger.debug(f"[{conn.id}] Timed out waiting for a request")
                return
            except RequestTooLarge as e:
                logger.warning(f"[{conn.id}] {e}")
                self._send_status(conn, 413)
                return

            if not raw_request:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            # ─────────────────────────────────────────────────────────────
            # DECODE
            # ─────────────────────────────────────────────────────────────
            try:
                request = self._parser.parse(raw_request, conn.address)
            except MalformedRequest as e:
                logger.warning(f"[{conn.id}] Malformed request from {conn.client_ip}: {e}")
                return
            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Rejected request from {conn.client_ip}: {e}")
                self._send_status(conn, e.status_code)
                return

            # ─────────────────────────────────────────────────────────────
            # DISPATCH
            # ─────────────────────────────────────────────────────────────
            try:
                response = self._handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error(request.version)

            # ─────────────────────────────────────────────────────────────
            # ENCODE AND SEND
            # ─────────────────────────────────────────────────────────────
            try:
                data = encode_response(response)
            except UnknownStatusCode:
                logger.exception(f"[{conn.id}] Handler returned a status with no reason phrase")
                return

            conn.send_response(data)

    def _send_status(self, conn: Connection, status: int, version: str = "HTTP/1.1"):
        """
        Answer with a bare status, for failures before a handler ran.

        Statuses without a reason phrase are sent as 500.
        """
        if status not in STATUS_PHRASES:
            status = HTTPStatus.INTERNAL_SERVER_ERROR
        response = ResponseBuilder(version).status(status).build()
        conn.send_response(encode_response(response))
