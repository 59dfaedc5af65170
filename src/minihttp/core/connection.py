"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: collect the request bytes, send the
response bytes, close. One request per connection, no keep-alive.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does not preserve message boundaries. A client that sends one request
may have it delivered in several recv() chunks, or in one:

    Client sends:   "GET /echo/abc HTTP/1.1\r\n\r\n"

    Server may see: recv() → "GET /echo/abc HTTP/1.1\r\n\r\n"
               or:  recv() → "GET /ec"
                    recv() → "ho/abc HTTP/1.1\r\n\r\n"

How many bytes make up "the request" is therefore a policy decision.
The decoder does not care: it parses whatever buffer it is handed.

=============================================================================
FRAMING POLICIES
=============================================================================

    ┌─────────────────┬───────────────────────────────────────────────────┐
    │ Policy          │ What read_request() returns                       │
    ├─────────────────┼───────────────────────────────────────────────────┤
    │ single          │ The result of ONE recv(buffer_size). Small        │
    │ (default)       │ requests from ordinary clients arrive in one      │
    │                 │ segment; anything longer is cut at buffer_size.   │
    ├─────────────────┼───────────────────────────────────────────────────┤
    │ content-length  │ recv() until \r\n\r\n is seen, then until exactly │
    │                 │ Content-Length body bytes follow it. Bytes past   │
    │                 │ the body are dropped (one request per connection).│
    └─────────────────┴───────────────────────────────────────────────────┘

Both return b"" when the client closed without sending anything.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING
     │             │                                  │
     │             ▼                                  │
     └──────────► CLOSING ◄───────────────────────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import logging
import socket
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..config import FRAMING_CONTENT_LENGTH, FRAMING_SINGLE


logger = logging.getLogger(__name__)


HEADER_END = b"\r\n\r\n"

# Upper bound on unread request bytes discarded when closing
DRAIN_LIMIT = 64 * 1024


class RequestTooLarge(ValueError):
    """Raised by framing when the collected bytes exceed the size limit."""


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""

    NEW = "new"                  # Just accepted, nothing read yet
    READING = "reading"          # Collecting request bytes
    PROCESSING = "processing"    # Request decoded, handler running
    WRITING = "writing"          # Sending response bytes
    CLOSING = "closing"          # Shutdown sequence started
    CLOSED = "closed"            # Socket released


# =============================================================================
# FRAMING
# =============================================================================

class Framing(ABC):
    """Decides how many bytes of the stream form one request."""

    name = ""

    def __init__(self, buffer_size: int = 1024, max_request_size: int = 10 * 1024 * 1024):
        self.buffer_size = buffer_size
        self.max_request_size = max_request_size

    @abstractmethod
    def read(self, sock: socket.socket) -> bytes:
        """
        Collect one request's bytes from a socket.

        Returns:
            The request bytes, or b"" if the peer closed first.

        Raises:
            socket.timeout: If the peer stalls longer than the socket timeout.
            RequestTooLarge: If the request outgrows max_request_size.
        """

    def _recv(self, sock: socket.socket) -> bytes:
        try:
            return sock.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""


class SingleReadFraming(Framing):
    """One recv(); whatever arrives is the request."""

    name = FRAMING_SINGLE

    def read(self, sock: socket.socket) -> bytes:
        return self._recv(sock)


class ContentLengthFraming(Framing):
    """
    Read until the header terminator, then exactly Content-Length more bytes.

        GET / HTTP/1.1\\r\\n
        Content-Length: 5\\r\\n
        \\r\\n                ← header_end points here
        hello               ← body_start is 4 bytes later
    """

    name = FRAMING_CONTENT_LENGTH

    def read(self, sock: socket.socket) -> bytes:
        buffer = b""

        # ─────────────────────────────────────────────────────────────────
        # STEP 1: Read until we have complete headers
        # ─────────────────────────────────────────────────────────────────
        while HEADER_END not in buffer:
            chunk = self._recv(sock)
            if not chunk:
                # Closed mid-headers: hand over what we have, the decoder
                # decides whether it is usable
                return buffer
            buffer += chunk
            self._check_size(buffer)

        header_end = buffer.find(HEADER_END)
        body_start = header_end + len(HEADER_END)
        content_length = parse_content_length(buffer[:header_end])

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: Read the remaining body
        # ─────────────────────────────────────────────────────────────────
        while len(buffer) - body_start < content_length:
            chunk = self._recv(sock)
            if not chunk:
                break  # Connection closed mid-body
            buffer += chunk
            self._check_size(buffer)

        return buffer[:body_start + content_length]

    def _check_size(self, buffer: bytes) -> None:
        if len(buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(buffer)} bytes")


def parse_content_length(header_section: bytes) -> int:
    """
    Find Content-Length in raw header bytes, case-insensitively.

    This runs BEFORE the request is decoded, so it does a plain line scan.
    Missing or unparseable values count as 0.
    """
    text = header_section.decode("utf-8", errors="replace").lower()
    for line in text.split("\r\n"):
        if line.startswith("content-length:"):
            try:
                return max(0, int(line.split(":", 1)[1].strip()))
            except ValueError:
                return 0
    return 0


FRAMING_POLICIES = {
    SingleReadFraming.name: SingleReadFraming,
    ContentLengthFraming.name: ContentLengthFraming,
}


def create_framing(
    name: str,
    buffer_size: int = 1024,
    max_request_size: int = 10 * 1024 * 1024,
) -> Framing:
    """
    Build a framing policy by name ("single" or "content-length").

    Raises:
        ValueError: For an unknown policy name.
    """
    try:
        policy = FRAMING_POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown framing: {name!r}") from None
    return policy(buffer_size=buffer_size, max_request_size=max_request_size)


# =============================================================================
# CONNECTION
# =============================================================================

@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. READING        framing.read(socket) → one request's bytes        │
    │  2. WRITING        sendall(), reports failure instead of raising     │
    │  3. TIMEOUTS       one socket timeout for reads and writes           │
    │  4. CLOSING        SHUT_WR, drain, close; safe to call twice         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        with Connection(sock, addr, framing=SingleReadFraming()) as conn:
            data = conn.read_request()
            conn.send_response(encode_response(response))
        # closed here

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        framing: Policy deciding what read_request() returns.
        id: Short unique identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    # Required parameters
    socket: socket.socket
    address: Tuple[str, int]

    framing: Framing = field(default_factory=SingleReadFraming)
    timeout: Optional[float] = 30.0

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    # =========================================================================
    # READING / WRITING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read one request's bytes using the framing policy.

        Returns:
            Request bytes, or b"" if the client closed without sending.

        Raises:
            TimeoutError: If the client sends nothing within the timeout.
            RequestTooLarge: If content-length framing outgrows its limit.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        try:
            data = self.framing.read(self.socket)
        except socket.timeout:
            raise TimeoutError("Request read timeout") from None

        self.last_activity = time.time()
        self.state = ConnectionState.PROCESSING
        return data

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if everything was sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            # Covers ConnectionResetError, BrokenPipeError and timeouts
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Calling it again does nothing.

            Server                              Client
               │   FIN ──────────────────────────► │  shutdown(SHUT_WR)
               │ ◄───────────────────────── ACK   │
               │   drain unread bytes              │
               │   close()                         │
        """
        if self.state is ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        # Discard request bytes that were never read. Closing with unread
        # data makes the kernel send RST, which can destroy the response
        # before the client reads it. A client that keeps streaming past
        # DRAIN_LIMIT gets the RST.
        drained = 0
        try:
            self.socket.setblocking(False)
            while drained < DRAIN_LIMIT:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Nothing buffered (BlockingIOError) or already closed

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
