"""
pytest configuration and fixtures.
"""

import socket
from pathlib import Path
from typing import Callable, Generator, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig
from minihttp.routes import create_router
from minihttp.storage import FileStore


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample GET request with a couple of headers."""
    return (
        b"GET /echo/abc HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample POST request writing a small file."""
    body = b"hello"
    return (
        b"POST /files/new.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        b"Content-Length: %d\r\n"
        b"\r\n" % len(body)
    ) + body


@pytest.fixture
def store(tmp_path: Path) -> FileStore:
    """File store rooted at a fresh temporary directory."""
    return FileStore(tmp_path)


@pytest.fixture
def router(store: FileStore):
    """The server's routing table over the temporary store."""
    return create_router(store)


@pytest.fixture
def config(tmp_path: Path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        directory=str(tmp_path),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[Tuple[str, int], None, None]:
    """Start a server in the background, yield its (host, port)."""
    server = HTTPServer(config)
    address = server.serve_in_background()

    yield address

    server.shutdown()


@pytest.fixture
def send_raw() -> Callable[[Tuple[str, int], bytes], bytes]:
    """
    Return a helper that sends raw bytes and reads until the server closes.
    """
    def _send(address: Tuple[str, int], data: bytes) -> bytes:
        with socket.create_connection(address, timeout=5.0) as sock:
            sock.sendall(data)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    return _send
