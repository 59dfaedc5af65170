"""
Unit tests for connection framing and the thread pool.
"""

import socket
import threading
import time

import pytest

from minihttp.core import (
    Connection,
    ConnectionState,
    ContentLengthFraming,
    RequestTooLarge,
    SingleReadFraming,
    SocketServer,
    ThreadPool,
    create_framing,
)
from minihttp.core.connection import DRAIN_LIMIT, parse_content_length


@pytest.fixture
def socket_pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


class TestFraming:

    def test_single_read(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")

        assert SingleReadFraming().read(server_side) == b"GET / HTTP/1.1\r\n\r\n"

    def test_single_read_is_capped_at_buffer_size(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"x" * 200)

        assert len(SingleReadFraming(buffer_size=64).read(server_side)) <= 64

    def test_closed_peer(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.close()

        assert SingleReadFraming().read(server_side) == b""
        assert ContentLengthFraming().read(server_side) == b""

    def test_content_length_across_chunks(self, socket_pair):
        server_side, client_side = socket_pair
        framing = ContentLengthFraming(buffer_size=64)

        def send_slowly():
            client_side.sendall(b"POST /files/x HTTP/1.1\r\nContent-Len")
            time.sleep(0.05)
            client_side.sendall(b"gth: 10\r\n\r\nhello")
            time.sleep(0.05)
            client_side.sendall(b"world")

        sender = threading.Thread(target=send_slowly)
        sender.start()
        data = framing.read(server_side)
        sender.join()

        assert data == b"POST /files/x HTTP/1.1\r\nContent-Length: 10\r\n\r\nhelloworld"

    def test_content_length_drops_extra_bytes(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"POST / HTTP/1.1\r\nContent-Length: 2\r\n\r\nabEXTRA")

        assert ContentLengthFraming().read(server_side).endswith(b"\r\n\r\nab")

    def test_content_length_missing_means_no_body(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")

        assert ContentLengthFraming().read(server_side) == b"GET / HTTP/1.1\r\n\r\n"

    def test_content_length_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"POST / HTTP/1.1\r\nContent-Length: 1000\r\n\r\n" + b"x" * 200)

        with pytest.raises(RequestTooLarge):
            ContentLengthFraming(max_request_size=100).read(server_side)

    def test_create_framing(self):
        assert isinstance(create_framing("single"), SingleReadFraming)
        assert isinstance(create_framing("content-length", buffer_size=64), ContentLengthFraming)
        with pytest.raises(ValueError):
            create_framing("chunked")

    @pytest.mark.parametrize("headers, expected", [
        (b"POST / HTTP/1.1\r\nContent-Length: 5", 5),
        (b"POST / HTTP/1.1\r\ncontent-length:7", 7),
        (b"POST / HTTP/1.1\r\nContent-Length: abc", 0),
        (b"POST / HTTP/1.1\r\nContent-Length: -3", 0),
        (b"GET / HTTP/1.1\r\nHost: x", 0),
    ])
    def test_parse_content_length(self, headers, expected):
        assert parse_content_length(headers) == expected


class TestConnection:

    def test_read_and_send(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        assert conn.read_request() == b"GET / HTTP/1.1\r\n\r\n"
        assert conn.state is ConnectionState.PROCESSING

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert client_side.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_read_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_close_is_idempotent(self, socket_pair):
        server_side, client_side = socket_pair

        with Connection(socket=server_side, address=("127.0.0.1", 1)) as conn:
            pass

        assert conn.is_closed
        conn.close()
        assert client_side.recv(1024) == b""

    def test_close_drain_is_bounded(self):
        class EndlessSocket:
            """Peer that never stops sending."""

            def __init__(self):
                self.received = 0
                self.closed = False

            def setblocking(self, flag):
                pass

            def settimeout(self, timeout):
                pass

            def shutdown(self, how):
                pass

            def recv(self, size):
                self.received += size
                return b"x" * size

            def close(self):
                self.closed = True

        sock = EndlessSocket()
        conn = Connection(socket=sock, address=("127.0.0.1", 1))
        conn.close()

        assert sock.closed
        assert conn.is_closed
        assert DRAIN_LIMIT <= sock.received < DRAIN_LIMIT + 4096

    def test_send_after_close_fails(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))
        conn.close()

        assert conn.send_response(b"data") is False

    def test_client_address(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("10.1.2.3", 4567))

        assert conn.client_ip == "10.1.2.3"
        assert conn.client_port == 4567


class TestThreadPool:

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=4, queue_size=10)
        pool.start()
        done = threading.Event()

        try:
            assert pool.submit(done.set) is True
            assert done.wait(2.0)
        finally:
            pool.shutdown()

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        try:
            pool.submit(boom)
            pool.submit(done.set)
            assert done.wait(2.0)
        finally:
            pool.shutdown()

        assert pool.stats["workers"]["total"] == 0

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(2.0)

        try:
            assert pool.submit(block)
            assert started.wait(2.0)
            assert pool.submit(block) is True      # fills the queue
            assert pool.submit(block) is False     # nowhere to go
        finally:
            release.set()
            pool.shutdown()

    def test_scales_up_under_load(self):
        pool = ThreadPool(min_workers=1, max_workers=3, queue_size=10)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(2.0)

        try:
            pool.submit(block)
            assert started.wait(2.0)
            pool.submit(block)

            assert pool.stats["workers"]["total"] == 2
        finally:
            release.set()
            pool.shutdown()

    def test_submit_requires_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=0)
        with pytest.raises(ValueError):
            ThreadPool(min_workers=4, max_workers=2)

    def test_stats(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()

        try:
            pool.submit(done.set)
            assert done.wait(2.0)
            time.sleep(0.05)
            stats = pool.stats
        finally:
            pool.shutdown()

        assert stats["workers"]["total"] == 2
        assert stats["tasks"]["completed"] == 1


class TestSocketServer:

    def test_start_and_shutdown(self, config):
        server = SocketServer(config)
        accepted = []
        thread = threading.Thread(target=server.start, args=(accepted.append,), daemon=True)
        thread.start()

        try:
            assert server.wait_until_ready(2.0)
            assert server.is_running
            assert server.wait_for_shutdown(0.05) is False

            with socket.create_connection(server.bound_address, timeout=2.0):
                deadline = time.time() + 2.0
                while not accepted and time.time() < deadline:
                    time.sleep(0.01)
        finally:
            server.shutdown()

        assert server.wait_for_shutdown(5.0) is True
        assert not server.is_running
        assert len(accepted) == 1
        accepted[0].close()
        thread.join(2.0)

    def test_shutdown_before_start(self, config):
        server = SocketServer(config)
        server.shutdown()
        server.start(lambda conn: None)

        assert server.wait_for_shutdown(0) is True
        assert server.wait_until_ready(0) is False
