"""
Tests for the server's routing table, end to end through the encoder.
"""

import gzip

import pytest

from minihttp.http.request import parse_request
from minihttp.http.response import encode_response
from minihttp.routes import dispatch
from minihttp.storage import FileStore, IOFailure


def serve(router, raw: bytes) -> bytes:
    """Decode, route and encode one request."""
    return encode_response(router.handle(parse_request(raw)))


class TestRoot:

    def test_root(self, router):
        assert serve(router, b"GET / HTTP/1.1\r\n\r\n") == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_empty_target(self, router):
        assert serve(router, b"GET  HTTP/1.1\r\n\r\n") == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_root_with_user_agent_stays_empty(self, router):
        raw = b"GET / HTTP/1.1\r\nUser-Agent: curl/8.4.0\r\n\r\n"
        assert serve(router, raw) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_version_echoed(self, router):
        assert serve(router, b"GET / HTTP/1.0\r\n\r\n") == b"HTTP/1.0 200 OK\r\n\r\n"


class TestEcho:

    def test_echo(self, router):
        assert serve(router, b"GET /echo/abc HTTP/1.1\r\n\r\n") == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 3\r\n"
            b"\r\n"
            b"abc"
        )

    def test_echo_gzip(self, router):
        raw = b"GET /echo/abc HTTP/1.1\r\nAccept-Encoding: gzip\r\n\r\n"
        head, body = serve(router, raw).split(b"\r\n\r\n", 1)
        lines = head.split(b"\r\n")

        assert lines[0] == b"HTTP/1.1 200 OK"
        assert b"Content-Type: text/plain" in lines
        assert b"Content-Encoding: gzip" in lines
        assert f"Content-Length: {len(body)}".encode() in lines
        assert gzip.decompress(body) == b"abc"

    def test_echo_other_encodings_not_compressed(self, router):
        raw = b"GET /echo/abc HTTP/1.1\r\nAccept-Encoding: identity, br\r\n\r\n"
        encoded = serve(router, raw)

        assert b"Content-Encoding" not in encoded
        assert encoded.endswith(b"\r\n\r\nabc")

    def test_echo_keeps_slashes(self, router):
        assert serve(router, b"GET /echo/a/b HTTP/1.1\r\n\r\n").endswith(b"\r\n\r\na/b")

    def test_echo_empty_suffix(self, router):
        assert serve(router, b"GET /echo/ HTTP/1.1\r\n\r\n") == (
            b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\n"
        )

    def test_echo_wins_over_user_agent(self, router):
        raw = b"GET /echo/abc HTTP/1.1\r\nUser-Agent: curl\r\n\r\n"
        assert serve(router, raw).endswith(b"\r\n\r\nabc")


class TestUserAgent:

    def test_user_agent(self, router):
        raw = b"GET /user-agent HTTP/1.1\r\nHost: localhost\r\nUser-Agent: foobar/1.2.3\r\n\r\n"
        assert serve(router, raw) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 12\r\n"
            b"\r\n"
            b"foobar/1.2.3"
        )

    def test_any_path_with_user_agent(self, router):
        raw = b"GET /anything HTTP/1.1\r\nUser-Agent: x\r\n\r\n"
        assert serve(router, raw).endswith(b"\r\n\r\nx")

    def test_no_user_agent_is_404(self, router):
        assert serve(router, b"GET /user-agent HTTP/1.1\r\n\r\n") == b"HTTP/1.1 404 Not Found\r\n\r\n"


class TestFiles:

    def test_missing_file(self, router):
        raw = b"GET /files/missing.txt HTTP/1.1\r\n\r\n"
        assert serve(router, raw) == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_write_then_read(self, router, store):
        created = serve(router, b"POST /files/new.txt HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello")
        assert created == b"HTTP/1.1 201 Created\r\n\r\n"
        assert store.read_all("new.txt") == b"hello"

        assert serve(router, b"GET /files/new.txt HTTP/1.1\r\n\r\n") == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: application/octet-stream\r\n"
            b"Content-Length: 5\r\n"
            b"\r\n"
            b"hello"
        )

    def test_binary_file(self, router, tmp_path):
        (tmp_path / "blob.bin").write_bytes(b"\x00\xff\x10")
        encoded = serve(router, b"GET /files/blob.bin HTTP/1.1\r\n\r\n")

        assert b"Content-Length: 3\r\n" in encoded
        assert encoded.endswith(b"\r\n\r\n\x00\xff\x10")

    def test_empty_file(self, router, tmp_path):
        (tmp_path / "empty").write_bytes(b"")
        assert serve(router, b"GET /files/empty HTTP/1.1\r\n\r\n") == (
            b"HTTP/1.1 200 OK\r\nContent-Type: application/octet-stream\r\n\r\n"
        )

    def test_overwrite(self, router, store):
        serve(router, b"POST /files/f HTTP/1.1\r\n\r\nfirst")
        serve(router, b"POST /files/f HTTP/1.1\r\n\r\n2nd")
        assert store.read_all("f") == b"2nd"

    def test_get_files_ignores_user_agent_fallback(self, router):
        raw = b"GET /files/missing HTTP/1.1\r\nUser-Agent: x\r\n\r\n"
        assert serve(router, raw) == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_traversal_read_refused(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret.txt").write_bytes(b"secret")
        request = parse_request(b"GET /files/../secret.txt HTTP/1.1\r\n\r\n")

        response = dispatch(request, FileStore(root))
        assert response.status == 404

    def test_traversal_write_refused(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        request = parse_request(b"POST /files/../evil.txt HTTP/1.1\r\n\r\nx")

        with pytest.raises(IOFailure):
            dispatch(request, FileStore(root))
        assert not (tmp_path / "evil.txt").exists()

    def test_nul_byte_in_name_is_404(self, router):
        raw = b"GET /files/a\x00b HTTP/1.1\r\n\r\n"
        assert serve(router, raw) == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_write_into_missing_directory_fails(self, router):
        request = parse_request(b"POST /files/no/such/dir.txt HTTP/1.1\r\n\r\nx")
        with pytest.raises(IOFailure):
            router.handle(request)


class TestNotFound:

    @pytest.mark.parametrize("raw", [
        b"GET /nope HTTP/1.1\r\n\r\n",
        b"POST / HTTP/1.1\r\n\r\n",
        b"POST /echo/abc HTTP/1.1\r\n\r\n",
        b"DELETE /files/x HTTP/1.1\r\n\r\n",
        b"PUT /files/x HTTP/1.1\r\nUser-Agent: x\r\n\r\n",
    ])
    def test_not_found(self, router, raw):
        assert serve(router, raw) == b"HTTP/1.1 404 Not Found\r\n\r\n"
