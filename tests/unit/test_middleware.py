"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from minihttp.http.request import HTTPRequest
from minihttp.http.response import encode_response, ok
from minihttp.middleware import (
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    function_middleware,
)


def handler(request):
    return ok(request.path)


class Recorder(Middleware):
    """Records the order in which it runs."""

    def __init__(self, label, calls):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.label}:before")
        response = next(request)
        self.calls.append(f"{self.label}:after")
        return response


class TestMiddlewarePipeline:

    def test_empty_pipeline_is_handler(self):
        wrapped = MiddlewarePipeline().wrap(handler)
        assert wrapped(HTTPRequest(method="GET", path="/x")).text_body == "/x"

    def test_order(self):
        calls = []
        pipeline = MiddlewarePipeline().use(Recorder("a", calls), Recorder("b", calls))

        pipeline.wrap(handler)(HTTPRequest(method="GET", path="/"))

        assert calls == ["a:before", "b:before", "b:after", "a:after"]
        assert len(pipeline) == 2

    def test_short_circuit(self):
        @function_middleware
        def deny(request, next):
            return ok("denied")

        wrapped = MiddlewarePipeline().add(deny).wrap(handler)

        assert wrapped(HTTPRequest(method="GET", path="/x")).text_body == "denied"
        assert deny.name == "deny"

    def test_response_can_be_replaced(self):
        @function_middleware
        def tag(request, next):
            return next(request).with_header("X-Tag", "1")

        response = MiddlewarePipeline().add(tag).wrap(handler)(HTTPRequest(method="GET", path="/"))
        assert response.get_header("X-Tag") == "1"


class TestLoggingMiddleware:

    def test_text_log(self, caplog):
        middleware = LoggingMiddleware()
        request = HTTPRequest(
            method="GET",
            path="/echo/abc",
            headers={"User-Agent": "pytest"},
            client_address=("10.0.0.1", 5000),
        )

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            middleware(request, handler)

        assert len(caplog.records) == 1
        line = caplog.records[0].getMessage()
        assert line.startswith("10.0.0.1 - - [")
        assert '"GET /echo/abc HTTP/1.1" 200 9 ' in line

    def test_json_log(self, caplog):
        middleware = LoggingMiddleware(log_format="json")
        request = HTTPRequest(method="DELETE", path="/x")

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            middleware(request, lambda r: ok())

        entry = json.loads(caplog.records[0].getMessage())
        assert entry["method"] == "DELETE"
        assert entry["path"] == "/x"
        assert entry["status_code"] == 200
        assert entry["content_length"] is None
        assert entry["user_agent"] == "-"

    def test_response_untouched(self):
        response = ok("abc")
        result = LoggingMiddleware()(HTTPRequest(method="GET", path="/"), lambda r: response)

        assert result is response
        assert encode_response(result) == encode_response(ok("abc"))

    def test_skip_paths(self, caplog):
        middleware = LoggingMiddleware(skip_paths=["/"])

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            middleware(HTTPRequest(method="GET", path="/"), handler)

        assert caplog.records == []

    def test_failed_request_logged_once_as_500(self, caplog):
        def broken(request):
            raise OSError("disk on fire")

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            with pytest.raises(OSError):
                LoggingMiddleware()(HTTPRequest(method="POST", path="/files/x"), broken)

        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.INFO
        assert '"POST /files/x HTTP/1.1" 500 - ' in caplog.records[0].getMessage()
        assert "disk on fire" not in caplog.text

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")
