"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per routed request, on the "minihttp.access" logger:

TEXT (Apache-like):
    127.0.0.1 - - [19/Oct/2026:10:15:32 +0000] "GET /echo/abc HTTP/1.1" 200 3 0.41ms

JSON (one object per line, for log shippers):
    {"request_id": "a1b2c3d4", "method": "GET", "path": "/echo/abc", ...}

The response itself is passed through untouched: no request-ID header is
added, so what goes on the wire is exactly what the handler built.

Route the access log separately from the server log if wanted:

    logging.getLogger("minihttp.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    request_id:     Short random ID, to correlate with other log lines
    method:         Method token as received ("GET", "DELETE", ...)
    path:           Request target as received
    version:        Protocol token
    client_ip:      Peer address
    user_agent:     User-Agent header, "-" when absent
    status_code:    Response status
    content_length: Bytes in the response body (None when there is none)
    duration_ms:    Time spent in the router and handler
    timestamp:      Local time, Apache log format
    """

    request_id: str
    method: str
    path: str
    version: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        size = self.content_length if self.content_length is not None else "-"
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{size} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it FIRST so its timing covers the
    whole chain and requests rejected by later middleware are logged too.

        pipeline.add(LoggingMiddleware())                  # text
        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(LoggingMiddleware(skip_paths=["/"]))  # quieter
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level access lines are emitted at.
            skip_paths: Exact paths that are not logged.
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown log format: {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception:
            # The connection driver logs the traceback and answers 500
            self._log(request, request_id, start_time, HTTPStatus.INTERNAL_SERVER_ERROR, None)
            raise

        self._log(request, request_id, start_time, response.status, response.content_length)
        return response

    def _log(
        self,
        request: HTTPRequest,
        request_id: str,
        start_time: float,
        status_code: int,
        content_length: Optional[int],
    ) -> None:
        duration_ms = (time.time() - start_time) * 1000

        if request.path in self.skip_paths or not logger.isEnabledFor(self.log_level):
            return

        entry = RequestLog(
            request_id=request_id,
            method=request.method_token,
            path=request.path,
            version=request.version,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(status_code),
            content_length=content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
