"""
=============================================================================
HTTP PROTOCOL PACKAGE
=============================================================================

Everything that knows what HTTP bytes look like, and nothing that touches
a socket or the filesystem.

    request.py       Wire decoder: bytes → HTTPRequest (state machine)
    response.py      HTTPResponse, ResponseBuilder, encoder: → bytes
    compression.py   gzip negotiation for response bodies
    router.py        First-match routing table
    status_codes.py  Status codes and the read-only reason phrase table

    ┌──────────┐  parse   ┌─────────────┐  handle  ┌──────────────┐  encode  ┌─────────┐
    │  bytes   │ ───────► │ HTTPRequest │ ───────► │ HTTPResponse │ ───────► │  bytes  │
    └──────────┘          └─────────────┘          └──────────────┘          └─────────┘

=============================================================================
"""

from .status_codes import HTTPStatus, STATUS_PHRASES, UnknownStatusCode, reason_phrase
from .request import (
    HTTPParseError,
    HTTPRequest,
    MalformedRequest,
    Method,
    ParseState,
    RequestParser,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    content_length,
    created,
    encode_response,
    internal_error,
    not_found,
    ok,
)
from .compression import accepts_gzip, maybe_compress
from .router import Route, RouteMatch, Router, RouteType

__all__ = [
    # Status codes
    "HTTPStatus",
    "STATUS_PHRASES",
    "UnknownStatusCode",
    "reason_phrase",

    # Request
    "HTTPRequest",
    "HTTPParseError",
    "MalformedRequest",
    "Method",
    "ParseState",
    "RequestParser",
    "parse_request",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "content_length",
    "encode_response",
    "ok",
    "created",
    "not_found",
    "internal_error",

    # Compression
    "accepts_gzip",
    "maybe_compress",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "RouteType",
]
