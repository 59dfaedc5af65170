"""
Text handlers: the root page, /echo/{text} and User-Agent reflection.

    GET /                     → 200, empty body
    GET /echo/abc             → 200, text/plain, "abc" (gzip if accepted)
    GET /anything + User-Agent → 200, text/plain, the User-Agent value
"""

from ..http.compression import maybe_compress
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, USER_AGENT, ok
from ..http.router import SUFFIX


def root(request: HTTPRequest) -> HTTPResponse:
    """Empty 200 for "/" (and for an empty request target)."""
    return ok(version=request.version)


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the path suffix back as text/plain.

    This is the only response eligible for content negotiation: with
    "Accept-Encoding: gzip" the body is sent gzip-compressed.
    """
    response = ok(request.path_params.get(SUFFIX, ""), version=request.version)
    return maybe_compress(response, request.accept_encoding)


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """Reflect the User-Agent header value as text/plain."""
    return ok(request.get_header(USER_AGENT), version=request.version)


def has_user_agent(request: HTTPRequest) -> bool:
    return USER_AGENT in request.headers
