"""
=============================================================================
CONTENT CODEC (gzip)
=============================================================================

Negotiates and applies gzip compression to a response body.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

The client lists the encodings it understands:

    ┌───────────────────────────────────────────────────────────────┐
    │ GET /echo/abc HTTP/1.1                                        │
    │ Accept-Encoding: invalid-encoding-1, gzip, invalid-encoding-2 │
    └───────────────────────────────────────────────────────────────┘

The header value is split on commas and each token is trimmed. The
response is compressed only if one of the tokens is exactly "gzip":

    "gzip"                → compress
    "deflate, gzip"       → compress
    "identity, br"        → pass through
    "GZIP"                → pass through (tokens are case-sensitive)
    "gzip;q=1.0"          → pass through (no quality values)
    "*"                   → pass through (no wildcard)

When compressing:

    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Type: text/plain                                      │
    │ Content-Encoding: gzip                                        │
    │ Content-Length: 23        ← compressed size, not len("abc")   │
    │                                                               │
    │ [gzip bytes in raw_body]                                      │
    └───────────────────────────────────────────────────────────────┘

The compressed bytes go into the response's raw_body slot, which the
encoder prefers over text_body for both Content-Length and output.

=============================================================================
"""

import gzip
import logging
from dataclasses import replace
from typing import Optional

from .response import CONTENT_ENCODING, HTTPResponse


logger = logging.getLogger(__name__)

GZIP = "gzip"


def accepts_gzip(accept_encoding: Optional[str]) -> bool:
    """
    Check whether an Accept-Encoding value lists the gzip token.

    Args:
        accept_encoding: Raw header value, or None if the header is absent.
    """
    if not accept_encoding:
        return False
    tokens = {token.strip() for token in accept_encoding.split(",")}
    return GZIP in tokens


def gzip_text(text: str, level: int = 9) -> bytes:
    """UTF-8 encode and gzip a string."""
    return gzip.compress(text.encode("utf-8"), compresslevel=level)


def maybe_compress(
    response: HTTPResponse,
    accept_encoding: Optional[str],
    level: int = 9,
) -> HTTPResponse:
    """
    Compress the response's text body if the client accepts gzip.

    Args:
        response: Response whose text_body is eligible for compression.
        accept_encoding: The request's Accept-Encoding value (None if absent).
        level: gzip compression level, 1 (fast) to 9 (small).

    Returns:
        A new response with the gzip body in raw_body and
        Content-Encoding: gzip set, or `response` unchanged.
    """
    if not accepts_gzip(accept_encoding):
        return response

    compressed = gzip_text(response.text_body or "", level)
    logger.debug(
        f"gzip: {len(response.text_body or '')} chars -> {len(compressed)} bytes"
    )
    return replace(response.with_header(CONTENT_ENCODING, GZIP), raw_body=compressed)
