"""
=============================================================================
HTTP RESPONSE MODEL AND ENCODER
=============================================================================

Responses are immutable values. Handlers assemble them with a
ResponseBuilder (or one of the shortcuts at the bottom of this module),
and encode_response() turns them into the bytes that go on the wire.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                   ← status line               │
    │    Content-Type: text/plain\r\n          ← headers, in set order     │
    │    Content-Encoding: gzip\r\n                                        │
    │    Content-Length: 23\r\n                ← always derived, last      │
    │    \r\n                                  ← blank line                │
    │    <23 bytes of gzip data>               ← body                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TWO BODY SLOTS
=============================================================================

A response carries at most one authoritative body:

    raw_body   bytes, used when present AND non-empty
               (compressed echo output, file contents)
    text_body  str, used otherwise

    ┌─────────────────────────────┬──────────────────────────────────────┐
    │ Body                        │ Content-Length                       │
    ├─────────────────────────────┼──────────────────────────────────────┤
    │ raw_body non-empty          │ len(raw_body)                        │
    │ text + octet-stream type    │ len(text.encode("utf-8"))            │
    │ text, any other type        │ len(text)  (character count)         │
    │ no body / empty text        │ header omitted                       │
    └─────────────────────────────┴──────────────────────────────────────┘

Handlers never set Content-Length themselves. The builder refuses it and
the encoder derives it from the body on every call, so encoding the same
response twice produces the same bytes.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .status_codes import HTTPStatus, STATUS_PHRASES, reason_phrase


# =============================================================================
# HEADER NAMES AND MEDIA TYPES
# =============================================================================

CONTENT_TYPE = "Content-Type"
CONTENT_LENGTH = "Content-Length"
CONTENT_ENCODING = "Content-Encoding"
ACCEPT_ENCODING = "Accept-Encoding"
USER_AGENT = "User-Agent"

TEXT_PLAIN = "text/plain"
OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True)
class HTTPResponse:
    """
    An HTTP response, ready to be encoded.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler builds          encode_response()         Socket sends
        HTTPResponse   ─────►   serializes       ─────►   raw bytes
            │                       │                        │
        HTTPResponse(            b"HTTP/1.1 200 OK\\r\\n    conn.send_response(
          status=200,              Content-Type: ...\\r\\n     response_bytes
          text_body="abc",         Content-Length: 3\\r\\n   )
        )                          \\r\\nabc"

    =========================================================================
    """

    status: int = HTTPStatus.OK
    version: str = "HTTP/1.1"
    headers: Mapping[str, str] = field(default_factory=dict)
    text_body: Optional[str] = None
    raw_body: Optional[bytes] = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def has_raw_body(self) -> bool:
        return bool(self.raw_body)

    @property
    def has_body(self) -> bool:
        return self.has_raw_body or bool(self.text_body)

    @property
    def body_bytes(self) -> bytes:
        """The bytes written after the blank line."""
        if self.has_raw_body:
            return self.raw_body
        return (self.text_body or "").encode("utf-8")

    @property
    def content_length(self) -> Optional[int]:
        """Derived Content-Length, or None when there is no body."""
        return content_length(self)

    @property
    def status_line(self) -> str:
        """
        "HTTP/1.1 200 OK" style status line (without CRLF).

        Raises:
            UnknownStatusCode: If the status has no reason phrase.
        """
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def with_header(self, name: str, value: str) -> "HTTPResponse":
        """Return a copy with one header set (last write wins, order kept)."""
        headers = dict(self.headers)
        headers[name] = value
        return replace(self, headers=headers)

    def to_bytes(self, phrases: Mapping[int, str] = STATUS_PHRASES) -> bytes:
        """Serialize for socket.sendall(). See encode_response()."""
        return encode_response(self, phrases)


# =============================================================================
# ENCODER
# =============================================================================

def content_length(response: HTTPResponse) -> Optional[int]:
    """
    Compute the Content-Length for a response.

    Returns:
        Byte (or character) count per the table in the module docstring,
        or None when the response has no body.
    """
    if response.has_raw_body:
        return len(response.raw_body)

    if not response.text_body:
        return None

    if response.headers.get(CONTENT_TYPE) == OCTET_STREAM:
        return len(response.text_body.encode("utf-8"))

    return len(response.text_body)


def encode_response(
    response: HTTPResponse,
    phrases: Mapping[int, str] = STATUS_PHRASES,
) -> bytes:
    """
    Serialize a response to wire bytes.

    =====================================================================
    SERIALIZATION STEPS
    =====================================================================

        1. Derive Content-Length from the body (omit if no body)
        2. Status line:   {version} {status} {phrase}\\r\\n
        3. Headers:       {Name}: {Value}\\r\\n   (set order, length last)
        4. Blank line:    \\r\\n
        5. Body:          raw bytes if present, else UTF-8 text

    =====================================================================

    Args:
        response: The response to encode. It is not modified.
        phrases: Status code → reason phrase table.

    Returns:
        Complete HTTP response bytes.

    Raises:
        UnknownStatusCode: If the status has no entry in `phrases`.
    """
    phrase = reason_phrase(response.status, phrases)

    # Copy: the response itself is never touched
    headers: Dict[str, str] = {
        name: value
        for name, value in response.headers.items()
        if name != CONTENT_LENGTH
    }

    length = content_length(response)
    if length is not None:
        headers[CONTENT_LENGTH] = str(length)

    lines = [f"{response.version} {int(response.status)} {phrase}"]
    for name, value in headers.items():
        lines.append(f"{name}: {value}")

    # Empty line separates headers from body
    lines.append("")

    header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
    return header_bytes + response.body_bytes


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse values.

    ==========================================================================
    USAGE
    ==========================================================================

        response = (ResponseBuilder(version=request.version)
            .status(HTTPStatus.OK)
            .text("abc")                  # also sets Content-Type: text/plain
            .build())

        response = (ResponseBuilder()
            .file(b"\\x00\\x01")           # octet-stream, raw body
            .build())

    Every method except build() returns self. build() returns a frozen
    HTTPResponse; the builder can keep being used afterwards without
    affecting responses it already built.

    ==========================================================================
    """

    def __init__(self, version: str = "HTTP/1.1"):
        self._status: int = HTTPStatus.OK
        self._version = version
        self._headers: Dict[str, str] = {}
        self._text: Optional[str] = None
        self._raw: Optional[bytes] = None

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def version(self, version: str) -> "ResponseBuilder":
        """Set the protocol token echoed in the status line."""
        self._version = version
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """
        Set a header (last write wins).

        Raises:
            ValueError: For Content-Length, which the encoder derives.
        """
        if name == CONTENT_LENGTH:
            raise ValueError("Content-Length is derived from the body")
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header(CONTENT_TYPE, content_type)

    def text(self, text: str, content_type: Optional[str] = TEXT_PLAIN) -> "ResponseBuilder":
        """Set a text body and (unless None) its Content-Type."""
        self._text = text
        if content_type:
            self.content_type(content_type)
        return self

    def raw(self, data: bytes) -> "ResponseBuilder":
        """Set the raw body slot (takes precedence over text when non-empty)."""
        self._raw = data
        return self

    def file(self, content: bytes) -> "ResponseBuilder":
        """File download: raw body served as application/octet-stream."""
        return self.content_type(OCTET_STREAM).raw(content)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            version=self._version,
            headers=self._headers,
            text_body=self._text,
            raw_body=self._raw,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(
    text: Optional[str] = None,
    content_type: Optional[str] = TEXT_PLAIN,
    version: str = "HTTP/1.1",
) -> HTTPResponse:
    """
    200 OK. With no text, an empty body and no Content-Type.

    Example:
        ok()                      # bare 200
        ok("abc")                 # text/plain, Content-Length: 3
    """
    builder = ResponseBuilder(version).status(HTTPStatus.OK)
    if text is not None:
        builder.text(text, content_type)
    return builder.build()


def created(version: str = "HTTP/1.1") -> HTTPResponse:
    """201 Created, empty body."""
    return ResponseBuilder(version).status(HTTPStatus.CREATED).build()


def not_found(version: str = "HTTP/1.1") -> HTTPResponse:
    """404 Not Found, empty body."""
    return ResponseBuilder(version).status(HTTPStatus.NOT_FOUND).build()


def internal_error(version: str = "HTTP/1.1") -> HTTPResponse:
    """500 Internal Server Error, empty body."""
    return ResponseBuilder(version).status(HTTPStatus.INTERNAL_SERVER_ERROR).build()
