"""
=============================================================================
HTTP REQUEST DECODER
=============================================================================

Turns the raw bytes of one received buffer into an immutable HTTPRequest,
using an explicit finite-state scanner.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /files/new.txt HTTP/1.1\r\n       ← request line            │
    │    ─┬── ──────┬─────── ───┬────                                      │
    │   Method     Path      Protocol                                      │
    │                                                                      │
    │    Host: localhost:4221\r\n               ← headers                  │
    │    User-Agent: curl/8.4.0\r\n                                        │
    │    \r\n                                   ← blank line               │
    │                                                                      │
    │    hello                                  ← body (rest of buffer)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE STATE MACHINE
=============================================================================

The scanner looks at every byte exactly once, left to right. No
backtracking, no regex, no splitting on delimiters first:

    ┌──────────┐  SP   ┌──────────┐  SP   ┌──────────┐
    │  METHOD  │──────►│   PATH   │──────►│ PROTOCOL │
    └──────────┘       └──────────┘       └────┬─────┘
                                               │ CR
                                               ▼
                        ":"           ┌──────────────┐
          ┌──────────────────────────│ HEADER_NAME  │◄─────────┐
          │                           └──────┬───────┘          │
          ▼                                  │ CR, no name      │ CR
    ┌──────────────┐                         ▼                  │
    │ HEADER_VALUE │                  ┌──────────────┐          │
    └──────┬───────┘                  │     BODY     │          │
           └──────────────────────────┼──────────────┼──────────┘
                                      └──────────────┘
                                      (everything left)

CRLF HANDLING
─────────────

A line terminator is two bytes, \r\n, but only \r drives a transition.
Each transition on \r arms a one-shot "skip LF" flag, so the \n that
follows is swallowed instead of ending up as the first byte of the next
header name:

    "Host: a\r\nUser-Agent: b\r\n"
                ▲
                └── skipped; the next name is "User-Agent", not "\nUser-Agent"

The body keeps every byte after the blank line, including anything that
looks like further CRLFs. Leading \n bytes are stripped from it.

=============================================================================
WHAT THE DECODER DOES NOT DO
=============================================================================

- No Content-Length framing. The body is "whatever is left in the
  buffer". How many bytes make up the buffer is the connection's
  business (see core/connection.py).
- No header validation beyond finding the ':' separator.
- No case folding. "User-Agent" and "user-agent" are different keys;
  a repeated header keeps its last value.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union


# Byte values the scanner reacts to
SP = 0x20      # " "
CR = 0x0D      # "\r"
LF = 0x0A      # "\n"
COLON = 0x3A   # ":"


class HTTPParseError(Exception):
    """
    Raised when request bytes cannot be turned into an HTTPRequest.

    Carries the HTTP status a server could answer with, when it chooses
    to answer at all.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequest(HTTPParseError):
    """
    The request line (method, path, protocol) could not be identified,
    or a header line has no ':' separator.

    The server does not answer these: it closes the connection.
    """


class Method(Enum):
    """
    Request methods the router knows about.

    Any other token becomes UNSUPPORTED instead of an exception, so the
    dispatcher handles it explicitly (it answers 404).
    """

    GET = "GET"
    POST = "POST"
    UNSUPPORTED = "UNSUPPORTED"

    @classmethod
    def from_token(cls, token: str) -> "Method":
        """Map a raw method token to a Method ("DELETE" → UNSUPPORTED)."""
        if token in (cls.GET.value, cls.POST.value):
            return cls(token)
        return cls.UNSUPPORTED


class ParseState(Enum):
    """Scanner states, in the order a well-formed request visits them."""

    METHOD = "method"
    PATH = "path"
    PROTOCOL = "protocol"
    HEADER_NAME = "header_name"
    HEADER_VALUE = "header_value"
    BODY = "body"


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request. Immutable once built.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Method.GET, Method.POST or Method.UNSUPPORTED
        method_token:   The method exactly as received ("DELETE")
        path:           Request target as received ("/echo/abc"), may be ""
        version:        Protocol token ("HTTP/1.1"), echoed into the response
        headers:        Read-only mapping, names exactly as received
        raw_body:       Bytes after the blank line, leading \n stripped
        path_params:    Filled in by the router ({"suffix": "abc"})
        client_address: (ip, port) of the peer, for logging

    The router never mutates a request. It builds a new one with
    dataclasses.replace() carrying the extracted path_params.

    =========================================================================
    """

    method: Union[Method, str]
    path: str
    version: str = "HTTP/1.1"
    headers: Mapping[str, str] = field(default_factory=dict)
    raw_body: bytes = b""
    method_token: str = ""
    path_params: Mapping[str, str] = field(default_factory=dict)
    client_address: Tuple[str, int] = ("", 0)

    def __post_init__(self):
        # Accept plain strings for convenience: HTTPRequest(method="GET", ...)
        if isinstance(self.method, str):
            object.__setattr__(self, "method_token", self.method_token or self.method)
            object.__setattr__(self, "method", Method.from_token(self.method))
        elif not self.method_token:
            object.__setattr__(self, "method_token", self.method.value)

        # Freeze the mappings so shared requests can't be edited in place
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "path_params", MappingProxyType(dict(self.path_params)))

    @property
    def body(self) -> str:
        """The body as text (UTF-8, undecodable bytes replaced)."""
        return self.raw_body.decode("utf-8", errors="replace")

    @property
    def user_agent(self) -> Optional[str]:
        return self.headers.get("User-Agent")

    @property
    def accept_encoding(self) -> Optional[str]:
        return self.headers.get("Accept-Encoding")

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value. The lookup is case-sensitive.

        Example:
            request.get_header("User-Agent")   # "curl/8.4.0"
            request.get_header("user-agent")   # "" unless sent in lowercase
        """
        return self.headers.get(name, default)


class RequestParser:
    """
    Byte-at-a-time HTTP request decoder.

    ==========================================================================
    USAGE
    ==========================================================================

        parser = RequestParser()
        request = parser.parse(b"GET /echo/abc HTTP/1.1\\r\\n\\r\\n")
        request.path            # "/echo/abc"

        strict = RequestParser(strict_methods=True)
        strict.parse(b"PUT / HTTP/1.1\\r\\n\\r\\n")   # MalformedRequest

    ==========================================================================
    FAILURE MODES
    ==========================================================================

        Buffer ends inside the request line   → MalformedRequest
        Empty method token                    → MalformedRequest
        Header line with no ':'               → MalformedRequest
        Unknown method (strict mode only)     → MalformedRequest
        Buffer bigger than max_request_size   → HTTPParseError(413)

    A buffer that ends inside the header section is accepted: whatever
    headers were completed are kept, a pending value without its CR is
    kept too, and the body is empty.

    ==========================================================================
    """

    def __init__(
        self,
        max_request_size: int = 10 * 1024 * 1024,
        strict_methods: bool = False,
    ):
        """
        Args:
            max_request_size: Largest buffer accepted, in bytes.
            strict_methods: Reject methods other than GET/POST instead of
                            mapping them to Method.UNSUPPORTED.
        """
        self.max_request_size = max_request_size
        self.strict_methods = strict_methods

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Decode one buffer into an HTTPRequest.

        Args:
            data: Raw bytes received from the client.
            client_address: Peer (ip, port), stored on the request.

        Returns:
            The parsed request.

        Raises:
            MalformedRequest: If the request line or a header line is broken.
            HTTPParseError: If the buffer exceeds max_request_size.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        state = ParseState.METHOD
        line = bytearray()            # bytes of the token being collected
        method_token = ""
        path = ""
        version = ""
        header_name = ""
        headers: Dict[str, str] = {}
        body = b""
        skip_lf = False               # armed by every CR transition

        for index, byte in enumerate(data):
            if skip_lf:
                skip_lf = False
                if byte == LF:
                    continue

            # ─────────────────────────────────────────────────────────────
            # REQUEST LINE
            # ─────────────────────────────────────────────────────────────
            if state is ParseState.METHOD:
                if byte == SP:
                    method_token = _text(line)
                    line.clear()
                    self._check_method(method_token)
                    state = ParseState.PATH
                else:
                    line.append(byte)

            elif state is ParseState.PATH:
                if byte == SP:
                    path = _text(line)
                    line.clear()
                    state = ParseState.PROTOCOL
                else:
                    line.append(byte)

            elif state is ParseState.PROTOCOL:
                if byte == CR:
                    version = _text(line)
                    line.clear()
                    skip_lf = True
                    state = ParseState.HEADER_NAME
                else:
                    line.append(byte)

            # ─────────────────────────────────────────────────────────────
            # HEADERS
            # ─────────────────────────────────────────────────────────────
            elif state is ParseState.HEADER_NAME:
                if byte == COLON:
                    header_name = _text(line).strip()
                    line.clear()
                    state = ParseState.HEADER_VALUE
                elif byte == CR:
                    if _text(line).strip():
                        raise MalformedRequest(
                            f"Header line without ':' separator: {_text(line)!r}"
                        )
                    # Blank line: the rest of the buffer is the body.
                    # Its first byte is normally the LF of this CRLF,
                    # which the lstrip below removes.
                    body = bytes(data[index + 1:]).lstrip(b"\n")
                    state = ParseState.BODY
                    break
                else:
                    line.append(byte)

            elif state is ParseState.HEADER_VALUE:
                if byte == CR:
                    headers[header_name] = _text(line).strip()
                    line.clear()
                    skip_lf = True
                    state = ParseState.HEADER_NAME
                else:
                    line.append(byte)

        # ─────────────────────────────────────────────────────────────────
        # END OF BUFFER
        # ─────────────────────────────────────────────────────────────────
        if state in (ParseState.METHOD, ParseState.PATH, ParseState.PROTOCOL):
            raise MalformedRequest(
                f"Incomplete request line (stopped in {state.value} state)"
            )

        if state is ParseState.HEADER_VALUE:
            headers[header_name] = _text(line).strip()

        return HTTPRequest(
            method=Method.from_token(method_token),
            method_token=method_token,
            path=path,
            version=version,
            headers=headers,
            raw_body=body,
            client_address=client_address,
        )

    def _check_method(self, token: str) -> None:
        if not token:
            raise MalformedRequest("Empty method token")
        if self.strict_methods and Method.from_token(token) is Method.UNSUPPORTED:
            raise MalformedRequest(f"Unsupported method: {token}")


def _text(raw: bytearray) -> str:
    return raw.decode("utf-8", errors="replace")


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    strict_methods: bool = False,
) -> HTTPRequest:
    """
    Parse one buffer with a throwaway RequestParser.

    Use RequestParser directly to reuse settings across requests.
    """
    parser = RequestParser(strict_methods=strict_methods)
    return parser.parse(data, client_address)
