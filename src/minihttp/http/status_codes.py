"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on the wire, and the reason phrase
that goes with each one.

=============================================================================
THE STATUS LINE
=============================================================================

Every response starts with a status line:

    HTTP/1.1 404 Not Found\r\n
    ───┬──── ─┬─ ────┬────
       │      │      │
    Version  Code  Reason phrase (looked up in STATUS_PHRASES)

Only four codes are ever produced:

    ┌────────┬─────────────────────────┬────────────────────────────────────┐
    │  Code  │ Phrase                  │ Produced by                        │
    ├────────┼─────────────────────────┼────────────────────────────────────┤
    │  200   │ OK                      │ /, /echo/*, GET /files/*, UA route │
    │  201   │ Created                 │ POST /files/*                      │
    │  404   │ Not Found               │ missing file, no matching route    │
    │  500   │ Internal Server Error   │ filesystem failure, overload       │
    └────────┴─────────────────────────┴────────────────────────────────────┘

=============================================================================
A READ-ONLY TABLE
=============================================================================

STATUS_PHRASES is built once at import time and wrapped in a
MappingProxyType, so worker threads can share it without locking:
nobody can write to it after the module is loaded.

A handler that uses a code with no entry is a bug in the handler, not
something a client can trigger. The encoder raises UnknownStatusCode
for it instead of inventing a phrase.

=============================================================================
"""

from enum import IntEnum
from types import MappingProxyType
from typing import Mapping


class UnknownStatusCode(LookupError):
    """
    Raised when a response carries a status code with no reason phrase.

    This is a programming error in a handler. The connection driver logs
    it with a traceback and closes the connection.
    """

    def __init__(self, status: int):
        super().__init__(f"No reason phrase for status code {status}")
        self.status = status


class HTTPStatus(IntEnum):
    """
    Named status codes.

    IntEnum so a member compares equal to its integer:
        HTTPStatus.OK == 200  → True
        f"{HTTPStatus.OK}"    → "200"
    """

    OK = 200                      # Request succeeded
    CREATED = 201                 # File written by POST /files/*
    NOT_FOUND = 404               # No route, or file absent
    INTERNAL_SERVER_ERROR = 500   # Filesystem failure or overload

    @property
    def phrase(self) -> str:
        """Reason phrase for this status (e.g. "Not Found")."""
        return STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        return self >= 400

    def __str__(self) -> str:
        return str(int(self))


# =============================================================================
# REASON PHRASES
# =============================================================================
#
# Keys are plain ints so lookups work for both HTTPStatus members and bare
# integers coming out of a handler (IntEnum hashes like its value).
#
# =============================================================================

STATUS_PHRASES: Mapping[int, str] = MappingProxyType({
    200: "OK",
    201: "Created",
    404: "Not Found",
    500: "Internal Server Error",
})


def reason_phrase(status: int, phrases: Mapping[int, str] = STATUS_PHRASES) -> str:
    """
    Look up the reason phrase for a status code.

    Args:
        status: Numeric status code (int or HTTPStatus).
        phrases: Table to consult. Defaults to the process-wide table.

    Returns:
        The reason phrase.

    Raises:
        UnknownStatusCode: If the code has no entry in the table.
    """
    try:
        return phrases[int(status)]
    except KeyError:
        raise UnknownStatusCode(int(status)) from None
