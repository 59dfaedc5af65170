"""
=============================================================================
HANDLERS MODULE
=============================================================================

Route handlers. A handler is a plain callable:

    def handler(request: HTTPRequest) -> HTTPResponse

    ┌─────────────────────────────────────────────────────────────────────┐
    │    Request                 Handler                 Response         │
    │   ┌─────────┐           ┌─────────┐           ┌─────────┐          │
    │   │ GET     │           │         │           │ 200 OK  │          │
    │   │ /echo/  │ ────────▶ │  echo   │ ────────▶ │         │          │
    │   │ abc     │           │         │           │ abc     │          │
    │   └─────────┘           └─────────┘           └─────────┘          │
    └─────────────────────────────────────────────────────────────────────┘

AVAILABLE HANDLERS
──────────────────

    root          GET /            empty 200
    echo          GET /echo/*      text echo, gzip negotiated
    user_agent    GET (fallback)   reflects the User-Agent header
    FileHandler   GET/POST /files/* read and write under the serving root

=============================================================================
"""

from .echo import echo, has_user_agent, root, user_agent
from .files import FileHandler

__all__ = [
    "root",
    "echo",
    "user_agent",
    "has_user_agent",
    "FileHandler",
]
