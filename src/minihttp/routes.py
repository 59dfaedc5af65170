"""
=============================================================================
ROUTE DISPATCHER
=============================================================================

The server's routing table, evaluated top to bottom, first match wins:

    ┌────────┬──────────────────────┬───────────────────────────────────────┐
    │ Method │ Path                 │ Action                                │
    ├────────┼──────────────────────┼───────────────────────────────────────┤
    │ GET    │ "/" or ""            │ 200, empty body                       │
    │ GET    │ prefix /echo/        │ 200 text/plain suffix, gzip if asked  │
    │ GET    │ prefix /files/       │ 200 octet-stream contents, or 404     │
    │ GET    │ any, with User-Agent │ 200 text/plain header value           │
    │ GET    │ otherwise            │ 404                                   │
    │ POST   │ prefix /files/       │ write body, 201                       │
    │ POST   │ otherwise            │ 404                                   │
    │ other  │ anything             │ 404                                   │
    └────────┴──────────────────────┴───────────────────────────────────────┘

The 404 rows are the router's no-match answer. Methods other than GET and
POST parse as Method.UNSUPPORTED and no route is registered for them.

=============================================================================
"""

from .handlers import FileHandler, echo, has_user_agent, root, user_agent
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .http.router import Router
from .storage import FileStore


ECHO_PREFIX = "/echo/"
FILES_PREFIX = "/files/"


def create_router(store: FileStore) -> Router:
    """
    Build the routing table for a file store.

    Args:
        store: File store behind the /files/* routes.

    Returns:
        A Router whose handle() implements the table above.
    """
    router = Router()
    files = FileHandler(store)

    router.add_route("/", root, "GET")
    router.add_route("", root, "GET", name="root (empty target)")
    router.add_route(ECHO_PREFIX, echo, "GET", prefix=True)
    router.add_route(FILES_PREFIX, files.read, "GET", prefix=True, name="read_file")
    router.add_route(None, user_agent, "GET", when=has_user_agent)
    router.add_route(FILES_PREFIX, files.write, "POST", prefix=True, name="write_file")

    return router


def dispatch(request: HTTPRequest, store: FileStore) -> HTTPResponse:
    """
    Route one request against a fresh table.

    Convenience for one-off calls and tests. The server builds its router
    once with create_router() and reuses it for every connection.

    Raises:
        IOFailure: If a file write (or read) fails for a reason other
                   than the file being absent.
    """
    return create_router(store).handle(request)
