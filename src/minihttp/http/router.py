"""
=============================================================================
URL ROUTER
=============================================================================

A first-match-wins routing table. Routes are checked top to bottom in
registration order; method is checked before path.

=============================================================================
ROUTE KINDS
=============================================================================

    ┌──────────┬──────────────────────────┬──────────────────────────────┐
    │ Kind     │ Registered as            │ Matches                      │
    ├──────────┼──────────────────────────┼──────────────────────────────┤
    │ EXACT    │ router.get("/")          │ path == "/"                  │
    │ PREFIX   │ router.get("/echo/",     │ path.startswith("/echo/")    │
    │          │            prefix=True)  │ suffix → path_params         │
    │ ANY      │ router.get(None,         │ every path, optionally only  │
    │          │            when=pred)    │ when pred(request) is true   │
    └──────────┴──────────────────────────┴──────────────────────────────┘

PREFIX routes cut the suffix at a fixed offset, the prefix length:

    Route "/files/"  (7 chars)
    Path  "/files/notes/today.txt"
                  └──────┬───────┘
          path_params["suffix"] = "notes/today.txt"

Nothing is normalized. "/echo/a/b/" gives the suffix "a/b/", and
"/files/../x" gives "../x" (the file store decides what to do with it).

=============================================================================
ROUTING FLOW
=============================================================================

    Incoming Request
    GET /echo/abc
         │
         ▼
    ┌─────────────────────────────────────────────────────────────┐
    │  GET  /          EXACT   → root                             │
    │  GET  /echo/     PREFIX  → echo         ← MATCH!            │
    │  GET  /files/    PREFIX  → read_file                        │
    │  GET  *          ANY     → user_agent  (if User-Agent sent) │
    │  POST /files/    PREFIX  → write_file                       │
    └─────────────────────────────────────────────────────────────┘
         │
         ▼
    echo(request)       # request.path_params == {"suffix": "abc"}

No match at all gives 404 with the request's protocol version, which is
also what every UNSUPPORTED method ends up with: no route is registered
for it.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from .request import HTTPRequest, Method
from .response import HTTPResponse, not_found


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]

# Predicate: extra condition a route can require
Predicate = Callable[[HTTPRequest], bool]

SUFFIX = "suffix"


class RouteType(Enum):
    """How a route's path is compared with the request path."""

    EXACT = "exact"
    PREFIX = "prefix"
    ANY = "any"


@dataclass
class Route:
    """
    A registered route.

        Route(
            method=Method.GET,
            path="/echo/",
            handler=echo,
            kind=RouteType.PREFIX,
            name="echo",
        )
    """

    method: Method
    path: Optional[str]
    handler: Handler
    kind: RouteType = RouteType.EXACT
    when: Optional[Predicate] = None
    name: Optional[str] = None

    def matches(self, request: HTTPRequest) -> Optional[Dict[str, str]]:
        """
        Test the route against a request.

        Returns:
            Extracted path params ({} for EXACT/ANY) on a match, else None.
        """
        if self.method is not request.method:
            return None

        params: Dict[str, str] = {}

        if self.kind is RouteType.EXACT:
            if request.path != self.path:
                return None
        elif self.kind is RouteType.PREFIX:
            if not request.path.startswith(self.path):
                return None
            params[SUFFIX] = request.path[len(self.path):]

        if self.when is not None and not self.when(request):
            return None

        return params


@dataclass
class RouteMatch:
    """Result of a successful match: the route and its path params."""

    route: Route
    params: Dict[str, str] = field(default_factory=dict)


class Router:
    """
    Method-first, first-match-wins request router.

    ==========================================================================
    DECORATOR-BASED API
    ==========================================================================

        router = Router()

        @router.get("/")
        def root(request):
            return ok(version=request.version)

        @router.get("/echo/", prefix=True)
        def echo(request):
            return ok(request.path_params["suffix"], version=request.version)

        @router.get(None, when=lambda r: "User-Agent" in r.headers)
        def user_agent(request):
            ...

    Order matters. Register more specific routes before catch-alls.

    ==========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: Optional[str],
        handler: Handler,
        method: Union[Method, str] = Method.GET,
        prefix: bool = False,
        when: Optional[Predicate] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: Exact path, path prefix (prefix=True), or None for any path.
            handler: Function taking a request and returning a response.
            method: Method (or its token) the route answers.
            prefix: Treat `path` as a prefix and capture the suffix.
            when: Extra predicate the request must satisfy.
            name: Optional label, shown by print_routes().

        Returns:
            The registered Route.
        """
        if isinstance(method, str):
            method = Method.from_token(method.upper())

        if path is None:
            kind = RouteType.ANY
        elif prefix:
            kind = RouteType.PREFIX
        else:
            kind = RouteType.EXACT

        route = Route(
            method=method,
            path=path,
            handler=handler,
            kind=kind,
            when=when,
            name=name or getattr(handler, "__name__", None),
        )
        self._routes.append(route)
        return route

    def route(
        self,
        path: Optional[str],
        method: Union[Method, str] = Method.GET,
        prefix: bool = False,
        when: Optional[Predicate] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(). Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, prefix, when, name)
            return handler
        return decorator

    def get(self, path: Optional[str], **kwargs) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, Method.GET, **kwargs)

    def post(self, path: Optional[str], **kwargs) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, Method.POST, **kwargs)

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, request: HTTPRequest) -> Optional[RouteMatch]:
        """Return the first route matching the request, or None."""
        for route in self._routes:
            params = route.matches(request)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        The handler receives a copy of the request carrying the
        extracted path_params. With no matching route the answer is
        404 with an empty body.
        """
        match = self.match(request)
        if match is None:
            return not_found(request.version)

        routed = replace(request, path_params=match.params)
        return match.route.handler(routed)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        return list(self._routes)

    def print_routes(self) -> None:
        """
        Print the routing table, e.g.:

            Registered Routes:
            ------------------------------------------------------------
              GET      /                  exact   root
              GET      /echo/             prefix  echo
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self._routes:
            path = route.path if route.path is not None else "*"
            print(f"  {route.method.value:8} {path:18} {route.kind.value:7} {route.name or ''}")
        print("-" * 60)
