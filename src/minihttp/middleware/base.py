"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the router: it sees every request on the way in and
every response on the way out, without the handlers knowing about it.

    ┌───────────────────────────────────────────────────────────────────┐
    │  LoggingMiddleware                                                │
    │    ┌─────────────────────────────────────────────────────────┐    │
    │    │  (more middleware)                                      │    │
    │    │    ┌───────────────────────────────────────────────┐    │    │
    │    │    │  router.handle(request) → response            │    │    │
    │    │    └───────────────────────────────────────────────┘    │    │
    │    └─────────────────────────────────────────────────────────┘    │
    └───────────────────────────────────────────────────────────────────┘

Requests are immutable, so a middleware that wants to change one passes
a dataclasses.replace() copy to next(). Responses likewise.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the router at the end of the chain
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.time()
                response = next(request)           # continue the chain
                ...
                return response

    Not calling next() short-circuits: the router never sees the request.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware chain. First added = outermost.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware at once, in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every middleware in the pipeline.

        Given [MW1, MW2] the result calls MW1, which calls MW2, which
        calls the handler. Built from the inside out.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        # A closure per layer, so each middleware gets its own `next`
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """Adapts a plain function(request, next) to the Middleware interface."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
) -> FunctionMiddleware:
    """
    Decorator turning a function into middleware.

        @function_middleware
        def tag_server(request, next):
            return next(request).with_header("Server", "minihttp")

        pipeline.add(tag_server)
    """
    return FunctionMiddleware(func)
