"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting behaviour around the router.

    base.py      Middleware ABC, MiddlewarePipeline, function_middleware
    logging.py   LoggingMiddleware: access log in text or JSON

=============================================================================
"""

from .base import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
]
