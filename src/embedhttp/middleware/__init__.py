"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wrap the route handler in layers. Each layer sees the request on
the way in and the response on the way out:

    request ──► LoggingMiddleware ──► auth ──► handler
    response ◄── LoggingMiddleware ◄── auth ◄──┘

Any callable (request, next) -> response is middleware. The Middleware base
class and function_middleware decorator add a name for logs.

=============================================================================
"""

from .base import (
    FunctionMiddleware,
    Middleware,
    MiddlewareCallable,
    MiddlewarePipeline,
    NextHandler,
    compose,
    function_middleware,
)
from .logging import LoggingMiddleware

__all__ = [
    "Middleware",
    "MiddlewareCallable",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "compose",
    "LoggingMiddleware",
]
