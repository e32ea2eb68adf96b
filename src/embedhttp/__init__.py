"""
=============================================================================
EMBEDHTTP - Embeddable HTTP/1.1 Server Core
=============================================================================

A small HTTP server meant to be embedded in an application: register routes
with {name} path parameters, wrap them in an onion of middleware, and decide
how failures become responses with a pluggable error handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   request ─► Router.match ─► compose(middlewares, handler) ─► resp  │
    │                  │                       │                          │
    │                  └──── any error ────────┴──► error_handler ─► resp │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    embedhttp/
    ├── __init__.py          # Package exports
    ├── __main__.py          # Demo CLI (python -m embedhttp)
    ├── server.py            # HTTPServer: dispatch + run
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # ServerError hierarchy
    ├── error_handler.py     # ErrorHandler strategy + default mapping
    ├── core/                # Sockets, connections, worker threads
    ├── http/                # Request, response, status codes, router
    └── middleware/          # compose(), pipeline, access logging

=============================================================================
QUICK START
=============================================================================

    from embedhttp import HTTPServer, ok

    server = HTTPServer()

    @server.get("/hello/{name}")
    def hello(request):
        return ok(f"Hello, {request.route_params['name']}!")

    server.run(port=8080)

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .error_handler import (
    DefaultErrorHandler,
    ErrorHandler,
    FunctionErrorHandler,
    default_error_response,
    error_handler,
)
from .errors import (
    HandlerFailure,
    MiddlewareFailure,
    RequestParseError,
    RouteNotFound,
    ServerError,
)
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    Route,
    Router,
    empty,
    json_response,
    not_found,
    ok,
)
from .middleware import (
    FunctionMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    compose,
    function_middleware,
)
from .server import HTTPServer

__all__ = [
    # Server
    "HTTPServer",
    "ServerConfig",

    # HTTP
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "Route",
    "Router",
    "ok",
    "empty",
    "json_response",
    "not_found",

    # Middleware
    "Middleware",
    "FunctionMiddleware",
    "function_middleware",
    "MiddlewarePipeline",
    "LoggingMiddleware",
    "compose",

    # Errors
    "ServerError",
    "RouteNotFound",
    "HandlerFailure",
    "MiddlewareFailure",
    "RequestParseError",
    "ErrorHandler",
    "DefaultErrorHandler",
    "FunctionErrorHandler",
    "default_error_response",
    "error_handler",

    "__version__",
]
