"""
=============================================================================
DISPATCH ERRORS
=============================================================================

Exception types raised by the dispatch core and the transport.

Every error that can escape request dispatch derives from ServerError and
carries the HTTP status the default error handler answers with:

    ┌──────────────────────┬────────┬──────────────────────────────────────┐
    │  Error               │ Status │  Raised when                         │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │  RouteNotFound       │  404   │  no route matches method + path      │
    │  HandlerFailure      │  500   │  the route handler raised            │
    │  MiddlewareFailure   │  500   │  a middleware raised (before/after)  │
    │  RequestParseError   │  4xx/5 │  raw bytes are not a valid request   │
    └──────────────────────┴────────┴──────────────────────────────────────┘

HandlerFailure and MiddlewareFailure wrap the original exception. It is
available as `.error` and is chained as `__cause__`, so tracebacks still
point at the code that failed.

=============================================================================
"""

from typing import Optional


class ServerError(Exception):
    """Base class for errors surfaced to the error handler."""

    status: int = 500

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class RouteNotFound(ServerError):
    """No registered route matches the request method and path."""

    status = 404

    def __init__(self, method: str, path: str):
        super().__init__(f"No route matches {method} {path}")
        self.method = method
        self.path = path


class HandlerFailure(ServerError):
    """The resolved route handler raised an error."""

    def __init__(self, error: BaseException):
        super().__init__(f"Handler failed: {type(error).__name__}: {error}")
        self.error = error


class MiddlewareFailure(ServerError):
    """A middleware raised an error before or after delegating to next."""

    def __init__(self, name: str, error: BaseException):
        super().__init__(f"Middleware {name} failed: {type(error).__name__}: {error}")
        self.name = name
        self.error = error


class RequestParseError(ServerError):
    """
    Raised when raw request bytes cannot be parsed.

    The status tells the client what went wrong:

        400 Bad Request                - malformed request line or headers
        413 Payload Too Large          - request exceeds max_request_size
        505 HTTP Version Not Supported - anything but HTTP/1.0 or HTTP/1.1
    """

    status = 400
