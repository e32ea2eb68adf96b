"""
=============================================================================
ERROR HANDLER STRATEGY
=============================================================================

When dispatch fails, the server hands the error to exactly one error
handler, the one currently installed on the server, and sends whatever
response it returns.

    HTTPServer.dispatch(request)
        │
        ├─ router.match / compose / chain(request)
        │        │
        │        └─ raises ──► handle_error(server.error_handler, request, error)
        │                             │
        │                             ├─ strategy.on_error(request, error)
        │                             │     returns a response → send it
        │                             │     returns None       → default mapping
        │                             │     raises             → default mapping
        ▼                             ▼
    HTTPResponse                 HTTPResponse

=============================================================================
DEFAULT MAPPING
=============================================================================

    RouteNotFound                        → 404, empty body
    RequestParseError                    → its status (400 / 413 / 505)
    HandlerFailure, MiddlewareFailure    → 500, empty body
    anything else                        → 500, empty body

=============================================================================
CUSTOM HANDLERS
=============================================================================

A custom handler is installed by assigning it; it stays active for every
request until something else is assigned:

    class FriendlyNotFound(ErrorHandler):
        def on_error(self, request, error):
            if isinstance(error, RouteNotFound):
                return ok("Error is handled")
            return default_error_response(error)

    server.error_handler = FriendlyNotFound()
    ...
    server.error_handler = DefaultErrorHandler()

Falling back to the default is explicit: call default_error_response() or
return None.

=============================================================================
"""

from typing import Callable, Optional, Type, Union
import logging

from .errors import RouteNotFound, ServerError
from .http.request import HTTPRequest
from .http.response import HTTPResponse, empty
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

ErrorHandlerFunc = Callable[[Optional[HTTPRequest], BaseException], Optional[HTTPResponse]]


def default_error_response(error: BaseException) -> HTTPResponse:
    """The response used when no handler produces one. Always empty-bodied."""
    if isinstance(error, RouteNotFound):
        return empty(HTTPStatus.NOT_FOUND)
    if isinstance(error, ServerError):
        try:
            return empty(HTTPStatus(error.status))
        except ValueError:
            pass
    return empty(HTTPStatus.INTERNAL_SERVER_ERROR)


class ErrorHandler:
    """
    Base class for error handler strategies.

    Subclasses override on_error(). The base implementation declines every
    error (returns None), which makes the server use the default mapping.
    """

    def on_error(
        self, request: Optional[HTTPRequest], error: BaseException
    ) -> Optional[HTTPResponse]:
        """
        Turn an error into a response.

        Args:
            request: The request being dispatched, or None when the error
                     happened before a request could be parsed.
            error: The exception that escaped dispatch.

        Returns:
            A response to send, or None to use the default mapping.
        """
        return None

    def __call__(
        self, request: Optional[HTTPRequest], error: BaseException
    ) -> Optional[HTTPResponse]:
        return self.on_error(request, error)


class DefaultErrorHandler(ErrorHandler):
    """404 for RouteNotFound, the error's own status for other ServerErrors, else 500."""

    def on_error(
        self, request: Optional[HTTPRequest], error: BaseException
    ) -> Optional[HTTPResponse]:
        return default_error_response(error)


class FunctionErrorHandler(ErrorHandler):
    """Adapts a plain (request, error) -> response | None function."""

    def __init__(self, func: ErrorHandlerFunc):
        self._func = func

    def on_error(
        self, request: Optional[HTTPRequest], error: BaseException
    ) -> Optional[HTTPResponse]:
        return self._func(request, error)

    def __repr__(self) -> str:
        return f"FunctionErrorHandler({getattr(self._func, '__name__', self._func)!r})"


def error_handler(func: ErrorHandlerFunc) -> FunctionErrorHandler:
    """
    Decorator building an ErrorHandler from a function.

        @error_handler
        def teapot(request, error):
            if isinstance(error, RouteNotFound):
                return empty(HTTPStatus.NOT_FOUND)
            return None
    """
    return FunctionErrorHandler(func)


def as_error_handler(
    strategy: Union[ErrorHandler, Type[ErrorHandler], ErrorHandlerFunc, None],
) -> ErrorHandler:
    """
    Normalize what gets assigned to HTTPServer.error_handler.

    Accepts None (the default), an ErrorHandler instance, an ErrorHandler
    subclass (instantiated with no arguments) or a plain function.
    """
    if strategy is None:
        return DefaultErrorHandler()
    if isinstance(strategy, ErrorHandler):
        return strategy
    if isinstance(strategy, type):
        # server.error_handler = MyErrorHandler installs an instance of it
        if issubclass(strategy, ErrorHandler):
            return strategy()
        raise TypeError(f"Error handler class must subclass ErrorHandler, got {strategy.__name__}")
    if callable(strategy):
        return FunctionErrorHandler(strategy)
    raise TypeError(f"Error handler must be callable, got {type(strategy).__name__}")


def handle_error(
    strategy: ErrorHandler,
    request: Optional[HTTPRequest],
    error: BaseException,
) -> HTTPResponse:
    """
    Run the installed strategy and fall back to the default mapping.

    A strategy that raises is logged and treated as if it had declined;
    the client still gets the default response for the original error.
    """
    try:
        response = strategy.on_error(request, error)
    except Exception:
        logger.exception(f"Error handler {strategy!r} failed while handling {error!r}")
        response = None

    if response is None:
        response = default_error_response(error)
    return response
