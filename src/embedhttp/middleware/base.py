"""
=============================================================================
MIDDLEWARE AND PIPELINE COMPOSITION
=============================================================================

A middleware is any callable

    middleware(request, next) -> response

where `next` runs the rest of the chain (further middleware, then the route
handler). A middleware may:

    - inspect or rewrite the request, then call next
    - call next, then inspect or rewrite the response
    - not call next at all and return its own response (short-circuit)
    - let an error from next propagate

=============================================================================
ONION COMPOSITION
=============================================================================

compose([M0, M1, M2], handler) nests the list from the last element inward:

    chain[3] = handler
    chain[2] = lambda req: M2(req, chain[3])
    chain[1] = lambda req: M1(req, chain[2])
    chain[0] = lambda req: M0(req, chain[1])      ← returned

        ┌─ M0 ─────────────────────────────────────────┐
        │  ┌─ M1 ───────────────────────────────────┐  │
        │  │  ┌─ M2 ─────────────────────────────┐  │  │
        │  │  │            handler               │  │  │
        │  │  └──────────────────────────────────┘  │  │
        │  └────────────────────────────────────────┘  │
        └──────────────────────────────────────────────┘

Code before `next` runs M0, M1, M2 (outside in). Code after `next` runs
M2, M1, M0 (inside out). Only the position in the list decides the nesting,
so with

    [Req("1"), Req("2"), Req("3"), Res("A"), Res("B"), Res("C")]
    [Res("A"), Req("1"), Req("2"), Req("3"), Res("B"), Res("C")]

the handler sees "123" in both cases and the client gets "CBA".

=============================================================================
FAILURES
=============================================================================

compose() does not recover from anything; an error unwinds the chain like
any exception, and layers being unwound never reach their post-next code.
It does label errors on the way out so the error handler can tell them
apart:

    handler raises ValueError      → HandlerFailure(ValueError)
    M1 raises KeyError itself      → MiddlewareFailure("M1", KeyError)
    anything already a ServerError → re-raised unchanged

so a HandlerFailure travelling out through M1 and M0 stays a HandlerFailure.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, List, Optional, Sequence
import logging

from ..errors import HandlerFailure, MiddlewareFailure, ServerError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# The signature of `next`, and of the composed chain.
NextHandler = Callable[[HTTPRequest], HTTPResponse]

# Anything callable as middleware(request, next) -> response.
MiddlewareCallable = Callable[[HTTPRequest, NextHandler], HTTPResponse]


class Middleware(ABC):
    """
    Base class for class-based middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.perf_counter()
                response = next(request)
                response.set_header("X-Elapsed", f"{time.perf_counter() - start:.4f}")
                return response

    Plain functions with the same signature work too; subclassing only adds
    a readable name for logs and error messages.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The request, mutable in place.
            next: Runs the remainder of the chain.

        Returns:
            The response from next, possibly rewritten, or an own response.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """Wraps a plain (request, next) function as Middleware."""

    def __init__(self, func: MiddlewareCallable, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", repr(func))

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: MiddlewareCallable) -> FunctionMiddleware:
    """
    Decorator turning a function into named middleware.

        @function_middleware
        def add_header(request, next):
            response = next(request)
            response.set_header("X-Custom", "value")
            return response
    """
    return FunctionMiddleware(func)


def middleware_name(middleware: MiddlewareCallable) -> str:
    """Readable name of a middleware for logs and MiddlewareFailure."""
    name = getattr(middleware, "name", None)
    if isinstance(name, str):
        return name
    return getattr(middleware, "__name__", None) or type(middleware).__name__


# =============================================================================
# COMPOSITION
# =============================================================================

def compose(middlewares: Sequence[MiddlewareCallable], terminal: NextHandler) -> NextHandler:
    """
    Nest middleware around a terminal handler.

    middlewares[0] ends up outermost, the last element wraps `terminal`
    directly. The sequence is read once here, so changing the caller's list
    afterwards does not affect the returned chain.

    Args:
        middlewares: Middleware in outermost-first order.
        terminal: The route handler.

    Returns:
        A callable running the whole chain for one request.
    """
    chain = _guard_handler(terminal)
    for middleware in reversed(list(middlewares)):
        chain = _wrap(middleware, chain)
    return chain


def _guard_handler(handler: NextHandler) -> NextHandler:
    def guarded(request: HTTPRequest) -> HTTPResponse:
        try:
            response = handler(request)
            if response is None:
                raise TypeError(f"{getattr(handler, '__name__', handler)!r} returned None")
            return response
        except ServerError:
            raise
        except Exception as e:
            raise HandlerFailure(e) from e
    return guarded


def _wrap(middleware: MiddlewareCallable, next_handler: NextHandler) -> NextHandler:
    """
    Bind one middleware to the rest of the chain.

    The closure captures both, so each composed chain is independent of any
    later changes to the middleware list.
    """
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        try:
            return middleware(request, next_handler)
        except ServerError:
            raise
        except Exception as e:
            raise MiddlewareFailure(middleware_name(middleware), e) from e
    return wrapped


class MiddlewarePipeline:
    """
    Ordered list of middleware, first added = outermost.

        pipeline = MiddlewarePipeline()
        pipeline.use(LoggingMiddleware(), auth)
        handler = pipeline.wrap(route.handler)
        response = handler(request)

    replace() swaps the whole list at once. Chains already built by wrap()
    keep the middleware they were built with.
    """

    def __init__(self, middlewares: Iterable[MiddlewareCallable] = ()):
        self._middleware: List[MiddlewareCallable] = list(middlewares)

    def add(self, middleware: MiddlewareCallable) -> "MiddlewarePipeline":
        """Append one middleware; returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware_name(middleware)}")
        return self

    def use(self, *middleware: MiddlewareCallable) -> "MiddlewarePipeline":
        """Append several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def replace(self, middlewares: Iterable[MiddlewareCallable]) -> None:
        """Replace the whole list."""
        self._middleware = list(middlewares)
        logger.debug(
            "Middleware replaced: [%s]",
            ", ".join(middleware_name(mw) for mw in self._middleware),
        )

    def clear(self) -> None:
        self._middleware = []

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Compose the current list around `handler`."""
        return compose(self._middleware, handler)

    def snapshot(self) -> List[MiddlewareCallable]:
        return list(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[MiddlewareCallable]:
        return iter(list(self._middleware))
