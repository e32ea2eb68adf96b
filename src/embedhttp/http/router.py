"""
=============================================================================
URL ROUTER
=============================================================================

Matches a request method + path against an ordered table of routes and
pulls named parameters out of the path.

=============================================================================
ROUTE PATTERNS
=============================================================================

A pattern is a path whose segments are either literals or `{name}`
placeholders:

    /hello/{id}/{name}/next/{part}

Each placeholder captures the matching part of the request path and is
exposed to the handler under its name:

    POST /hello/23/hi/next/second
    → request.route_params == {"id": "23", "name": "hi", "part": "second"}

=============================================================================
PATTERN COMPILATION
=============================================================================

The pattern is split on "/" and every segment is turned into a regex piece:

    "/api/{param1}/{param2}/next/{param3}".split("/")
    → ["", "api", "{param1}", "{param2}", "next", "{param3}"]

        ""          → ""                   (leading slash)
        "api"       → re.escape("api")
        "{param1}"  → (.+)\\/?             param_names += ["param1"]
        "{param2}"  → (.+)\\/?             param_names += ["param2"]
        "next"      → re.escape("next")
        "{param3}"  → (.+)\\/?             param_names += ["param3"]

The pieces are joined with an escaped slash "\\/":

    \\/api\\/(.+)\\/?\\/(.+)\\/?\\/next\\/(.+)\\/?

This string is part of the library's interface (it is exposed as
Route.regex_pattern and asserted on by tests), so the exact shape matters:
greedy "(.+)" followed by an optional trailing slash, one group per
placeholder, in left-to-right order. A path matches a route only when the
whole path matches (re.fullmatch).

=============================================================================
MATCHING
=============================================================================

Routes are tried in registration order and the first one whose method and
pattern both match wins. A route registered with method "" accepts any
method. No match raises RouteNotFound; the dispatcher turns that into a 404
through the error handler.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging
import re

from ..errors import RouteNotFound
from .request import HTTPRequest
from .response import HTTPResponse


logger = logging.getLogger(__name__)

# A route handler takes the request and returns a response (or raises).
Handler = Callable[[HTTPRequest], HTTPResponse]

PARAM_CAPTURE = r"(.+)\/?"
SEGMENT_SEPARATOR = r"\/"

_PLACEHOLDER = re.compile(r"^\{([^{}/]+)\}$")


def compile_pattern(path_pattern: str) -> tuple[str, tuple[str, ...]]:
    """
    Compile a route pattern into its matcher string and parameter names.

    Args:
        path_pattern: Pattern such as "/users/{id}/posts/{post_id}".

    Returns:
        (regex_pattern, param_names), param_names in left-to-right order.

    Example:
        >>> compile_pattern("/api/{a}/x")
        ('\\\\/api\\\\/(.+)\\\\/?\\\\/x', ('a',))
    """
    param_names: List[str] = []
    pieces: List[str] = []

    for segment in path_pattern.split("/"):
        placeholder = _PLACEHOLDER.match(segment)
        if placeholder:
            param_names.append(placeholder.group(1))
            pieces.append(PARAM_CAPTURE)
        else:
            pieces.append(re.escape(segment))

    return SEGMENT_SEPARATOR.join(pieces), tuple(param_names)


@dataclass(frozen=True)
class Route:
    """
    A registered (method, pattern, handler) triple.

    The pattern is compiled when the route is created; routes never change
    afterwards.

        Route(method="GET", path_pattern="/users/{id}", handler=get_user)
        → regex_pattern = "\\/users\\/(.+)\\/?"
        → param_names   = ("id",)
    """

    method: str
    path_pattern: str
    handler: Handler
    regex_pattern: str = field(init=False)
    param_names: tuple[str, ...] = field(init=False)
    _regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        regex_pattern, param_names = compile_pattern(self.path_pattern)
        # frozen dataclass: derived fields are set through object.__setattr__
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "regex_pattern", regex_pattern)
        object.__setattr__(self, "param_names", param_names)
        object.__setattr__(self, "_regex", re.compile(regex_pattern))

    def matches(self, method: str, path: str) -> bool:
        """True if the method is accepted and the whole path matches."""
        if self.method and self.method != method.upper():
            return False
        return self._regex.fullmatch(path) is not None

    def extract_params(self, path: str) -> Dict[str, str]:
        """
        Zip the captured groups with param_names.

        Each value has one trailing "/" trimmed. Values are returned exactly
        as they appear in the path; no percent-decoding happens here.

        Raises:
            ValueError: If the path does not match this route.
        """
        match = self._regex.fullmatch(path)
        if match is None:
            raise ValueError(f"{path!r} does not match route {self.path_pattern!r}")
        return {
            name: _trim_trailing_slash(value)
            for name, value in zip(self.param_names, match.groups())
        }


def _trim_trailing_slash(value: str) -> str:
    return value[:-1] if value.endswith("/") else value


class Router:
    """
    Ordered route table.

    Register routes directly:

        router.register("POST", "/hello/{id}", create_hello)

    or with the decorator helpers:

        @router.get("/users/{id}")
        def get_user(request):
            return ok({"id": request.route_params["id"]})

    The table is meant to be filled during setup and only read while
    serving. It can be emptied with clear() between test scenarios.
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, method: str, path_pattern: str, handler: Handler) -> Route:
        """
        Compile and append a route.

        Args:
            method: HTTP method; "" accepts any method.
            path_pattern: Pattern with optional {name} placeholders.
            handler: Callable taking the request and returning a response.

        Returns:
            The new Route.
        """
        route = Route(method=method, path_pattern=path_pattern, handler=handler)
        self._routes.append(route)
        logger.debug(
            f"Registered route {route.method or 'ANY'} {path_pattern} -> {route.regex_pattern}"
        )
        return route

    def route(self, path_pattern: str, method: str = "") -> Callable[[Handler], Handler]:
        """Decorator form of register(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.register(method, path_pattern, handler)
            return handler
        return decorator

    def get(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "GET")

    def post(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "POST")

    def put(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "PUT")

    def delete(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "DELETE")

    def patch(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "PATCH")

    def head(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "HEAD")

    def options(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self.route(path_pattern, "OPTIONS")

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Route:
        """
        Find the first route accepting this method and path.

        Raises:
            RouteNotFound: If no route matches.
        """
        for route in self._routes:
            if route.matches(method, path):
                return route
        raise RouteNotFound(method, path)

    def find(self, method: str, path: str) -> Optional[Route]:
        """Like match(), but returns None instead of raising."""
        try:
            return self.match(method, path)
        except RouteNotFound:
            return None

    def extract_params(self, route: Route, path: str) -> Dict[str, str]:
        """Named parameters of `path` captured by `route`."""
        return route.extract_params(path)

    # =========================================================================
    # TABLE MANAGEMENT
    # =========================================================================

    @property
    def routes(self) -> List[Route]:
        """Snapshot of the route table in registration order."""
        return list(self._routes)

    def clear(self) -> None:
        """Drop every registered route."""
        self._routes.clear()

    def __len__(self) -> int:
        return len(self._routes)
