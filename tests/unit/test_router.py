"""
Unit tests for URL router.
"""

import pytest

from embedhttp.errors import RouteNotFound
from embedhttp.http.request import HTTPRequest
from embedhttp.http.response import HTTPResponse, ok
from embedhttp.http.router import Route, Router, compile_pattern


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ok({"path": request.path})


class TestCompilePattern:
    """Tests for pattern → regex compilation."""

    def test_compile_contract(self):
        """Placeholders become greedy groups, literals are escaped, joined by \\/."""
        regex, names = compile_pattern("/api/{param1}/{param2}/next/{param3}")

        assert regex == r"\/api\/(.+)\/?\/(.+)\/?\/next\/(.+)\/?"
        assert names == ("param1", "param2", "param3")

    def test_static_pattern(self):
        """A pattern without placeholders has no parameters."""
        regex, names = compile_pattern("/users")

        assert regex == r"\/users"
        assert names == ()

    def test_root_pattern(self):
        regex, names = compile_pattern("/")

        assert regex == r"\/"
        assert names == ()

    def test_literal_segments_are_escaped(self):
        """Regex metacharacters in literal segments match themselves."""
        route = Route(method="GET", path_pattern="/files/v1.0/{name}", handler=dummy_handler)

        assert route.matches("GET", "/files/v1.0/readme")
        assert not route.matches("GET", "/files/v1x0/readme")


class TestRoute:
    """Tests for Route class."""

    def test_route_compiles_on_creation(self):
        route = Route(method="post", path_pattern="/hello/{id}", handler=dummy_handler)

        assert route.method == "POST"
        assert route.regex_pattern == r"\/hello\/(.+)\/?"
        assert route.param_names == ("id",)

    def test_extract_params(self):
        """Captured values are zipped with names in order."""
        route = Route(
            method="POST",
            path_pattern="/hello/{id}/{name}/next/{part}",
            handler=dummy_handler,
        )

        params = route.extract_params("/hello/23/hi/next/second")

        assert params == {"id": "23", "name": "hi", "part": "second"}

    def test_trailing_slash_is_trimmed(self):
        """An optional trailing slash matches and is not part of the value."""
        route = Route(method="GET", path_pattern="/users/{id}", handler=dummy_handler)

        assert route.matches("GET", "/users/42/")
        assert route.extract_params("/users/42/") == {"id": "42"}

    def test_params_are_not_percent_decoded(self):
        route = Route(method="GET", path_pattern="/users/{name}", handler=dummy_handler)

        assert route.extract_params("/users/j%20doe") == {"name": "j%20doe"}

    def test_greedy_capture_spans_segments(self):
        """A placeholder can swallow slashes when nothing else needs them."""
        route = Route(method="GET", path_pattern="/static/{path}", handler=dummy_handler)

        assert route.extract_params("/static/css/site.css") == {"path": "css/site.css"}

    def test_extract_params_on_mismatch(self):
        route = Route(method="GET", path_pattern="/users/{id}", handler=dummy_handler)

        with pytest.raises(ValueError):
            route.extract_params("/posts/1")

    def test_whole_path_must_match(self):
        route = Route(method="GET", path_pattern="/users", handler=dummy_handler)

        assert route.matches("GET", "/users")
        assert not route.matches("GET", "/users/extra")
        assert not route.matches("GET", "/api/users")

    def test_empty_method_accepts_any(self):
        route = Route(method="", path_pattern="/any", handler=dummy_handler)

        for method in ("GET", "POST", "DELETE", "PROPFIND"):
            assert route.matches(method, "/any")


class TestRouter:
    """Tests for Router class."""

    def test_register(self):
        """Test adding routes."""
        router = Router()
        route = router.register("GET", "/users", dummy_handler)

        assert len(router) == 1
        assert router.routes == [route]
        assert route.path_pattern == "/users"
        assert route.method == "GET"

    def test_match_with_method(self):
        """Test method-based routing."""
        router = Router()
        router.register("GET", "/users", dummy_handler)
        router.register("POST", "/users", dummy_handler)

        assert router.match("GET", "/users").method == "GET"
        assert router.match("POST", "/users").method == "POST"

    def test_first_match_wins(self):
        """Routes are tried in registration order."""
        router = Router()
        first = router.register("GET", "/users/{id}", dummy_handler)
        router.register("GET", "/users/me", dummy_handler)

        assert router.match("GET", "/users/me") is first

    def test_no_match_raises(self):
        """Test when no route matches."""
        router = Router()
        router.register("GET", "/users", dummy_handler)

        with pytest.raises(RouteNotFound) as exc_info:
            router.match("GET", "/posts")
        assert exc_info.value.status == 404
        assert exc_info.value.path == "/posts"

        with pytest.raises(RouteNotFound):
            router.match("POST", "/users")  # Wrong method

    def test_find_returns_none(self):
        router = Router()

        assert router.find("GET", "/nothing") is None

    def test_extract_params_through_router(self):
        router = Router()
        route = router.register("POST", "/hello/{id}/{name}/next/{part}", dummy_handler)

        params = router.extract_params(route, "/hello/23/hi/next/second")

        assert params == {"id": "23", "name": "hi", "part": "second"}

    def test_decorators(self):
        """Decorators register and return the handler unchanged."""
        router = Router()

        @router.get("/a")
        def a(request):
            return ok("a")

        @router.post("/b")
        def b(request):
            return ok("b")

        @router.route("/c")
        def c(request):
            return ok("c")

        assert [r.method for r in router.routes] == ["GET", "POST", ""]
        assert router.match("GET", "/a").handler is a
        assert router.match("PUT", "/c").handler is c

    def test_clear(self):
        router = Router()
        router.register("GET", "/a", dummy_handler)
        router.clear()

        assert len(router) == 0
        with pytest.raises(RouteNotFound):
            router.match("GET", "/a")
