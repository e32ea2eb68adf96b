"""
Unit tests for HTTPServer.dispatch (no sockets).
"""

import pytest

from embedhttp import HTTPServer, ServerConfig
from embedhttp.error_handler import DefaultErrorHandler, ErrorHandler, default_error_response
from embedhttp.errors import HandlerFailure, MiddlewareFailure, RequestParseError, RouteNotFound
from embedhttp.http import HTTPRequest, HTTPStatus, ok


def tag(value):
    """Response middleware appending `value` to X-Order."""
    def middleware(request, next):
        response = next(request)
        response.headers["X-Order"] = response.headers.get("X-Order", "") + value
        return response
    return middleware


def req_tag(value):
    """Request middleware appending `value` to X-Order."""
    def middleware(request, next):
        request.headers["X-Order"] = request.headers.get("X-Order", "") + value
        return next(request)
    return middleware


class FriendlyNotFound(ErrorHandler):
    def on_error(self, request, error):
        if isinstance(error, RouteNotFound):
            return ok("Error is handled")
        return default_error_response(error)


class TestDispatch:
    """Tests for the dispatch boundary."""

    def test_route_params_are_set(self, server: HTTPServer):
        @server.post("/hello/{id}/{name}/next/{part}")
        def hello(request):
            return ok(request.route_params)

        request = HTTPRequest.from_target(
            "POST", "/hello/23/hi/next/second?string=salam&number=123"
        )
        response = server.dispatch(request)

        assert response.status == HTTPStatus.OK
        assert request.route_params == {"id": "23", "name": "hi", "part": "second"}
        assert request.query_params == {"string": "salam", "number": "123"}

    def test_unknown_path_is_404(self, server: HTTPServer):
        response = server.dispatch(HTTPRequest(method="GET", path="/nowhere"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""

    def test_unknown_path_skips_middleware(self, server: HTTPServer):
        calls = []

        def spy(request, next):
            calls.append(request.path)
            return next(request)

        server.use(spy)
        server.dispatch(HTTPRequest(method="GET", path="/nowhere"))

        assert calls == []

    def test_handler_error_is_500(self, server: HTTPServer):
        @server.get("/boom")
        def boom(request):
            raise ValueError("kaput")

        response = server.dispatch(HTTPRequest(method="GET", path="/boom"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b""

    def test_error_handler_sees_labelled_errors(self, server: HTTPServer):
        seen = []

        def record(request, error):
            seen.append(type(error))
            return None

        @server.get("/boom")
        def boom(request):
            raise ValueError("kaput")

        def broken(request, next):
            raise KeyError("mw")

        server.error_handler = record
        server.dispatch(HTTPRequest(method="GET", path="/boom"))
        server.use(broken)
        server.dispatch(HTTPRequest(method="GET", path="/boom"))
        server.dispatch(HTTPRequest(method="GET", path="/missing"))

        assert seen == [HandlerFailure, MiddlewareFailure, RouteNotFound]

    def test_custom_error_handler_and_restore(self, server: HTTPServer):
        request = HTTPRequest(method="GET", path="/not-registered")

        server.error_handler = FriendlyNotFound()
        response = server.dispatch(request)
        assert response.status == HTTPStatus.OK
        assert response.text == "Error is handled"

        server.error_handler = DefaultErrorHandler()
        response = server.dispatch(HTTPRequest(method="GET", path="/not-registered"))
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""

    def test_error_handler_class_assignment(self, server: HTTPServer):
        server.error_handler = FriendlyNotFound

        response = server.dispatch(HTTPRequest(method="GET", path="/aNonDefinedRoute"))

        assert isinstance(server.error_handler, FriendlyNotFound)
        assert response.status == HTTPStatus.OK
        assert response.text == "Error is handled"

    def test_assigning_none_restores_default(self, server: HTTPServer):
        server.error_handler = FriendlyNotFound()
        server.error_handler = None

        assert isinstance(server.error_handler, DefaultErrorHandler)

    def test_middleware_list_is_read_per_request(self, server: HTTPServer):
        @server.get("/")
        def index(request):
            return ok("index")

        server.middlewares = [tag("A")]
        assert server.dispatch(HTTPRequest(method="GET", path="/")).headers["X-Order"] == "A"

        server.middlewares = [tag("A"), tag("B")]
        assert server.dispatch(HTTPRequest(method="GET", path="/")).headers["X-Order"] == "BA"

        server.middlewares = []
        assert "X-Order" not in server.dispatch(HTTPRequest(method="GET", path="/")).headers

    def test_middlewares_getter_is_a_copy(self, server: HTTPServer):
        server.use(tag("A"))
        server.middlewares.append(tag("B"))

        assert len(server.middlewares) == 1

    def test_in_flight_request_keeps_its_chain(self, server: HTTPServer):
        """Replacing the list mid-request only affects later requests."""
        def swap(request, next):
            server.middlewares = []
            return next(request)

        @server.get("/")
        def index(request):
            return ok("index")

        server.middlewares = [tag("A"), swap, tag("B")]
        response = server.dispatch(HTTPRequest(method="GET", path="/"))

        assert response.headers["X-Order"] == "BA"
        assert server.middlewares == []

    def test_handler_clearing_middlewares_mid_request(self, server: HTTPServer):
        """Request and response layers interleave; clearing the list only affects the next request."""
        @server.get("/order")
        def order(request):
            server.middlewares = []
            return ok(request.get_header("X-Order"))

        server.middlewares = [
            tag("A"), req_tag("1"), req_tag("2"), req_tag("3"), tag("B"), tag("C"),
        ]
        response = server.dispatch(HTTPRequest(method="GET", path="/order"))

        assert response.text == "123"
        assert response.headers["X-Order"] == "CBA"
        assert server.middlewares == []

        response = server.dispatch(HTTPRequest(method="GET", path="/order"))
        assert response.text == ""
        assert "X-Order" not in response.headers

    def test_invalid_json_in_handler_keeps_parse_status(self, server: HTTPServer):
        """A RequestParseError raised by a handler passes through unwrapped as 400."""
        seen = []

        @server.post("/items")
        def create(request):
            return ok(request.json)

        def record(request, error):
            seen.append(type(error))
            return None

        server.error_handler = record
        response = server.dispatch(HTTPRequest(method="POST", path="/items", body=b"{nope"))

        assert seen == [RequestParseError]
        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b""

    def test_any_method_route(self, server: HTTPServer):
        server.register("", "/any", lambda request: ok(request.method))

        for method in ("GET", "POST", "DELETE"):
            assert server.dispatch(HTTPRequest(method=method, path="/any")).text == method

    def test_use_is_chainable(self, server: HTTPServer):
        assert server.use(tag("A")).use(tag("B")) is server


class TestServerSetup:
    """Tests for construction."""

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(port=70000))

    def test_router_is_shared(self, server: HTTPServer):
        @server.get("/a")
        def a(request):
            return ok("a")

        assert len(server.router) == 1
