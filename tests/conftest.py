"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional

import pytest

from embedhttp import HTTPServer, ServerConfig
from embedhttp.http import HTTPRequest, HTTPResponse, ok


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """POST to a parameterised route with a query string and a text body."""
    body = b"Hello World"
    return (
        b"POST /hello/23/hi/next/second?string=salam&number=123 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: text/plain\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def server(config: ServerConfig) -> HTTPServer:
    """A fresh server that is never started; use dispatch() directly."""
    return HTTPServer(config)


class LiveServer:
    """Runs an HTTPServer on a background thread for integration tests."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> None:
        self._thread = self.server.start_background(port=0)

    def stop(self) -> None:
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[LiveServer, None, None]:
    """A running server with a parameterised echo route."""
    server = HTTPServer(config)

    @server.post("/hello/{id}/{name}/next/{part}")
    def hello(request: HTTPRequest) -> HTTPResponse:
        return ok({
            "route": request.route_params,
            "query": request.query_params,
            "body": request.text,
            "content_type": request.get_header("Content-Type"),
        })

    @server.get("/ping")
    def ping(request: HTTPRequest) -> HTTPResponse:
        return ok("pong")

    live = LiveServer(server)
    live.start()

    yield live

    live.stop()
