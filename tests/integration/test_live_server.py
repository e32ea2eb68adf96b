"""
Integration tests against a running server over real sockets.
"""

import http.client
import json
import socket

from embedhttp import HTTPServer, ServerConfig
from embedhttp.error_handler import ErrorHandler
from embedhttp.errors import RouteNotFound
from embedhttp.http import ok


def request(port, method, target, body=None, headers=None):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request(method, target, body=body, headers=headers or {})
        response = conn.getresponse()
        return response.status, dict(response.getheaders()), response.read()
    finally:
        conn.close()


def raw_exchange(port, data: bytes) -> bytes:
    with socket.create_connection(("127.0.0.1", port), timeout=5) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestLiveServer:
    """End-to-end requests through socket, parser, dispatch and serializer."""

    def test_post_with_params_query_and_body(self, live_server):
        target = "/hello/23/hi/next/second?string=salam+%C9%99%C4%B1oue%C9%99i%C3%B6%C3%BC&number=123"
        status, headers, body = request(
            live_server.port, "POST", target,
            body=b"Hello World",
            headers={"Content-Type": "text/plain"},
        )

        assert status == 200
        data = json.loads(body)
        assert data["route"] == {"id": "23", "name": "hi", "part": "second"}
        assert data["query"] == {"string": "salam əıoueəiöü", "number": "123"}
        assert data["body"] == "Hello World"
        assert data["content_type"] == "text/plain"
        assert headers["Server"] == "embedhttp"

    def test_unknown_path_is_404(self, live_server):
        status, headers, body = request(live_server.port, "GET", "/nowhere")

        assert status == 404
        assert body == b""
        assert headers["Content-Length"] == "0"

    def test_head_has_no_body(self, live_server):
        live_server.server.register("HEAD", "/ping", lambda request: ok("pong"))

        status, headers, body = request(live_server.port, "HEAD", "/ping")

        assert status == 200
        assert headers["Content-Length"] == "4"
        assert body == b""

    def test_keep_alive_serves_several_requests(self, live_server):
        conn = http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)
        try:
            for _ in range(3):
                conn.request("GET", "/ping")
                response = conn.getresponse()
                assert response.read() == b"pong"
                assert response.getheader("Connection") == "keep-alive"
        finally:
            conn.close()

    def test_middleware_runs_over_the_wire(self, live_server):
        def stamp(request, next):
            response = next(request)
            response.set_header("X-Stamp", "yes")
            return response

        live_server.server.middlewares = [stamp]

        status, headers, _ = request(live_server.port, "GET", "/ping")

        assert status == 200
        assert headers["X-Stamp"] == "yes"

    def test_custom_error_handler_over_the_wire(self, live_server):
        class Friendly(ErrorHandler):
            def on_error(self, request, error):
                if isinstance(error, RouteNotFound):
                    return ok("Error is handled")
                return None

        live_server.server.error_handler = Friendly()
        status, _, body = request(live_server.port, "GET", "/nowhere")
        assert (status, body) == (200, b"Error is handled")

        live_server.server.error_handler = None
        status, _, body = request(live_server.port, "GET", "/nowhere")
        assert (status, body) == (404, b"")


class TestTransportErrors:
    """Malformed input is answered through the error handler with no request."""

    def test_malformed_request_line(self, live_server):
        reply = raw_exchange(live_server.port, b"NONSENSE\r\n\r\n")

        assert reply.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b"Connection: close\r\n" in reply

    def test_unsupported_version(self, live_server):
        reply = raw_exchange(live_server.port, b"GET /ping HTTP/3.0\r\n\r\n")

        assert reply.startswith(b"HTTP/1.1 505 ")

    def test_error_handler_gets_none_request(self, live_server):
        seen = []

        def record(request, error):
            seen.append(request)
            return None

        live_server.server.error_handler = record
        raw_exchange(live_server.port, b"NONSENSE\r\n\r\n")

        assert seen == [None]


def test_request_too_large(free_port):
    server = HTTPServer(ServerConfig(
        port=free_port,
        min_workers=1,
        max_workers=2,
        max_request_size=2048,
        log_level="WARNING",
    ))
    server.start_background()
    try:
        reply = raw_exchange(
            free_port,
            b"POST / HTTP/1.1\r\nContent-Length: 10000\r\n\r\n" + b"x" * 10000,
        )
        assert reply.startswith(b"HTTP/1.1 413 ")
    finally:
        server.shutdown()


def test_port_zero_reports_bound_address():
    server = HTTPServer(ServerConfig(port=0, min_workers=1, max_workers=1, log_level="WARNING"))
    server.start_background()
    try:
        assert server.address[1] != 0
        status, _, _ = request(server.address[1], "GET", "/")
        assert status == 404
    finally:
        server.shutdown()
