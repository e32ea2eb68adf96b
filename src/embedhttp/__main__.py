"""
=============================================================================
EMBEDHTTP CLI ENTRY POINT
=============================================================================

Runs a small demo server, mostly useful for poking at the dispatcher with
curl.

    python -m embedhttp                       # 127.0.0.1:8080
    python -m embedhttp --port 3000
    python -m embedhttp --host 0.0.0.0 --workers 8
    python -m embedhttp --log-level DEBUG     # shows route registration
    python -m embedhttp --log-format json     # JSON access log lines

Routes:

    GET  /                 server banner
    ANY  /hello/{name}     greets {name}, echoes query parameters as JSON
    POST /echo             returns the request body as sent

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .http.response import HTTPResponse, ok
from .middleware import LoggingMiddleware
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="embedhttp",
        description="Embeddable HTTP/1.1 server (demo application)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m embedhttp                      # Run with defaults
  python -m embedhttp --port 3000          # Custom port
  python -m embedhttp --host 0.0.0.0       # Listen on all interfaces
  python -m embedhttp --workers 8          # 8 worker threads
        """,
    )

    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8080,
        help="Port to listen on, 0 for any free port (default: 8080)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=4,
        help="Minimum worker threads; the pool grows to twice this (default: 4)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format", "-f",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"embedhttp {__version__}",
    )
    return parser


def build_demo_server(config: ServerConfig) -> HTTPServer:
    """The demo application served by the CLI."""
    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=config.log_format))

    @server.get("/")
    def index(request):
        return ok(f"{config.server_name} {__version__}\n")

    @server.route("/hello/{name}")
    def hello(request):
        return ok({
            "message": f"Hello, {request.route_params['name']}!",
            "method": request.method,
            "query": request.query_params,
        })

    @server.post("/echo")
    def echo(request):
        content_type = request.get_header("Content-Type") or "application/octet-stream"
        return HTTPResponse(headers={"Content-Type": content_type}, body=request.body)

    return server


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        min_workers=args.workers,
        max_workers=args.workers * 2,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = build_demo_server(config)
        server.run()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
