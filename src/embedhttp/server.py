"""
=============================================================================
HTTP SERVER
=============================================================================

HTTPServer holds the three pieces of configuration the dispatch core reads
on every request, and drives them either directly (dispatch) or over TCP
(run).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            HTTPServer                               │
    │                                                                     │
    │   router          ordered route table        register / get / post  │
    │   middlewares     ordered list, outer first  use / assignment       │
    │   error_handler   one strategy               assignment             │
    │                                                                     │
    │   dispatch(request) ─────────────────────────────────────────────┐  │
    │     try:                                                         │  │
    │        route  = router.match(method, path)                       │  │
    │        request.route_params = router.extract_params(route, path) │  │
    │        chain  = compose(middlewares, route.handler)              │  │
    │        return chain(request)                                     │  │
    │     except Exception as error:                                   │  │
    │        return handle_error(error_handler, request, error)        │  │
    │   ───────────────────────────────────────────────────────────────┘  │
    │                                                                     │
    │   run()  SocketServer ─► ThreadPool ─► RequestParser ─► dispatch    │
    └─────────────────────────────────────────────────────────────────────┘

The chain is composed again for every request from whatever the middleware
list holds at that moment. A request in flight keeps the chain it started
with, even if a handler replaces server.middlewares halfway through.

=============================================================================
CONCURRENCY
=============================================================================

Routes, middleware and the error handler are meant to be set up before
run() and only read afterwards. Changing them while requests are being
served is allowed but not synchronized: a concurrent request sees either
the old or the new value.

=============================================================================
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional, Type, Union

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .error_handler import (
    DefaultErrorHandler,
    ErrorHandler,
    ErrorHandlerFunc,
    as_error_handler,
    handle_error,
)
from .errors import RequestParseError, RouteNotFound
from .http import HTTPRequest, HTTPResponse, HTTPStatus, RequestParser, Route, Router
from .http.router import Handler
from .middleware import MiddlewareCallable, MiddlewarePipeline, compose


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Embedded HTTP/1.1 server.

        server = HTTPServer(ServerConfig(port=8080))

        @server.post("/hello/{id}/{name}")
        def hello(request):
            return ok(f"hi {request.route_params['name']}")

        server.middlewares = [LoggingMiddleware()]
        server.run()

    Without sockets, the dispatcher can be called directly:

        response = server.dispatch(HTTPRequest.from_target("GET", "/hello"))
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._error_handler: ErrorHandler = DefaultErrorHandler()

        self._parser = RequestParser(
            max_request_size=self.config.max_request_size,
            lowercase_header_names=self.config.lowercase_header_names,
        )
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._running = False

    # =========================================================================
    # CONFIGURATION READ BY DISPATCH
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    @property
    def middlewares(self) -> List[MiddlewareCallable]:
        """Copy of the middleware list, outermost first."""
        return self._middleware.snapshot()

    @middlewares.setter
    def middlewares(self, middlewares: Iterable[MiddlewareCallable]) -> None:
        self._middleware.replace(middlewares)

    @property
    def error_handler(self) -> ErrorHandler:
        return self._error_handler

    @error_handler.setter
    def error_handler(
        self, strategy: Union[ErrorHandler, Type[ErrorHandler], ErrorHandlerFunc, None]
    ) -> None:
        """Install a strategy (instance, subclass or function); None restores DefaultErrorHandler."""
        self._error_handler = as_error_handler(strategy)
        logger.debug(f"Error handler set to {self._error_handler!r}")

    def use(self, *middleware: MiddlewareCallable) -> "HTTPServer":
        """Append middleware (innermost so far). Returns self for chaining."""
        self._middleware.use(*middleware)
        return self

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def register(self, method: str, path_pattern: str, handler: Handler) -> Route:
        return self._router.register(method, path_pattern, handler)

    def route(self, path_pattern: str, method: str = "") -> Callable[[Handler], Handler]:
        return self._router.route(path_pattern, method)

    def get(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.get(path_pattern)

    def post(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.post(path_pattern)

    def put(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.put(path_pattern)

    def delete(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.delete(path_pattern)

    def patch(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.patch(path_pattern)

    def head(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.head(path_pattern)

    def options(self, path_pattern: str) -> Callable[[Handler], Handler]:
        return self._router.options(path_pattern)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Turn a request into a response. Never raises.

        Route resolution, composition and the chain itself all run inside
        one try block; whatever escapes goes to the installed error handler
        exactly once.
        """
        try:
            route = self._router.match(request.method, request.path)
            request.route_params = self._router.extract_params(route, request.path)
            chain = compose(self._middleware.snapshot(), route.handler)
            return chain(request)
        except Exception as e:
            return self.handle_error(request, e)

    def handle_error(self, request: Optional[HTTPRequest], error: BaseException) -> HTTPResponse:
        """Log an escaped error and convert it with the current error handler."""
        if isinstance(error, (RouteNotFound, RequestParseError)):
            logger.debug(f"{type(error).__name__}: {error}")
        else:
            logger.error(f"Dispatch failed: {error}", exc_info=error)
        return handle_error(self._error_handler, request, error)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> tuple[str, int]:
        """Address the server listens on (the real port once running)."""
        return self._socket_server.address

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Serve over TCP until shutdown() (or SIGINT/SIGTERM on the main thread).

        Args:
            host: Override config.host.
            port: Override config.port; 0 picks a free port.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._thread_pool.start()
        self._running = True
        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def start_background(self, host: Optional[str] = None, port: Optional[int] = None,
                         timeout: float = 5.0) -> threading.Thread:
        """
        Run the server on a daemon thread and wait until it listens.

        Raises:
            RuntimeError: If the socket is not listening within `timeout`.
        """
        thread = threading.Thread(
            target=self.run,
            kwargs={"host": host, "port": port},
            name="embedhttp-server",
            daemon=True,
        )
        thread.start()
        if not self.wait_until_ready(timeout):
            raise RuntimeError("Server failed to start")
        return thread

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Stop accepting connections and wait for the serve loop to exit."""
        self._socket_server.shutdown()
        if self._running:
            self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("embedhttp").setLevel(level)

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING (worker threads)
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send(conn, HTTPResponse(status=HTTPStatus.SERVICE_UNAVAILABLE), close=True)
            conn.close()

    def _process_connection(self, conn: Connection) -> None:
        """Keep-alive loop: read, parse, dispatch, send, repeat."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except RequestParseError as e:
                        self._send(conn, self.handle_error(None, e), close=True)
                        break

                    conn.state = ConnectionState.PROCESSING
                    response = self.dispatch(request)

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    sent = self._send(
                        conn,
                        response,
                        close=not keep_alive,
                        include_body=request.method != "HEAD",
                    )
                    if not sent or not keep_alive:
                        break
                    conn.set_keep_alive()

                except TimeoutError:
                    self._send(conn, HTTPResponse(status=HTTPStatus.REQUEST_TIMEOUT), close=True)
                    break
                except ValueError as e:
                    self._send(conn, self.handle_error(None, RequestParseError(str(e), status=413)),
                               close=True)
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send(self, conn: Connection, response: HTTPResponse, close: bool,
              include_body: bool = True) -> bool:
        if close:
            response.headers["Connection"] = "close"
        else:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        return conn.send_response(response.to_bytes(self.config.server_name, include_body))
