"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Logs one line per request with method, path, status, body size and time
spent in the rest of the chain.

Put it first so it wraps everything else and its timing covers the whole
chain:

    server.use(LoggingMiddleware())     # outermost
    server.use(auth)
    server.use(compress)

Log records go to the "embedhttp.access" logger, which can be routed
separately from the server's own logs:

    logging.getLogger("embedhttp.access").addHandler(file_handler)

=============================================================================
"""

from dataclasses import dataclass, asdict
from typing import Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("embedhttp.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Common-log-like line: ip - - [time] "METHOD path" status size ms."""
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request access logging.

    Args:
        log_format: "text" or "json".
        include_request_id: Add an X-Request-ID header to the response.
        log_level: Level for successful requests.
        skip_paths: Paths that are never logged (health probes and such).
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.path} failed "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if request.path not in self.skip_paths:
            entry = RequestLog(
                request_id=request_id,
                method=request.method,
                path=request.path,
                client_ip=request.client_address[0],
                status_code=int(response.status),
                content_length=len(response.body),
                duration_ms=duration_ms,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            )
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id
        return response
