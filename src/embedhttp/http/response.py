"""
=============================================================================
HTTP RESPONSE
=============================================================================

The response value produced by route handlers and error handlers, then
rewritten by response-phase middleware on the way back out.

    HTTPResponse(status=HTTPStatus.OK,          HTTP/1.1 200 OK\r\n
                 headers={"X": "1"},    ──►     X: 1\r\n
                 body=b"passed")                Content-Length: 6\r\n
                                                Date: ...\r\n
                 to_bytes("embedhttp")          Server: embedhttp\r\n
                                                \r\n
                                                passed

Bodies are always bytes. A str given as body is encoded as UTF-8; that is a
convenience on top of the byte body, not a separate representation.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
import json

from .status_codes import HTTPStatus


Body = Union[str, bytes]


@dataclass
class HTTPResponse:
    """
    An HTTP response.

    Attributes:
        status:  Status code (HTTPStatus member; plain ints are converted)
        headers: Header name → value, sent in insertion order
        body:    Body bytes (a str is encoded as UTF-8)
        version: HTTP version for the status line
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Body = b""
    version: str = "HTTP/1.1"

    def __post_init__(self):
        self.status = HTTPStatus(self.status)
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header, returning self for chaining."""
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Body) -> "HTTPResponse":
        """Replace the body; str is encoded as UTF-8."""
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self, server_name: str = "embedhttp", include_body: bool = True) -> bytes:
        """
        Serialize for the wire.

        Content-Length, Date and Server are added unless the response
        already carries them. The response itself is left untouched.
        include_body=False keeps the headers (Content-Length included) but
        drops the body, as required for replies to HEAD.
        """
        headers = dict(self.headers)
        headers.setdefault("Content-Length", str(len(self.body)))
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        head = "\r\n".join(lines).encode("utf-8") + b"\r\n\r\n"
        return head + self.body if include_body else head


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date (RFC 7231).

    Example: "Wed, 01 Jan 2026 12:00:00 GMT". Built by hand instead of with
    strftime so the output does not depend on the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok("passed")                 # 200, text/plain
#     return ok({"id": 1})                # 200, application/json
#     return empty(HTTPStatus.NO_CONTENT) # 204, no body
#
# =============================================================================

def ok(body: Union[Body, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    Create a 200 OK response.

    A str body becomes UTF-8 text, dict/list become JSON, bytes are sent
    as-is. Content-Type is set for str and JSON bodies unless overridden.
    """
    response = HTTPResponse(status=HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        response.set_body(json.dumps(body, ensure_ascii=False))
        response.set_content_type(content_type or "application/json; charset=utf-8")
    elif isinstance(body, str):
        response.set_body(body)
        response.set_content_type(content_type or "text/plain; charset=utf-8")
    else:
        response.set_body(body)
        if content_type:
            response.set_content_type(content_type)
    return response


def json_response(data: Any, status: HTTPStatus = HTTPStatus.OK) -> HTTPResponse:
    """Create a JSON response with an arbitrary status."""
    return HTTPResponse(
        status=status,
        headers={"Content-Type": "application/json; charset=utf-8"},
        body=json.dumps(data, ensure_ascii=False),
    )


def empty(status: HTTPStatus) -> HTTPResponse:
    """Create a response with the given status and no body."""
    return HTTPResponse(status=status)


def not_found() -> HTTPResponse:
    """404 Not Found, no body."""
    return empty(HTTPStatus.NOT_FOUND)


def internal_error() -> HTTPResponse:
    """500 Internal Server Error, no body."""
    return empty(HTTPStatus.INTERNAL_SERVER_ERROR)
