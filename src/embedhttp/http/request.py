"""
=============================================================================
HTTP REQUEST
=============================================================================

The request value handed to middleware and route handlers, and the parser
the transport uses to build it from raw bytes.

=============================================================================
REQUEST ANATOMY
=============================================================================

    POST /hello/23/hi/next/second?string=salam&number=123 HTTP/1.1\r\n
    ─┬── ────────────┬─────────── ──────────┬────────────  ───┬────
     │               │                      │                 │
   method          path                query string        version
                     │                      │
                     ▼                      ▼
       route_params (filled by     query_params (filled at
       the router on dispatch)     construction, decoded)

    Host: localhost:8080\r\n               ─┐
    Content-Type: text/plain\r\n             ├─ headers (names kept as sent)
    Content-Length: 11\r\n                 ─┘
    \r\n
    Hello World                            ── body (bytes)

=============================================================================
HEADER NAMES
=============================================================================

Header names are stored exactly as the client sent them and looked up by
exact key. "Content-Type" and "content-type" are different keys unless the
server is configured with lowercase_header_names=True, in which case the
parser folds every name to lowercase before storing it. When a name repeats,
the last value wins.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl
import json
import re

from ..errors import RequestParseError


def parse_query_string(query: str) -> Dict[str, str]:
    """
    Parse a query string into a flat name → value mapping.

    Pairs are separated by "&" and split on the first "=". Names and values
    are percent-decoded as UTF-8, so multi-byte sequences come back as the
    original characters, and "+" decodes to a space. A name without "="
    maps to "". When a name repeats, the last value wins.

    Example:
        >>> parse_query_string("string=salam+%C9%99%C4%B1&number=123")
        {'string': 'salam əı', 'number': '123'}
    """
    if not query:
        return {}
    return dict(parse_qsl(query, keep_blank_values=True, encoding="utf-8", errors="replace"))


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Instances are created once per inbound request and are deliberately
    mutable: middleware may rewrite headers or params in place and pass the
    same object on to `next`.

    Attributes:
        method:         HTTP method as sent ("GET", "POST", ...)
        path:           Request path without the query string, not decoded
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header name → value, names case-preserved
        query_params:   Decoded query string, name → value
        route_params:   Named path captures, set by the router on dispatch
        body:           Raw body bytes
        client_address: (ip, port) of the peer, ("", 0) when not from a socket
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    route_params: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    _body_json: Optional[Any] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_target(
        cls,
        method: str,
        target: str,
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
        **kwargs: Any,
    ) -> "HTTPRequest":
        """
        Build a request from a request-target such as "/users?page=2".

        Splits off the query string and decodes it into query_params.
        Handy for embedding the dispatcher without the socket transport.
        """
        path, query = _split_target(target)
        return cls(
            method=method,
            path=path,
            headers=dict(headers or {}),
            query_params=parse_query_string(query),
            body=body,
            **kwargs,
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value by exact name."""
        return self.headers.get(name, default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a decoded query parameter."""
        return self.query_params.get(name, default)

    @property
    def content_length(self) -> int:
        """Content-Length header as int, 0 if missing or invalid."""
        try:
            return int(find_header(self.headers, "Content-Length") or 0)
        except ValueError:
            return 0

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def json(self) -> Any:
        """
        Body parsed as JSON, cached after the first access.

        Raises:
            RequestParseError: If the body is not valid JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise RequestParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

        HTTP/1.1 defaults to keep-alive unless "Connection: close" is sent;
        HTTP/1.0 defaults to close unless "Connection: keep-alive" is sent.
        """
        connection = (find_header(self.headers, "Connection") or "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"


def find_header(headers: Dict[str, str], name: str) -> Optional[str]:
    """
    Case-insensitive header lookup for protocol-level fields.

    Application code reads headers by exact key; the transport needs
    Content-Length and Connection no matter how the client spelled them.
    """
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def _split_target(target: str) -> tuple[str, str]:
    """Split a request-target into (path, query), dropping any fragment."""
    target = target.split("#", 1)[0]
    path, _, query = target.partition("?")
    return path or "/", query


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes into HTTPRequest objects.

    =========================================================================
    PARSING STEPS
    =========================================================================

        1. Reject anything over max_request_size          → 413
        2. Split header block from body at CRLF CRLF       → 400 if missing
        3. Parse request line: METHOD SP target SP version → 400 / 505
        4. Parse "Name: value" header lines
        5. Truncate body to Content-Length                 → 400 if short

    =========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(
        self,
        max_request_size: int = 10 * 1024 * 1024,
        lowercase_header_names: bool = False,
    ):
        """
        Args:
            max_request_size: Largest accepted request in bytes.
            lowercase_header_names: Fold header names to lowercase.
        """
        self.max_request_size = max_request_size
        self.lowercase_header_names = lowercase_header_names

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Raw request bytes, headers and body.
            client_address: Peer (ip, port), kept on the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            RequestParseError: If the bytes are not a valid request.
        """
        if len(data) > self.max_request_size:
            raise RequestParseError(f"Request too large: {len(data)} bytes", status=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise RequestParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(find_header(headers, "Content-Length") or 0)
        except ValueError:
            raise RequestParseError("Invalid Content-Length header")
        if content_length < 0:
            raise RequestParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise RequestParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        path, query = _split_target(target)
        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=parse_query_string(query),
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise RequestParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        if version not in self.SUPPORTED_VERSIONS:
            raise RequestParseError(f"Unsupported HTTP version: {version}", status=505)
        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict.

        Malformed lines are skipped. A repeated name overwrites the earlier
        value; names keep their case unless lowercase_header_names is set.
        """
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue
            name, value = match.groups()
            name = name.strip()
            if self.lowercase_header_names:
                name = name.lower()
            headers[name] = value.strip()
        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """Parse request bytes with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
