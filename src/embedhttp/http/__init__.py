"""
HTTP value types and routing: requests, responses, status codes, router.
"""

from .request import (
    HTTPRequest,
    RequestParser,
    find_header,
    parse_query_string,
    parse_request,
)
from .response import (
    HTTPResponse,
    empty,
    format_http_date,
    internal_error,
    json_response,
    not_found,
    ok,
)
from .router import Handler, Route, Router, compile_pattern
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "find_header",
    "parse_query_string",
    "parse_request",

    # Responses
    "HTTPResponse",
    "empty",
    "format_http_date",
    "internal_error",
    "json_response",
    "not_found",
    "ok",

    # Routing
    "Handler",
    "Route",
    "Router",
    "compile_pattern",

    # Status codes
    "HTTPStatus",
]
