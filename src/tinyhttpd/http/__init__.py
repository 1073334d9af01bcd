"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 layer of the server: turns bytes read from a connection into
HTTPRequest objects, routes them, and turns HTTPResponse objects back into
bytes.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Stream → HTTPRequest, one request at a time                         │
    │                                                                      │
    │   • State machine: REQUEST_LINE → HEADERS → BODY                    │
    │   • Lowercased header names, last duplicate wins                    │
    │   • Body sized by Content-Length                                    │
    │   • HTTPParseError (400/413) / IncompleteRequestError (EOF)         │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE BUILDER (response.py) + ENCODING (encoding.py)            │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPResponse → (head bytes, body bytes)                             │
    │                                                                      │
    │   • Fluent ResponseBuilder, helpers (ok, not_found, ...)            │
    │   • gzip when Accept-Encoding lists it                              │
    │   • Content-Length always last, from the final body                 │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTER (router.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Ordered table of exact and "*wildcard" routes, 404 / 405            │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES / MIME TYPES                                           │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPStatus enum with phrases; extension → Content-Type table        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HTTP MESSAGE FORMAT (RFC 7230)
=============================================================================

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Header: Value\r\n                 Header: Value\r\n
    \r\n                              \r\n
    [body]                            [body]

Key points:
- Lines end with CRLF (\r\n); we also accept a bare \n
- Headers and body separated by an empty line
- Header names are case-insensitive ("Content-Type" = "content-type")
- Body length specified by Content-Length header

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, IncompleteRequestError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    text_response,
    bad_request,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus
from .mime_types import get_mime_type
from .encoding import accepts_gzip, gzip_body

__all__ = [
    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "IncompleteRequestError",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "text_response",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Utilities
    "HTTPStatus",
    "get_mime_type",
    "accepts_gzip",
    "gzip_body",
]
