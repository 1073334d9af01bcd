"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the wire.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  STATUS LINE      HTTP/1.1 200 OK\r\n                                │
    │                                                                      │
    │  HEADERS          Content-Type: text/plain\r\n         ← always 1st  │
    │                   Connection: close\r\n                ← if closing  │
    │                   Set-Cookie: session=...\r\n          ← the rest,   │
    │                   X-Frame-Options: DENY\r\n              in order    │
    │                   Content-Encoding: gzip\r\n           ← if gzipped  │
    │                   Content-Length: 37\r\n               ← always last │
    │                                                                      │
    │  EMPTY LINE       \r\n                                               │
    │                                                                      │
    │  BODY             <37 bytes>                                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY IS Content-Length LAST?
=============================================================================

Compression changes the body size. Content-Length must describe the bytes
that actually go on the wire, so it can only be computed after the encoding
decision has been made. encode() therefore:

    1. decides whether to gzip (client accepts it AND body is non-empty)
    2. compresses into a NEW bytes object (the response itself is untouched)
    3. emits the managed headers around the handler's headers
    4. computes Content-Length from the final body

Handlers never set Content-Length, Content-Encoding or Connection
themselves; if they do, encode() ignores them.

=============================================================================
HEAD AND BODY ARE SEPARATE
=============================================================================

encode() returns (head, body) rather than one blob. The connection writes
them with two sendall() calls, which avoids copying a large file body just
to prepend a few hundred bytes of headers.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP RESPONSES
=============================================================================

Q: "How does the client know when the response body ends?"
A: "Two methods:
   1. Content-Length header specifies exact byte count
   2. Transfer-Encoding: chunked - body sent in chunks with size prefixes
   We always send Content-Length, which is what makes keep-alive work:
   the client knows exactly where the next response starts."

Q: "Why not compress only text types?"
A: "It's a trade-off. Compressing a PNG wastes CPU for no gain, but a
   uniform rule is simpler to reason about: if the client asked for gzip
   and there's a body, it gets gzip."

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple, Union
import json

from .encoding import DEFAULT_LEVEL, gzip_body
from .mime_types import get_mime_type
from .status_codes import HTTPStatus


# Headers that encode() writes itself, in fixed positions
_MANAGED_HEADERS = {"content-type", "content-length", "content-encoding", "connection"}


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    A plain data container; use ResponseBuilder or the helper functions
    at the bottom of this module to construct one.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns        middleware adds         encode() splits
        HTTPResponse   ─────►  headers        ─────►   head / body   ─────►  sendall x2
            │                  (Set-Cookie,            (gzip, Connection,
            │                   X-Request-ID)           Content-Length)
        HTTPResponse(
          status=200,
          headers={"Content-Type": "text/plain"},
          body=b"hello",
        )

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)  # Insertion ordered
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        status = HTTPStatus(self.status)
        return f"{self.version} {int(status)} {status.phrase}"

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header.

        Returns self for method chaining:
            response.set_header("X-Custom", "value").set_header("X-Other", "val")
        """
        self.headers[name] = value
        return self

    def encode(
        self,
        compress: bool = False,
        close: bool = False,
        level: int = DEFAULT_LEVEL,
    ) -> Tuple[bytes, bytes]:
        """
        Serialize the response for the wire.

        Args:
            compress: The client accepts gzip (Accept-Encoding negotiated).
            close: Announce "Connection: close" to the client.
            level: gzip compression level (1-9).

        Returns:
            (head, body): the status line and headers terminated by a blank
            line, and the (possibly compressed) body bytes.
        """
        body = self.body
        gzipped = compress and len(body) > 0
        if gzipped:
            body = gzip_body(body, level)

        lines = [self.status_line]

        if self.content_type:
            lines.append(f"Content-Type: {self.content_type}")

        if close:
            lines.append("Connection: close")

        for name, value in self.headers.items():
            if name.lower() not in _MANAGED_HEADERS:
                lines.append(f"{name}: {value}")

        if gzipped:
            lines.append("Content-Encoding: gzip")

        # Computed from the final body, after any encoding
        lines.append(f"Content-Length: {len(body)}")

        head = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
        return head, body

    def to_bytes(self, compress: bool = False, close: bool = False) -> bytes:
        """Serialize head and body into a single bytes object."""
        head, body = self.encode(compress=compress, close=close)
        return head + body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Each method returns `self`, enabling chaining:

        builder.status(201).header("X-Key", "val").text("File created").build()
        ────────┬──────────────────┬───────────────────┬─────────────────┬───
                └──────────────────┴───────────────────┴─────────────────┘
                              All return 'self' except build()

    USAGE EXAMPLES

        # Plain text
        response = ResponseBuilder().text("Welcome").build()

        # JSON
        response = ResponseBuilder().json({"status": "ok"}).build()

        # Stored file, type picked from the extension
        response = ResponseBuilder().file(data, "notes.txt").build()
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS / HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        """Add multiple headers at once."""
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY METHODS
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the response body (raw bytes or string).

        For structured data, prefer json(), html(), or text().
        """
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """Set a plain text response body."""
        self._body = text.encode("utf-8")
        return self.content_type(content_type)

    def html(self, html: str) -> "ResponseBuilder":
        """Set an HTML response body."""
        self._body = html.encode("utf-8")
        return self.content_type("text/html")

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Set a JSON response body.

        Interview insight: ensure_ascii=False keeps non-ASCII characters
        as UTF-8 instead of \\uXXXX escapes.
        """
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        return self.content_type("application/json")

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """Set a file body; Content-Type comes from the filename extension."""
        self._body = content
        return self.content_type(get_mime_type(filename))

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Quick one-liners for common responses. Error bodies are short fixed
# text/plain strings: never put exception messages or paths in them.
#
#     return ok("Welcome")
#     return not_found("File not found")
#     return method_not_allowed(["GET"])
#
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    Create a 200 OK response.

    Body type decides the default Content-Type:
    - dict/list → application/json
    - str → text/plain
    - bytes → whatever content_type says (none if omitted)
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def created(message: str = "Created") -> HTTPResponse:
    """Create a 201 Created response with a short text body."""
    return text_response(HTTPStatus.CREATED, message)


def text_response(status: Union[HTTPStatus, int], message: Optional[str] = None) -> HTTPResponse:
    """
    Create a text/plain response for any status.

    The body defaults to the reason phrase ("Not Found", "Bad Request", ...).
    """
    status = HTTPStatus(status)
    return ResponseBuilder().status(status).text(message or status.phrase).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """400: the client sent something we can't interpret."""
    return text_response(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    """403: understood, but not allowed (path traversal)."""
    return text_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    """404: no route, or no such stored file."""
    return text_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str], message: str = "Method Not Allowed") -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header listing valid methods (RFC 7231 requirement).
    """
    response = text_response(HTTPStatus.METHOD_NOT_ALLOWED, message)
    response.set_header("Allow", ", ".join(sorted(allowed_methods)))
    return response


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    500: something broke on our side.

    Keep the message generic; details go to the log, not the client.
    """
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
