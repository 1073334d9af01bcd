"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads HTTP/1.1 requests off a byte stream and turns them into structured
HTTPRequest objects.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  REQUEST LINE     POST /files/notes.txt HTTP/1.1\r\n                │
    │                   ─┬── ───────┬──────── ────┬───                    │
    │                  Method     Path         Version                    │
    │                                                                      │
    │  HEADERS          Host: localhost:8080\r\n                           │
    │                   Content-Length: 5\r\n                              │
    │                   Accept-Encoding: gzip\r\n                          │
    │                                                                      │
    │  EMPTY LINE       \r\n                                               │
    │                                                                      │
    │  BODY             hello            (exactly Content-Length bytes)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY A STREAM PARSER?
=============================================================================

TCP is a byte stream: one recv() may hold half a request, or a request and a
half. Instead of accumulating a buffer and searching for \r\n\r\n, we wrap
the socket in a buffered file object (socket.makefile("rb")) and let it do
the buffering. The parser then only needs two primitives:

    stream.readline(limit)   → one line, up to and including \n
    stream.read(n)           → exactly n bytes (or fewer on EOF)

Any binary file object works, which is why the unit tests can feed the
parser an io.BytesIO instead of a socket.

=============================================================================
PARSER STATE MACHINE
=============================================================================

    REQUEST_LINE ──► HEADERS ──► BODY ──► DONE
         │              │          │
         │ EOF          │ EOF      │ short read
         ▼              ▼          ▼
      None       IncompleteRequestError

    - EOF before a request line is the normal end of a keep-alive
      connection: read() returns None and the caller closes quietly.
    - EOF in the middle of a request is a transport failure: the peer went
      away and there is nobody to send a response to.
    - A request line we can't make sense of is a protocol error:
      HTTPParseError(400), which the caller answers and then closes.

=============================================================================
LENIENCY RULES
=============================================================================

1. Blank lines before the request line are skipped (some clients send a
   stray CRLF after a POST body).
2. The HTTP version is optional and otherwise ignored; keep-alive is
   decided by the Connection header alone.
3. Header lines without a colon are skipped, not rejected.
4. Duplicate headers: the last one wins.
5. A missing or non-numeric Content-Length means "no body".

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from typing import Any, BinaryIO, Dict, Optional

from .encoding import accepts_gzip


DEFAULT_MAX_REQUEST_SIZE = 10 * 1024 * 1024  # 10 MB of body
DEFAULT_MAX_LINE_SIZE = 8 * 1024             # 8 KB per request/header line


class HTTPParseError(Exception):
    """
    Raised when a request is malformed.

    Carries the HTTP status code that should be sent back before the
    connection is closed:
        400 Bad Request       - unparsable request line, over-long line
        413 Payload Too Large - Content-Length above the configured limit
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class IncompleteRequestError(Exception):
    """The stream ended in the middle of a request (no response is possible)."""


class ParserState(Enum):
    """Where the parser is within one request."""
    REQUEST_LINE = "request_line"
    HEADERS = "headers"
    BODY = "body"
    DONE = "done"


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method token as sent ("GET", "POST", ...)
        path:           Raw request target, still percent-encoded and
                        including any query string. The router matches it
                        literally; handlers decode what they need.
        version:        "HTTP/1.1" unless the client said otherwise
        headers:        Header name (lowercased) → value
        body:           Exactly Content-Length bytes
        path_params:    Wildcard captures injected by the router
        client_address: (ip, port) of the peer, for logging
        session:        Session attached by SessionMiddleware (or None)

    Header names are lowercased at parse time because HTTP header names are
    case-insensitive; get_header() lowercases the lookup key to match.

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    # Router-injected parameters
    path_params: Dict[str, str] = field(default_factory=dict)

    # Metadata
    client_address: tuple[str, int] = ("", 0)
    session: Optional[Any] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_length(self) -> int:
        """Content-Length as an int (0 if missing, invalid or negative)."""
        return parse_content_length(self.headers)

    @property
    def user_agent(self) -> str:
        """User-Agent header value ("" if absent)."""
        return self.headers.get("user-agent", "")

    @property
    def cookies(self) -> Dict[str, str]:
        """
        Cookies from the Cookie header.

            Cookie: theme=dark; session=abc123
            → {"theme": "dark", "session": "abc123"}

        If a name appears twice the first value is kept, matching what
        browsers send first (the most specific path).
        """
        cookies: Dict[str, str] = {}
        for part in self.headers.get("cookie", "").split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies.setdefault(name, value)
        return cookies

    @property
    def accepts_gzip(self) -> bool:
        """True if Accept-Encoding lists the exact token "gzip"."""
        return accepts_gzip(self.headers.get("accept-encoding", ""))

    @property
    def wants_close(self) -> bool:
        """
        True if the client asked us to close after this response.

        Connections are persistent by default; only an explicit
        "Connection: close" (any case) ends them.
        """
        return self.headers.get("connection", "").strip().lower() == "close"

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Reads one HTTPRequest at a time from a binary stream.

    One parser instance is shared by the whole server: it holds only limits,
    all per-request state lives in local variables of read().

    Usage:
        parser = RequestParser()
        reader = sock.makefile("rb")
        while (request := parser.read(reader)) is not None:
            ...
    """

    def __init__(
        self,
        max_request_size: int = DEFAULT_MAX_REQUEST_SIZE,
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
    ):
        """
        Args:
            max_request_size: Largest accepted body in bytes (413 above it).
            max_line_size: Longest accepted request or header line (400 above it).
        """
        self.max_request_size = max_request_size
        self.max_line_size = max_line_size

    def read(
        self,
        stream: BinaryIO,
        client_address: tuple[str, int] = ("", 0),
    ) -> Optional[HTTPRequest]:
        """
        Read the next request from the stream.

        Returns:
            The parsed request, or None if the stream ended cleanly before
            a new request started.

        Raises:
            HTTPParseError: The request is malformed (send an error, close).
            IncompleteRequestError: The stream ended mid-request.
            OSError: The underlying socket failed or timed out.
        """
        state = ParserState.REQUEST_LINE
        method = path = version = ""
        headers: Dict[str, str] = {}
        body = b""

        while state is not ParserState.DONE:
            if state is ParserState.REQUEST_LINE:
                line = self._read_line(stream)
                if line is None:
                    return None  # Peer closed between requests
                if not line:
                    continue  # Stray CRLF, keep looking
                method, path, version = self._parse_request_line(line)
                state = ParserState.HEADERS

            elif state is ParserState.HEADERS:
                line = self._read_line(stream)
                if line is None:
                    raise IncompleteRequestError("Connection closed while reading headers")
                if not line:
                    state = ParserState.BODY  # Blank line ends the header block
                    continue
                self._parse_header_line(line, headers)

            elif state is ParserState.BODY:
                body = self._read_body(stream, parse_content_length(headers))
                state = ParserState.DONE

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    # =========================================================================
    # LINE LEVEL
    # =========================================================================

    def _read_line(self, stream: BinaryIO) -> Optional[str]:
        """
        Read one \\n-terminated line, without its line ending.

        Returns None if the stream ends before a full line arrives.
        """
        raw = stream.readline(self.max_line_size + 1)

        if not raw.endswith(b"\n"):
            if len(raw) > self.max_line_size:
                raise HTTPParseError("Line too long")
            return None  # EOF (possibly after a partial line)

        return raw.rstrip(b"\r\n").decode("utf-8", errors="replace")

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "METHOD PATH [VERSION]" into its parts.

        The version is optional; anything shorter than METHOD PATH is a
        malformed request.
        """
        tokens = line.split()
        if len(tokens) < 2:
            raise HTTPParseError(f"Malformed request line: {line!r}")

        method, path = tokens[0], tokens[1]
        version = tokens[2] if len(tokens) > 2 else "HTTP/1.1"
        return method, path, version

    def _parse_header_line(self, line: str, headers: Dict[str, str]) -> None:
        """Add "Name: value" to headers; lines without a colon are skipped."""
        name, sep, value = line.partition(":")
        name = name.strip().lower()
        if not sep or not name:
            return

        headers[name] = value.strip()  # Last write wins

    def _read_body(self, stream: BinaryIO, length: int) -> bytes:
        """Read exactly length bytes of body."""
        if length > self.max_request_size:
            raise HTTPParseError(
                f"Request body too large: {length} bytes",
                status_code=413,
            )
        if length == 0:
            return b""

        body = stream.read(length)
        if len(body) < length:
            raise IncompleteRequestError(
                f"Connection closed after {len(body)} of {length} body bytes"
            )
        return body


# =============================================================================
# HELPERS
# =============================================================================

def parse_content_length(headers: Dict[str, str]) -> int:
    """
    Content-Length from lowercased headers; 0 if missing or not plain digits.

    Only ASCII digits count. int() alone would also take "+5", "1_0" and
    non-ASCII digits, and framing would then disagree with the peer.
    """
    value = headers.get("content-length", "0")
    if not (value.isascii() and value.isdigit()):
        return 0
    return int(value)


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = DEFAULT_MAX_REQUEST_SIZE,
) -> Optional[HTTPRequest]:
    """
    Parse a single request from raw bytes.

    Convenience wrapper around RequestParser for code (and tests) that
    already holds the whole request in memory.
    """
    parser = RequestParser(max_request_size=max_size)
    return parser.read(BytesIO(data), client_address)
