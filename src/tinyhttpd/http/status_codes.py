"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can emit, with the reason phrases used in the
status line.

    HTTP/1.1 404 Not Found
             ─┬─ ────┬────
              │      └── reason phrase (HTTPStatus.phrase)
              └── status code (int(HTTPStatus.NOT_FOUND))

=============================================================================
THE CODES WE USE
=============================================================================

    200 OK                    - GET succeeded, file deleted
    201 Created               - File written by POST
    400 Bad Request           - Malformed request line, bad %-encoding
    403 Forbidden             - Path traversal attempt
    404 Not Found             - No route / no such file
    405 Method Not Allowed    - Known path, wrong method
    413 Payload Too Large     - Content-Length above the configured limit
    500 Internal Server Error - Disk I/O failure, handler crash

The table is deliberately small: every member here is reachable from some
code path in the server. The stdlib has http.HTTPStatus, but keeping our own
enum lets the phrase table live next to the codes we actually send.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (e.g. "Not Found")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_server_error(self) -> bool:
        """Check if this is a 5xx status code."""
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
