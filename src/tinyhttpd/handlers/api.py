"""
=============================================================================
JSON API HANDLER
=============================================================================

A small JSON layer on top of the plain-text routes:

    ┌─────────────────────┬──────────┬──────────────────────────────────────┐
    │ Path                │ Methods  │ Body                                 │
    ├─────────────────────┼──────────┼──────────────────────────────────────┤
    │ /api/status         │ GET      │ {"status": "ok", "time": "..."}      │
    │ /api/time           │ GET      │ {"time": "2026-01-01T12:00:00Z"}     │
    │ /api/echo           │ POST,PUT │ the request body, as-is              │
    │ /api/session        │ GET      │ the caller's session (see below)     │
    └─────────────────────┴──────────┴──────────────────────────────────────┘

Times are RFC 3339 in UTC with a trailing "Z".

/api/session only exists when sessions are enabled; SessionMiddleware has
already attached request.session by the time the handler runs:

    {
        "session_id":  "Xq3...9Lk",
        "created_at":  "2026-01-01T12:00:00Z",
        "last_access": "2026-01-01T12:03:10Z",
        "age":         190.42          ← seconds since created_at
    }

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why does /api/echo not validate the JSON it echoes?"
A: "It's an echo, not a parser. Whatever bytes came in go back out; the
   Content-Type just tells the client how we'd like them read."

=============================================================================
"""

from datetime import datetime, timezone
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, not_found


def rfc3339(timestamp: Optional[float] = None) -> str:
    """
    Format epoch seconds (default: now) as RFC 3339 UTC.

        >>> rfc3339(0)
        '1970-01-01T00:00:00Z'
    """
    if timestamp is None:
        moment = datetime.now(timezone.utc)
    else:
        moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


class ApiHandler:
    """
    Handlers for the /api/* endpoints.

    Usage:
        api = ApiHandler()
        router.add_route("/api/status", api.status, methods=["GET"])
        router.add_route("/api/echo", api.echo, methods=["POST", "PUT"])
    """

    def status(self, request: HTTPRequest) -> HTTPResponse:
        return ok({"status": "ok", "time": rfc3339()})

    def time(self, request: HTTPRequest) -> HTTPResponse:
        return ok({"time": rfc3339()})

    def echo(self, request: HTTPRequest) -> HTTPResponse:
        """Return the request body verbatim as application/json."""
        return ok(request.body, content_type="application/json")

    def session(self, request: HTTPRequest) -> HTTPResponse:
        """Describe the session attached to this request."""
        session = request.session
        if session is None:
            return not_found("No session")

        return ok({
            "session_id": session.id,
            "created_at": rfc3339(session.created_at),
            "last_access": rfc3339(session.last_access),
            "age": session.age,
        })
