"""
Plain-text endpoints: the welcome page, echo, and user-agent.

    GET /                 → "Welcome to tinyhttpd"
    GET /echo/abc         → "abc"
    GET /user-agent       → the client's User-Agent header
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


WELCOME_MESSAGE = "Welcome to tinyhttpd"


def welcome(request: HTTPRequest) -> HTTPResponse:
    return ok(WELCOME_MESSAGE)


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the rest of the path back, exactly as received.

    No percent-decoding and no query parsing: /echo/a%20b?x=1 answers
    "a%20b?x=1".
    """
    return ok(request.path_params.get("text", ""))


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """Return the User-Agent header value ("" if the client sent none)."""
    return ok(request.user_agent)
