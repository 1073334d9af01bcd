"""
=============================================================================
SESSION MIDDLEWARE
=============================================================================

Correlates requests from the same client through a "session" cookie.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Cookie: session=<id>  ──►  store.lookup(id)                        │
    │                                    │                                 │
    │                       found ◄──────┴──────► unknown / expired        │
    │                         │                          │                 │
    │                  store.refresh(id)          store.create()           │
    │                         │                          │                 │
    │                         ▼                          ▼                 │
    │              request.session = s     request.session = new           │
    │                                      + Set-Cookie on the response    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The cookie is only sent when a session is created. HttpOnly keeps it away
from page scripts; Path=/ makes the browser send it on every route.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..sessions import SessionStore


logger = logging.getLogger(__name__)


COOKIE_NAME = "session"


class SessionMiddleware(Middleware):
    """
    Attach a Session to every request.

    Usage:
        store = SessionStore(idle_timeout=1800)
        pipeline.add(SessionMiddleware(store))

        def handler(request):
            request.session.id   # always set
    """

    def __init__(self, store: SessionStore, cookie_name: str = COOKIE_NAME):
        self.store = store
        self.cookie_name = cookie_name

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        session_id = request.cookies.get(self.cookie_name, "")
        session = self.store.lookup(session_id)
        if session is not None:
            session = self.store.refresh(session.id)  # None if swept in between
        is_new = session is None

        if is_new:
            session = self.store.create()
            logger.debug(f"New session {session.id[:8]}... for {request.client_address[0]}")

        request.session = session
        response = next(request)

        if is_new:
            response.set_header(
                "Set-Cookie",
                f"{self.cookie_name}={session.id}; Path=/; HttpOnly",
            )

        return response
