"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request/response processing, wrapped around the router:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ LoggingMiddleware          access log line + X-Request-ID           │
    │ SessionMiddleware          session cookie → request.session         │
    │ SecurityHeadersMiddleware  nosniff / DENY / XSS block headers       │
    └─────────────────────────────────────────────────────────────────────┘

The server installs them in that order (logging outermost). Session and
security headers go together: both are on when sessions are enabled, both
off otherwise.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .session import SessionMiddleware
from .security import SecurityHeadersMiddleware, SECURITY_HEADERS

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
    "SessionMiddleware",
    "SecurityHeadersMiddleware",
    "SECURITY_HEADERS",
]
