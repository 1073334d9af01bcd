"""
=============================================================================
REQUEST HANDLERS
=============================================================================

Handlers are plain callables: HTTPRequest in, HTTPResponse out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ basic.py   welcome, echo, user_agent        text/plain              │
    │ api.py     ApiHandler: status, time,        application/json        │
    │            echo, session                                            │
    │ files.py   FileStore + FileHandler          listing / GET / POST /  │
    │                                             DELETE under one root   │
    └─────────────────────────────────────────────────────────────────────┘

They are wired to paths in tinyhttpd.routes.build_router().

=============================================================================
"""

from .basic import welcome, echo, user_agent
from .api import ApiHandler, rfc3339
from .files import FileStore, FileHandler, decode_name, InvalidNameError, PathTraversalError

__all__ = [
    "welcome",
    "echo",
    "user_agent",
    "ApiHandler",
    "rfc3339",
    "FileStore",
    "FileHandler",
    "decode_name",
    "InvalidNameError",
    "PathTraversalError",
]
