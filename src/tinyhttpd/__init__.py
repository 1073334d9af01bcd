"""
=============================================================================
TINYHTTPD - HTTP/1.1 Server and File Store on Raw Sockets
=============================================================================

A self-contained HTTP/1.1 engine built directly on TCP sockets: its own
wire-format parser and serializer, keep-alive connection loop, gzip
negotiation, router, a file store with path-traversal defense, and an
in-memory session store.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tinyhttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tinyhttpd)
    ├── server.py            # HTTPServer: connection loop, lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── routes.py            # Route table
    ├── sessions.py          # SessionStore, SessionSweeper
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listener and accept loop
    │   ├── connection.py    # Connection wrapper
    │   └── rwlock.py        # Reader/writer lock
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request parser (state machine)
    │   ├── response.py      # Response building and encoding
    │   ├── encoding.py      # gzip negotiation
    │   ├── router.py        # URL routing
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # MIME type detection
    ├── middleware/          # Middleware components
    │   ├── base.py          # Middleware, MiddlewarePipeline
    │   ├── logging.py       # Access log
    │   ├── session.py       # Session cookie
    │   └── security.py      # Security headers
    └── handlers/            # Request handlers
        ├── basic.py         # /, /echo, /user-agent
        ├── api.py           # /api/*
        └── files.py         # /files, FileStore

=============================================================================
QUICK START
=============================================================================

    from tinyhttpd import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080, directory="/srv/files"))
    server.run()

Or from the shell:

    python -m tinyhttpd --directory /srv/files --port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
