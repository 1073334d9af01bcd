"""
=============================================================================
ROUTE TABLE
=============================================================================

Wires the handlers to paths. Order is priority: the first route whose
pattern matches and whose methods allow the request wins.

    ┌──────────────────┬──────────────┬─────────────────────────────────┐
    │ Path             │ Methods      │ Handler                         │
    ├──────────────────┼──────────────┼─────────────────────────────────┤
    │ /                │ any          │ welcome text                    │
    │ /echo/*text      │ any          │ echo the rest of the path       │
    │ /user-agent      │ GET          │ User-Agent header               │
    │ /api/status      │ GET          │ {"status": "ok", "time": ...}   │  ┐
    │ /api/time        │ GET          │ {"time": ...}                   │  │ enable_api
    │ /api/echo        │ POST, PUT    │ body as application/json        │  │
    │ /api/session     │ GET          │ current session (sessions on)   │  ┘
    │ /files           │ any          │ directory listing               │
    │ /files/*name     │ any          │ FileHandler (GET/POST/DELETE)   │
    └──────────────────┴──────────────┴─────────────────────────────────┘

Unmatched paths are 404 and wrong methods 405, both decided by the Router.

=============================================================================
"""

from .config import ServerConfig
from .handlers import ApiHandler, FileHandler, FileStore, echo, user_agent, welcome
from .http.router import Router


def build_router(config: ServerConfig, store: FileStore) -> Router:
    """
    Build the router for a server configuration.

    Args:
        config: Decides whether the /api/* routes (enable_api) and the
            /api/session route (enable_sessions) exist.
        store: Storage directory behind /files.
    """
    router = Router()

    router.add_route("/", welcome)
    router.add_route("/echo/*text", echo)
    router.add_route("/user-agent", user_agent, methods=["GET"])

    if config.enable_api:
        api = ApiHandler()
        router.add_route("/api/status", api.status, methods=["GET"], name="api_status")
        router.add_route("/api/time", api.time, methods=["GET"], name="api_time")
        router.add_route("/api/echo", api.echo, methods=["POST", "PUT"], name="api_echo")
        if config.enable_sessions:
            router.add_route("/api/session", api.session, methods=["GET"], name="api_session")

    files = FileHandler(store)
    router.add_route("/files", files.handle, name="files")
    router.add_route("/files/*name", files.handle, name="files")

    return router
