"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

The orchestrator that ties the components together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        │   (Orchestrator)│                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │SocketServer  │    │ SessionStore │    │    Router    │        │
    │    │ (Networking) │    │ + Sweeper    │    │ (Dispatching)│        │
    │    └──────┬───────┘    └──────────────┘    └──────┬───────┘        │
    │           │                                        │                │
    │           ▼                                        ▼                │
    │    ┌──────────────┐                        ┌──────────────┐        │
    │    │  Connection  │  one thread each       │   Handlers   │        │
    │    │ (TCP Conn.)  │                        │ basic/api/   │        │
    │    └──────────────┘                        │ files        │        │
    │                                            └──────────────┘        │
    │           ┌─────────────────────────────────────────┐               │
    │           │         Middleware Pipeline             │               │
    │           │   Logging → Session → Security → Router │               │
    │           └─────────────────────────────────────────┘               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts, wraps the socket in a Connection

    2. CONNECTION THREAD
       └── One daemon thread per connection runs the keep-alive loop

    3. PARSE REQUEST
       └── RequestParser reads line, headers and body from the stream

    4. MIDDLEWARE PIPELINE
       └── Logging → Session → Security

    5. ROUTE DISPATCH
       └── Router matches path → calls handler function

    6. ENCODE
       └── gzip if the client accepts it, Connection: close if asked,
           Content-Length computed last

    7. SEND RESPONSE
       └── head, then body

    8. KEEP-ALIVE OR CLOSE
       └── Loop for the next request, or close the connection

=============================================================================
INTERVIEW QUESTIONS ABOUT WEB SERVERS
=============================================================================

Q: "Why a thread per connection instead of a pool?"
A: "Keep-alive connections are long-lived and mostly idle. A fixed pool
   would let a handful of idle clients starve everyone else; a thread per
   connection only costs memory, and these threads block in recv()
   without burning CPU."

Q: "How does shutdown reach a thread blocked in recv()?"
A: "The accept loop stops on a flag. Every open connection is tracked,
   and shutdown() half-closes its read side, so the blocked readline()
   returns EOF and the loop exits at the request boundary."

Q: "Where is gzip decided?"
A: "At encode time, from the request's Accept-Encoding. Handlers and
   middleware always produce identity bodies, so Content-Length can be
   computed once, last, from whatever actually goes on the wire."

=============================================================================
"""

import logging
import threading
from typing import Callable, Dict, Optional

from .config import ServerConfig
from .core import SocketServer, Connection
from .handlers import FileStore
from .http import (
    HTTPRequest, HTTPResponse, RequestParser, HTTPParseError,
    IncompleteRequestError, Router, text_response, internal_error,
)
from .middleware import (
    MiddlewarePipeline, Middleware, LoggingMiddleware,
    SessionMiddleware, SecurityHeadersMiddleware,
)
from .routes import build_router
from .sessions import SessionStore, SessionSweeper


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server over raw TCP sockets.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080, directory="/srv/files"))
        server.run()     # Blocks until SIGINT/SIGTERM or shutdown()

    From another thread (the test suite does this):

        thread = threading.Thread(target=server.run)
        thread.start()
        server.wait_until_listening(5)
        port = server.port
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    COMPONENTS
    =========================================================================

    - ServerConfig: settings, validated at construction
    - SocketServer: listening socket and accept loop
    - RequestParser: bytes → HTTPRequest
    - Router: built by routes.build_router()
    - MiddlewarePipeline: access log, session cookie, security headers
    - SessionStore + SessionSweeper: in-memory sessions (when enabled)

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        session_store: Optional[SessionStore] = None,
    ):
        """
        Initialize the HTTP server.

        Args:
            config: Server configuration. Uses defaults if not provided.
            session_store: Store shared by the session middleware and the
                sweeper. A fresh one is created when not given.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config)

        self._parser = RequestParser(
            max_request_size=self.config.max_request_size,
            max_line_size=self.config.max_line_size,
        )

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self.file_store = FileStore(self.config.root)
        if session_store is None:
            session_store = SessionStore(idle_timeout=self.config.session_idle_timeout)
        self.session_store = session_store

        self._router = build_router(self.config, self.file_store)

        self._middleware = MiddlewarePipeline()
        if self.config.log_requests:
            self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        if self.config.enable_sessions:
            self._middleware.add(SessionMiddleware(self.session_store))
            self._middleware.add(SecurityHeadersMiddleware())

        # ─────────────────────────────────────────────────────────────────
        # RUNTIME STATE
        # ─────────────────────────────────────────────────────────────────

        # Built lazily so middleware added with use() is included
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._sweeper: Optional[SessionSweeper] = None
        self._connections: Dict[str, Connection] = {}
        self._connections_lock = threading.Lock()
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """
        Add middleware inside the built-in ones. Must be called before run().

        Returns:
            Self for method chaining.
        """
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def port(self) -> int:
        """The listening port; the OS-assigned one when configured with 0."""
        return self._socket_server.port

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_listening(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Returns after shutdown() or SIGINT/SIGTERM.

        Raises:
            OSError: The listening socket could not be bound.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._dispatch)

        # Bind first: a port conflict must fail before anything else starts
        self._socket_server.bind()

        self._running = True
        if self.config.enable_sessions:
            self._sweeper = SessionSweeper(
                self.session_store,
                interval=self.config.session_sweep_interval,
            )
            self._sweeper.start()

        logger.info(
            f"Serving {self.config.root} on "
            f"http://{self.config.host}:{self.port}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """
        Stop the server from any thread.

        The accept loop exits within a second; run() then finishes the
        shutdown.
        """
        self._running = False
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("tinyhttpd").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        =====================================================================
        GRACEFUL SHUTDOWN PROCESS
        =====================================================================

        1. Stop accepting new connections (accept loop has already exited)
        2. Stop the session sweeper
        3. Interrupt open connections: each loop sees EOF at its next read
           and exits after the exchange in progress

        =====================================================================
        """
        logger.info("Shutting down server...")
        self._running = False

        if self._sweeper is not None:
            self._sweeper.stop(timeout=5.0)
            self._sweeper = None

        with self._connections_lock:
            connections = list(self._connections.values())
        for conn in connections:
            conn.interrupt()

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Innermost handler: route the request, turning a crash into a 500.

        Catching here keeps the 500 inside the middleware, so it still gets
        the session cookie and security headers.
        """
        try:
            return self._router.handle(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return internal_error()

    def _handle_connection(self, conn: Connection):
        """
        Give the connection its own thread.

        Called by SocketServer on the accept thread, so it returns at once.
        """
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """
        Process a connection (runs in its own thread).

        =====================================================================
        CONNECTION PROCESSING LOOP
        =====================================================================

        1. Read and parse one request from the stream
        2. Run it through middleware + router
        3. Encode (gzip, Connection: close) and send the response
        4. Repeat until EOF, an error, or Connection: close

        Parse errors get a 400/413 and close. Transport errors (EOF inside
        a request, timeouts, resets) close without a response.

        =====================================================================
        """
        with self._connections_lock:
            self._connections[conn.id] = conn

        try:
            with conn:  # Context manager ensures connection is closed
                while self._running:
                    if not self._exchange(conn):
                        break
        except Exception as e:
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            with self._connections_lock:
                self._connections.pop(conn.id, None)

    def _exchange(self, conn: Connection) -> bool:
        """Handle one request/response. Returns True to keep the connection open."""

        # ─────────────────────────────────────────────────────────────────
        # READ REQUEST
        # ─────────────────────────────────────────────────────────────────
        conn.begin_read()
        try:
            request = self._parser.read(conn.reader, conn.address)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Malformed request: {e}")
            self._send_error(conn, e.status_code)
            return False
        except (IncompleteRequestError, OSError) as e:
            logger.debug(f"[{conn.id}] Read failed: {type(e).__name__}: {e}")
            return False

        if request is None:
            return False  # Client closed between requests

        # ─────────────────────────────────────────────────────────────────
        # PROCESS REQUEST (Middleware + Router)
        # ─────────────────────────────────────────────────────────────────
        conn.begin_processing()
        try:
            response = self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Middleware error: {e}")
            response = internal_error()

        # ─────────────────────────────────────────────────────────────────
        # SEND RESPONSE
        # ─────────────────────────────────────────────────────────────────
        head, body = response.encode(
            compress=request.accepts_gzip,
            close=request.wants_close,
            level=self.config.gzip_level,
        )
        if not conn.send_response(head, body):
            return False

        if request.wants_close:
            return False

        conn.set_keep_alive()
        return True

    def _send_error(self, conn: Connection, status: int):
        """
        Answer a request that never reached the router, then close.

        The body is the bare reason phrase, never the parser's message.
        """
        head, body = text_response(status).encode(close=True)
        conn.send_response(head, body)
