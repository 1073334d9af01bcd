"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The listener: binds the server socket, accepts connections, and hands each
one to a callback. It knows nothing about HTTP.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
                   └─ port 0 asks the OS for any free port
    3. listen()    OS starts queueing incoming connections (backlog)
    4. accept()    Returns a NEW socket for each client;
                   the original keeps listening
    5. close()     Release the listening socket

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   0.0.0.0:8080        │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Rebind immediately after a restart instead of waiting out TIME_WAIT.

TCP_NODELAY:
    Disable Nagle's algorithm. We write the response head and body in two
    sendall() calls; with Nagle the body could sit in the kernel waiting for
    the ACK of the head.

We do NOT set SO_REUSEPORT: a second server on the same port must fail to
bind (exit code 1) rather than silently share the port.

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (2):   Ctrl+C
SIGTERM (15): docker stop, systemd stop, kill

Both call shutdown(). Python only allows installing signal handlers from
the main thread, so a server started in a background thread (as the test
suite does) skips this step and is stopped by calling shutdown() directly.

=============================================================================
"""

import socket
import signal
import threading
import logging
from typing import Callable, Optional, Tuple

from .connection import Connection
from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP listener that hands accepted connections to a callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Methods                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            socket() + setsockopt() + bind() + listen()    │
    │                                                                      │
    │    start(handler)    bind if needed, install signals, accept loop   │
    │        │                                                             │
    │        └──► while running:                                           │
    │                accept()          (1s timeout so shutdown is seen)    │
    │                Connection(...)   wrap client socket                  │
    │                handler(conn)     HTTPServer spawns a thread          │
    │                                                                      │
    │    shutdown()        stop the loop (from any thread or a signal)     │
    │                                                                      │
    │    _cleanup()        restore signals, close the listening socket     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeout).

        Note: the socket is created lazily in bind()/start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._listening = threading.Event()
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before bind() this is the configured address; afterwards the port
        is the one the OS actually assigned (relevant for port 0).
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    @property
    def port(self) -> int:
        return self.address[1]

    # =========================================================================
    # SETUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check whether we should stop
        sock.settimeout(1.0)

        return sock

    def bind(self):
        """
        Create the socket, bind and listen.

        Raises:
            OSError: The address is in use or not available.
        """
        if self._socket is not None:
            return

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        logger.info(f"Server listening on {self.address[0]}:{self.port}")

    def _setup_signals(self):
        """Install SIGTERM/SIGINT handlers that trigger a graceful shutdown."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections. BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each new Connection. Must not
                block for long: the accept loop waits for it to return.
        """
        self.bind()

        self._running = True
        self._stopped.clear()
        self._setup_signals()
        self._listening.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept until stopped.

        A failure while setting up one connection is logged and the loop
        moves on; only shutdown() ends it.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Re-check self._running
            except OSError as e:
                if not self._running:
                    break  # Socket closed by shutdown
                logger.error(f"Accept error: {e}")
                self._stopped.wait(0.1)  # Back off (e.g. out of descriptors)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    timeout=self.config.timeout,
                )
                connection_handler(conn)
            except Exception:
                logger.exception(f"Failed to hand off connection from {client_address[0]}")
                client_socket.close()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running. Returns False on timeout."""
        return self._listening.wait(timeout)

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from a signal handler, another thread, or more than
        once. The loop notices within one accept() timeout.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._stopped.set()

    def _cleanup(self):
        self._restore_signals()
        self._listening.clear()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info("Socket server stopped")
