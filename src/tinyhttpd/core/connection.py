"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the HTTP loop needs:
a buffered reader for parsing, a two-part writer for responses, state
tracking for logs, and a close sequence that never leaks the descriptor.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries.

    Client sends:                  Server might receive:
        send("GET / HTTP/1.1\\r\\n")    recv() → "GET / HT"
        send("Host: x\\r\\n\\r\\n")       recv() → "TP/1.1\\r\\nHost: x\\r\\n\\r\\n"

So somebody has to buffer. Rather than keeping our own byte buffer and
searching it for delimiters, we ask the socket for a buffered file object:

    reader = sock.makefile("rb")
    reader.readline(limit)   ← blocks until \\n (or limit, or EOF)
    reader.read(n)           ← blocks until n bytes (or EOF)

Bytes left over after one request (a pipelined second request, say) stay in
the reader's buffer and are picked up by the next readline().

=============================================================================
KEEP-ALIVE CONNECTIONS
=============================================================================

HTTP/1.1 defaults to persistent connections:

    TCP Connect
        │
        ├── Request 1: read → dispatch → write
        ├── Request 2: read → dispatch → write
        ├── Request 3 (Connection: close): read → dispatch → write
        │
    TCP Close

Only one handshake for several requests. The loop that drives this lives in
HTTPServer._process_connection; this class just tracks where we are.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             │                                    │           │
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │                                  (back to READING)
                    ▼
                  CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and cleanup)."""

    NEW = "new"                  # Just accepted, nothing read yet
    READING = "reading"          # Waiting for / parsing a request
    PROCESSING = "processing"    # Handler is executing
    WRITING = "writing"          # Sending the response
    KEEP_ALIVE = "keep_alive"    # Response sent, waiting for the next request
    CLOSING = "closing"          # Shutdown sequence in progress
    CLOSED = "closed"            # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── reader: socket.makefile("rb"), consumed by RequestParser     │
    │                                                                      │
    │  2. DEADLINES                                                        │
    │     └── timeout=None blocks forever (the default)                    │
    │     └── timeout=N makes every read/write raise socket.timeout        │
    │                                                                      │
    │  3. STATE TRACKING                                                   │
    │     └── What phase of the exchange we're in, requests handled        │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── shutdown(SHUT_WR), drain, close; safe to call twice          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Use it as a context manager so the socket is released on every path:

        with conn:
            while (request := parser.read(conn.reader)) is not None:
                ...
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    # Per read/write deadline in seconds (None = block indefinitely)
    timeout: Optional[float] = None

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)
        self._reader = self.socket.makefile("rb")

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary stream over the socket, for RequestParser.read()."""
        return self._reader

    @property
    def is_closed(self) -> bool:
        return self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED)

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    def begin_read(self):
        self.state = ConnectionState.READING

    def begin_processing(self):
        self.state = ConnectionState.PROCESSING
        self.requests_handled += 1

    def set_keep_alive(self):
        """Mark connection for keep-alive (ready for next request)."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, head: bytes, body: bytes = b"") -> bool:
        """
        Send an encoded response: head first, then body.

        Uses sendall() so partial writes are retried by the socket layer
        until everything is out (or the peer is gone).

        Returns:
            True if both writes succeeded, False if the connection failed.
            Failures are logged here; the caller just stops the loop.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(head)
            if body:
                self.socket.sendall(body)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send to {self.client_ip} failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def interrupt(self):
        """
        Stop reading from another thread.

        shutdown(SHUT_RD) makes a blocked readline() return EOF, so the
        connection loop ends at its next request boundary. Used on server
        shutdown.
        """
        try:
            self.socket.shutdown(socket.SHUT_RD)
        except OSError:
            pass  # Already disconnected

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees EOF after our last
           response
        2. Drain: discard anything the client still sent
        3. close(): release the reader and the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout; we're closing anyway

        # The makefile() object holds a reference to the descriptor too
        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Always release the socket; never suppress the exception."""
        self.close()
        return False
