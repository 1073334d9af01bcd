"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The low-level plumbing underneath the HTTP layer: the listening socket,
per-client connections, and the lock used for shared in-memory state.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Binds IP:PORT (port 0 = any free port) and listens               │
    │  • Runs the accept() loop                                           │
    │  • Graceful shutdown via SIGTERM/SIGINT (main thread only)          │
    │                                                                      │
    │  ANALOGY: The receptionist at a hotel front desk                    │
    │  - Greets each guest and calls a bellhop, never carries bags        │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One new thread per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Buffered reader over the client socket                           │
    │  • State: NEW → READING → PROCESSING → WRITING → KEEP_ALIVE         │
    │  • Two-part send (head, body); close that can't leak                │
    │                                                                      │
    │  ANALOGY: The bellhop who stays with one guest until checkout       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        READ/WRITE LOCK                               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Many concurrent readers OR one writer; writers don't starve      │
    │  • Guards the session table shared by all connection threads        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY THREAD-PER-CONNECTION?
=============================================================================

Every read and write is a plain blocking socket call, so the code for one
connection reads top to bottom like the protocol itself. Threads are
daemons: a connection that never sends anything can't keep the process
alive after shutdown.

ALTERNATIVES:
- Thread pool: caps concurrency, but an idle keep-alive connection then
  occupies a worker that other clients are waiting for
- Event loop (asyncio): scales further, every call site becomes async

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .rwlock import ReadWriteLock

__all__ = [
    "SocketServer",     # TCP listener - accepts connections
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
    "ReadWriteLock",    # Shared/exclusive lock for in-memory state
]
