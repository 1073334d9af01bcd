"""
=============================================================================
IN-MEMORY SESSION STORE
=============================================================================

Tracks repeat visits from the same client with an opaque cookie:

    First request (no cookie)           Later requests
    ─────────────────────────           ──────────────
    GET / HTTP/1.1                      GET /api/session HTTP/1.1
                                        Cookie: session=Xq3...9Lk
            │                                   │
            ▼                                   ▼
    store.create()                      store.refresh("Xq3...9Lk")
            │                                   │
            ▼                                   ▼
    Set-Cookie: session=Xq3...9Lk;      (last_access bumped, no cookie
                Path=/; HttpOnly         sent again)

Sessions live only in this process. A restart forgets them all, and the
client simply gets a fresh one on its next request.

=============================================================================
EXPIRY
=============================================================================

A session that hasn't been seen for idle_timeout seconds (30 minutes by
default) is removed by sweep(). The sweep runs on its own thread every
sweep_interval seconds (5 minutes by default), independent of traffic:

    t=0      create()          last_access = 0
    t=600    refresh()         last_access = 600
    t=2400   sweep()           idle = 1800, not > 1800, kept
    t=2700   sweep()           idle = 2100 > 1800, REMOVED
    t=2701   lookup()          None → client gets a new session

Between the idle deadline and the next sweep an expired session still
answers lookup(); expiry is enforced by the sweep, not by every read.

=============================================================================
CONCURRENCY
=============================================================================

Every connection thread touches the table. It's guarded by a ReadWriteLock:
lookup() takes the shared side, create()/refresh()/sweep() the exclusive
side. The dict itself never leaves this class.

=============================================================================
"""

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from .core.rwlock import ReadWriteLock


logger = logging.getLogger(__name__)


SESSION_ID_LENGTH = 32
SESSION_ID_ALPHABET = string.ascii_letters + string.digits

DEFAULT_IDLE_TIMEOUT = 30 * 60   # 30 minutes
DEFAULT_SWEEP_INTERVAL = 5 * 60  # 5 minutes


def generate_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """
    Random session identifier over [A-Za-z0-9].

    Uses the secrets module (OS CSPRNG), not random: a guessable session
    id is a stolen session.
    """
    return "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(length))


@dataclass
class Session:
    """
    One client session.

    Attributes:
        id: Opaque identifier sent in the cookie.
        created_at: Epoch seconds when the session was created.
        last_access: Epoch seconds of the most recent request.
    """

    id: str
    created_at: float = field(default_factory=time.time)
    last_access: float = 0.0

    def __post_init__(self):
        if not self.last_access:
            self.last_access = self.created_at

    @property
    def age(self) -> float:
        """Seconds since the session was created."""
        return time.time() - self.created_at

    @property
    def idle(self) -> float:
        """Seconds since the last request."""
        return time.time() - self.last_access


class SessionStore:
    """
    Thread-safe session table.

    Usage:
        store = SessionStore(idle_timeout=1800)

        session = store.create()
        ...
        session = store.refresh(cookie_value)  # None if unknown/expired
        ...
        removed = store.sweep()

    Returned Session objects are copies: mutating one does not change the
    stored entry.
    """

    def __init__(self, idle_timeout: float = DEFAULT_IDLE_TIMEOUT):
        self.idle_timeout = idle_timeout
        self._sessions: Dict[str, Session] = {}
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._sessions)

    def lookup(self, session_id: str) -> Optional[Session]:
        """Get a session by id without touching its last_access."""
        if not session_id:
            return None

        with self._lock.read():
            session = self._sessions.get(session_id)
            return _copy(session) if session else None

    def create(self) -> Session:
        """Create and store a new session with a fresh id."""
        now = time.time()
        session = Session(id=generate_session_id(), created_at=now, last_access=now)

        with self._lock.write():
            self._sessions[session.id] = session

        logger.debug(f"Created session {session.id[:8]}...")
        return _copy(session)

    def refresh(self, session_id: str) -> Optional[Session]:
        """
        Mark a session as used now.

        Returns:
            The updated session, or None if the id is unknown.
        """
        if not session_id:
            return None

        with self._lock.write():
            session = self._sessions.get(session_id)
            if session is None:
                return None
            session.last_access = time.time()
            return _copy(session)

    def sweep(self) -> int:
        """
        Remove every session idle for longer than idle_timeout.

        Returns:
            Number of sessions removed.
        """
        cutoff = time.time() - self.idle_timeout

        with self._lock.write():
            expired = [sid for sid, s in self._sessions.items() if s.last_access < cutoff]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            logger.info(f"Swept {len(expired)} expired session(s)")
        return len(expired)


def _copy(session: Session) -> Session:
    return Session(id=session.id, created_at=session.created_at, last_access=session.last_access)


class SessionSweeper(threading.Thread):
    """
    Background thread that calls store.sweep() every interval seconds.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Sweeper Loop                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   while not stopped:                                                 │
    │       wait(interval)   ← Event.wait, so stop() wakes it at once     │
    │       store.sweep()                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    A daemon thread: it never keeps the process alive on its own.
    """

    def __init__(self, store: SessionStore, interval: float = DEFAULT_SWEEP_INTERVAL):
        super().__init__(name="SessionSweeper", daemon=True)
        self.store = store
        self.interval = interval
        self._stop_event = threading.Event()

    def run(self):
        logger.debug(f"Session sweeper started (every {self.interval:g}s)")

        while not self._stop_event.wait(self.interval):
            try:
                self.store.sweep()
            except Exception:
                # Keep sweeping; a failed pass just leaves entries for the next one
                logger.exception("Session sweep failed")

        logger.debug("Session sweeper stopped")

    def stop(self, timeout: Optional[float] = None):
        """Signal the thread to exit and wait for it."""
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout)
