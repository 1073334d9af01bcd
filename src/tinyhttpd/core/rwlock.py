"""
=============================================================================
READER/WRITER LOCK
=============================================================================

Many threads may read shared state at once; a writer needs it alone.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Time ──────────────────────────────────────────────────────►      │
    │                                                                      │
    │   Reader A   ████████████                                            │
    │   Reader B      ██████████                                           │
    │   Writer W         ....waiting....█████                              │
    │   Reader C            ....waiting......████                          │
    │                                                                      │
    │   W arrives while A and B hold the lock: it waits for them.          │
    │   C arrives while W is WAITING: it queues behind W.                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

That last rule is WRITER PREFERENCE. Without it a steady trickle of
overlapping readers could keep the reader count above zero forever and the
writer would starve.

The stdlib has no reader/writer lock, so this one is built on a single
threading.Condition:

    _readers          number of threads currently reading
    _writer           True while a writer holds the lock
    _writers_waiting  writers blocked in acquire_write()

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "When is a RW lock worth it over a plain Lock?"
A: "When reads dominate and the critical section isn't trivially short.
   For a session table, every request does a lookup but only a few create
   sessions; readers don't have to queue behind each other."

Q: "Is this lock reentrant?"
A: "No. A thread holding the read lock that asks for the write lock
   deadlocks waiting for itself. Callers take one or the other, never both."

=============================================================================
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """
    Writer-preferring reader/writer lock.

    Usage:
        lock = ReadWriteLock()

        with lock.read():
            value = table.get(key)

        with lock.write():
            table[key] = value
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()  # A writer may be waiting for us

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock shared for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    # =========================================================================
    # WRITE SIDE
    # =========================================================================

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
