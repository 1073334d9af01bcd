"""
Unit tests for the session store and sweeper.
"""

import string
import threading
import time

import pytest

from tinyhttpd.sessions import (
    SESSION_ID_LENGTH,
    Session,
    SessionStore,
    SessionSweeper,
    generate_session_id,
)


class TestSessionId:

    def test_length_and_alphabet(self):
        session_id = generate_session_id()

        assert len(session_id) == SESSION_ID_LENGTH == 32
        assert set(session_id) <= set(string.ascii_letters + string.digits)

    def test_ids_differ(self):
        assert len({generate_session_id() for _ in range(100)}) == 100


class TestSession:

    def test_last_access_defaults_to_created(self):
        session = Session(id="x", created_at=100.0)
        assert session.last_access == 100.0

    def test_age_and_idle(self):
        now = time.time()
        session = Session(id="x", created_at=now - 10, last_access=now - 4)

        assert session.age == pytest.approx(10, abs=1)
        assert session.idle == pytest.approx(4, abs=1)


class TestSessionStore:
    """Tests for SessionStore."""

    def test_create_and_lookup(self):
        store = SessionStore()
        session = store.create()

        found = store.lookup(session.id)

        assert found.id == session.id
        assert found.created_at == session.created_at
        assert len(store) == 1

    def test_lookup_unknown(self):
        store = SessionStore()

        assert store.lookup("nope") is None
        assert store.lookup("") is None

    def test_refresh_updates_last_access(self):
        store = SessionStore()
        session = store.create()
        time.sleep(0.02)

        refreshed = store.refresh(session.id)

        assert refreshed.last_access > session.last_access
        assert refreshed.created_at == session.created_at

    def test_refresh_unknown(self):
        store = SessionStore()

        assert store.refresh("unknown") is None
        assert len(store) == 0

    def test_returned_sessions_are_copies(self):
        store = SessionStore()
        session = store.create()
        session.last_access = 0.0

        assert store.lookup(session.id).last_access != 0.0

    def test_sweep_removes_idle(self):
        store = SessionStore(idle_timeout=0.05)
        stale = store.create()
        time.sleep(0.1)
        fresh = store.create()

        assert store.sweep() == 1
        assert store.lookup(stale.id) is None
        assert store.lookup(fresh.id) is not None

    def test_refresh_keeps_session_alive(self):
        store = SessionStore(idle_timeout=0.1)
        session = store.create()
        time.sleep(0.06)
        store.refresh(session.id)
        time.sleep(0.06)

        assert store.sweep() == 0

    def test_concurrent_creates(self):
        store = SessionStore()

        def create_many():
            for _ in range(50):
                store.create()

        threads = [threading.Thread(target=create_many) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 400


class TestSessionSweeper:

    def test_sweeps_in_background(self):
        store = SessionStore(idle_timeout=0.01)
        session = store.create()

        sweeper = SessionSweeper(store, interval=0.02)
        sweeper.start()
        try:
            deadline = time.time() + 2.0
            while store.lookup(session.id) is not None and time.time() < deadline:
                time.sleep(0.01)
        finally:
            sweeper.stop(timeout=1.0)

        assert store.lookup(session.id) is None
        assert not sweeper.is_alive()

    def test_stop_is_prompt(self):
        sweeper = SessionSweeper(SessionStore(), interval=60)
        sweeper.start()

        start = time.time()
        sweeper.stop(timeout=2.0)

        assert time.time() - start < 1.0
        assert sweeper.daemon is True

    def test_stop_before_start(self):
        SessionSweeper(SessionStore()).stop()
