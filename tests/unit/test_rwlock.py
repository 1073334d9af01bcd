"""
Unit tests for the reader/writer lock.
"""

import threading
import time

from tinyhttpd.core.rwlock import ReadWriteLock


class TestReadWriteLock:

    def test_readers_share(self):
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=2.0)
        errors = []

        def reader():
            with lock.read():
                try:
                    both_inside.wait()  # Only passes if both hold the lock
                except threading.BrokenBarrierError as e:
                    errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_write()

        def reader():
            with lock.read():
                events.append("read")

        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.05)
        events.append("write-done")
        lock.release_write()
        t.join(timeout=2.0)

        assert events == ["write-done", "read"]

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()

        def writer():
            with lock.write():
                events.append("write")

        t = threading.Thread(target=writer)
        t.start()
        time.sleep(0.05)
        events.append("read-done")
        lock.release_read()
        t.join(timeout=2.0)

        assert events == ["read-done", "write"]

    def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()

        def writer():
            with lock.write():
                events.append("write")

        def late_reader():
            with lock.read():
                events.append("late-read")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)  # Writer is now waiting

        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)

        assert events == []  # The late reader queued behind the writer

        lock.release_read()
        w.join(timeout=2.0)
        r.join(timeout=2.0)

        assert events == ["write", "late-read"]

    def test_released_after_exception(self):
        lock = ReadWriteLock()

        try:
            with lock.write():
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        with lock.read():
            pass
