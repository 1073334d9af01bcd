"""
Unit tests for the Connection wrapper, over a local socket pair.
"""

import socket

import pytest

from tinyhttpd.core.connection import Connection, ConnectionState
from tinyhttpd.http.request import RequestParser


@pytest.fixture
def pair():
    server_side, client_side = socket.socketpair()
    client_side.settimeout(5.0)
    yield server_side, client_side
    client_side.close()
    server_side.close()


class TestConnection:

    def test_reader_feeds_parser(self, pair):
        server_side, client_side = pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))

        client_side.sendall(b"GET /echo/x HTTP/1.1\r\n\r\n")
        request = RequestParser().read(conn.reader, conn.address)

        assert request.path == "/echo/x"
        assert request.client_address == ("127.0.0.1", 5000)

    def test_send_response(self, pair):
        server_side, client_side = pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))

        assert conn.send_response(b"HEAD\r\n\r\n", b"body") is True
        assert client_side.recv(64) == b"HEAD\r\n\r\nbody"

    def test_send_after_peer_gone(self, pair):
        server_side, client_side = pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))
        client_side.close()

        # The first write may still succeed into the socket buffer
        results = [conn.send_response(b"x" * 65536, b"y" * 65536) for _ in range(10)]

        assert results[-1] is False

    def test_state_transitions(self, pair):
        conn = Connection(socket=pair[0], address=("127.0.0.1", 5000))
        assert conn.state is ConnectionState.NEW

        conn.begin_read()
        assert conn.state is ConnectionState.READING

        conn.begin_processing()
        assert conn.state is ConnectionState.PROCESSING
        assert conn.requests_handled == 1

        conn.set_keep_alive()
        assert conn.state is ConnectionState.KEEP_ALIVE

    def test_context_manager_closes(self, pair):
        server_side, client_side = pair

        with Connection(socket=server_side, address=("127.0.0.1", 5000)) as conn:
            pass

        assert conn.is_closed
        assert client_side.recv(1) == b""

    def test_close_twice(self, pair):
        conn = Connection(socket=pair[0], address=("127.0.0.1", 5000))
        conn.close()
        conn.close()

        assert conn.state is ConnectionState.CLOSED

    def test_interrupt_ends_blocked_read(self, pair):
        server_side, _ = pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))

        conn.interrupt()

        assert RequestParser().read(conn.reader) is None

    def test_timeout_applied(self, pair):
        conn = Connection(socket=pair[0], address=("127.0.0.1", 5000), timeout=0.05)

        with pytest.raises(OSError):
            RequestParser().read(conn.reader)
