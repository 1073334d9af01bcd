"""
Integration tests: a real server on an ephemeral port, driven by raw sockets.
"""

import gzip
import json
import socket
import time
from dataclasses import replace
from pathlib import Path
from typing import Dict, Tuple

import pytest

from tinyhttpd import HTTPServer, ServerConfig
from tinyhttpd.sessions import SessionStore


# =============================================================================
# CLIENT HELPERS
# =============================================================================

class RawResponse:
    """A response read off the wire."""

    def __init__(self, status: int, headers: Dict[str, str], body: bytes):
        self.status = status
        self.headers = headers
        self.body = body

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


def read_response(reader) -> RawResponse:
    """Read one response (status line, headers, Content-Length body)."""
    status_line = reader.readline()
    assert status_line, "connection closed before a response"
    status = int(status_line.split()[1])

    headers = {}
    while True:
        line = reader.readline().rstrip(b"\r\n")
        if not line:
            break
        name, _, value = line.decode().partition(":")
        headers[name.strip().lower()] = value.strip()

    body = reader.read(int(headers.get("content-length", "0")))
    return RawResponse(status, headers, body)


def request_bytes(method: str, path: str, body: bytes = b"", **headers) -> bytes:
    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    for name, value in headers.items():
        lines.append(f"{name.replace('_', '-')}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode() + body


def exchange(test_server, method: str, path: str, body: bytes = b"", **headers) -> RawResponse:
    """One request on a fresh connection."""
    with test_server.connect() as sock:
        sock.sendall(request_bytes(method, path, body, Connection="close", **headers))
        with sock.makefile("rb") as reader:
            return read_response(reader)


def assert_closed(sock: socket.socket):
    """The server has closed its side: recv() returns EOF."""
    sock.settimeout(5.0)
    assert sock.recv(1) == b""


# =============================================================================
# CONNECTION HANDLING
# =============================================================================

class TestConnection:
    """Keep-alive, explicit close and malformed input."""

    def test_keep_alive_two_requests(self, test_server):
        with test_server.connect() as sock, sock.makefile("rb") as reader:
            sock.sendall(request_bytes("GET", "/echo/one"))
            first = read_response(reader)

            sock.sendall(request_bytes("GET", "/echo/two"))
            second = read_response(reader)

        assert (first.status, first.body) == (200, b"one")
        assert (second.status, second.body) == (200, b"two")
        assert "connection" not in first.headers

    def test_pipelined_requests(self, test_server):
        with test_server.connect() as sock, sock.makefile("rb") as reader:
            sock.sendall(request_bytes("GET", "/echo/a") + request_bytes("GET", "/echo/b"))

            assert read_response(reader).body == b"a"
            assert read_response(reader).body == b"b"

    def test_connection_close(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(request_bytes("GET", "/echo/bye", Connection="close"))
            reader = sock.makefile("rb")
            response = read_response(reader)

            assert response.body == b"bye"
            assert response.header("Connection") == "close"
            assert reader.read() == b""  # Nothing after the first response
            reader.close()

    def test_malformed_request_line(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"NONSENSE\r\n\r\n")
            reader = sock.makefile("rb")
            response = read_response(reader)

            assert response.status == 400
            assert response.body == b"Bad Request"
            assert response.header("Connection") == "close"
            assert reader.read() == b""
            reader.close()

    def test_body_too_large(self, server_factory, config: ServerConfig):
        config.max_request_size = 16
        srv = server_factory(config)

        with srv.connect() as sock:
            sock.sendall(request_bytes("POST", "/api/echo", b"x" * 64))
            with sock.makefile("rb") as reader:
                response = read_response(reader)

        assert response.status == 413

    def test_client_disconnect_mid_request(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET /echo/x HTTP/1.1\r\nHost: lo")
        # The server must survive and keep serving
        assert exchange(test_server, "GET", "/echo/ok").body == b"ok"

    def test_timeout_closes_idle_connection(self, server_factory, config: ServerConfig):
        config.timeout = 0.2
        srv = server_factory(config)

        with srv.connect() as sock:
            time.sleep(0.5)
            assert_closed(sock)

    def test_concurrent_connections(self, test_server):
        idle = test_server.connect()  # Holds its own thread
        try:
            assert exchange(test_server, "GET", "/echo/busy").body == b"busy"
        finally:
            idle.close()


# =============================================================================
# ROUTES
# =============================================================================

class TestRoutes:

    def test_welcome(self, test_server):
        response = exchange(test_server, "GET", "/")

        assert response.status == 200
        assert response.header("Content-Type") == "text/plain"

    def test_echo(self, test_server):
        response = exchange(test_server, "GET", "/echo/abc")

        assert response.status == 200
        assert response.body == b"abc"
        assert response.header("Content-Type") == "text/plain"
        assert response.header("Content-Length") == "3"

    def test_user_agent(self, test_server):
        response = exchange(test_server, "GET", "/user-agent", User_Agent="X")
        assert response.body == b"X"

    def test_not_found(self, test_server):
        assert exchange(test_server, "GET", "/nonexistent").status == 404

    def test_user_agent_post_not_allowed(self, test_server):
        response = exchange(test_server, "POST", "/user-agent")

        assert response.status == 405
        assert response.header("Allow") == "GET"

    def test_api_status(self, test_server):
        data = json.loads(exchange(test_server, "GET", "/api/status").body)

        assert data["status"] == "ok"
        assert data["time"].endswith("Z")

    def test_api_echo(self, test_server):
        response = exchange(test_server, "PUT", "/api/echo", b'{"a": 1}')

        assert response.body == b'{"a": 1}'
        assert response.header("Content-Type") == "application/json"

    def test_api_disabled(self, server_factory, config: ServerConfig):
        config.enable_api = False
        srv = server_factory(config)

        assert exchange(srv, "GET", "/api/status").status == 404


# =============================================================================
# CONTENT ENCODING
# =============================================================================

class TestGzip:

    def test_gzip_negotiated(self, test_server):
        response = exchange(test_server, "GET", "/echo/" + "z" * 200, Accept_Encoding="deflate, gzip")

        assert response.header("Content-Encoding") == "gzip"
        assert int(response.header("Content-Length")) == len(response.body)
        assert gzip.decompress(response.body) == b"z" * 200

    def test_gzip_not_requested(self, test_server):
        response = exchange(test_server, "GET", "/echo/plain", Accept_Encoding="br")

        assert "content-encoding" not in response.headers
        assert response.body == b"plain"

    def test_gzip_error_bodies(self, test_server):
        response = exchange(test_server, "GET", "/nonexistent", Accept_Encoding="gzip")

        assert response.status == 404
        assert gzip.decompress(response.body) == b"Not Found"


# =============================================================================
# FILES
# =============================================================================

class TestFiles:

    def test_round_trip(self, test_server, storage_dir: Path):
        data = bytes(range(256))

        response = exchange(test_server, "POST", "/files/f", data)
        assert response.status == 201
        assert (storage_dir / "f").read_bytes() == data

        response = exchange(test_server, "GET", "/files/f")
        assert response.body == data
        assert response.header("Content-Type") == "application/octet-stream"

        assert exchange(test_server, "DELETE", "/files/f").status == 200
        assert exchange(test_server, "GET", "/files/f").status == 404

    def test_listing(self, test_server, storage_dir: Path):
        (storage_dir / "hello.txt").write_bytes(b"hi")

        for path in ("/files", "/files/"):
            response = exchange(test_server, "GET", path)
            assert response.header("Content-Type") == "text/html"
            assert b'href="/files/hello.txt"' in response.body

    @pytest.mark.parametrize("path", [
        "/files/../../etc/passwd",
        "/files/%2e%2e/%2e%2e/etc/passwd",
    ])
    def test_traversal_forbidden(self, test_server, path: str):
        assert exchange(test_server, "GET", path).status == 403

    def test_bad_encoding(self, test_server):
        assert exchange(test_server, "GET", "/files/%zz").status == 400

    def test_put_not_allowed(self, test_server):
        response = exchange(test_server, "PUT", "/files/test.txt", b"x")

        assert response.status == 405
        assert response.header("Allow") == "DELETE, GET, POST"


# =============================================================================
# SESSIONS
# =============================================================================

def session_cookie(response: RawResponse) -> Tuple[str, str]:
    """(name=value, id) from a Set-Cookie header."""
    pair = response.header("Set-Cookie").split(";")[0]
    return pair, pair.partition("=")[2]


class TestSessions:

    def test_cookie_and_security_headers(self, test_server):
        response = exchange(test_server, "GET", "/")
        pair, session_id = session_cookie(response)

        assert response.header("Set-Cookie") == f"{pair}; Path=/; HttpOnly"
        assert len(session_id) == 32
        assert response.header("X-Content-Type-Options") == "nosniff"
        assert response.header("X-Frame-Options") == "DENY"
        assert response.header("X-XSS-Protection") == "1; mode=block"

    def test_session_replay(self, test_server):
        first = exchange(test_server, "GET", "/api/session")
        pair, session_id = session_cookie(first)
        time.sleep(0.2)

        second = exchange(test_server, "GET", "/api/session", Cookie=pair)

        assert "set-cookie" not in second.headers
        before, after = json.loads(first.body), json.loads(second.body)
        assert before["session_id"] == after["session_id"] == session_id
        assert after["age"] > before["age"]

    def test_handler_crash_keeps_session_headers(self, test_server):
        def crash(request):
            raise RuntimeError("boom")

        test_server.server.router.add_route("/crash", crash)

        response = exchange(test_server, "GET", "/crash")
        _, session_id = session_cookie(response)

        assert response.status == 500
        assert response.body == b"Internal Server Error"
        assert len(session_id) == 32
        assert response.header("X-Content-Type-Options") == "nosniff"
        assert response.header("X-Frame-Options") == "DENY"
        assert response.header("X-XSS-Protection") == "1; mode=block"

    def test_injected_store(self, server_factory, config: ServerConfig):
        store = SessionStore()
        srv = server_factory(config, session_store=store)

        exchange(srv, "GET", "/")

        assert len(store) == 1

    def test_sessions_disabled(self, server_factory, config: ServerConfig):
        config.enable_sessions = False
        srv = server_factory(config)

        response = exchange(srv, "GET", "/")

        assert "set-cookie" not in response.headers
        assert "x-frame-options" not in response.headers
        assert exchange(srv, "GET", "/api/session").status == 404


# =============================================================================
# LIFECYCLE
# =============================================================================

class TestLifecycle:

    def test_port_assigned(self, test_server):
        assert test_server.port > 0

    def test_shutdown_closes_idle_connections(self, server_factory, config: ServerConfig):
        srv = server_factory(config)

        with srv.connect() as sock:
            sock.sendall(request_bytes("GET", "/echo/x"))
            with sock.makefile("rb") as reader:
                read_response(reader)

            srv.stop()
            assert_closed(sock)

    def test_bind_conflict(self, test_server, config: ServerConfig):
        taken = replace(config, port=test_server.port)
        with pytest.raises(OSError):
            HTTPServer(taken).run()
