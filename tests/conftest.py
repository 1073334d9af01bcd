"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello?x=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: deflate, gzip\r\n"
        b"Cookie: theme=dark; session=abc123\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /files/john.json HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    """Empty storage root for the file store."""
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def config(storage_dir: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        directory=str(storage_dir),
        timeout=5.0,
        log_level="WARNING",
    )


# =============================================================================
# RUNNING SERVER
# =============================================================================

class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def address(self) -> Tuple[str, int]:
        return ("127.0.0.1", self.port)

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for run() to return."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        sock = socket.create_connection(self.address, timeout=5.0)
        return sock


@pytest.fixture
def server_factory() -> Generator:
    """
    Start servers with custom configs; all are stopped on teardown.

        srv = server_factory(ServerConfig(...))
    """
    started = []

    def start(cfg: ServerConfig, **kwargs) -> TestServer:
        test_srv = TestServer(HTTPServer(cfg, **kwargs))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(server_factory, config: ServerConfig) -> TestServer:
    """A running server with the default test configuration."""
    return server_factory(config)
