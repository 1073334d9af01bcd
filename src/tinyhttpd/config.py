"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the HTTP server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m tinyhttpd --port 3000 --directory ./data        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m tinyhttpd                        │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The CLI builds its defaults from ServerConfig.from_env(), so flags override
the environment, which overrides the dataclass defaults.

=============================================================================
INTERVIEW QUESTIONS ABOUT CONFIGURATION
=============================================================================

Q: "How do you validate configuration?"
A: "Validate eagerly at startup, not lazily at first use.
   A storage directory that doesn't exist should stop the process
   before it binds a port, not produce a 500 on the first upload."

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


LOG_FORMATS = ("text", "json")

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout

    HTTP SETTINGS
    - max_request_size, max_line_size, gzip_level

    FEATURES
    - directory, enable_sessions, enable_api
    - session_idle_timeout, session_sweep_interval

    LOGGING
    - log_level, log_format, log_requests

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port; the
    actual port is available as HTTPServer.port once listening.
    """

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    timeout: Optional[float] = None
    """
    Per-socket deadline in seconds for every blocking read and write.
    None = no deadline (a silent client holds its thread until it
    disconnects). Expiry closes the connection without a response.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest accepted request body; larger Content-Length gets 413."""

    max_line_size: int = 8 * 1024  # 8 KB
    """Longest accepted request line or header line; longer gets 400."""

    gzip_level: int = 6
    """gzip compression level, 1 (fastest) to 9 (smallest)."""

    # ─────────────────────────────────────────────────────────────────────
    # FEATURES
    # ─────────────────────────────────────────────────────────────────────

    directory: str = "."
    """
    Storage root for /files. Must already exist; every stored file lives
    directly inside it.
    """

    enable_sessions: bool = True
    """Session cookies plus security headers on every response."""

    enable_api: bool = True
    """The /api/* JSON endpoints."""

    session_idle_timeout: float = 30 * 60
    """Seconds without a request before a session is swept."""

    session_sweep_interval: float = 5 * 60
    """Seconds between sweeps of expired sessions."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'json' or 'text'.
    JSON is better for log aggregators, text for humans.
    """

    log_requests: bool = True
    """Write one access log line per request."""

    @property
    def root(self) -> Path:
        """The storage directory as a resolved Path."""
        return Path(self.directory).resolve()

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST       Server host (default: 0.0.0.0)
        HTTP_PORT       Server port (default: 8080)
        HTTP_DIRECTORY  Storage root (default: .)
        HTTP_TIMEOUT    Socket deadline in seconds (default: none)
        HTTP_SESSIONS   "0"/"false"/"no"/"off" disables sessions
        HTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================

        Raises:
            ValueError: A numeric variable doesn't parse.
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        sessions = os.getenv("HTTP_SESSIONS", "1")

        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            directory=os.getenv("HTTP_DIRECTORY", "."),
            timeout=float(timeout) if timeout else None,
            enable_sessions=sessions.strip().lower() not in _FALSE_VALUES,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast: everything here is checked before the socket is bound.

        Raises:
            ValueError: With a message naming the offending setting.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not Path(self.directory).is_dir():
            raise ValueError(f"Directory does not exist: {self.directory}")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < 0:
            raise ValueError("max_request_size must be >= 0")

        if self.max_line_size < 1:
            raise ValueError("max_line_size must be >= 1")

        if not 1 <= self.gzip_level <= 9:
            raise ValueError(f"Invalid gzip_level: {self.gzip_level}. Must be 1-9.")

        if self.session_idle_timeout <= 0:
            raise ValueError("session_idle_timeout must be > 0")

        if self.session_sweep_interval <= 0:
            raise ValueError("session_sweep_interval must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format!r}. Must be one of {LOG_FORMATS}.")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid log_level: {self.log_level!r}")
