"""
=============================================================================
TINYHTTPD CLI ENTRY POINT
=============================================================================

Command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on 0.0.0.0:8080
    python -m tinyhttpd

    # Custom storage root and port
    python -m tinyhttpd --directory /srv/files --port 3000

    # Plain protocol engine: no cookies, no security headers, no /api/*
    python -m tinyhttpd --no-sessions --no-api

    # JSON access log for an aggregator
    python -m tinyhttpd --log-format json

Every option defaults to its environment variable (HTTP_HOST, HTTP_PORT,
HTTP_DIRECTORY, HTTP_TIMEOUT, HTTP_SESSIONS, HTTP_LOG_LEVEL), then to the
ServerConfig default. Command-line flags win.

=============================================================================
EXIT CODES
=============================================================================

    0   clean shutdown (SIGINT / SIGTERM)
    1   the listening socket could not be bound
    2   invalid configuration (bad flag, bad env var, missing directory)

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .server import HTTPServer


logger = logging.getLogger("tinyhttpd")


EXIT_OK = 0
EXIT_BIND_FAILED = 1
EXIT_BAD_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyhttpd",
        description="HTTP/1.1 server with a file store, built on raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tinyhttpd                          # Serve . on 0.0.0.0:8080
  python -m tinyhttpd -d /srv/files -p 3000    # Custom root and port
  python -m tinyhttpd --timeout 30             # Drop idle clients after 30s
  python -m tinyhttpd --no-sessions            # No cookies, no security headers
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on, 0 for any free port (default: 8080)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-socket read/write deadline in seconds (default: none)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        help="Storage root for /files (default: current directory)"
    )

    parser.add_argument(
        "--no-sessions",
        dest="enable_sessions",
        action="store_false",
        help="Disable session cookies and security headers"
    )

    parser.add_argument(
        "--no-api",
        dest="enable_api",
        action="store_false",
        help="Disable the /api/* JSON endpoints"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--quiet", "-q",
        dest="log_requests",
        action="store_false",
        help="Don't write an access log line per request"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tinyhttpd {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        The process exit code.
    """
    parser = build_parser()

    # =========================================================================
    # DEFAULTS FROM THE ENVIRONMENT
    # =========================================================================

    try:
        env_config = ServerConfig.from_env()
    except ValueError as e:
        parser.error(f"invalid environment: {e}")  # exits with 2

    parser.set_defaults(
        host=env_config.host,
        port=env_config.port,
        timeout=env_config.timeout,
        directory=env_config.directory,
        enable_sessions=env_config.enable_sessions,
        enable_api=env_config.enable_api,
        log_level=env_config.log_level.upper(),
        log_format=env_config.log_format,
        log_requests=env_config.log_requests,
    )

    args = parser.parse_args(argv)

    # =========================================================================
    # CREATE CONFIGURATION
    # =========================================================================

    config = ServerConfig(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        directory=args.directory,
        enable_sessions=args.enable_sessions,
        enable_api=args.enable_api,
        log_level=args.log_level,
        log_format=args.log_format,
        log_requests=args.log_requests,
    )

    # =========================================================================
    # CREATE AND RUN SERVER
    # =========================================================================

    try:
        server = HTTPServer(config)
    except ValueError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return EXIT_BAD_CONFIG

    try:
        server.run()
    except OSError as e:
        # SocketServer has already logged the details
        logger.debug(f"Exiting after bind failure: {e}")
        return EXIT_BIND_FAILED

    return EXIT_OK


# =============================================================================
# ENTRY POINT
# =============================================================================
# This allows running: python -m tinyhttpd

if __name__ == "__main__":
    sys.exit(main())
