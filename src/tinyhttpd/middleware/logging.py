"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request on the "tinyhttpd.access" logger.

    TEXT (Apache style):
        127.0.0.1 - - [01/Jan/2026:12:00:00 +0000] "GET /echo/hi" 200 2 0.41ms

    JSON (for log aggregators):
        {"request_id": "3f2a9c1e", "method": "GET", "path": "/echo/hi",
         "client_ip": "127.0.0.1", "user_agent": "curl/8.5.0",
         "status_code": 200, "content_length": 2, "duration_ms": 0.41,
         "timestamp": "01/Jan/2026:12:00:00 +0000"}

Every response also gets an X-Request-ID header matching the logged
request_id, so a client report can be traced to its log line.

content_length is the handler's body size, before any gzip: compression is
applied later, when the connection encodes the response.

5xx responses are logged at WARNING, everything else at the configured
level.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


# Namespaced so it can be routed separately:
#   logging.getLogger("tinyhttpd.access").addHandler(file_handler)
logger = logging.getLogger("tinyhttpd.access")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be FIRST in the pipeline so that its timing covers everything
    and the request ID exists for all downstream code:

        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(SessionMiddleware(store))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        """
        Args:
            log_format: "text" (Apache style) or "json".
            include_request_id: Add X-Request-ID to every response.
            log_level: Level for non-5xx access lines.
        """
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        # 8 hex chars: short enough to read, plenty for correlating logs
        request_id = uuid.uuid4().hex[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.WARNING if HTTPStatus(response.status).is_server_error else self.log_level
        if self.log_format == "json":
            logger.log(level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(level, log_entry.to_text())

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        return response
