"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per handled request, on the "fserv.access" logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default, Apache-like):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /a.txt" 200 2 0.41ms│
    │ ───────────────────────────────────────────────────────────────────│
    │ IP          Timestamp                Method/Path  Status Size Time  │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/a.txt",       │
    │  "client_ip": "127.0.0.1", "status_code": 200,                      │
    │  "content_length": 2, "duration_ms": 0.41, "timestamp": "..."}      │
    └─────────────────────────────────────────────────────────────────────┘

Size is the Content-Length that will be sent. Duration covers path
resolution and opening the file, not streaming it.

Requests rejected by the parser never reach the middleware; the server
logs those itself.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Configure separately from the server logs, e.g.
#   logging.getLogger("fserv.access").addHandler(file_handler)
logger = logging.getLogger("fserv.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    Attributes:
        request_id: Short random ID for correlating log lines.
        method: Always "GET" for requests that got this far.
        path: Request path as sent by the client.
        client_ip: Peer address.
        status_code: Response status.
        content_length: Response body size in bytes.
        duration_ms: Time spent in the handler.
        timestamp: Local time, Apache format.
    """

    request_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging middleware. Add it first so it sees every request.

    Usage:
        server.use(LoggingMiddleware(log_format="json"))
        server.use(LoggingMiddleware(skip_paths=["/favicon.ico"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level the access lines are logged at.
            skip_paths: Request paths that are not logged.
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', not {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
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

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
