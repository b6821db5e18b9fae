"""
=============================================================================
MIDDLEWARE MODULE
=============================================================================

Wrappers around the request handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Middleware         │ Purpose                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ LoggingMiddleware  │ Access log line per request (text or JSON)     │
    └─────────────────────────────────────────────────────────────────────┘

Usage:
    from fserv import FileServer
    from fserv.middleware import LoggingMiddleware

    server = FileServer(config)
    server.use(LoggingMiddleware(log_format="json"))

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
