"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

The protocol half of the server: what goes in, what comes out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Parses the first line only: "GET <path> ..."                       │
    │ Anything else is HTTPParseError → 400                              │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Status line + Connection/Server/Content-Length/Content-Type/Date   │
    │ Body from memory (listings, errors) or streamed from a file        │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)   200 / 400 / 404 / 500              │
    │ MIME TYPES (mime_types.py)       extension → Content-Type          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    error_response,
    bad_request,      # 400 Bad Request
    not_found,        # 404 Not Found
    internal_error,   # 500 Internal Server Error
)
from .status_codes import HTTPStatus
from .mime_types import MIME_TYPES, get_mime_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "error_response",
    "bad_request",
    "not_found",
    "internal_error",

    # Status codes
    "HTTPStatus",

    # MIME types
    "MIME_TYPES",
    "get_mime_type",
]
