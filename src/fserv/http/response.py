"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Frames HTTP/1.1 responses: status line, a fixed header set, and a body
that is either an in-memory buffer or a file streamed from disk.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                    ← status line               │
    │  Connection: close\r\n                                              │
    │  Server: fserv\r\n                                                  │
    │  Content-Length: 2\r\n                  ← always exact              │
    │  Content-Type: text/plain\r\n           ← only when known           │
    │  Date: Sun, 18 Oct 2026 09:12:44 GMT\r\n                            │
    │  \r\n                                   ← end of headers            │
    │  hi                                     ← body                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers are always written in that order. Extra headers, if any, follow
Date.

=============================================================================
TWO KINDS OF BODY
=============================================================================

    BUFFERED (listings, error pages)         STREAMED (served files)
    ────────────────────────────────         ───────────────────────
    body = b"<!DOCTYPE html>..."             body_file = open(path, "rb")
    Content-Length = len(body)               Content-Length = size from seek
    sent with one sendall()                  sent chunk by chunk

Headers go out BEFORE the body and cannot be amended afterwards, so the
length of a streamed file is measured up front by seeking to its end.
A file is never loaded into memory whole: a 4 GB video costs one chunk
of RAM per connection.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, Optional, Union
import logging
import os

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


DEFAULT_SERVER_NAME = "fserv"
DEFAULT_CHUNK_SIZE = 64 * 1024

# Headers written first, in this order, by HTTPResponse.head_bytes()
_ORDERED_HEADERS = ("Connection", "Server", "Content-Length", "Content-Type", "Date")


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to a connection.

    =========================================================================
    LIFECYCLE
    =========================================================================

        Handler builds          write_to(conn)             close()
        HTTPResponse  ─────►    head, then body   ─────►   releases the
                                chunks                     body file

    A response that owns a file MUST be closed, even when writing fails.
    Use it as a context manager:

        with handler.handle(request) as response:
            response.write_to(conn)

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_file: Optional[BinaryIO] = field(default=None, repr=False)
    file_size: int = 0
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Number of body bytes that follow the headers."""
        if self.body_file is not None:
            return self.file_size
        return len(self.body)

    @property
    def is_streamed(self) -> bool:
        return self.body_file is not None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header. Returns self for chaining."""
        self.headers[name] = value
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers (including the blank line).

        Content-Length is always derived from the body, never trusted from
        self.headers. Date is computed here, once, unless already set.

        Args:
            server_name: Value of the Server header.

        Returns:
            Header block ready for socket.sendall().
        """
        headers = dict(self.headers)
        headers.setdefault("Connection", "close")
        headers["Server"] = server_name
        headers["Content-Length"] = str(self.content_length)
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))

        lines = [self.status_line]
        for name in _ORDERED_HEADERS:
            if name in headers:
                lines.append(f"{name}: {headers.pop(name)}")
        for name, value in headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")
        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize a buffered response in one piece.

        Raises:
            ValueError: For streamed responses; use write_to() instead.
        """
        if self.is_streamed:
            raise ValueError("Streamed responses cannot be serialized to bytes")
        return self.head_bytes(server_name) + self.body

    def iter_body(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield the body in chunks of at most chunk_size bytes.

        A buffered body is yielded once. A file body is read until EOF or
        until file_size bytes were produced, whichever comes first: if the
        file grew after we measured it, the extra bytes would break the
        Content-Length we already sent.
        """
        if self.body_file is None:
            if self.body:
                yield self.body
            return

        remaining = self.file_size
        while remaining > 0:
            chunk = self.body_file.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk

        if remaining:
            # File shrank between seek and read. The client will notice
            # the short body; all we can do is say so.
            logger.warning(f"Body file ended {remaining} bytes early")

    def write_to(
        self,
        conn,
        server_name: str = DEFAULT_SERVER_NAME,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> bool:
        """
        Write the whole response to a connection.

        Args:
            conn: Anything with send_response(bytes) -> bool
                  (normally core.connection.Connection).
            server_name: Value of the Server header.
            chunk_size: Read size for streamed file bodies.

        Returns:
            True if every byte was handed to the socket, False as soon as
            a send fails (the client went away).
        """
        if not conn.send_response(self.head_bytes(server_name)):
            return False
        for chunk in self.iter_body(chunk_size):
            if not conn.send_response(chunk):
                return False
        return True

    # =========================================================================
    # RESOURCE MANAGEMENT
    # =========================================================================

    def close(self):
        """Close the body file, if any. Safe to call more than once."""
        if self.body_file is not None:
            try:
                self.body_file.close()
            finally:
                self.body_file = None

    def __enter__(self) -> "HTTPResponse":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(listing)
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._body_file: Optional[BinaryIO] = None
        self._file_size = 0

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: Optional[str]) -> "ResponseBuilder":
        """
        Set Content-Type. None leaves the header out entirely, which is
        what files with an unregistered extension get.
        """
        if content_type is None:
            self._headers.pop("Content-Type", None)
        else:
            self._headers["Content-Type"] = content_type
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a buffered body (str is encoded as UTF-8)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._body_file = None
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain text body."""
        return self.body(text).content_type("text/plain")

    def html(self, html: str) -> "ResponseBuilder":
        """HTML body."""
        return self.body(html).content_type("text/html")

    def file(self, file: BinaryIO, size: Optional[int] = None) -> "ResponseBuilder":
        """
        Stream the body from an open binary file.

        Args:
            file: File opened in "rb" mode. The response takes ownership
                  and closes it.
            size: Byte count to send. When None, measured by seeking to
                  the end of the file and back to the start.
        """
        if size is None:
            size = file.seek(0, os.SEEK_END)
            file.seek(0, os.SEEK_SET)
        self._body = b""
        self._body_file = file
        self._file_size = size
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Connection: close (the default for every response we send)."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            body_file=self._body_file,
            file_size=self._file_size,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    Names are spelled out here instead of using strftime("%a %b"),
    which follows the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(status: HTTPStatus) -> HTTPResponse:
    """
    Build one of the minimal error pages.

    The body is the short plain text existing clients expect:

        400 → ":( 400"
        404 → ":( 404"
        500 → ":( 500"
    """
    return (ResponseBuilder()
        .status(status)
        .text(f":( {status.value}")
        .build())


def bad_request() -> HTTPResponse:
    """400 Bad Request."""
    return error_response(HTTPStatus.BAD_REQUEST)


def not_found() -> HTTPResponse:
    """404 Not Found."""
    return error_response(HTTPStatus.NOT_FOUND)


def internal_error() -> HTTPResponse:
    """500 Internal Server Error."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
