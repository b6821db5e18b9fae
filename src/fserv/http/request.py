"""
=============================================================================
HTTP REQUEST LINE PARSER
=============================================================================

Turns the first bytes read from a connection into an HTTPRequest.

=============================================================================
ONLY THE FIRST LINE MATTERS
=============================================================================

A full HTTP request has a request line, headers and an optional body:

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /docs/index.html HTTP/1.1\r\n     ← the only line we parse │
    │  Host: localhost:8000\r\n               ← ignored               │
    │  User-Agent: curl/8.0\r\n               ← ignored               │
    │  \r\n                                                            │
    └─────────────────────────────────────────────────────────────────┘

This server only answers GET for static files, so nothing beyond the
method and the path can change the response. Headers are never read
or validated.

=============================================================================
VALIDATION RULES
=============================================================================

Every rule below produces 400 Bad Request:

    "POST /a HTTP/1.1"      line does not start with "GET "
    "GET /a"                no space after the path token
    "GET a HTTP/1.1"        path does not start with "/"
    "GET //a HTTP/1.1"      path starts with "//"
    "GET /aaaa...a HTTP/1"  path longer than max_path_length

Note that "//" is rejected but ".." is not: keeping the resolved path
inside the server root is the PathResolver's job.

The path is used literally. "%20" stays "%20"; there is no
percent-decoding and no query string handling.

=============================================================================
"""

from dataclasses import dataclass, field


class HTTPParseError(Exception):
    """
    Raised when the request line is malformed.

    Carries the HTTP status to send back. For this server that is always
    400, but keeping it on the exception lets the caller stay generic:

        try:
            request = parser.parse(data)
        except HTTPParseError as e:
            send_error(e.status_code)
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed request line.

    Attributes:
        method:         Always "GET" once parsing succeeded.
        path:           Raw request path, starts with a single "/".
        version:        Whatever followed the path on the first line
                        ("HTTP/1.1" normally). Kept for logging only.
        client_address: (ip, port) of the peer.
        raw:            The bytes the request was parsed from.
    """

    method: str
    path: str
    version: str = ""
    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def request_line(self) -> str:
        """The request line as the client sent it (without CRLF)."""
        return f"{self.method} {self.path} {self.version}".rstrip()


class RequestParser:
    """
    Parses the request line out of raw request bytes.

    Usage:
        parser = RequestParser(max_path_length=1024)
        request = parser.parse(b"GET /a.txt HTTP/1.1\\r\\n\\r\\n")
        request.path   # "/a.txt"
    """

    METHOD = "GET"

    def __init__(self, max_path_length: int = 1024):
        """
        Args:
            max_path_length: Longest accepted request path in characters.
                             Longer paths are a 400, never truncated.
        """
        self.max_path_length = max_path_length

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Bytes read from the socket (at most one buffer's worth).
            client_address: Peer (ip, port), stored on the request.

        Returns:
            HTTPRequest with method "GET" and a validated path.

        Raises:
            HTTPParseError: On any of the rules in the module docstring.
        """
        line = self._first_line(data)

        # ─────────────────────────────────────────────────────────────────
        # METHOD
        # ─────────────────────────────────────────────────────────────────
        prefix = self.METHOD + " "
        if not line.startswith(prefix):
            raise HTTPParseError(f"Unsupported request line: {line[:64]!r}")

        # ─────────────────────────────────────────────────────────────────
        # PATH TOKEN
        # ─────────────────────────────────────────────────────────────────
        # The path runs up to the next space. No space means we cannot
        # tell where the path ends.
        path, sep, version = line[len(prefix):].partition(" ")
        if not sep:
            raise HTTPParseError("Request path is not terminated by a space")

        if not path.startswith("/"):
            raise HTTPParseError(f"Request path must start with '/': {path[:64]!r}")

        if path.startswith("//"):
            raise HTTPParseError(f"Request path must not start with '//': {path[:64]!r}")

        if len(path) > self.max_path_length:
            raise HTTPParseError(
                f"Request path too long: {len(path)} > {self.max_path_length}"
            )

        return HTTPRequest(
            method=self.METHOD,
            path=path,
            version=version,
            client_address=client_address,
            raw=data,
        )

    def _first_line(self, data: bytes) -> str:
        """
        Decode the first line of data.

        Lines end at "\\n" (a preceding "\\r" is dropped). If the buffer
        holds no newline at all, the whole buffer is the line.
        """
        end = data.find(b"\n")
        raw_line = data if end == -1 else data[:end]
        if raw_line.endswith(b"\r"):
            raw_line = raw_line[:-1]
        # Paths are matched against the filesystem as text; undecodable
        # bytes are replaced and will simply not match any file.
        return raw_line.decode("utf-8", errors="replace")


def parse_request(data: bytes, **kwargs) -> HTTPRequest:
    """
    Parse request bytes with a default parser.

    Convenience wrapper for tests and one-off use:
        request = parse_request(b"GET / HTTP/1.1\\r\\n\\r\\n")
    """
    return RequestParser(**kwargs).parse(data)
