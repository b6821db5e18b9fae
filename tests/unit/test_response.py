"""
Unit tests for HTTP response building and writing.
"""

import io
import re
from datetime import datetime, timezone

import pytest

from fserv.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    error_response,
    bad_request,
    not_found,
    internal_error,
    format_http_date,
)


class FakeConnection:
    """Collects what would have been sent to the socket."""

    def __init__(self, fail_after: int = None):
        self.sent: list[bytes] = []
        self.fail_after = fail_after

    def send_response(self, data: bytes) -> bool:
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            return False
        self.sent.append(data)
        return True

    @property
    def data(self) -> bytes:
        return b"".join(self.sent)


def header_names(head: bytes) -> list[str]:
    lines = head.decode("latin-1").split("\r\n")[1:]
    return [line.split(":", 1)[0] for line in lines if line]


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_header_order(self):
        """Test Connection, Server, Content-Length, Content-Type, Date, extras."""
        response = HTTPResponse(
            headers={"X-Extra": "1", "Content-Type": "text/plain"},
            body=b"x",
        )
        assert header_names(response.head_bytes()) == [
            "Connection", "Server", "Content-Length", "Content-Type", "Date", "X-Extra",
        ]

    def test_no_content_type_unless_set(self):
        """Test that Content-Type is omitted when unknown."""
        head = HTTPResponse(body=b"x").head_bytes()
        assert b"Content-Type" not in head
        assert header_names(head) == ["Connection", "Server", "Content-Length", "Date"]

    def test_default_headers(self):
        """Test Connection: close and Server: fserv."""
        head = HTTPResponse().head_bytes()
        assert b"Connection: close\r\n" in head
        assert b"Server: fserv\r\n" in head
        assert b"Content-Length: 0\r\n" in head

    def test_custom_server_name(self):
        """Test overriding the Server header."""
        assert b"Server: other\r\n" in HTTPResponse().head_bytes("other")

    def test_content_length_not_trusted_from_headers(self):
        """Test that a stale Content-Length header is replaced."""
        response = HTTPResponse(headers={"Content-Length": "99"}, body=b"abc")
        assert b"Content-Length: 3\r\n" in response.head_bytes()

    def test_date_header_format(self):
        """Test that Date is an RFC 1123 GMT date."""
        head = HTTPResponse().head_bytes().decode("latin-1")
        match = re.search(r"Date: (.*)\r\n", head)
        assert match
        assert re.fullmatch(
            r"[A-Z][a-z]{2}, \d{2} [A-Z][a-z]{2} \d{4} \d{2}:\d{2}:\d{2} GMT",
            match.group(1),
        )

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"

    def test_head_ends_with_blank_line(self):
        """Test the header block terminator."""
        assert HTTPResponse().head_bytes().endswith(b"\r\n\r\n")


class TestStreamedResponse:
    """Tests for file-backed responses."""

    def test_content_length_from_file_size(self):
        """Test that streamed Content-Length is the measured size."""
        response = ResponseBuilder().file(io.BytesIO(b"hello")).build()
        assert response.is_streamed
        assert response.content_length == 5
        assert b"Content-Length: 5\r\n" in response.head_bytes()

    def test_to_bytes_rejects_streamed(self):
        """Test that streamed responses must go through write_to."""
        response = ResponseBuilder().file(io.BytesIO(b"x")).build()
        with pytest.raises(ValueError):
            response.to_bytes()

    def test_iter_body_chunks(self):
        """Test that the file is read in chunk_size pieces."""
        response = ResponseBuilder().file(io.BytesIO(b"abcdefg")).build()
        assert list(response.iter_body(chunk_size=3)) == [b"abc", b"def", b"g"]

    def test_iter_body_stops_at_measured_size(self):
        """Test that bytes beyond file_size are not sent."""
        response = ResponseBuilder().file(io.BytesIO(b"abcdef"), size=4).build()
        assert b"".join(response.iter_body()) == b"abcd"

    def test_iter_body_short_file(self):
        """Test a file that ends before its measured size."""
        response = ResponseBuilder().file(io.BytesIO(b"ab"), size=10).build()
        assert b"".join(response.iter_body()) == b"ab"

    def test_empty_file(self):
        """Test that an empty file sends headers only."""
        conn = FakeConnection()
        response = ResponseBuilder().file(io.BytesIO(b"")).build()
        assert response.write_to(conn)
        assert b"Content-Length: 0\r\n" in conn.data
        assert conn.data.endswith(b"\r\n\r\n")

    def test_write_to_sends_head_then_body(self):
        """Test the full wire image of a streamed response."""
        conn = FakeConnection()
        response = ResponseBuilder().file(io.BytesIO(b"hi")).content_type("text/plain").build()

        assert response.write_to(conn, chunk_size=1)

        assert conn.sent[0].startswith(b"HTTP/1.1 200 OK\r\n")
        assert conn.sent[1:] == [b"h", b"i"]

    def test_write_to_stops_on_send_failure(self):
        """Test that a failed send aborts the write."""
        conn = FakeConnection(fail_after=1)
        response = ResponseBuilder().file(io.BytesIO(b"abc")).build()
        assert response.write_to(conn, chunk_size=1) is False
        assert len(conn.sent) == 1

    def test_close_releases_file(self):
        """Test that closing the response closes its file."""
        file = io.BytesIO(b"x")
        with ResponseBuilder().file(file).build() as response:
            assert response.is_streamed
        assert file.closed
        assert response.body_file is None

    def test_close_twice(self):
        """Test that close is idempotent."""
        response = ResponseBuilder().file(io.BytesIO(b"x")).build()
        response.close()
        response.close()

    def test_close_on_exception(self):
        """Test that the file is closed when the block raises."""
        file = io.BytesIO(b"x")
        with pytest.raises(RuntimeError):
            with ResponseBuilder().file(file).build():
                raise RuntimeError("boom")
        assert file.closed


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()
        assert response.status == HTTPStatus.NOT_FOUND

    def test_html_body(self):
        """Test HTML body."""
        response = ResponseBuilder().html("<p>hi</p>").build()
        assert response.headers["Content-Type"] == "text/html"
        assert response.body == b"<p>hi</p>"

    def test_text_body(self):
        """Test plain text body."""
        response = ResponseBuilder().text("hi").build()
        assert response.headers["Content-Type"] == "text/plain"

    def test_body_encodes_utf8(self):
        """Test that str bodies are UTF-8 encoded."""
        response = ResponseBuilder().body("é").build()
        assert response.body == "é".encode("utf-8")
        assert response.content_length == 2

    def test_content_type_none_removes_header(self):
        """Test that content_type(None) leaves the header out."""
        response = ResponseBuilder().text("x").content_type(None).build()
        assert "Content-Type" not in response.headers

    def test_file_measures_size_and_rewinds(self):
        """Test that file() measures the size and reads from the start."""
        file = io.BytesIO(b"hello")
        file.seek(3)
        response = ResponseBuilder().file(file).build()
        assert response.file_size == 5
        assert b"".join(response.iter_body()) == b"hello"

    def test_close_connection(self):
        """Test Connection: close."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"


class TestErrorResponses:
    """Tests for the minimal error pages."""

    @pytest.mark.parametrize("factory, code", [
        (bad_request, 400),
        (not_found, 404),
        (internal_error, 500),
    ])
    def test_error_body(self, factory, code):
        """Test the ":( code" body and text/plain type."""
        response = factory()
        assert response.status == code
        assert response.body == f":( {code}".encode()
        assert response.headers["Content-Type"] == "text/plain"

    def test_not_found_wire_format(self):
        """Test the complete 404 header set."""
        head = not_found().head_bytes()
        assert head.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert b"Content-Length: 6\r\n" in head
        assert header_names(head) == [
            "Connection", "Server", "Content-Length", "Content-Type", "Date",
        ]

    def test_error_response(self):
        """Test building an error from a status."""
        response = error_response(HTTPStatus.BAD_REQUEST)
        assert response.to_bytes().endswith(b"\r\n\r\n:( 400")


class TestFormatHttpDate:
    """Tests for format_http_date."""

    def test_known_date(self):
        """Test a fixed timestamp."""
        dt = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_single_digit_day(self):
        """Test zero padding."""
        dt = datetime(2024, 3, 1, 0, 0, 0, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Fri, 01 Mar 2024 00:00:00 GMT"
