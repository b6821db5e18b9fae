"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fserv import FileServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request as a browser would send it."""
    return (
        b"GET /a.txt HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request (never supported)."""
    return (
        b"POST /a.txt HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"Content-Length: 2\r\n"
        b"\r\n"
        b"hi"
    )


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """
    A small directory tree to serve:

        a.txt            "hi"
        data.json        {"ok": true}
        notes.xyz        unregistered extension
        .secret          hidden
        sub/index.html   "<p>hi</p>"
        sub/other.txt
        empty/
        docs/guide.txt
        docs/img/
    """
    (tmp_path / "a.txt").write_text("hi")
    (tmp_path / "data.json").write_text('{"ok": true}')
    (tmp_path / "notes.xyz").write_bytes(b"\x00\x01\x02")
    (tmp_path / ".secret").write_text("nope")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "index.html").write_text("<p>hi</p>")
    (tmp_path / "sub" / "other.txt").write_text("other")
    (tmp_path / "empty").mkdir()
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "guide.txt").write_text("read me")
    (tmp_path / "docs" / "img").mkdir()
    return tmp_path


@pytest.fixture
def config(site_root: Path) -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(site_root),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@dataclass
class RawResponse:
    """A response read off the wire."""

    status_line: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    @property
    def status(self) -> int:
        return int(self.status_line.split(" ")[1])

    @property
    def header_names(self) -> list[str]:
        return [name for name, _ in self.headers]

    def header(self, name: str):
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


def parse_raw_response(data: bytes) -> RawResponse:
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = []
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers.append((name, value.strip()))
    return RawResponse(status_line=lines[0], headers=headers, body=body)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def send(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, read until the server closes the connection."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            if raw:
                s.sendall(raw)
            else:
                s.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                chunk = s.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def request(self, raw: bytes) -> RawResponse:
        return parse_raw_response(self.send(raw))

    def get(self, path: str) -> RawResponse:
        return self.request(f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running FileServer serving site_root."""
    test_srv = TestServer(FileServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory() -> Generator:
    """Start FileServers built by the test; stop them afterwards."""
    started: list[TestServer] = []

    def start(server: FileServer) -> TestServer:
        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()
