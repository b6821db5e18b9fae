"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket: read the request line, write the
response, close cleanly.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does not preserve message boundaries. A client that sends

    GET /a.txt HTTP/1.1\r\nHost: x\r\n\r\n

may arrive as "GET /a.t" followed by "xt HTTP/1.1\r\n...". So we keep
calling recv() until we hold a complete first line, and stop there:

    ┌─────────────────────────────────────────────────────────────────┐
    │  recv → "GET /a.t"                 no "\n" yet, keep reading    │
    │  recv → "xt HTTP/1.1\r\nHost..."   "\n" seen, stop              │
    │                                                                  │
    │  Also stop when:                                                 │
    │   - buffer_size bytes are buffered (the line is too long)       │
    │   - the client closed its side (recv returns b"")               │
    │   - the read deadline passed (the partial line is still parsed)  │
    └─────────────────────────────────────────────────────────────────┘

Headers and body are never read. Whatever the client sent beyond the
buffer is discarded when the connection closes.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │              │                        ▲
              └──────────────┴────────────────────────┘
                 (error, timeout, client gone)

One request per connection: after the response is written the
connection always closes.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)

# Most bytes discarded from the client while closing
DRAIN_LIMIT = 64 * 1024

# Total seconds spent discarding client bytes while closing
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""

    NEW = "new"                # Just accepted
    READING = "reading"        # Reading the request line
    PROCESSING = "processing"  # Resolving the path, building the response
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    One accepted client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BOUNDED READING                                                  │
    │     └── Buffer recv() chunks until the first line is complete       │
    │     └── Never hold more than buffer_size bytes                      │
    │                                                                      │
    │  2. TIMEOUTS                                                         │
    │     └── One deadline for the whole request read, from accept        │
    │     └── A bounded drain on close, then the socket is released       │
    │                                                                      │
    │  3. GRACEFUL CLOSE                                                   │
    │     └── shutdown(SHUT_WR), drain, close                             │
    │     └── Always runs, via the context manager                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log lines.
        state: Current ConnectionState.
        created_at: Accept timestamp.
        bytes_sent: Total bytes written to the client.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 2048
    timeout: Optional[float] = 30.0

    def __post_init__(self):
        """Apply the timeout to the socket (None means blocking)."""
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read until the first line is complete, up to buffer_size bytes.

        The timeout is one budget for the whole read, counted from accept,
        not a fresh wait per recv(). A client trickling a byte at a time
        still runs out of time.

        Returns:
            The bytes read (which may end mid-line if the client closed,
            the buffer filled up or the deadline passed), or None if the
            client closed without sending anything.

        Raises:
            TimeoutError: If the deadline passes before any byte arrives.
        """
        self.state = ConnectionState.READING
        buffer = b""

        try:
            while b"\n" not in buffer and len(buffer) < self.buffer_size:
                remaining = self.time_left()
                if remaining is not None:
                    if remaining <= 0:
                        raise socket.timeout("deadline passed")
                    self.socket.settimeout(remaining)
                chunk = self._recv(self.buffer_size - len(buffer))
                if not chunk:
                    break  # Client closed its side
                buffer += chunk
        except socket.timeout:
            if not buffer:
                raise TimeoutError("Request read timeout") from None
            logger.debug(f"[{self.id}] Read deadline passed with {len(buffer)} bytes buffered")

        # Writes get the full per-send timeout back
        self.socket.settimeout(self.timeout)
        self.state = ConnectionState.PROCESSING
        return buffer or None

    def time_left(self) -> Optional[float]:
        """Seconds until the read deadline, or None without a timeout."""
        if self.timeout is None:
            return None
        return self.created_at + self.timeout - time.time()

    def _recv(self, size: int) -> bytes:
        """recv() that maps an abrupt disconnect to end-of-stream."""
        try:
            return self.socket.recv(size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        sendall() loops until every byte is handed to the kernel; plain
        send() may stop after a partial write.

        Returns:
            True on success, False if the client disconnected or timed out.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except (socket.timeout, OSError) as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN: "no more data from us"
        2. drain whatever the client still sends (unread headers)
        3. close() releases the file descriptor

        Closing a socket with unread data makes the kernel send RST,
        which can destroy the response before the client reads it.
        Draining first avoids that.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            # At most DRAIN_LIMIT bytes within DRAIN_TIMEOUT seconds in total
            drain_deadline = time.time() + DRAIN_TIMEOUT
            drained = 0
            while drained < DRAIN_LIMIT:
                remaining = drain_deadline - time.time()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # socket.timeout is an OSError too

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Always close, never suppress the exception."""
        self.close()
        return False
