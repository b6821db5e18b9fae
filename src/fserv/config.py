"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m fserv --port 9000                               │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── FSERV_PORT=9000 python -m fserv                           │
    │                                                                      │
    │   3. Defaults below                                                  │
    │      └── port 8000, all interfaces, current directory              │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SIZE LIMITS
=============================================================================

Three ceilings bound the memory a single request can cost:

    request_buffer_size   bytes read from the socket for the request line
    max_path_length       characters in the request path        → else 400
    max_listing_size      bytes of a generated listing page     → else 500

File bodies are not limited: they are streamed in chunk_size pieces.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


# Request-line bytes around the path: "GET " and " HTTP/1.1\r\n"
REQUEST_LINE_OVERHEAD = len("GET ") + len(" HTTP/1.1\r\n")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, timeout
    LIMITS      request_buffer_size, max_path_length, max_listing_size,
                chunk_size
    FILES       root_dir, index_file
    THREADING   min_workers, max_workers, queue_size
    LOGGING     log_level, log_format
    IDENTITY    server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" listens on all interfaces."""

    port: int = 8000
    """Port to listen on. 0 lets the OS pick one (tests)."""

    backlog: int = 64
    """Pending connections the kernel queues before refusing new ones."""

    timeout: Optional[float] = 30.0
    """
    Seconds a client has to deliver its request line, counted from
    accept, and the wait allowed for each write. Stops a slow or silent
    client from holding a worker forever.
    None disables it.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LIMITS
    # ─────────────────────────────────────────────────────────────────────

    request_buffer_size: int = 2048
    """
    Most bytes read from a connection before parsing the request line.
    Must leave room for "GET ", max_path_length and " HTTP/1.1\r\n".
    """

    max_path_length: int = 1024
    """Longest accepted request path; longer paths get 400."""

    max_listing_size: int = 64 * 1024
    """Largest directory listing page in bytes; larger ones get 500."""

    chunk_size: int = 64 * 1024
    """Read size when streaming a file to the client."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = field(default_factory=os.getcwd)
    """Directory to serve. Defaults to the working directory at startup."""

    index_file: str = "index.html"
    """Served in place of a listing when present in a directory."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads under load."""

    queue_size: int = 128
    """
    Accepted connections waiting for a worker. When full, the accept
    loop blocks until a worker frees up.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" (Apache-like) or "json"."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "fserv"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        FSERV_HOST       Bind address        (default: 0.0.0.0)
        FSERV_PORT       Port                (default: 8000)
        FSERV_ROOT       Directory to serve  (default: current directory)
        FSERV_WORKERS    Max worker threads  (default: 16)
        FSERV_TIMEOUT    Socket timeout, s   (default: 30)
        FSERV_LOG_LEVEL  Logging level       (default: INFO)

        =====================================================================

        Args:
            **overrides: Values that win over the environment (CLI flags).
        """
        values = dict(
            host=os.getenv("FSERV_HOST", "0.0.0.0"),
            port=int(os.getenv("FSERV_PORT", "8000")),
            root_dir=os.getenv("FSERV_ROOT") or os.getcwd(),
            max_workers=int(os.getenv("FSERV_WORKERS", "16")),
            timeout=float(os.getenv("FSERV_TIMEOUT", "30")),
            log_level=os.getenv("FSERV_LOG_LEVEL", "INFO"),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called when the server is constructed, so a bad value fails at
        startup rather than on the first request.

        Raises:
            ValueError: Describing the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"root_dir is not a directory: {self.root_dir}")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.max_path_length < 1:
            raise ValueError("max_path_length must be >= 1")

        if self.request_buffer_size < self.max_path_length + REQUEST_LINE_OVERHEAD:
            raise ValueError(
                f"request_buffer_size must be >= max_path_length + {REQUEST_LINE_OVERHEAD}"
            )

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', not {self.log_format!r}")


# =============================================================================
# CLI PORT RULE
# =============================================================================
#
# The command line is stricter than ServerConfig: only unprivileged ports
# strictly between 1024 and 65536 are accepted there.
#
# =============================================================================

MIN_CLI_PORT = 1024   # exclusive
MAX_CLI_PORT = 65536  # exclusive


def parse_cli_port(value: str) -> int:
    """
    Parse a --port value.

    Raises:
        ValueError: If value is not an integer with 1024 < port < 65536.
    """
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid port: {value}") from None

    if not MIN_CLI_PORT < port < MAX_CLI_PORT:
        raise ValueError(f"invalid port: {value}")
    return port
