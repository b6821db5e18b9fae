"""
=============================================================================
FSERV CLI ENTRY POINT
=============================================================================

    python -m fserv                 # serve the current directory on :8000
    python -m fserv -p 9000         # another port (1024 < port < 65536)
    python -m fserv -l DEBUG        # verbose logging
    python -m fserv -w 32           # up to 32 worker threads
    python -m fserv --log-format json

The served directory is always the working directory at startup (or
FSERV_ROOT when set). The server runs until Ctrl+C or SIGTERM.

=============================================================================
EXIT STATUS
=============================================================================

    0   stopped by a signal
    1   could not bind (protected port, port in use, other bind error)
    2   bad command line (invalid port, unknown flag)

=============================================================================
"""

import argparse
import errno
import logging
import os
import sys
from typing import Optional, Sequence

from . import __version__
from .server import FileServer
from .config import ServerConfig, parse_cli_port
from .middleware import LoggingMiddleware


logger = logging.getLogger(__name__)


def _port(value: str) -> int:
    """argparse type for --port."""
    try:
        return parse_cli_port(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def bind_error_message(error: OSError, port: int) -> str:
    """Operator-facing message for a failed bind."""
    if error.errno == errno.EACCES:
        return f"port {port} is protected"
    if error.errno == errno.EADDRINUSE:
        return f"port {port} is in use"
    return f"failed to bind: {error.strerror or error}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fserv",
        description="Serve the current directory over HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fserv                       # Serve the current directory on port 8000
  fserv -p 9000               # Custom port
  fserv -l DEBUG              # Verbose logging
  fserv --log-format json     # JSON access log
        """
    )

    parser.add_argument(
        "--port", "-p",
        type=_port,
        default=None,
        help="Port to listen on, 1025-65535 (default: 8000)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 16)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fserv {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Merge CLI flags over the environment and defaults.

    A port from FSERV_PORT follows the same rule as --port.

    Raises:
        ValueError: If FSERV_PORT or another value is invalid.
    """
    port = args.port
    if port is None and os.getenv("FSERV_PORT"):
        port = parse_cli_port(os.environ["FSERV_PORT"])

    overrides = dict(
        port=port,
        max_workers=args.workers,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    if args.workers is not None:
        overrides["min_workers"] = min(ServerConfig.min_workers, args.workers)
    return ServerConfig.from_env(**overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run fserv from the command line.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        server = FileServer(config)
    except ValueError as e:
        parser.error(str(e))

    server.use(LoggingMiddleware(log_format=config.log_format))

    try:
        server.bind()
    except OSError as e:
        logger.debug(f"bind failed: {e!r}")
        print(bind_error_message(e, config.port), file=sys.stderr)
        return 1

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
