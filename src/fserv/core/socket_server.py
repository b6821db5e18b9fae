"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket: create it, bind it, accept connections and
hand each one to a callback.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the listening socket
    2. bind()      Reserve host:port          ← fails with EACCES / EADDRINUSE
    3. listen()    Kernel starts queueing connections (backlog)
    4. accept()    Returns a NEW socket per client; the listener keeps going
    5. close()     Release the listener on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   0.0.0.0:8000        │
                    └───────────┬───────────┘
                                │ accept()
                ┌───────────────┼───────────────┐
                ▼               ▼               ▼
           ┌─────────┐     ┌─────────┐     ┌─────────┐
           │ Client  │     │ Client  │     │ Client  │
           │ Socket  │     │ Socket  │     │ Socket  │
           └─────────┘     └─────────┘     └─────────┘

Binding and serving are separate steps. The CLI binds first so it can
turn a bind failure into a readable message before any worker starts.

=============================================================================
"""

import socket
import signal
import threading
import logging
from typing import Callable, Optional, Tuple

from .connection import Connection
from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Accept loop over one listening TCP socket.

    Features:
    - SO_REUSEADDR so a restart does not wait out TIME_WAIT
    - 1 second accept() timeout so shutdown() is noticed promptly
    - SIGTERM/SIGINT trigger a graceful shutdown (main thread only)

    Usage:
        server = SocketServer(config)
        server.bind()                     # raises OSError on failure
        server.serve_forever(on_connect)  # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before bind() this is the configured address. After it, the port
        is the real one, which matters when the config asked for port 0.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with its options set."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Headers go out without waiting to coalesce with the body
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check for shutdown
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        Turn SIGTERM (kill, docker stop) and SIGINT (Ctrl+C) into shutdown().

        signal.signal() only works in the main thread; servers started in
        a background thread (tests) skip this.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self) -> Tuple[str, int]:
        """
        Create, bind and listen.

        Returns:
            The bound (host, port).

        Raises:
            OSError: If the address cannot be bound. errno tells why
                     (EACCES: protected port, EADDRINUSE: port taken).
        """
        if self._socket is not None:
            return self.address

        self._shutdown_event.clear()
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        return host, port

    def serve_forever(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        Args:
            connection_handler: Called with each accepted Connection.
                                It may block (full worker queue), which
                                holds back further accepts.
        """
        if self._socket is None:
            raise RuntimeError("bind() must be called before serve_forever()")

        self._running = True
        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        ┌─────────────────────────────────────────────────────────────────┐
        │   while running:                                                 │
        │       accept()  ── timeout (1s) ──► check shutdown, loop         │
        │          │                                                       │
        │          ▼                                                       │
        │       Connection(sock, addr, buffer_size, timeout)              │
        │          │                                                       │
        │          ▼                                                       │
        │       connection_handler(conn)   ── FileServer queues it        │
        └─────────────────────────────────────────────────────────────────┘
        """
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Listener closed under us: shutting down
                if not self._shutdown_event.is_set():
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.request_buffer_size,
                timeout=self.config.timeout,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"Failed to dispatch connection from {client_address[0]}: {e}")
                conn.close()

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once, from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def close(self):
        """Release the listening socket of a server that never served."""
        if not self._running:
            self._cleanup()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        logger.info("Socket server stopped")

