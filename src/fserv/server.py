"""
=============================================================================
FILE SERVER
=============================================================================

Wires the components together into a running static file server.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. SocketServer.accept()            main thread                   │
    │          │                                                           │
    │          ▼                                                           │
    │   2. ThreadPool.submit(conn)          blocks while the queue is full │
    │          │                                                           │
    │          ▼                                                           │
    │   3. Connection.read_request()        worker thread                 │
    │          │                                                           │
    │          ▼                                                           │
    │   4. RequestParser.parse()  ── HTTPParseError ──► 400 ":( 400"      │
    │          │                                                           │
    │          ▼                                                           │
    │   5. middleware → StaticFileHandler.handle()                        │
    │          │            └── unexpected exception ──► 500 ":( 500"     │
    │          ▼                                                           │
    │   6. HTTPResponse.write_to(conn)      headers, then body chunks     │
    │          │                                                           │
    │          ▼                                                           │
    │   7. response.close(), conn.close()   always, on every path         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Exactly one request is served per connection.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .handlers import StaticFileHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, error_response, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


class FileServer:
    """
    Multi-threaded static file server.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(port=8000, root_dir="/srv/www")
        server = FileServer(config)
        server.use(LoggingMiddleware())
        server.run()          # blocks until SIGINT / SIGTERM

    From another thread (tests):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready()
        host, port = server.address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults serve the working
                    directory on 0.0.0.0:8000.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            max_queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_path_length=self.config.max_path_length)
        self._static = StaticFileHandler(
            self.config.root_dir,
            index_file=self.config.index_file,
            max_listing_size=self.config.max_listing_size,
        )
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._ready = threading.Event()
        self._running = False

    def use(self, middleware: Middleware) -> "FileServer":
        """Add middleware. First added runs outermost. Returns self."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    def bind(self) -> Tuple[str, int]:
        """
        Configure logging and bind the listening socket.

        Separate from run() so callers can report bind failures before
        any worker starts. run() calls it when needed.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._setup_logging()
        return self._socket_server.bind()

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the address cannot be bound.
        """
        if not self._socket_server.is_bound:
            self.bind()
        self._handler = self._middleware.wrap(self._static.handle)

        self._running = True
        self._thread_pool.start()
        host, port = self.address
        logger.info(
            f"Serving {self.config.root_dir} on http://{host}:{port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )
        self._ready.set()

        try:
            self._socket_server.serve_forever(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def close(self):
        """Release the socket of a server that was bound but never run."""
        self._socket_server.close()

    def _setup_logging(self):
        """Configure logging once, based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fserv").setLevel(level)

    def _shutdown(self):
        """Stop accepting, let in-flight responses finish, stop workers."""
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        self._ready.clear()
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs in the accept loop).

        submit() blocks while the queue is full, so excess clients wait
        in the listen backlog instead of getting an error.
        """
        self._thread_pool.submit(self._process_connection, args=(conn,))

    def _process_connection(self, conn: Connection):
        """
        Serve one request on conn, then close it (runs in a worker).
        """
        with conn:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                logger.debug(f"[{conn.id}] {conn.client_ip} sent nothing before the timeout")
                return

            if raw_request is None:
                logger.debug(f"[{conn.id}] {conn.client_ip} closed without a request")
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] {conn.client_ip} bad request: {e}")
                self._send(conn, error_response(HTTPStatus(e.status_code)))
                return

            try:
                response = self._handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error for {request.path}: {e}")
                response = internal_error()

            self._send(conn, response)

    def _send(self, conn: Connection, response: HTTPResponse):
        """Write the response and release its file, whatever happens."""
        with response:
            if not response.write_to(
                conn,
                server_name=self.config.server_name,
                chunk_size=self.config.chunk_size,
            ):
                logger.debug(f"[{conn.id}] Client went away mid-response")

