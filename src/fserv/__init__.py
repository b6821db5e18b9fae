"""
=============================================================================
FSERV - Minimal HTTP/1.1 Static File Server
=============================================================================

Serves a directory tree over HTTP using raw sockets and a thread pool:
files, index.html pages and generated directory listings.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fserv/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m fserv)
    ├── server.py            # FileServer: wires everything together
    ├── config.py            # ServerConfig dataclass, CLI port rule
    ├── core/                # Networking plumbing
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Per-client socket wrapper
    │   └── thread_pool.py   # Worker threads
    ├── http/                # Protocol pieces
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Response building and writing
    │   ├── status_codes.py  # 200 / 400 / 404 / 500
    │   └── mime_types.py    # Extension → Content-Type
    ├── handlers/            # What to send back
    │   ├── resolver.py      # URL path → filesystem path
    │   ├── listing.py       # Directory listing pages
    │   └── static.py        # File / index / listing / 404
    └── middleware/
        ├── base.py          # Middleware chain
        └── logging.py       # Access log

=============================================================================
QUICK START
=============================================================================

    from fserv import FileServer, ServerConfig
    from fserv.middleware import LoggingMiddleware

    server = FileServer(ServerConfig(port=8000, root_dir="/srv/www"))
    server.use(LoggingMiddleware())
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import FileServer

__all__ = [
    "FileServer",
    "ServerConfig",
    "__version__",
]
