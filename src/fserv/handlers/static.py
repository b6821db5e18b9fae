"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a parsed request into a response: a file, an index page, a
directory listing, or an error.

=============================================================================
DECISION FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /path                                                         │
    │       │                                                              │
    │       ▼                                                              │
    │   PathResolver.resolve()                                            │
    │       │                                                              │
    │       ├── MISSING ───────────────────────────────► 404 ":( 404"    │
    │       │                                                              │
    │       ├── FILE ──────────────┐                                       │
    │       │                      ▼                                       │
    │       │               open(path, "rb")                              │
    │       │                 │         │                                  │
    │       │                 ok      OSError ─────────► 500 ":( 500"    │
    │       │                 ▼                                            │
    │       │              200 + streamed file                            │
    │       │                                                              │
    │       └── DIRECTORY                                                  │
    │               │                                                      │
    │               ├── has index.html (regular file) ─► serve as FILE    │
    │               │                                                      │
    │               └── otherwise                                          │
    │                       │                                              │
    │                   DirectoryLister.render()                          │
    │                       │            │                                 │
    │                       ok       ListingError ─────► 500 ":( 500"    │
    │                       ▼                                              │
    │                   200 text/html listing                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The 500 branches are races: the path passed stat() a moment ago but can
no longer be opened (permissions changed, entry deleted). They are
answered, logged, and never retried.

=============================================================================
CONTENT-TYPE
=============================================================================

Files get a Content-Type only when their extension is in the MIME
registry. A file called "notes.xyz" is sent with NO Content-Type header.
Listings are always text/html.

=============================================================================
"""

import logging
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder,
    not_found, internal_error,
)
from ..http.mime_types import get_mime_type
from .listing import DirectoryLister, ListingError
from .resolver import PathResolver, ResolvedPath


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Request handler for serving a directory tree.

    =========================================================================
    FEATURES
    =========================================================================

    - Serves regular files, streamed in chunks with an exact Content-Length
    - index.html served in place of a listing when present
    - HTML directory listings (hidden entries skipped)
    - Path traversal protection (".." cannot leave the root)
    - Every failure becomes a 404 or 500 response, never an exception

    =========================================================================
    USAGE
    =========================================================================

        handler = StaticFileHandler("/srv/www")

        with handler.handle(request) as response:
            response.write_to(conn)

    The handler holds only read-only collaborators, so one instance is
    shared by all worker threads.

    =========================================================================
    """

    def __init__(
        self,
        root_dir: str,
        index_file: str = "index.html",
        max_listing_size: int = 64 * 1024,
        resolver: Optional[PathResolver] = None,
        lister: Optional[DirectoryLister] = None,
    ):
        """
        Initialize the handler.

        Args:
            root_dir: Directory to serve. Every served path lies below it.
            index_file: File served instead of a listing ("index.html").
            max_listing_size: Largest listing page in bytes.
            resolver: Override the PathResolver (tests).
            lister: Override the DirectoryLister (tests).
        """
        self.resolver = resolver or PathResolver(root_dir, index_file=index_file)
        self.lister = lister or DirectoryLister(max_size=max_listing_size)

    @property
    def root_dir(self) -> str:
        return self.resolver.root_dir

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for a parsed GET request.

        Args:
            request: Request with a validated path.

        Returns:
            The response. If it streams a file, the caller must close it.
        """
        resolved = self.resolver.resolve(request.path)

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORY: index.html or listing
        # ─────────────────────────────────────────────────────────────────
        if resolved.is_dir:
            index = self.resolver.index_for(resolved)
            if index is None:
                return self._serve_listing(resolved)
            resolved = index

        # ─────────────────────────────────────────────────────────────────
        # FILE
        # ─────────────────────────────────────────────────────────────────
        if resolved.is_file:
            return self._serve_file(resolved)

        return not_found()

    def _serve_file(self, resolved: ResolvedPath) -> HTTPResponse:
        """
        Open the file and build a streamed 200 response.

        The size is measured from the open file (seek to end), so the
        Content-Length matches what this exact file object will yield.
        """
        try:
            file = open(resolved.fs_path, "rb")
        except OSError as e:
            logger.error(f"Cannot open {resolved.fs_path}: {e}")
            return internal_error()

        try:
            builder = ResponseBuilder().file(file)
        except OSError as e:
            file.close()
            logger.error(f"Cannot size {resolved.fs_path}: {e}")
            return internal_error()

        return (builder
            .content_type(get_mime_type(resolved.fs_path))
            .build())

    def _serve_listing(self, resolved: ResolvedPath) -> HTTPResponse:
        """Render the directory listing, or 500 if it cannot be read."""
        try:
            page = self.lister.render(resolved.fs_path, resolved.url_path)
        except ListingError as e:
            logger.error(str(e))
            return internal_error()

        return ResponseBuilder().html(page).build()


def serve_directory(root_dir: str, **kwargs) -> StaticFileHandler:
    """
    Create a handler for root_dir.

    Example:
        handler = serve_directory(os.getcwd(), max_listing_size=1 << 20)
    """
    return StaticFileHandler(root_dir, **kwargs)
