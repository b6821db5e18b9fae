"""
=============================================================================
HANDLERS MODULE
=============================================================================

Everything between "a valid request line" and "a response to write".

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Component         │ Job                                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ PathResolver      │ request path → filesystem path + classification │
    │ DirectoryLister   │ directory → HTML listing page                   │
    │ StaticFileHandler │ orchestrates both, picks file/index/listing/404 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .resolver import PathResolver, ResolvedPath, PathKind
from .listing import DirectoryLister, ListingEntry, ListingError
from .static import StaticFileHandler, serve_directory

__all__ = [
    "PathResolver",
    "ResolvedPath",
    "PathKind",
    "DirectoryLister",
    "ListingEntry",
    "ListingError",
    "StaticFileHandler",
    "serve_directory",
]
