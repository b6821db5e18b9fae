"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a request path onto the filesystem below the server root and
classifies what it finds there.

=============================================================================
RESOLUTION
=============================================================================

    root_dir = /srv/www

    request path      url_path     fs_path                 kind
    ────────────      ────────     ───────                 ────
    /                 /            /srv/www                DIRECTORY
    /a.txt            /a.txt       /srv/www/a.txt          FILE
    /sub/             /sub         /srv/www/sub            DIRECTORY
    /nope             /nope        /srv/www/nope           MISSING
    /../etc/passwd    (escapes the root)                   MISSING

1. Trailing slashes are stripped, except for the bare root "/".
2. The path is joined onto the root and normalized ("a/../b" → "b").
3. If the normalized path is no longer inside the root, it is MISSING.
4. Otherwise os.stat() decides: regular file, directory, or MISSING.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd HTTP/1.1

Joined naively this is /srv/www/../../etc/passwd, i.e. /etc/passwd.
We normalize FIRST and check containment SECOND, so ".." segments can
never climb above the root. The check is lexical: symlinks placed inside
the root by its owner are still followed (stat, not lstat), exactly like
any other file.

An escaping path gets a plain 404. It looks exactly like a file that
does not exist, so a probe learns nothing about the layout outside the
root.

=============================================================================
"""

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class PathKind(Enum):
    """What a resolved path turned out to be."""

    FILE = "file"            # Regular file (after following symlinks)
    DIRECTORY = "directory"  # Directory (after following symlinks)
    MISSING = "missing"      # Nothing servable: absent, special file, outside root


@dataclass(frozen=True)
class ResolvedPath:
    """
    A request path mapped onto the filesystem.

    Attributes:
        url_path: Request path without trailing slash ("/" for the root).
                  Used for listing titles and links.
        fs_path:  Absolute filesystem path.
        kind:     Classification at resolution time.
    """

    url_path: str
    fs_path: str
    kind: PathKind

    @property
    def is_file(self) -> bool:
        return self.kind is PathKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind is PathKind.DIRECTORY


class PathResolver:
    """
    Resolves request paths against a fixed root directory.

    Holds no per-request state, so a single instance is shared by every
    worker thread.

    Usage:
        resolver = PathResolver("/srv/www")
        resolved = resolver.resolve("/docs/")
        if resolved.is_dir:
            index = resolver.index_for(resolved)
    """

    def __init__(self, root_dir: str, index_file: str = "index.html"):
        """
        Args:
            root_dir: Directory to serve. Made absolute once, here.
            index_file: Name served in place of a directory listing.

        Raises:
            ValueError: If root_dir is not a directory.
        """
        self.root_dir = os.path.abspath(root_dir)
        self.index_file = index_file

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Root directory does not exist: {root_dir}")

    def resolve(self, request_path: str) -> ResolvedPath:
        """
        Map a request path (starting with "/") onto the filesystem.

        Never raises for filesystem problems; those classify as MISSING.
        """
        url_path = request_path.rstrip("/") or "/"
        fs_path = os.path.normpath(os.path.join(self.root_dir, url_path.lstrip("/")))

        if not self.is_inside_root(fs_path):
            logger.warning(f"Path traversal attempt: {request_path!r}")
            return ResolvedPath(url_path, fs_path, PathKind.MISSING)

        return ResolvedPath(url_path, fs_path, self.classify(fs_path))

    def index_for(self, resolved: ResolvedPath) -> Optional[ResolvedPath]:
        """
        Return the directory's index file if it exists as a regular file.

        Args:
            resolved: A DIRECTORY ResolvedPath.

        Returns:
            A FILE ResolvedPath for <dir>/index.html, or None.
        """
        if not resolved.is_dir:
            return None

        index_path = os.path.join(resolved.fs_path, self.index_file)
        if self.classify(index_path) is not PathKind.FILE:
            return None

        url_path = resolved.url_path.rstrip("/") + "/" + self.index_file
        return ResolvedPath(url_path, index_path, PathKind.FILE)

    def is_inside_root(self, fs_path: str) -> bool:
        """True if the normalized fs_path is the root or below it."""
        try:
            return os.path.commonpath([self.root_dir, fs_path]) == self.root_dir
        except ValueError:
            # Different drives on Windows, or a mix of absolute/relative
            return False

    @staticmethod
    def classify(fs_path: str) -> PathKind:
        """
        stat() the path and classify it.

        stat follows symlinks; a dangling link is MISSING. ValueError
        covers paths with embedded NUL bytes.
        """
        try:
            mode = os.stat(fs_path).st_mode
        except (OSError, ValueError):
            return PathKind.MISSING

        if stat.S_ISREG(mode):
            return PathKind.FILE
        if stat.S_ISDIR(mode):
            return PathKind.DIRECTORY
        return PathKind.MISSING
