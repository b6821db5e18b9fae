"""
=============================================================================
DIRECTORY LISTER
=============================================================================

Renders an HTML page listing the visible entries of a directory.

=============================================================================
OUTPUT
=============================================================================

For GET /docs on a directory holding "guide.txt", "img/" and ".git/":

    <!DOCTYPE html>
    <html>
    <head><title>/docs</title><style>...</style></head>
    <body>
      <ul>
        <li><a href="/docs/guide.txt">guide.txt</a></li>
        <li><a href="/docs/img/">img/</a></li>
      </ul>
    </body>
    </html>

(whitespace added here for readability; the real page is one line)

RULES
─────
- Names starting with "." are hidden and never listed.
- Directories get a trailing "/" on both link and text.
- Links are absolute paths from the server root, so they work whether
  the page was requested as "/docs" or "/docs/".
- Entries are sorted by name. Raw directory order depends on the
  filesystem and would make the page (and its tests) unpredictable.
- Names are HTML-escaped but NOT percent-encoded: the server matches
  request paths literally, so the link must carry the literal name.
- Names that are not valid UTF-8 are shown with U+FFFD in place of the
  bad bytes. Their links carry the same replacement characters, match
  no file, and get 404.

=============================================================================
FAILURE
=============================================================================

The directory was stat()ed a moment ago, but opening it can still fail
(permissions changed, directory removed). That is a ListingError, which
the handler turns into 500 Internal Server Error. No retry.

=============================================================================
"""

import html
import logging
import os
from dataclasses import dataclass


logger = logging.getLogger(__name__)


# Embedded stylesheet, kept minimal so the page has no external assets
LISTING_STYLE = (
    "* {"
        "margin: 0;"
        "padding: 0;"
    "}"
    "body {"
        "padding: 16px;"
        "font-size: 16px;"
        "font-family: Monospace;"
    "}"
    "li {"
        "list-style: none;"
    "}"
    "a {"
        "color: blue;"
        "text-decoration: none;"
    "}"
    "a:hover {"
        "background: blue;"
        "color: white;"
    "}"
)


class ListingError(Exception):
    """The directory could not be listed."""


@dataclass(frozen=True)
class ListingEntry:
    """One visible directory entry."""

    name: str
    is_dir: bool

    @property
    def display_name(self) -> str:
        # Undecodable bytes in a filename come back from scandir as
        # surrogates, which cannot be encoded; show U+FFFD instead.
        name = self.name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
        return name + "/" if self.is_dir else name


class DirectoryLister:
    """
    Builds directory listing pages.

    Stateless apart from its size limit, so one instance serves every
    request. Nothing is cached: each call reads the directory again.

    Usage:
        lister = DirectoryLister(max_size=65536)
        page = lister.render("/srv/www/docs", "/docs")
    """

    def __init__(self, max_size: int = 64 * 1024):
        """
        Args:
            max_size: Largest page, in encoded bytes, we are willing to
                      build. Bigger directories raise ListingError.
        """
        self.max_size = max_size

    def entries(self, fs_path: str) -> list[ListingEntry]:
        """
        Read the visible entries of a directory, sorted by name.

        Raises:
            ListingError: If the directory cannot be opened or read.
        """
        try:
            with os.scandir(fs_path) as it:
                found = [
                    ListingEntry(entry.name, self._is_dir(entry))
                    for entry in it
                    if not entry.name.startswith(".")
                ]
        except OSError as e:
            raise ListingError(f"Cannot list directory {fs_path}: {e}") from e

        found.sort(key=lambda entry: entry.name)
        return found

    def render(self, fs_path: str, url_path: str) -> str:
        """
        Render the listing page.

        Args:
            fs_path: Directory on disk.
            url_path: Request path of that directory, no trailing slash
                      ("/" for the root). Used for the title and links.

        Returns:
            The complete HTML document.

        Raises:
            ListingError: Unreadable directory, or page larger than max_size.
        """
        base = url_path.rstrip("/")
        items = []
        for entry in self.entries(fs_path):
            href = html.escape(f"{base}/{entry.display_name}", quote=True)
            text = html.escape(entry.display_name, quote=False)
            items.append(f'<li><a href="{href}">{text}</a></li>')

        page = (
            "<!DOCTYPE html>"
            "<html>"
            "<head>"
            f"<title>{html.escape(url_path, quote=False)}</title>"
            f"<style>{LISTING_STYLE}</style>"
            "</head>"
            "<body>"
            "<ul>"
            f"{''.join(items)}"
            "</ul>"
            "</body>"
            "</html>"
        )

        size = len(page.encode("utf-8"))
        if size > self.max_size:
            raise ListingError(
                f"Listing for {url_path} is {size} bytes, limit is {self.max_size}"
            )

        logger.debug(f"Listed {len(items)} entries for {url_path}")
        return page

    @staticmethod
    def _is_dir(entry: os.DirEntry) -> bool:
        # follow_symlinks=True: a link to a directory is listed as one
        try:
            return entry.is_dir()
        except OSError:
            return False
