"""
=============================================================================
MIME TYPE REGISTRY
=============================================================================

Maps file extensions to the Content-Type sent with served files.

=============================================================================
LOOKUP RULES
=============================================================================

    /assets/logo.png    → extension "png"  → image/png
    /data/report.json   → extension "json" → application/json
    /notes/README       → no extension     → (no Content-Type header)
    /img/PHOTO.JPG      → extension "JPG"  → (no Content-Type header)

1. The extension is the text after the LAST dot of the resolved path.
2. Matching is exact and case-sensitive. "JPG" is not "jpg".
3. No match means no Content-Type header at all. We do NOT fall back to
   application/octet-stream: the browser sniffs the content instead.

The table is closed and hardcoded. It is built once at import time and
only ever read, so every worker thread can use it without locking.

=============================================================================
"""

from pathlib import PurePath
from types import MappingProxyType
from typing import Optional


# =============================================================================
# MIME TYPE TABLE
# =============================================================================
#
# Keys are extensions WITHOUT the leading dot, stored lowercase.
#
# =============================================================================

MIME_TYPES = MappingProxyType({
    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "ico": "image/ico",
    "svg": "image/svg+xml",

    # -------------------------------------------------------------------------
    # AUDIO
    # -------------------------------------------------------------------------
    "mp3": "audio/mpeg",
    "aac": "audio/aac",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mid": "audio/midi",
    "midi": "audio/midi",

    # -------------------------------------------------------------------------
    # VIDEO
    # -------------------------------------------------------------------------
    "mp4": "video/mp4",

    # -------------------------------------------------------------------------
    # TEXT
    # -------------------------------------------------------------------------
    "htm": "text/html",
    "html": "text/html",
    "txt": "text/plain",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    "otf": "font/otf",
    "ttf": "font/ttf",
    "woff": "font/woff",
    "woff2": "font/woff2",

    # -------------------------------------------------------------------------
    # APPLICATION
    # -------------------------------------------------------------------------
    "xml": "application/xml",
    "zip": "application/zip",
    "pdf": "application/pdf",
    "json": "application/json",
    "js": "application/javascript",
})


def get_extension(path: str | PurePath) -> Optional[str]:
    """
    Return the text after the last "." in path, or None if there is no dot.

    A plain string search over the whole path, not
    PurePath.suffix: "./dir.d/README" has the extension "d/README", which
    simply matches nothing.

    Examples:
        >>> get_extension("./a.txt")
        'txt'
        >>> get_extension("./archive.tar.gz")
        'gz'
    """
    path = str(path)
    dot = path.rfind(".")
    if dot == -1:
        return None
    return path[dot + 1:]


def get_mime_type(path: str | PurePath) -> Optional[str]:
    """
    Look up the MIME type for a file path.

    Args:
        path: Resolved filesystem path (or bare filename).

    Returns:
        The content type string, or None when the extension is missing
        or unregistered.

    Examples:
        >>> get_mime_type("./data.json")
        'application/json'
        >>> get_mime_type("./Makefile") is None
        True
    """
    extension = get_extension(path)
    if extension is None:
        return None
    return MIME_TYPES.get(extension)
