"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The small, closed set of status codes this server ever sends.

=============================================================================
WHY SO FEW?
=============================================================================

A file server has very few things to say:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Code │ Phrase                 │ When                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │ 200  │ OK                     │ File, index page or listing sent    │
    │ 400  │ Bad Request            │ Not "GET /path ...", or "//path"    │
    │ 404  │ Not Found              │ Path is neither file nor directory  │
    │ 500  │ Internal Server Error  │ Exists, but could not be opened     │
    └─────────────────────────────────────────────────────────────────────┘

Clients only ever see these four. Anything that would normally be a 405,
413 or 414 on a general purpose server is a 400 here.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so statuses compare equal to plain integers:
        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
