"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the adaptor's handlers and filters send, with reason
phrases for logging.

    2xx  the request was handled
    3xx  the client should look elsewhere
    4xx  the client asked for something we will not do
    5xx  we failed (internal error, overloaded)

HTTPStatus is an IntEnum, so members compare equal to plain ints and can be
passed anywhere a status code is expected:

    >>> HTTPStatus.NOT_FOUND == 404
    True

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes used by the adaptor."""

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200
    NO_CONTENT = 204

    # =========================================================================
    # 3xx REDIRECTION
    # =========================================================================
    NOT_MODIFIED = 304

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    CONFLICT = 409

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """Reason phrase, as in "HTTP/1.1 404 Not Found"."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}


def reason_phrase(code: int) -> str:
    """Reason phrase for any integer code, "Unknown" if we don't list it."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"
