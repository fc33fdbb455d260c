"""
=============================================================================
CANNED RESPONSES
=============================================================================

Helpers that write a complete response into an exchange and close it.
Handlers use these instead of driving the exchange by hand, so that every
response goes out the same way: headers, body through the decorated
stream, flush, close.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Function            │ Use                                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ respond()           │ status + content type + bytes                 │
    │ canned_respond()    │ status + pre-written message (Translation)   │
    │                     │ HEAD requests get headers only                │
    │ respond_to_head()   │ headers only, for HEAD                        │
    │ start_response()    │ headers only; caller writes and closes body   │
    │ headers_sent()      │ has this exchange started its response?       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
from enum import Enum
from typing import Optional

from .exchange import HttpExchange


logger = logging.getLogger(__name__)

ENCODING = "utf-8"


class Translation(Enum):
    """
    Canned user-visible messages.

    The value is the message template; str() renders it, format() fills in
    positional parameters.
    """

    HTTP_BAD_REQUEST = "Bad request"
    HTTP_FORBIDDEN = "403: Forbidden"
    HTTP_NOT_FOUND = "404: Not found"
    HTTP_BAD_METHOD = "Unsupported request method"
    HTTP_CONFLICT_INVALID_HEADER = "Invalid header: {0}"
    HTTP_INTERNAL_ERROR = "Internal server error"
    HTTP_SERVICE_UNAVAILABLE = "Server overloaded, try again later"

    def format(self, *params) -> str:
        return self.value.format(*params)

    def __str__(self) -> str:
        return self.value


def start_response(
    ex: HttpExchange,
    code: int,
    content_type: Optional[str],
    has_body: bool,
) -> None:
    """
    Send headers and prepare ex for (possibly) sending content.

    Completing the response is the caller's responsibility.
    """
    logger.debug("Starting response")
    if content_type is not None:
        ex.response_headers.set("Content-Type", content_type)
    # 0 = chunked, -1 = no body
    ex.send_response_headers(code, 0 if has_body else -1)


def respond(
    ex: HttpExchange,
    code: int,
    content_type: Optional[str],
    body: Optional[bytes],
) -> None:
    """
    Send a complete response and close the exchange.

    Do not use directly for HEAD requests; see respond_to_head().
    """
    start_response(ex, code, content_type, body is not None)
    if body is not None:
        stream = ex.response_body
        logger.debug("Before writing response")
        stream.write(body)
        stream.flush()
        stream.close()
        logger.debug("After writing response")
    ex.close()
    logger.debug("After closing exchange")


def respond_to_head(ex: HttpExchange, code: int, content_type: Optional[str]) -> None:
    """Send the headers a GET would have produced, with no body."""
    ex.response_headers.set("Transfer-Encoding", "chunked")
    respond(ex, code, content_type, None)


def canned_respond(
    ex: HttpExchange,
    code: int,
    translation: Translation,
    *params,
) -> None:
    """
    Send a cheap, pre-written text/plain message.

    HEAD requests get the headers only.
    """
    message = translation.format(*params) if params else str(translation)
    content_type = f"text/plain; charset={ENCODING}"
    if ex.request_method == "HEAD":
        respond_to_head(ex, code, content_type)
    else:
        respond(ex, code, content_type, message.encode(ENCODING))


def headers_sent(ex: HttpExchange) -> bool:
    """True once the status line and headers have gone out."""
    return ex.headers_sent
