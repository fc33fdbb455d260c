"""
=============================================================================
HTTP MODULE
=============================================================================

The exchange abstraction the filters and handlers work against, and the
canned-response helpers that write into it.

    exchange.py      Headers, HttpContext, HttpExchange, ServerExchange
    responses.py     respond(), canned_respond(), Translation
    status_codes.py  HTTPStatus

Request parsing and connection handling belong to the engine
(http.server), not to this package.

=============================================================================
"""

from .exchange import (
    Headers,
    HttpContext,
    HttpExchange,
    ServerExchange,
    ResponseAlreadyStartedError,
    BadRequestError,
    handler_name,
    read_request_body,
)
from .responses import (
    Translation,
    respond,
    respond_to_head,
    canned_respond,
    start_response,
    headers_sent,
)
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Exchange
    "Headers",
    "HttpContext",
    "HttpExchange",
    "ServerExchange",
    "ResponseAlreadyStartedError",
    "BadRequestError",
    "read_request_body",
    "handler_name",

    # Canned responses
    "Translation",
    "respond",
    "respond_to_head",
    "canned_respond",
    "start_response",
    "headers_sent",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
]
