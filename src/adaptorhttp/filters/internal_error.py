"""
Turns exceptions from the handler into a 500 response, when it still can.

Once the response headers are out there is no way to change the status, so
the exception is re-raised unchanged and the engine drops the connection.
"""

import logging

from .base import Filter, Next
from ..http.exchange import HttpExchange
from ..http.responses import Translation, canned_respond, headers_sent
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class InternalErrorFilter(Filter):
    description = "Filter sends HTTP 500 when an exception occurs, when possible"

    def process(self, exchange: HttpExchange, next: Next) -> None:
        try:
            next(exchange)
        except Exception:
            if headers_sent(exchange):
                # Too late for a 500; let the engine kill the connection
                raise
            logger.warning("Unexpected exception during request", exc_info=True)
            canned_respond(
                exchange,
                HTTPStatus.INTERNAL_SERVER_ERROR,
                Translation.HTTP_INTERNAL_ERROR,
            )
