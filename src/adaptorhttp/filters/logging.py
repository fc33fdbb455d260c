"""
=============================================================================
LOGGING FILTER
=============================================================================

Logs every exchange on its way in and on its way out, and logs exceptions
that come back up the chain before letting them continue.

=============================================================================
WHAT GETS LOGGED
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Level    │ Message                                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ DEBUG    │ beginning                                                │
    │ TRACE    │ Received GET request to /doc/1. Headers: {Host: a, ...}  │
    │ DEBUG    │ Processing context for request is handlers.SleepHandler  │
    │          │              ... chain runs ...                          │
    │ WARNING  │ Unexpected exception during request  (+ traceback)       │
    │ TRACE    │ Responded to GET request /doc/1. Headers: {Date: ...}    │
    │ DEBUG    │ ending                                                   │
    └─────────────────────────────────────────────────────────────────────┘

The response line and "ending" are written in a finally block: they appear
exactly once per exchange whether the handler succeeded or raised.

Header dumps are expensive and noisy, so they sit at TRACE (level 5),
below DEBUG. Turn them on with:

    logging.getLogger("adaptorhttp.filters.logging").setLevel(TRACE)

=============================================================================
"""

import logging
from typing import Optional

from .base import Filter, Next
from ..http.exchange import Headers, HttpExchange, handler_name


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger(__name__)


def loggable_headers(headers: Headers) -> str:
    """
    Flatten headers to "name: value, name: value".

    Names in stored order, values of a name in stored order. A name with
    several values appears once per value. No headers gives "".

        >>> loggable_headers(Headers({"A": ["1"], "B": ["2", "3"]}))
        'A: 1, B: 2, B: 3'
    """
    if not len(headers):
        return ""
    parts = []
    for name, values in headers.items():
        for value in values:
            parts.append(f"{name}: {value}, ")
    # Cut off trailing ", "
    return "".join(parts)[:-2]


class LoggingFilter(Filter):
    """
    Filter that logs requests and responses.

    The logger is injectable so tests can hand in their own:

        LoggingFilter(log=logging.getLogger("test.capture"))
    """

    description = "Filter that logs requests and responses"

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    loggable_headers = staticmethod(loggable_headers)

    def process(self, exchange: HttpExchange, next: Next) -> None:
        try:
            self.log.debug("beginning")
            self._log_request(exchange)
            context = exchange.http_context
            self.log.debug(
                "Processing context for request is %s",
                handler_name(context.handler) if context is not None else None,
            )
            next(exchange)
        except Exception:
            self.log.warning("Unexpected exception during request", exc_info=True)
            raise
        finally:
            self._log_response(exchange)
            self.log.debug("ending")

    def _log_request(self, exchange: HttpExchange) -> None:
        if self.log.isEnabledFor(TRACE):
            self.log.log(
                TRACE,
                "Received %s request to %s. Headers: {%s}",
                exchange.request_method,
                exchange.request_uri,
                loggable_headers(exchange.request_headers),
            )

    def _log_response(self, exchange: HttpExchange) -> None:
        if self.log.isEnabledFor(TRACE):
            self.log.log(
                TRACE,
                "Responded to %s request %s. Headers: {%s}",
                exchange.request_method,
                exchange.request_uri,
                loggable_headers(exchange.response_headers),
            )
