"""
=============================================================================
SLEEP HANDLER
=============================================================================

A diagnostic handler that takes a known amount of time to answer. It keeps
a request in flight on purpose, which is what tests of the filter chain
and the server lifecycle need (a request is running while the server is
being stopped, a worker is blocked when it gets interrupted).

=============================================================================
OUTCOMES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   method != GET ─────────────────────►  405  "Unsupported request   │
    │        │                                      method"               │
    │        ▼                                                             │
    │   path != mount path ────────────────►  404  "404: Not found"       │
    │        │                                                             │
    │        ▼                                                             │
    │   sleep(duration)                                                    │
    │        │                                                             │
    │        ├── interrupted ──────────────►  500  "Interrupted"          │
    │        │                                                             │
    │        └── completed ────────────────►  200  "Done"                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The wait is a real blocking wait on the worker thread. The only way to cut
it short is core.interrupt.interrupt(worker_thread).

=============================================================================
"""

import logging

from ..core import interrupt
from ..http.exchange import HttpExchange
from ..http.responses import Translation, canned_respond, headers_sent, respond
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

ENCODING = "utf-8"


class SleepHandler:
    """
    Answers GET on its mount path after sleeping.

    Usage:
        server.create_context("/sleep", SleepHandler(100))
    """

    def __init__(self, sleep_duration_ms: int):
        """
        Args:
            sleep_duration_ms: How long to block each request, in
                               milliseconds.
        """
        self.sleep_duration_ms = sleep_duration_ms

    def handle(self, ex: HttpExchange) -> None:
        if ex.request_method != "GET":
            canned_respond(ex, HTTPStatus.METHOD_NOT_ALLOWED, Translation.HTTP_BAD_METHOD)
            return
        context = ex.http_context
        if context is None or ex.request_path != context.path:
            canned_respond(ex, HTTPStatus.NOT_FOUND, Translation.HTTP_NOT_FOUND)
            return
        try:
            interrupt.sleep(self.sleep_duration_ms / 1000.0)
        except InterruptedError:
            logger.warning("Request interrupted", exc_info=True)
            if headers_sent(ex):
                # Someone else already answered this exchange
                logger.warning("Response already started, not sending error")
                return
            respond(ex, HTTPStatus.INTERNAL_SERVER_ERROR, "text/plain",
                    "Interrupted".encode(ENCODING))
            return
        respond(ex, HTTPStatus.OK, "text/plain", "Done".encode(ENCODING))

    __call__ = handle
