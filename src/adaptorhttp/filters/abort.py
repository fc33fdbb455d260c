"""
=============================================================================
ABORT IMMEDIATELY FILTER
=============================================================================

Overload protection. When the server is already running its maximum number
of requests, it marks the thread handling the extra one; this filter sees
the mark and fails the exchange at once, before any real work is done.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   server: slot free?  ── yes ──►  chain runs normally               │
    │             │                                                        │
    │             no                                                       │
    │             ▼                                                        │
    │   abort_immediately.set()                                           │
    │             ▼                                                        │
    │   AbortImmediatelyFilter ──► raise OSError("Too many clients")      │
    │             ▼                                                        │
    │   engine closes the connection                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The mark is thread-local: it applies to the exchange on the current thread
only. Put this filter first so that rejected clients cost nothing.

=============================================================================
"""

import threading

from .base import Filter, Next
from ..http.exchange import HttpExchange


class _AbortFlag(threading.local):
    """Per-thread "reject this exchange" marker."""

    def __init__(self):
        self.value = False

    def set(self) -> None:
        self.value = True

    def clear(self) -> None:
        self.value = False

    def is_set(self) -> bool:
        return self.value


abort_immediately = _AbortFlag()


class AbortImmediatelyFilter(Filter):
    description = "Filter that rejects requests when the server is overloaded"

    def process(self, exchange: HttpExchange, next: Next) -> None:
        if abort_immediately.is_set():
            raise OSError("Too many clients")
        next(exchange)
