"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler is the end of a filter chain: it reads the request from the
exchange, writes the response through the exchange's decorated body
stream (usually via http.responses), and signals errors with status codes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Example                                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Function          │ def hello(ex): respond(ex, 200, "text/plain",  │
    │                   │                        b"hi")                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Class with handle │ SleepHandler(100)                               │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .sleep import SleepHandler

__all__ = [
    "SleepHandler",
]
