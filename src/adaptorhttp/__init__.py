"""
=============================================================================
ADAPTORHTTP - Request/Response Interception for a Feeding Agent
=============================================================================

The HTTP layer of a content-feeding adaptor. Every inbound exchange passes
through a filter chain before reaching its handler, and every byte written
to a response goes through one decorated write path, so logging,
instrumentation and archival each have exactly one place to hook in.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ADAPTOR HTTP ARCHITECTURE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   http.server engine  (sockets, parsing, threads)                   │
    │        │                                                             │
    │        ▼                                                             │
    │   AdaptorServer       context lookup, worker slots                  │
    │        │                                                             │
    │        ▼                                                             │
    │   FilterChain         AbortImmediately → Logging → InternalError    │
    │        │                                                             │
    │        ▼                                                             │
    │   Handler             writes via exchange.response_body             │
    │        │                                                             │
    │        ▼                                                             │
    │   FilterOutputStream  single write_chunk() path → socket           │
    │                                                                      │
    │   FeedFileArchiver    side channel, best effort, off the hot path   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    adaptorhttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m adaptorhttp)
    ├── server.py            # AdaptorServer
    ├── config.py            # AdaptorConfig dataclass
    ├── core/
    │   ├── streams.py       # FilterOutputStream and friends
    │   ├── archiver.py      # Feed archival
    │   ├── capability.py    # Startup / platform errors
    │   └── interrupt.py     # Interruptible sleep
    ├── http/
    │   ├── exchange.py      # Headers, HttpContext, HttpExchange
    │   ├── responses.py     # Canned responses
    │   └── status_codes.py  # HTTPStatus
    ├── filters/
    │   ├── base.py          # Filter, FilterChain
    │   ├── logging.py       # LoggingFilter
    │   ├── internal_error.py
    │   └── abort.py         # AbortImmediatelyFilter
    └── handlers/
        └── sleep.py         # SleepHandler

=============================================================================
QUICK START
=============================================================================

    from adaptorhttp import AdaptorServer, AdaptorConfig
    from adaptorhttp.handlers import SleepHandler
    from adaptorhttp.http import respond

    server = AdaptorServer(AdaptorConfig(port=5678))
    server.create_context("/sleep", SleepHandler(100))

    def hello(ex):
        respond(ex, 200, "text/plain", b"hello")

    server.create_context("/hello", hello)
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import AdaptorServer
from .config import AdaptorConfig

__all__ = ["AdaptorServer", "AdaptorConfig", "__version__"]
