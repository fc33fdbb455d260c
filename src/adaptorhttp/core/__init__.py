"""
=============================================================================
CORE COMPONENTS
=============================================================================

Building blocks that do not know about HTTP exchanges:

    streams.py     FilterOutputStream and the body streams built on it
    archiver.py    Best-effort feed archival (sync and background)
    capability.py  Startup failures, platform checks
    interrupt.py   Interruptible sleep for worker threads

=============================================================================
"""

from .streams import (
    FilterOutputStream,
    CountingOutputStream,
    ChunkedOutputStream,
    FixedLengthOutputStream,
)
from .archiver import FeedFileArchiver, BackgroundArchiver
from .capability import StartupError, UnsupportedPlatformError, require_platform

__all__ = [
    # Streams
    "FilterOutputStream",
    "CountingOutputStream",
    "ChunkedOutputStream",
    "FixedLengthOutputStream",

    # Archival
    "FeedFileArchiver",
    "BackgroundArchiver",

    # Startup
    "StartupError",
    "UnsupportedPlatformError",
    "require_platform",
]
