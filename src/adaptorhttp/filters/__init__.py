"""
=============================================================================
FILTERS
=============================================================================

Filters wrap handler invocation with cross-cutting behavior. The server
puts these in front of every handler, outermost first:

    AbortImmediatelyFilter   reject the exchange when overloaded
    LoggingFilter            log request, response and exceptions
    InternalErrorFilter      answer 500 for exceptions, if headers not sent

Write your own by subclassing Filter, or wrap a function with
FunctionFilter.

=============================================================================
"""

from .base import Filter, FilterChain, FunctionFilter, function_filter, Next
from .logging import LoggingFilter, loggable_headers, TRACE
from .internal_error import InternalErrorFilter
from .abort import AbortImmediatelyFilter, abort_immediately


def default_filters() -> list:
    """The filters every context gets, outermost first."""
    return [AbortImmediatelyFilter(), LoggingFilter(), InternalErrorFilter()]


__all__ = [
    # Base classes
    "Filter",
    "FilterChain",
    "FunctionFilter",
    "function_filter",
    "Next",

    # Built-in filters
    "LoggingFilter",
    "InternalErrorFilter",
    "AbortImmediatelyFilter",
    "default_filters",

    # Helpers
    "loggable_headers",
    "abort_immediately",
    "TRACE",
]
