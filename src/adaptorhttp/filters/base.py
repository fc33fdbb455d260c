"""
=============================================================================
FILTER CHAIN
=============================================================================

Every exchange passes through an ordered list of filters before it reaches
its handler. Each filter sees the exchange on the way in, hands it to the
next link, and sees it again on the way out.

=============================================================================
CHAIN OF RESPONSIBILITY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  FILTER CHAIN - ONE EXCHANGE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Exchange ────────────────────────────────────────────────►        │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐     │
    │   │  Abort   │───►│ Logging  │───►│ Internal │───►│ Handler  │     │
    │   │Immediately│   │  Filter  │    │  Error   │    │          │     │
    │   └────┬─────┘    └────┬─────┘    └────┬─────┘    └────┬─────┘     │
    │        │               │               │               │            │
    │        ▼               ▼               ▼               ▼            │
    │   [before]        [before]        [before]        [handle]          │
    │   reject if       log request     -               write             │
    │   overloaded      headers                         response          │
    │                                                                      │
    │   [after]         [after]         [after]                           │
    │   -               log response    500 if the                        │
    │                   headers         handler blew up                   │
    │                                                                      │
    │   ◄───────────────────────────────────────────────── exceptions     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE CONTRACT
=============================================================================

A filter calls next(exchange) exactly once:

    - zero times: the filter answered the exchange itself (short-circuit)
    - twice: contract violation, the chain raises RuntimeError

A filter must not swallow exceptions coming back up the chain unless
answering them is its whole job (InternalErrorFilter). Observing filters
log and re-raise the same exception object.

The list of filters is fixed when the server starts. A FilterChain object
is built per exchange, since it tracks which links have run.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Optional, Sequence
import logging

from ..http.exchange import HttpExchange


logger = logging.getLogger(__name__)


# Next is the rest of the chain: the next filter, or the handler
Next = Callable[[HttpExchange], None]


class Filter(ABC):
    """
    Abstract base class for filters.

    =========================================================================
    FILTER ANATOMY
    =========================================================================

        class TimingFilter(Filter):
            description = "Filter that times requests"

            def process(self, exchange, next):
                # PRE-PROCESSING
                start = time.monotonic()
                try:
                    # CALL NEXT LINK (exactly once)
                    next(exchange)
                finally:
                    # POST-PROCESSING (runs on success and on failure)
                    log.debug("took %.3fs", time.monotonic() - start)

    =========================================================================
    """

    @property
    @abstractmethod
    def description(self) -> str:
        """Static human-readable description, for diagnostics."""

    @abstractmethod
    def process(self, exchange: HttpExchange, next: Next) -> None:
        """
        Handle one exchange.

        Args:
            exchange: The exchange being processed
            next: The rest of the chain; call it once to continue
        """

    def __call__(self, exchange: HttpExchange, next: Next) -> None:
        self.process(exchange, next)

    @property
    def name(self) -> str:
        """Filter name for logging."""
        return self.__class__.__name__


def as_handler(handler: Any) -> Next:
    """Terminal handlers are callables or objects with a handle() method."""
    handle = getattr(handler, "handle", None)
    if callable(handle):
        return handle
    if callable(handler):
        return handler
    raise TypeError(f"{handler!r} is not a handler")


class _Link:
    """One step of a chain, callable at most once."""

    __slots__ = ("_step", "_called")

    def __init__(self, step: Next):
        self._step = step
        self._called = False

    def __call__(self, exchange: HttpExchange) -> None:
        if self._called:
            raise RuntimeError("next link of the filter chain invoked more than once")
        self._called = True
        self._step(exchange)


class FilterChain:
    """
    Filters plus a terminal handler, for one exchange.

    =========================================================================
    HOW THE LINKS ARE BUILT
    =========================================================================

    Given [F1, F2, F3] and handler:

        link3 = handler
        link2 = lambda ex: F3.process(ex, link3)
        link1 = lambda ex: F2.process(ex, link2)
        head  = lambda ex: F1.process(ex, link1)

    Built back to front so that the first filter is the outermost. Each
    link refuses a second call.

    =========================================================================
    USAGE
    =========================================================================

        FilterChain([LoggingFilter(), InternalErrorFilter()], handler) \\
            .do_filter(exchange)

        # Or compose once and call per exchange
        dispatch = FilterChain.wrap(filters, handler)
        dispatch(exchange)

    =========================================================================
    """

    def __init__(self, filters: Iterable[Filter], handler: Any):
        self.filters = tuple(filters)
        self.handler = handler

        current = _Link(as_handler(handler))
        for f in reversed(self.filters):
            current = self._create_link(f, current)
        self._head = current

    @staticmethod
    def _create_link(f: Filter, next_link: Next) -> _Link:
        def step(exchange: HttpExchange) -> None:
            f.process(exchange, next_link)
        return _Link(step)

    def do_filter(self, exchange: HttpExchange) -> None:
        """Run the exchange through the filters and the handler."""
        self._head(exchange)

    @classmethod
    def wrap(cls, filters: Sequence[Filter], handler: Any) -> Next:
        """
        Compose filters and handler into a single dispatch function.

        A fresh chain is built per call, so links are single-use per
        exchange while the filter list is shared.
        """
        filters = tuple(filters)
        for f in filters:
            logger.debug(f"Added filter: {f.name} ({f.description})")

        def dispatch(exchange: HttpExchange) -> None:
            cls(filters, handler).do_filter(exchange)

        return dispatch

    def __len__(self) -> int:
        return len(self.filters)

    def __iter__(self):
        return iter(self.filters)


class FunctionFilter(Filter):
    """
    Wraps a plain function as a filter.

        def add_header(exchange, next):
            exchange.response_headers.set("X-Adaptor", "1")
            next(exchange)

        chain = FilterChain([FunctionFilter(add_header)], handler)
    """

    def __init__(
        self,
        func: Callable[[HttpExchange, Next], None],
        description: Optional[str] = None,
    ):
        self._func = func
        self._description = description or f"Function filter {func.__name__}"

    @property
    def description(self) -> str:
        return self._description

    def process(self, exchange: HttpExchange, next: Next) -> None:
        self._func(exchange, next)

    @property
    def name(self) -> str:
        return self._func.__name__


def function_filter(func: Callable[[HttpExchange, Next], None]) -> FunctionFilter:
    """Decorator form of FunctionFilter."""
    return FunctionFilter(func)
