"""
Unit tests for the filter chain and the bundled filters.
"""

import logging

import pytest

from adaptorhttp.filters import (
    AbortImmediatelyFilter,
    Filter,
    FilterChain,
    FunctionFilter,
    InternalErrorFilter,
    LoggingFilter,
    abort_immediately,
    default_filters,
    function_filter,
)
from adaptorhttp.filters.logging import TRACE, loggable_headers
from adaptorhttp.http import Headers, HttpContext, respond


class RecordingFilter(Filter):
    """Appends its name to a shared list on the way in and out."""

    description = "Records call order"

    def __init__(self, label, calls):
        self.label = label
        self.calls = calls

    def process(self, exchange, next):
        self.calls.append(f"{self.label}:in")
        next(exchange)
        self.calls.append(f"{self.label}:out")


def ok_handler(ex):
    respond(ex, 200, "text/plain", b"ok")


class TestFilterChain:
    """Tests for FilterChain composition."""

    def test_filters_run_outermost_first(self, make_exchange):
        calls = []

        def handler(ex):
            calls.append("handler")
            ok_handler(ex)

        chain = FilterChain(
            [RecordingFilter("a", calls), RecordingFilter("b", calls)],
            handler,
        )
        chain.do_filter(make_exchange())

        assert calls == ["a:in", "b:in", "handler", "b:out", "a:out"]

    def test_filter_can_short_circuit(self, make_exchange):
        """A filter that does not call next keeps the handler from running."""
        reached = []

        @function_filter
        def deny(exchange, next):
            respond(exchange, 403, "text/plain", b"no")

        ex = make_exchange()
        FilterChain([deny], lambda e: reached.append(e)).do_filter(ex)

        assert reached == []
        assert ex.response_code == 403
        assert ex.body == b"no"

    def test_next_twice_is_an_error(self, make_exchange):
        @function_filter
        def greedy(exchange, next):
            next(exchange)
            next(exchange)

        with pytest.raises(RuntimeError, match="more than once"):
            FilterChain([greedy], lambda e: None).do_filter(make_exchange())

    def test_empty_chain_calls_handler(self, make_exchange):
        ex = make_exchange()
        FilterChain([], ok_handler).do_filter(ex)
        assert ex.response_code == 200

    def test_handler_object_with_handle(self, make_exchange):
        class Handler:
            def handle(self, ex):
                ok_handler(ex)

        ex = make_exchange()
        FilterChain([], Handler()).do_filter(ex)
        assert ex.body == b"ok"

    def test_not_a_handler(self):
        with pytest.raises(TypeError):
            FilterChain([], object())

    def test_wrap_builds_fresh_links_per_exchange(self, make_exchange):
        """The composed dispatch can be reused across exchanges."""
        calls = []
        dispatch = FilterChain.wrap([RecordingFilter("a", calls)], ok_handler)

        dispatch(make_exchange())
        dispatch(make_exchange())

        assert calls == ["a:in", "a:out", "a:in", "a:out"]

    def test_len_and_iter(self):
        filters = [LoggingFilter(), InternalErrorFilter()]
        chain = FilterChain(filters, ok_handler)
        assert len(chain) == 2
        assert list(chain) == filters


class TestFunctionFilter:
    """Tests for FunctionFilter and function_filter."""

    def test_default_description_names_function(self):
        @function_filter
        def tag(exchange, next):
            next(exchange)

        assert isinstance(tag, FunctionFilter)
        assert tag.description == "Function filter tag"
        assert tag.name == "tag"

    def test_explicit_description(self):
        f = FunctionFilter(lambda ex, nxt: nxt(ex), description="passthrough")
        assert f.description == "passthrough"


class TestLoggableHeaders:
    """Tests for header flattening."""

    def test_empty(self):
        assert loggable_headers(Headers()) == ""

    def test_single(self):
        assert loggable_headers(Headers({"Host": ["example.com"]})) == "Host: example.com"

    def test_multi_valued_in_order(self):
        headers = Headers({"A": ["1"], "B": ["2", "3"]})
        assert loggable_headers(headers) == "A: 1, B: 2, B: 3"

    def test_available_on_filter(self):
        assert LoggingFilter.loggable_headers(Headers({"X": ["y"]})) == "X: y"


class TestLoggingFilter:
    """Tests for LoggingFilter."""

    def test_description(self):
        assert LoggingFilter().description == "Filter that logs requests and responses"

    def test_logs_request_and_response_headers(self, make_exchange, caplog):
        ex = make_exchange("GET", "/feed?x=1", headers={"Accept": ["text/xml"]})
        ex.response_headers.set("X-Reply", "yes")

        with caplog.at_level(TRACE, logger="adaptorhttp"):
            FilterChain([LoggingFilter()], ok_handler).do_filter(ex)

        messages = [r.getMessage() for r in caplog.records if r.levelno == TRACE]
        assert messages[0] == (
            "Received GET request to /feed?x=1. Headers: {Accept: text/xml}"
        )
        assert messages[1].startswith("Responded to GET request /feed?x=1. Headers: {")
        assert "X-Reply: yes" in messages[1]
        assert "Content-Type: text/plain" in messages[1]

    def test_logs_handler_name(self, make_exchange, caplog):
        ex = make_exchange(context=HttpContext("/", ok_handler))

        with caplog.at_level(logging.DEBUG, logger="adaptorhttp"):
            FilterChain([LoggingFilter()], ok_handler).do_filter(ex)

        assert any(
            r.getMessage().endswith("test_filters.ok_handler")
            for r in caplog.records
        )

    def test_exception_propagates_unchanged(self, make_exchange, caplog):
        """The same exception object reaches the caller, logged once."""
        error = KeyError("boom")

        def failing(ex):
            raise error

        with caplog.at_level(TRACE, logger="adaptorhttp"):
            with pytest.raises(KeyError) as excinfo:
                FilterChain([LoggingFilter()], failing).do_filter(make_exchange())

        assert excinfo.value is error
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].getMessage() == "Unexpected exception during request"
        assert warnings[0].exc_info[1] is error

        responded = [r for r in caplog.records if r.getMessage().startswith("Responded to")]
        assert len(responded) == 1

    def test_io_failure_propagates_unchanged(self, make_exchange, caplog):
        """I/O failures pass through the same way as runtime failures."""
        error = ConnectionResetError(104, "Connection reset by peer")

        def failing(ex):
            raise error

        with caplog.at_level(TRACE, logger="adaptorhttp"):
            with pytest.raises(ConnectionResetError) as excinfo:
                FilterChain([LoggingFilter()], failing).do_filter(make_exchange())

        assert excinfo.value is error
        assert str(excinfo.value) == "[Errno 104] Connection reset by peer"
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].exc_info[1] is error

        responded = [r for r in caplog.records if r.getMessage().startswith("Responded to")]
        assert len(responded) == 1

    def test_injected_logger(self, make_exchange, caplog):
        log = logging.getLogger("test.capture")
        with caplog.at_level(logging.DEBUG, logger="test.capture"):
            FilterChain([LoggingFilter(log=log)], ok_handler).do_filter(make_exchange())

        assert [r.getMessage() for r in caplog.records if r.name == "test.capture"][0] == "beginning"

    def test_skips_header_formatting_when_trace_disabled(self, make_exchange, caplog):
        with caplog.at_level(logging.INFO, logger="adaptorhttp"):
            FilterChain([LoggingFilter()], ok_handler).do_filter(make_exchange())
        assert not [r for r in caplog.records if r.levelno == TRACE]


class TestInternalErrorFilter:
    """Tests for InternalErrorFilter."""

    def test_exception_becomes_500(self, make_exchange):
        def failing(ex):
            raise ValueError("bad")

        ex = make_exchange()
        FilterChain([InternalErrorFilter()], failing).do_filter(ex)

        assert ex.response_code == 500
        assert ex.body == b"Internal server error"
        assert ex.response_headers.get_first("Content-Type") == "text/plain; charset=utf-8"

    def test_reraises_when_headers_already_sent(self, make_exchange):
        def half_written(ex):
            ex.send_response_headers(200, 0)
            raise ValueError("mid-body")

        ex = make_exchange()
        with pytest.raises(ValueError, match="mid-body"):
            FilterChain([InternalErrorFilter()], half_written).do_filter(ex)
        assert ex.response_code == 200

    def test_success_passes_through(self, make_exchange):
        ex = make_exchange()
        FilterChain([InternalErrorFilter()], ok_handler).do_filter(ex)
        assert ex.response_code == 200

    def test_head_request_gets_no_body(self, make_exchange):
        def failing(ex):
            raise ValueError("bad")

        ex = make_exchange("HEAD")
        FilterChain([InternalErrorFilter()], failing).do_filter(ex)
        assert ex.response_code == 500
        assert ex.body == b""


class TestAbortImmediatelyFilter:
    """Tests for AbortImmediatelyFilter."""

    def test_passes_when_not_marked(self, make_exchange):
        ex = make_exchange()
        FilterChain([AbortImmediatelyFilter()], ok_handler).do_filter(ex)
        assert ex.response_code == 200

    def test_rejects_when_marked(self, make_exchange):
        reached = []
        abort_immediately.set()
        try:
            with pytest.raises(OSError, match="Too many clients"):
                FilterChain([AbortImmediatelyFilter()], reached.append).do_filter(make_exchange())
        finally:
            abort_immediately.clear()
        assert reached == []

    def test_default_order(self):
        names = [f.name for f in default_filters()]
        assert names == ["AbortImmediatelyFilter", "LoggingFilter", "InternalErrorFilter"]
