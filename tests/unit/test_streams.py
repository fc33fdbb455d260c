"""
Unit tests for the response body stream decorators.
"""

import pytest

from adaptorhttp.core.streams import (
    ChunkedOutputStream,
    CountingOutputStream,
    FilterOutputStream,
    FixedLengthOutputStream,
)


# Each step: ("byte", value) | ("all", buffer) | ("range", buffer, off, length)
WRITE_SEQUENCES = [
    [],
    [("byte", 0x00)],
    [("all", b"")],
    [("range", b"abc", 1, 0)],
    [("byte", 0x00), ("all", b"\x01\x02"), ("range", b"xx\x03\x04yy", 2, 2)],
    [("range", b"hello world", 6, 5), ("byte", ord("!")), ("all", b"")],
    [("all", b"one"), ("all", b"two"), ("byte", 0xFF), ("byte", 0x80)],
    [("range", bytearray(b"\x00" * 64), 0, 64), ("all", memoryview(b"tail"))],
]


def apply_writes(stream, steps):
    """Perform steps on stream; return the bytes the caller meant to write."""
    expected = bytearray()
    for step in steps:
        kind = step[0]
        if kind == "byte":
            stream.write_byte(step[1])
            expected.append(step[1] & 0xFF)
        elif kind == "all":
            stream.write(step[1])
            expected += step[1]
        else:
            _, buf, off, length = step
            stream.write(buf, off, length)
            expected += buf[off:off + length]
    return bytes(expected)


class InterceptingStream(FilterOutputStream):
    """Records every range that reaches write_chunk."""

    def __init__(self, out):
        super().__init__(out)
        self.seen = []

    def write_chunk(self, b, off, length):
        self.seen.append(bytes(b[off:off + length]))
        super().write_chunk(b, off, length)


class TestFilterOutputStream:
    """Tests for FilterOutputStream."""

    def test_three_write_forms_produce_same_bytes(self, sink):
        """write_byte, write(b) and write(b, off, len) concatenate in order."""
        stream = FilterOutputStream(sink)
        stream.write_byte(0x00)
        stream.write(b"\x01\x02")
        stream.write(b"xx\x03\x04yy", 2, 2)

        assert bytes(sink.data) == b"\x00\x01\x02\x03\x04"

    def test_write_byte_uses_low_eight_bits(self, sink):
        """Only the low byte of the value is written."""
        FilterOutputStream(sink).write_byte(0x141)
        assert bytes(sink.data) == b"A"

    def test_all_forms_go_through_write_chunk(self, sink):
        """A subclass overriding write_chunk sees every byte."""
        stream = InterceptingStream(sink)
        stream.write_byte(ord("a"))
        stream.write(b"bc")
        stream.write(b"..de..", 2, 2)

        assert stream.seen == [b"a", b"bc", b"de"]
        assert bytes(sink.data) == b"abcde"

    @pytest.mark.parametrize("steps", WRITE_SEQUENCES)
    def test_override_sees_intended_bytes(self, sink, steps):
        """Whatever mix of write forms, write_chunk sees exactly those bytes."""
        stream = InterceptingStream(sink)
        expected = apply_writes(stream, steps)

        assert b"".join(stream.seen) == expected
        assert bytes(sink.data) == expected

    @pytest.mark.parametrize("steps", WRITE_SEQUENCES)
    def test_counting_matches_sequence(self, sink, steps):
        stream = CountingOutputStream(sink)
        expected = apply_writes(stream, steps)
        assert stream.count == len(expected)

    def test_write_returns_length(self, sink):
        stream = FilterOutputStream(sink)
        assert stream.write(b"hello") == 5
        assert stream.write(b"hello", 1, 3) == 3

    def test_write_with_offset_only(self, sink):
        """Omitting length writes to the end of the buffer."""
        FilterOutputStream(sink).write(b"abcdef", 4)
        assert bytes(sink.data) == b"ef"

    @pytest.mark.parametrize("off,length", [(-1, 1), (0, -1), (3, 4), (7, 0)])
    def test_write_rejects_bad_range(self, sink, off, length):
        """Ranges outside the buffer raise IndexError and write nothing."""
        with pytest.raises(IndexError):
            FilterOutputStream(sink).write(b"abcdef", off, length)
        assert sink.writes == []

    def test_zero_length_write(self, sink):
        FilterOutputStream(sink).write(b"abc", 3, 0)
        assert bytes(sink.data) == b""

    def test_none_sink_rejected(self):
        """Passing None explicitly is an error."""
        with pytest.raises(ValueError):
            FilterOutputStream(None)

    def test_unbound_construction(self, sink):
        """A subclass may construct unbound and bind later."""
        stream = FilterOutputStream()
        assert stream.out is None

        stream.out = sink
        stream.write(b"late")
        assert bytes(sink.data) == b"late"

    def test_flush_and_close_delegate(self, sink):
        stream = FilterOutputStream(sink)
        stream.flush()
        stream.close()

        assert sink.flushes == 1
        assert sink.closed

    def test_context_manager_closes(self, sink):
        with FilterOutputStream(sink) as stream:
            stream.write(b"x")
        assert sink.closed

    def test_accepts_bytearray_and_memoryview(self, sink):
        stream = FilterOutputStream(sink)
        stream.write(bytearray(b"ab"))
        stream.write(memoryview(b"cd"))
        assert bytes(sink.data) == b"abcd"


class TestCountingOutputStream:
    """Tests for CountingOutputStream."""

    def test_counts_every_form(self, sink):
        stream = CountingOutputStream(sink)
        stream.write_byte(1)
        stream.write(b"1234")
        stream.write(b"1234", 1, 2)

        assert stream.count == 7
        assert len(sink.data) == 7


class TestChunkedOutputStream:
    """Tests for chunked transfer encoding."""

    def test_chunk_framing(self, sink):
        """Each write is one hex-length-prefixed chunk."""
        stream = ChunkedOutputStream(sink)
        stream.write(b"hello")
        stream.write(b"x" * 16)
        stream.close()

        assert bytes(sink.data) == (
            b"5\r\nhello\r\n"
            b"10\r\n" + b"x" * 16 + b"\r\n"
            b"0\r\n\r\n"
        )

    def test_empty_write_does_not_terminate(self, sink):
        stream = ChunkedOutputStream(sink)
        stream.write(b"")
        stream.write(b"a")

        assert bytes(sink.data) == b"1\r\na\r\n"

    def test_close_is_idempotent_and_keeps_sink_open(self, sink):
        stream = ChunkedOutputStream(sink)
        stream.close()
        stream.close()

        assert bytes(sink.data) == b"0\r\n\r\n"
        assert not sink.closed

    def test_write_after_close(self, sink):
        stream = ChunkedOutputStream(sink)
        stream.close()
        with pytest.raises(OSError):
            stream.write(b"late")


class TestFixedLengthOutputStream:
    """Tests for FixedLengthOutputStream."""

    def test_exact_length(self, sink):
        stream = FixedLengthOutputStream(sink, 5)
        stream.write(b"he")
        stream.write(b"llo")
        stream.close()

        assert bytes(sink.data) == b"hello"
        assert stream.remaining == 0

    def test_overflow(self, sink):
        stream = FixedLengthOutputStream(sink, 3)
        with pytest.raises(OSError, match="too many bytes"):
            stream.write(b"four")
        assert sink.writes == []

    def test_short_close(self, sink):
        stream = FixedLengthOutputStream(sink, 10)
        stream.write(b"abc")
        with pytest.raises(OSError, match="insufficient bytes"):
            stream.close()

    def test_close_does_not_close_sink(self, sink):
        stream = FixedLengthOutputStream(sink, 0)
        stream.close()
        assert not sink.closed
        assert sink.flushes == 1
