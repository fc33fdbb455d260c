"""
=============================================================================
RESPONSE BODY STREAMS
=============================================================================

Every byte a handler writes to a response goes through a FilterOutputStream.
The decorator collapses the three ways of writing into ONE method, so a
subclass that wants to see the bytes (count them, hash them, frame them)
overrides exactly that method and nothing else.

=============================================================================
SINGLE WRITE PATH
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     FilterOutputStream                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   write_byte(0x41)          write(b"abc")       write(buf, 2, 8)    │
    │        │                         │                     │            │
    │        │ stage in 1-byte buffer  │ (b, 0, len(b))      │            │
    │        ▼                         ▼                     ▼            │
    │   ┌─────────────────────────────────────────────────────────────┐  │
    │   │            write_chunk(b, off, length)                      │  │
    │   │            THE override point                               │  │
    │   └──────────────────────────────┬──────────────────────────────┘  │
    │                                  ▼                                  │
    │                          out.write(...)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The convenience forms call self.write_chunk(), never self.out directly.
There is no reason for a subclass to override them.

=============================================================================
CONCRETE STREAMS
=============================================================================

ChunkedOutputStream:
    HTTP/1.1 chunked transfer encoding. Used when the response length is
    not known up front (send_response_headers(code, 0)).

FixedLengthOutputStream:
    Enforces the Content-Length promised in the response headers.

CountingOutputStream:
    Counts bytes passing through. The server wraps every response body in
    one to report sizes.

None of these are thread-safe. A response has exactly one writer.

=============================================================================
"""

from typing import Any, Union


BytesLike = Union[bytes, bytearray, memoryview]

# Marker for "no sink given", so that an explicit None can be rejected
_UNBOUND: Any = object()


class FilterOutputStream:
    """
    Byte sink decorator with a single canonical write path.

    =========================================================================
    CONSTRUCTION
    =========================================================================

        FilterOutputStream(sink)   # bound, sink must not be None

        class MyStream(FilterOutputStream):
            def __init__(self):
                super().__init__()     # unbound, subclass sets self.out

    =========================================================================
    OVERRIDING
    =========================================================================

        class HashingStream(FilterOutputStream):
            def __init__(self, out):
                super().__init__(out)
                self.digest = hashlib.sha1()

            def write_chunk(self, b, off, length):
                self.digest.update(b[off:off + length])
                super().write_chunk(b, off, length)

    HashingStream now sees every byte, whether the caller used
    write_byte(), write(b) or write(b, off, length).

    =========================================================================
    """

    def __init__(self, out: Any = _UNBOUND):
        if out is None:
            raise ValueError("out must not be None")
        self.out = None if out is _UNBOUND else out
        self._single_byte = bytearray(1)

    def close(self) -> None:
        """Calls out.close()."""
        self.out.close()

    def flush(self) -> None:
        """Calls out.flush()."""
        self.out.flush()

    def write_chunk(self, b: BytesLike, off: int, length: int) -> None:
        """
        Write length bytes of b starting at off.

        This is the method subclasses override. The default forwards the
        range to the underlying sink. The view passed to the sink is only
        valid for the duration of the call.
        """
        self.out.write(memoryview(b)[off:off + length])

    def write(self, b: BytesLike, off: int = None, length: int = None) -> int:
        """
        Write a whole buffer, or a sub-range of it.

        Calls self.write_chunk(), not the sink's write.

        Returns:
            Number of bytes written (file-like compatibility)

        Raises:
            IndexError: If off/length fall outside b
        """
        if off is None and length is None:
            off, length = 0, len(b)
        else:
            off = 0 if off is None else off
            length = len(b) - off if length is None else length
            _check_range(b, off, length)
        self.write_chunk(b, off, length)
        return length

    def write_byte(self, value: int) -> None:
        """Write a single byte (only the low 8 bits of value are used)."""
        self._single_byte[0] = value & 0xFF
        self.write_chunk(self._single_byte, 0, 1)

    def __enter__(self) -> "FilterOutputStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _check_range(b: BytesLike, off: int, length: int) -> None:
    if off < 0 or length < 0 or off + length > len(b):
        raise IndexError(
            f"range [{off}, {off}+{length}) out of bounds for buffer of "
            f"length {len(b)}"
        )


class CountingOutputStream(FilterOutputStream):
    """Counts bytes written through it."""

    def __init__(self, out: Any):
        super().__init__(out)
        self.count = 0

    def write_chunk(self, b: BytesLike, off: int, length: int) -> None:
        super().write_chunk(b, off, length)
        self.count += length


class ChunkedOutputStream(FilterOutputStream):
    """
    HTTP/1.1 chunked transfer encoding.

    Each non-empty write becomes one chunk:

        <length in hex>\\r\\n
        <data>\\r\\n

    close() emits the last-chunk marker "0\\r\\n\\r\\n". The socket stream
    itself stays open, since the connection may be kept alive.
    """

    def __init__(self, out: Any):
        super().__init__(out)
        self.closed = False

    def write_chunk(self, b: BytesLike, off: int, length: int) -> None:
        if self.closed:
            raise OSError("stream closed")
        if length == 0:
            # A zero-length chunk would terminate the body
            return
        self.out.write(b"%x\r\n" % length)
        self.out.write(memoryview(b)[off:off + length])
        self.out.write(b"\r\n")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.out.write(b"0\r\n\r\n")
        self.out.flush()


class FixedLengthOutputStream(FilterOutputStream):
    """Body stream for a response with a known Content-Length."""

    def __init__(self, out: Any, length: int):
        super().__init__(out)
        self.remaining = length
        self.closed = False

    def write_chunk(self, b: BytesLike, off: int, length: int) -> None:
        if self.closed:
            raise OSError("stream closed")
        if length > self.remaining:
            raise OSError(
                f"too many bytes to write to stream: {length} > {self.remaining}"
            )
        super().write_chunk(b, off, length)
        self.remaining -= length

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.out.flush()
        if self.remaining > 0:
            raise OSError(
                f"insufficient bytes written to stream: {self.remaining} missing"
            )
