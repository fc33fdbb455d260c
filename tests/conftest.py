"""
pytest configuration and fixtures.
"""

from typing import Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from adaptorhttp import AdaptorConfig, AdaptorServer
from adaptorhttp.core.streams import FilterOutputStream, FixedLengthOutputStream
from adaptorhttp.http.exchange import Headers, HttpContext, HttpExchange


class RecordingSink:
    """Byte sink that remembers every write, flush and close."""

    def __init__(self):
        self.data = bytearray()
        self.writes: List[bytes] = []
        self.flushes = 0
        self.closed = False

    def write(self, b) -> int:
        chunk = bytes(b)
        self.writes.append(chunk)
        self.data += chunk
        return len(chunk)

    def flush(self) -> None:
        self.flushes += 1

    def close(self) -> None:
        self.closed = True


class MockExchange(HttpExchange):
    """
    In-memory exchange.

    The body is collected in a RecordingSink; chunked framing is skipped so
    tests can compare plain bytes.
    """

    def __init__(
        self,
        method: str = "GET",
        uri: str = "/",
        headers: Optional[dict] = None,
        body: bytes = b"",
        context: Optional[HttpContext] = None,
    ):
        super().__init__(
            method=method,
            uri=uri,
            request_headers=Headers(headers),
            request_body=body,
            http_context=context,
        )
        self.sink = RecordingSink()
        self.sent_length: Optional[int] = None

    def _start_response(self, code: int, length: int) -> FilterOutputStream:
        self.sent_length = length
        if length > 0:
            return FixedLengthOutputStream(self.sink, length)
        if length == -1 or self.request_method == "HEAD":
            return FixedLengthOutputStream(self.sink, 0)
        return FilterOutputStream(self.sink)

    @property
    def body(self) -> bytes:
        return bytes(self.sink.data)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_exchange():
    """Factory for MockExchange objects."""
    def factory(method="GET", uri="/", headers=None, body=b"", context=None):
        return MockExchange(method, uri, headers, body, context)
    return factory


@pytest.fixture
def config() -> AdaptorConfig:
    """Default test server configuration."""
    return AdaptorConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_workers=4,
        log_level="WARNING",
    )


@pytest.fixture
def live_server(config: AdaptorConfig) -> Generator[AdaptorServer, None, None]:
    """A started AdaptorServer; mount contexts before making requests."""
    server = AdaptorServer(config)
    server.start()

    yield server

    server.stop()
