"""
=============================================================================
HTTP EXCHANGE
=============================================================================

An exchange is one request/response cycle. The underlying engine
(http.server) creates it per request; handlers and filters read the
request from it and write the response into it; it is thrown away once
the response is closed.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        HttpExchange                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   REQUEST (read-only)              RESPONSE (written once)          │
    │   ───────────────────              ─────────────────────            │
    │   request_method   "GET"           response_headers  Headers        │
    │   request_uri      "/a?b=c"        send_response_headers(code, len) │
    │   request_path     "/a"            response_body     stream         │
    │   request_headers  Headers         response_code     -1 until sent  │
    │   request_body     b""             close()                          │
    │                                                                      │
    │   http_context     mount path + handler + filters                   │
    │   attributes       per-exchange scratch space                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
RESPONSE LENGTH CONVENTION
=============================================================================

send_response_headers(code, length):

    length == -1   no body (HEAD, errors without text)
    length == 0    body of unknown length, sent chunked
    length  > 0    body of exactly `length` bytes

Headers can be sent once. A second call raises ResponseAlreadyStartedError:
each exchange has a single writer and a single response.

=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import unquote, urlsplit
import logging

from ..core.streams import (
    ChunkedOutputStream,
    CountingOutputStream,
    FilterOutputStream,
    FixedLengthOutputStream,
)


logger = logging.getLogger(__name__)


class ResponseAlreadyStartedError(OSError):
    """Response headers were already sent for this exchange."""


class Headers:
    """
    Ordered, case-insensitive multi-map of header names to values.

    Names keep the spelling they were first added with; lookups ignore
    case. Values for one name keep their order.

        >>> h = Headers()
        >>> h.add("Accept", "text/html")
        >>> h.add("accept", "text/xml")
        >>> h["ACCEPT"]
        ['text/html', 'text/xml']
        >>> list(h)
        ['Accept']
    """

    def __init__(self, initial: Optional[Dict[str, List[str]]] = None):
        # lowercased name -> (display name, values)
        self._entries: Dict[str, Tuple[str, List[str]]] = {}
        if initial:
            for name, values in initial.items():
                self[name] = values

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "Headers":
        headers = cls()
        for name, value in pairs:
            headers.add(name, value)
        return headers

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping any existing ones."""
        key = name.lower()
        if key not in self._entries:
            self._entries[key] = (name, [])
        self._entries[key][1].append(value)

    def set(self, name: str, value: str) -> None:
        """Replace all values of name with one value."""
        self[name] = [value]

    def get_first(self, name: str) -> Optional[str]:
        entry = self._entries.get(name.lower())
        if entry is None or not entry[1]:
            return None
        return entry[1][0]

    def get(self, name: str, default: Any = None) -> Any:
        entry = self._entries.get(name.lower())
        return default if entry is None else entry[1]

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        """(name, values) pairs in insertion order."""
        for name, values in self._entries.values():
            yield name, values

    def __getitem__(self, name: str) -> List[str]:
        return self._entries[name.lower()][1]

    def __setitem__(self, name: str, values: List[str]) -> None:
        key = name.lower()
        display = self._entries[key][0] if key in self._entries else name
        self._entries[key] = (display, list(values))

    def __delitem__(self, name: str) -> None:
        del self._entries[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"


# A handler is anything that takes an exchange and writes its response
Handler = Callable[["HttpExchange"], None]


def handler_name(handler: Any) -> str:
    """Name used for handler diagnostics."""
    if hasattr(handler, "__qualname__"):
        return f"{handler.__module__}.{handler.__qualname__}"
    cls = type(handler)
    return f"{cls.__module__}.{cls.__qualname__}"


@dataclass(frozen=True)
class HttpContext:
    """
    A mount point: path prefix, terminal handler and the filters in front
    of it. Immutable once the server starts.
    """

    path: str
    handler: Any
    filters: tuple = ()


class HttpExchange(ABC):
    """
    One request/response cycle.

    Subclasses bind the exchange to an engine by implementing
    _start_response(), which sends the status line and headers and returns
    the raw sink for the body.
    """

    def __init__(
        self,
        method: str,
        uri: str,
        request_headers: Optional[Headers] = None,
        request_body: bytes = b"",
        http_context: Optional[HttpContext] = None,
    ):
        self.request_method = method
        self.request_uri = uri
        self.request_headers = request_headers if request_headers is not None else Headers()
        self.request_body = request_body
        self.http_context = http_context
        self.response_headers = Headers()
        self.response_code = -1
        self.attributes: Dict[str, Any] = {}
        self._response_body: Optional[CountingOutputStream] = None
        self._closed = False

    @property
    def request_path(self) -> str:
        """Decoded path component of the request URI."""
        return unquote(urlsplit(self.request_uri).path)

    @property
    def headers_sent(self) -> bool:
        return self.response_code != -1

    @property
    def response_body(self) -> FilterOutputStream:
        """
        The decorated response body stream.

        Raises:
            OSError: If the response headers have not been sent yet
        """
        if self._response_body is None:
            raise OSError("response headers have not been sent")
        return self._response_body

    @property
    def bytes_written(self) -> int:
        """Body bytes written so far."""
        return 0 if self._response_body is None else self._response_body.count

    def send_response_headers(self, code: int, length: int) -> None:
        """
        Send the status line and response headers.

        Args:
            code: HTTP status code
            length: -1 for no body, 0 for chunked, otherwise the exact
                    body length

        Raises:
            ResponseAlreadyStartedError: If headers were already sent
        """
        if self.headers_sent:
            raise ResponseAlreadyStartedError(
                f"response already started with status {self.response_code}"
            )
        self.response_code = code
        raw = self._start_response(code, length)
        self._response_body = CountingOutputStream(raw)

    @abstractmethod
    def _start_response(self, code: int, length: int) -> FilterOutputStream:
        """Send status and headers; return the body stream for `length`."""

    def close(self) -> None:
        """Finish the exchange, closing the response body if one was started."""
        if self._closed:
            return
        self._closed = True
        if self._response_body is not None:
            self._response_body.close()


# =============================================================================
# REQUEST BODY
# =============================================================================

class BadRequestError(ValueError):
    """The request framing is malformed; the connection cannot be reused."""


# Longest chunk-size or trailer line accepted
_MAX_LINE = 8192

_DIGITS = b"0123456789"
_HEX_DIGITS = b"0123456789abcdefABCDEF"


def read_request_body(request_handler: Any) -> bytes:
    """
    Read the whole request body from the engine's input stream.

    Chunked bodies are decoded; otherwise Content-Length bytes are read.
    Either way the stream is left at the start of the next request, so
    keep-alive connections stay in sync.

    Raises:
        BadRequestError: On a malformed Content-Length, bad chunk framing
                         or a body cut short
    """
    headers = request_handler.headers
    rfile = request_handler.rfile

    transfer_encoding = (headers.get("Transfer-Encoding") or "").lower()
    if "chunked" in transfer_encoding:
        return _read_chunked(rfile)

    raw = headers.get("Content-Length")
    if raw is None:
        return b""
    text = raw.strip().encode("latin-1", "replace")
    if not text or any(c not in _DIGITS for c in text):
        raise BadRequestError(f"invalid Content-Length: {raw!r}")
    length = int(text)
    body = rfile.read(length) if length else b""
    if len(body) < length:
        raise BadRequestError(
            f"request body truncated: {len(body)} of {length} bytes"
        )
    return body


def _read_line(rfile: Any) -> bytes:
    line = rfile.readline(_MAX_LINE + 1)
    if len(line) > _MAX_LINE:
        raise BadRequestError("chunk line too long")
    if not line.endswith(b"\n"):
        raise BadRequestError("request body truncated")
    return line


def _read_chunked(rfile: Any) -> bytes:
    """
    Decode a chunked body:

        <hex size>[;ext]\\r\\n <data>\\r\\n ... 0\\r\\n [trailers] \\r\\n
    """
    body = bytearray()
    while True:
        size_text = _read_line(rfile).split(b";", 1)[0].strip()
        if not size_text or any(c not in _HEX_DIGITS for c in size_text):
            raise BadRequestError(f"invalid chunk size: {size_text!r}")
        size = int(size_text, 16)
        if size == 0:
            break
        chunk = rfile.read(size)
        if len(chunk) < size:
            raise BadRequestError("request body truncated")
        body += chunk
        if _read_line(rfile).strip():
            raise BadRequestError("missing CRLF after chunk data")

    # Trailers are read and discarded up to the blank line
    while _read_line(rfile).strip():
        pass
    return bytes(body)


class _NoCloseStream(FilterOutputStream):
    """Body of unknown length on a connection that will be closed after."""

    def close(self) -> None:
        self.out.flush()


class ServerExchange(HttpExchange):
    """
    HttpExchange over a http.server.BaseHTTPRequestHandler.

    The request handler has already parsed the request line and headers;
    this class reads the body and turns send_response_headers() into the
    engine's send_response/send_header/end_headers calls.
    """

    def __init__(
        self,
        request_handler: Any,
        http_context: Optional[HttpContext] = None,
        request_body: Optional[bytes] = None,
    ):
        """
        Args:
            request_handler: The engine's handler for this request
            http_context: Context the request was routed to, if any
            request_body: Body already read by the caller; read from the
                          handler when None
        """
        self._request_handler = request_handler
        headers = Headers.from_pairs(request_handler.headers.items())
        if request_body is None:
            request_body = read_request_body(request_handler)
        super().__init__(
            method=request_handler.command,
            uri=request_handler.path,
            request_headers=headers,
            request_body=request_body,
            http_context=http_context,
        )

    def _start_response(self, code: int, length: int) -> FilterOutputStream:
        rh = self._request_handler
        rh.send_response(code)
        # send_response() wrote Date and Server itself; mirror them so
        # filters can see them
        self.response_headers.set("Date", rh.date_time_string())
        self.response_headers.set("Server", rh.version_string())

        for name, values in self.response_headers.items():
            if name.lower() in ("date", "server"):
                continue
            for value in values:
                rh.send_header(name, value)

        no_body = (
            length == -1
            or self.request_method == "HEAD"
            or code in (204, 304)
            or 100 <= code < 200
        )
        if no_body:
            if length == -1 and "Content-Length" not in self.response_headers \
                    and self.request_method != "HEAD" and code not in (204, 304):
                rh.send_header("Content-Length", "0")
            rh.end_headers()
            return FixedLengthOutputStream(rh.wfile, 0)

        if length > 0:
            rh.send_header("Content-Length", str(length))
            rh.end_headers()
            return FixedLengthOutputStream(rh.wfile, length)

        if rh.request_version == "HTTP/1.0":
            # No chunked encoding for 1.0 clients: close delimits the body
            rh.close_connection = True
            rh.send_header("Connection", "close")
            rh.end_headers()
            return _NoCloseStream(rh.wfile)

        rh.send_header("Transfer-Encoding", "chunked")
        rh.end_headers()
        return ChunkedOutputStream(rh.wfile)

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._request_handler.wfile.flush()
