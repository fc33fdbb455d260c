"""
=============================================================================
ADAPTOR HTTP SERVER
=============================================================================

Ties the pieces together on top of the standard library's HTTP engine.
The engine (http.server.ThreadingHTTPServer) owns sockets, connections,
request parsing and threads; this module decides what happens to each
parsed request.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. ENGINE        accept, parse request line + headers            │
    │                    (one thread per connection)                      │
    │          │                                                           │
    │          ▼                                                           │
    │   2. SLOT          take a worker slot; none free → mark thread     │
    │                    abort_immediately                                │
    │          │                                                           │
    │          ▼                                                           │
    │   3. CONTEXT       longest mount path that prefixes the request    │
    │                    path; none → canned 404                          │
    │          │                                                           │
    │          ▼                                                           │
    │   4. EXCHANGE      read the body (Content-Length or chunked);     │
    │                    malformed → canned 400, connection closed       │
    │                    ServerExchange(request handler, context, body)  │
    │          │                                                           │
    │          ▼                                                           │
    │   5. FILTER CHAIN  filters → handler, response written through     │
    │                    the decorated body stream                        │
    │          │                                                           │
    │          ▼                                                           │
    │   6. FINISH        exception escaped or nothing sent → close the   │
    │                    connection; otherwise close the exchange         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import unquote, urlsplit

from .config import AdaptorConfig
from .core.archiver import BackgroundArchiver, FeedFileArchiver
from .filters import Filter, FilterChain, Next, abort_immediately, default_filters
from .http.exchange import BadRequestError, HttpContext, ServerExchange, read_request_body
from .http.responses import Translation, canned_respond
from .http.status_codes import HTTPStatus, reason_phrase


logger = logging.getLogger(__name__)

SERVER_VERSION = "adaptorhttp/1.0"


class _RequestHandler(BaseHTTPRequestHandler):
    """Engine-side request handler; hands every method to the adaptor."""

    protocol_version = "HTTP/1.1"
    server_version = SERVER_VERSION

    def _dispatch(self) -> None:
        self.server.adaptor._handle(self)

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch
    do_PATCH = _dispatch
    do_OPTIONS = _dispatch

    def log_message(self, format: str, *args: Any) -> None:
        # Route the engine's access log into ours instead of stderr
        logger.debug(f"{self.address_string()} - {format % args}")


class _Engine(ThreadingHTTPServer):
    daemon_threads = True
    adaptor: "AdaptorServer"


class AdaptorServer:
    """
    The adaptor's embedded HTTP server.

    =========================================================================
    USAGE
    =========================================================================

        server = AdaptorServer(AdaptorConfig(port=5678))
        server.create_context("/sleep", SleepHandler(100))
        server.create_context("/doc/", DocumentHandler(...))

        server.start()       # background thread
        ...
        server.stop()

        # or, blocking until Ctrl+C
        server.run()

    Every context gets the server's filters (default_filters() unless
    given), outermost first.

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[AdaptorConfig] = None,
        filters: Optional[Iterable[Filter]] = None,
    ):
        self.config = config or AdaptorConfig()
        self.config.validate()  # Fail fast on invalid config

        self.filters: Tuple[Filter, ...] = tuple(
            default_filters() if filters is None else filters
        )
        self.archiver = BackgroundArchiver(
            FeedFileArchiver(self.config.feed_archive_directory)
        )

        # mount path -> (context, composed chain)
        self._contexts: Dict[str, Tuple[HttpContext, Next]] = {}
        self._contexts_lock = threading.Lock()

        self._slots = threading.BoundedSemaphore(self.config.max_workers)
        self._engine: Optional[_Engine] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False

    # =========================================================================
    # CONTEXTS
    # =========================================================================

    def create_context(
        self,
        path: str,
        handler: Any,
        filters: Optional[Iterable[Filter]] = None,
    ) -> HttpContext:
        """
        Mount handler at path.

        Args:
            path: Mount path; requests whose path starts with it go here
            handler: Callable taking the exchange, or object with handle()
            filters: Override the server's filters for this context

        Returns:
            The new context
        """
        if not path.startswith("/"):
            raise ValueError(f"context path must start with '/': {path!r}")
        context = HttpContext(
            path=path,
            handler=handler,
            filters=self.filters if filters is None else tuple(filters),
        )
        dispatch = FilterChain.wrap(context.filters, handler)
        with self._contexts_lock:
            if path in self._contexts:
                raise ValueError(f"context already exists: {path}")
            self._contexts[path] = (context, dispatch)
        logger.debug(f"Created context {path}")
        return context

    def remove_context(self, path: str) -> None:
        with self._contexts_lock:
            del self._contexts[path]

    def find_context(self, request_path: str) -> Optional[Tuple[HttpContext, Next]]:
        """Context with the longest mount path prefixing request_path."""
        with self._contexts_lock:
            entries = list(self._contexts.items())
        best = None
        for path, entry in entries:
            if request_path.startswith(path) and (best is None or len(path) > len(best[0])):
                best = (path, entry)
        return None if best is None else best[1]

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """(host, port) actually bound; port is real even if config said 0."""
        if self._engine is None:
            raise RuntimeError("server not started")
        return self._engine.server_address[:2]

    def start(self) -> "AdaptorServer":
        """Bind and serve on a background thread."""
        self._bind()
        self._thread = threading.Thread(
            target=self._engine.serve_forever,
            name="AdaptorServer",
            daemon=True,
        )
        self._thread.start()
        host, port = self.address
        logger.info(f"Started HTTP server on {host}:{port}")
        return self

    def run(self) -> None:
        """Serve on the current thread until Ctrl+C."""
        self._setup_logging()
        self._bind()
        host, port = self.address
        logger.info(f"Starting HTTP server on {host}:{port}")
        try:
            self._engine.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop serving and wait up to timeout for the serve thread."""
        if not self._running:
            return
        self._engine.shutdown()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._shutdown(timeout)

    def _bind(self) -> None:
        if self._running:
            raise RuntimeError("server already running")
        self._engine = _Engine((self.config.host, self.config.port), _RequestHandler)
        self._engine.adaptor = self
        self.archiver.start()
        self._running = True

    def _shutdown(self, timeout: float = 5.0) -> None:
        logger.info("Shutting down server...")
        self._running = False
        self._engine.server_close()
        self.archiver.shutdown(wait=True, timeout=timeout)
        logger.info("Server stopped")

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = self.config.numeric_log_level
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("adaptorhttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING (engine threads)
    # =========================================================================

    def _handle(self, rh: BaseHTTPRequestHandler) -> None:
        acquired = self._slots.acquire(blocking=False)
        if not acquired:
            logger.debug("No worker slot free, aborting request")
            abort_immediately.set()
        try:
            self._process(rh)
        finally:
            abort_immediately.clear()
            if acquired:
                self._slots.release()

    def _process(self, rh: BaseHTTPRequestHandler) -> None:
        request_path = unquote(urlsplit(rh.path).path)
        entry = self.find_context(request_path)
        try:
            try:
                body = read_request_body(rh)
            except BadRequestError as e:
                self._reject_bad_request(rh, e)
                return
            if entry is None:
                canned_respond(ServerExchange(rh, request_body=body),
                               HTTPStatus.NOT_FOUND, Translation.HTTP_NOT_FOUND)
                return
            context, dispatch = entry
            ex = ServerExchange(rh, context, request_body=body)
            dispatch(ex)
        except Exception:
            # Filters already logged it; all that is left is to drop the
            # connection, since the response may be half written
            logger.debug(f"Closing connection after failed {rh.command} {rh.path}",
                         exc_info=True)
            rh.close_connection = True
            return

        if not ex.headers_sent:
            logger.warning(f"No response sent for {rh.command} {rh.path}")
            rh.close_connection = True
            return
        ex.close()
        logger.debug(
            f"{rh.command} {rh.path} -> {ex.response_code} "
            f"{reason_phrase(ex.response_code)} ({ex.bytes_written} bytes)"
        )

    def _reject_bad_request(self, rh: BaseHTTPRequestHandler, error: BadRequestError) -> None:
        """
        Answer 400 and close: the rest of the input stream can no longer
        be trusted to start at a request boundary.
        """
        logger.warning(f"Bad request {rh.command} {rh.path}: {error}")
        rh.close_connection = True
        ex = ServerExchange(rh, request_body=b"")
        ex.response_headers.set("Connection", "close")
        canned_respond(ex, HTTPStatus.BAD_REQUEST, Translation.HTTP_BAD_REQUEST)
