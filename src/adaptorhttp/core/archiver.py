"""
=============================================================================
FEED ARCHIVER
=============================================================================

Keeps a copy of every feed payload the adaptor sends, for auditing and for
recovering from a bad push.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ARCHIVE DIRECTORY                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   save_feed("web", xml)          →  web-k2j8d0q1.xml                │
    │   save_feed("web", xml)          →  web-9x0a7mfe.xml                │
    │   save_failed_feed("web", xml)   →  FAILED-web-3hdu1w2p.xml         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Archival is best effort. An unwritable directory, a full disk or a missing
directory costs a WARNING in the log and nothing else: the caller is never
interrupted. With no directory configured, nothing is written at all.

The write is synchronous on the calling thread. BackgroundArchiver moves it
onto a single worker thread with a bounded queue for callers that cannot
afford the latency.

=============================================================================
"""

import logging
import os
import queue
import tempfile
import threading
from typing import Optional


logger = logging.getLogger(__name__)

FAILED_PREFIX = "FAILED-"
ARCHIVE_SUFFIX = ".xml"


class FeedFileArchiver:
    """
    Writes feed payloads into an archive directory.

    Usage:
        archiver = FeedFileArchiver(config.feed_archive_directory)

        if pushed:
            archiver.save_feed(feed_name, xml)
        else:
            archiver.save_failed_feed(feed_name, xml)
    """

    def __init__(self, archive_dir: Optional[str]):
        """
        Args:
            archive_dir: Directory for archived feeds. Empty or None
                         disables archival.
        """
        self.archive_dir = archive_dir or None

    @property
    def enabled(self) -> bool:
        return self.archive_dir is not None

    def save_feed(self, feed_name: str, payload: str) -> None:
        """Archive a feed that was sent successfully."""
        self._save(feed_name, payload)

    def save_failed_feed(self, feed_name: str, payload: str) -> None:
        """Archive a feed that could not be sent."""
        self._save(FAILED_PREFIX + feed_name, payload)

    def _save(self, feed_name: str, payload: str) -> None:
        if not self.enabled:
            return
        try:
            fd, path = tempfile.mkstemp(
                prefix=f"{feed_name}-",
                suffix=ARCHIVE_SUFFIX,
                dir=self.archive_dir,
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(payload)
        except OSError:
            logger.warning(
                f"Failed to archive feed file {feed_name} in {self.archive_dir}",
                exc_info=True,
            )
            return
        logger.debug(f"Archived feed file {path}")


class BackgroundArchiver:
    """
    Runs a FeedFileArchiver on a worker thread.

    =========================================================================
    DROP, DON'T BLOCK
    =========================================================================

        caller ──► save_feed() ──► [ bounded queue ] ──► worker ──► disk
                        │
                        └── queue full? log WARNING, drop the record

    The caller never waits on the disk or on the queue. Records that do not
    fit are lost, which is acceptable for an audit copy.

    =========================================================================
    """

    def __init__(self, archiver: FeedFileArchiver, max_pending: int = 100):
        self.archiver = archiver
        self._queue: queue.Queue = queue.Queue(maxsize=max_pending)
        self._worker: Optional[threading.Thread] = None
        self._running = False
        self._lock = threading.Lock()

    def start(self) -> "BackgroundArchiver":
        """Start the worker thread."""
        with self._lock:
            if self._running:
                return self
            self._running = True
            # daemon=True: a stuck disk must not keep the process alive
            self._worker = threading.Thread(
                target=self._run, name="FeedArchiver", daemon=True
            )
            self._worker.start()
        logger.debug("Background archiver started")
        return self

    def save_feed(self, feed_name: str, payload: str) -> bool:
        """Queue a successful feed. Returns False if it was dropped."""
        return self._submit(self.archiver.save_feed, feed_name, payload)

    def save_failed_feed(self, feed_name: str, payload: str) -> bool:
        """Queue a failed feed. Returns False if it was dropped."""
        return self._submit(self.archiver.save_failed_feed, feed_name, payload)

    def _submit(self, method, feed_name: str, payload: str) -> bool:
        # Checked and enqueued under the lock so nothing lands behind the
        # poison pill
        with self._lock:
            if not self._running:
                logger.warning(f"Archiver not running, dropping feed {feed_name}")
                return False
            try:
                self._queue.put_nowait((method, feed_name, payload))
            except queue.Full:
                logger.warning(f"Archive queue full, dropping feed {feed_name}")
                return False
        return True

    def _run(self) -> None:
        while True:
            record = self._queue.get()
            try:
                # None is the poison pill
                if record is None:
                    break
                method, feed_name, payload = record
                method(feed_name, payload)
            except Exception:
                logger.exception("Unexpected error while archiving feed")
            finally:
                self._queue.task_done()
        logger.debug("Background archiver stopped")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop accepting records and stop the worker.

        Records already queued are written before the worker exits.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
        # Blocking put: the pill must get in even if the queue is full
        self._queue.put(None)
        if wait and self._worker is not None:
            self._worker.join(timeout=timeout)

    @property
    def pending(self) -> int:
        """Number of records waiting to be written."""
        return self._queue.qsize()
