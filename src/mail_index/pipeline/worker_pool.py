"""Bounded worker pool turning file paths into indexed email records.

Paths go in through :attr:`EmailWorkerPool.paths`, parsed records that were
accepted by the indexer come out through :attr:`EmailWorkerPool.emails`. Both
queues are bounded so a fast directory walk is throttled to the pace of
parsing and flushing.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable, Iterator

import structlog

from mail_index.exceptions import IndexingError, ParseError
from mail_index.models import EmailRecord
from mail_index.parsing import read_email_file
from mail_index.zinc import ZincClient

logger = structlog.get_logger()

DEFAULT_QUEUE_SIZE = 1000

# Sentinel placed once per worker on the path queue, and once on the output
# queue after every worker has exited.
STOP_MARKER = None


class EmailWorkerPool:
    """Parse email files in parallel and hand the results to a :class:`ZincClient`."""

    def __init__(
        self,
        indexer: ZincClient,
        *,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        reader: Callable[[str], EmailRecord | None] = read_email_file,
    ) -> None:
        """Create a pool. No threads run until :meth:`start`.

        Args:
            indexer: Receives every successfully parsed record.
            queue_size: Capacity of the path and output queues.
            reader: Turns a path into a record (or None for skipped files).
        """

        self.paths: queue.Queue[str | None] = queue.Queue(maxsize=queue_size)
        self.emails: queue.Queue[EmailRecord | None] = queue.Queue(maxsize=queue_size)
        self._indexer = indexer
        self._reader = reader
        self._error_count = 0
        self._error_lock = threading.Lock()
        self._workers: list[threading.Thread] = []
        self._closer: threading.Thread | None = None

    @property
    def error_count(self) -> int:
        """Files that failed to read, parse or index."""

        with self._error_lock:
            return self._error_count

    def start(self, num_workers: int) -> None:
        """Spawn ``num_workers`` worker threads."""

        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        if self._workers:
            raise RuntimeError("worker pool already started")

        for worker_id in range(num_workers):
            t = threading.Thread(
                target=self._worker_thread,
                name=f"EmailWorker-{worker_id}",
                daemon=True,
            )
            self._workers.append(t)
            t.start()

        self._closer = threading.Thread(target=self._close_output, name="EmailWorkerCloser", daemon=True)
        self._closer.start()
        logger.info("email_worker_pool_started", workers=num_workers)

    def submit(self, path: str) -> None:
        """Queue a path, blocking while the path queue is full."""

        self.paths.put(path)

    def close(self) -> None:
        """Signal that no more paths will be submitted."""

        if not self._workers:
            raise RuntimeError("worker pool not started")
        for _ in self._workers:
            self.paths.put(STOP_MARKER)

    def results(self) -> Iterator[EmailRecord]:
        """Yield indexed records until every worker has finished."""

        while True:
            email = self.emails.get()
            if email is STOP_MARKER:
                return
            yield email

    def join(self) -> None:
        """Wait for all workers to exit and the output queue to be closed."""

        if self._closer is not None:
            self._closer.join()

    def _count_error(self) -> None:
        with self._error_lock:
            self._error_count += 1

    def _worker_thread(self) -> None:
        while True:
            path = self.paths.get()
            if path is STOP_MARKER:
                return

            try:
                email = self._reader(path)
            except ParseError as exc:
                self._count_error()
                logger.error("email_parse_failed", path=path, error=str(exc))
                continue
            except OSError as exc:
                self._count_error()
                logger.error("email_read_failed", path=path, error=str(exc))
                continue
            except Exception as exc:  # noqa: BLE001
                self._count_error()
                logger.exception("email_processing_failed", path=path, error=str(exc))
                continue

            if email is None:
                logger.debug("email_skipped", path=path)
                continue

            try:
                self._indexer.index(email)
            except IndexingError as exc:
                self._count_error()
                logger.error("email_index_failed", path=path, error=str(exc))
                continue

            self.emails.put(email)

    def _close_output(self) -> None:
        for t in self._workers:
            t.join()
        self.emails.put(STOP_MARKER)
        logger.info("email_worker_pool_finished", errors=self.error_count)
