"""End-to-end ingestion run: walk a maildir, parse, index, report."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from functools import partial
from pathlib import Path

import structlog

from mail_index.config import Settings
from mail_index.exceptions import ConfigurationError, IndexingError
from mail_index.models import EmailRecord
from mail_index.parsing import read_email_file
from mail_index.pipeline.worker_pool import EmailWorkerPool
from mail_index.zinc import StatsSnapshot, ZincClient

logger = structlog.get_logger()


@dataclass(frozen=True)
class PipelineSummary:
    """Outcome of a full ingestion run."""

    emails_found: int
    elapsed_seconds: float
    pool_errors: int
    stats: StatsSnapshot

    @property
    def emails_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.emails_found / self.elapsed_seconds


def walk_email_files(root: Path) -> Iterator[str]:
    """Yield every regular file below ``root``, in a stable order.

    Entries that cannot be listed are logged and skipped.
    """

    def _on_error(err: OSError) -> None:
        logger.warning("walk_path_error", path=err.filename, error=str(err))

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            yield os.path.join(dirpath, name)


class _ProgressReporter:
    def __init__(self, client: ZincClient, interval: int) -> None:
        self._client = client
        self._interval = interval
        self.count = 0
        self.started = time.monotonic()
        self._last = self.started

    def record(self, email: EmailRecord) -> None:
        self.count += 1
        if self.count % self._interval:
            return

        now = time.monotonic()
        batch_elapsed = now - self._last
        total_elapsed = now - self.started
        stats = self._client.get_stats()
        logger.info(
            "pipeline_progress",
            batch=self.count // self._interval,
            speed=round(self._interval / batch_elapsed, 2) if batch_elapsed > 0 else None,
            avg_speed=round(self.count / total_elapsed, 2) if total_elapsed > 0 else None,
            processed=stats.total_processed,
            indexed=stats.total_indexed,
            last_from=email.sender,
        )
        self._last = now


def _feed_paths(pool: EmailWorkerPool, root: Path) -> None:
    submitted = 0
    try:
        for path in walk_email_files(root):
            pool.submit(path)
            submitted += 1
    finally:
        pool.close()
        logger.info("walk_complete", root=str(root), files=submitted)


def run_pipeline(
    settings: Settings | None = None,
    *,
    root: Path | None = None,
    workers: int | None = None,
    client: ZincClient | None = None,
) -> PipelineSummary:
    """Index every email file under ``root``.

    Args:
        settings: Application settings. If None, uses default settings.
        root: Corpus root. Defaults to ``settings.emails_root``.
        workers: Parser thread count. Defaults to ``settings.workers``.
        client: Indexer to use. If None, one is built from ``settings``.

    Returns:
        Totals for the run.

    Raises:
        ConfigurationError: If ``root`` is not an existing directory or the
            worker count is below 1.
    """
    from mail_index.config import get_settings

    settings = settings or get_settings()
    root = Path(root or settings.emails_root)
    if not root.is_dir():
        raise ConfigurationError(f"Email root folder does not exist: {root}")
    workers = workers if workers is not None else settings.workers
    if workers < 1:
        raise ConfigurationError(f"Worker count must be at least 1, got {workers}")

    client = client or ZincClient(settings)
    client.create_index()

    pool = EmailWorkerPool(
        client,
        queue_size=settings.queue_size,
        reader=partial(read_email_file, max_content_length=settings.max_content_length),
    )
    pool.start(workers)

    walker = threading.Thread(target=_feed_paths, args=(pool, root), name="MaildirWalker", daemon=True)
    walker.start()

    reporter = _ProgressReporter(client, settings.report_interval)
    for email in pool.results():
        reporter.record(email)

    walker.join()
    pool.join()

    try:
        client.drain()
    except IndexingError as exc:
        logger.error("zinc_drain_failed", error=str(exc))

    summary = PipelineSummary(
        emails_found=reporter.count,
        elapsed_seconds=time.monotonic() - reporter.started,
        pool_errors=pool.error_count,
        stats=client.get_stats(),
    )
    logger.info(
        "pipeline_summary",
        emails_found=summary.emails_found,
        total_processed=summary.stats.total_processed,
        total_indexed=summary.stats.total_indexed,
        total_batches=summary.stats.batches_processed,
        emails_per_second=round(summary.emails_per_second, 2),
        minutes=round(summary.elapsed_seconds / 60, 2),
        pool_errors=summary.pool_errors,
        errors=summary.stats.errors,
    )
    return summary
