"""Cumulative indexing statistics."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of the indexing counters.

    ``total_processed`` counts records handed to the service (attempts);
    ``total_indexed`` counts records the service accepted.
    """

    total_processed: int = 0
    total_indexed: int = 0
    batches_processed: int = 0
    errors: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, int]:
        """Flatten into a single mapping, error categories prefixed with ``error_``."""

        result = {
            "total_processed": self.total_processed,
            "total_indexed": self.total_indexed,
            "batches_processed": self.batches_processed,
        }
        for category, count in self.errors.items():
            result[f"error_{category}"] = count
        return result


class IndexingStats:
    """Thread-safe counters owned by a :class:`~mail_index.zinc.ZincClient`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_processed = 0
        self._total_indexed = 0
        self._batches_processed = 0
        self._errors: dict[str, int] = {}

    def record_attempt(self, count: int) -> None:
        with self._lock:
            self._total_processed += count

    def record_success(self, count: int) -> None:
        with self._lock:
            self._total_indexed += count
            self._batches_processed += 1

    def record_error(self, category: str) -> None:
        with self._lock:
            self._errors[category] = self._errors.get(category, 0) + 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                total_processed=self._total_processed,
                total_indexed=self._total_indexed,
                batches_processed=self._batches_processed,
                errors=dict(self._errors),
            )
