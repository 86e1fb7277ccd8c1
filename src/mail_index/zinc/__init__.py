"""ZincSearch bulk indexing.

This package batches parsed email records and ships them to a
ZincSearch-compatible ``_bulk`` endpoint, keeping cumulative statistics.
"""

from .client import INDEX_MAPPING, ZincClient, remote_error
from .stats import IndexingStats, StatsSnapshot

__all__ = ["INDEX_MAPPING", "IndexingStats", "StatsSnapshot", "ZincClient", "remote_error"]
