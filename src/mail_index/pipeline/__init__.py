"""Ingestion pipeline: the parser worker pool and the run driver."""

from .driver import PipelineSummary, run_pipeline, walk_email_files
from .worker_pool import EmailWorkerPool

__all__ = ["EmailWorkerPool", "PipelineSummary", "run_pipeline", "walk_email_files"]
