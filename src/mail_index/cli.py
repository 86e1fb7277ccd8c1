"""Command-line interface for mail-index.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import cProfile
import json
import logging
import pstats
import sys
import tracemalloc
from collections.abc import Callable
from pathlib import Path

import structlog
from pydantic import ValidationError

from mail_index import __version__
from mail_index.config import Settings, get_settings
from mail_index.exceptions import ConfigurationError, ParseError
from mail_index.parsing import read_email_file
from mail_index.pipeline import run_pipeline
from mail_index.zinc import ZincClient

logger = structlog.get_logger()

_MEMPROFILE_TOP = 25


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mail-index", description="Bulk-index a maildir corpus")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Walk the corpus and index every email")
    run_parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Corpus root directory (default: settings emails_root)",
    )
    run_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of parser workers (default: settings workers)",
    )
    run_parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Records per bulk request (default: settings batch_size)",
    )
    run_parser.add_argument("--cpuprofile", type=Path, default=None, help="Write cProfile stats to file")
    run_parser.add_argument(
        "--memprofile",
        type=Path,
        default=None,
        help="Write a tracemalloc allocation report to file",
    )

    subparsers.add_parser("create-index", help="Create the index with the email mapping")

    parse_parser = subparsers.add_parser("parse", help="Parse one email file and print it as JSON")
    parse_parser.add_argument("path", type=Path, help="Email file to parse")

    return parser


def _profiled(args: argparse.Namespace, fn: Callable[[], int]) -> int:
    profiler = cProfile.Profile() if args.cpuprofile else None
    if args.memprofile:
        tracemalloc.start()
    if profiler is not None:
        logger.info("cpu_profile_started", path=str(args.cpuprofile))
        profiler.enable()

    try:
        return fn()
    finally:
        if profiler is not None:
            profiler.disable()
            pstats.Stats(profiler).sort_stats("cumulative").dump_stats(str(args.cpuprofile))
            logger.info("cpu_profile_written", path=str(args.cpuprofile))
        if args.memprofile:
            snapshot = tracemalloc.take_snapshot()
            tracemalloc.stop()
            lines = [str(stat) for stat in snapshot.statistics("lineno")[:_MEMPROFILE_TOP]]
            args.memprofile.write_text("\n".join(lines) + "\n", encoding="utf-8")
            logger.info("memory_profile_written", path=str(args.memprofile))


def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    try:
        if args.batch_size is not None:
            settings = Settings.model_validate({**settings.model_dump(), "batch_size": args.batch_size})
        summary = _profiled(
            args,
            lambda: run_pipeline(settings, root=args.root, workers=args.workers),
        )
    except (ConfigurationError, ValidationError) as exc:
        logger.error("pipeline_setup_failed", error=str(exc))
        return 1

    print(
        f"Found {summary.emails_found} emails, processed {summary.stats.total_processed}, "
        f"indexed {summary.stats.total_indexed} in {summary.stats.batches_processed} batches "
        f"({summary.emails_per_second:.2f} emails/sec, {summary.elapsed_seconds / 60:.2f} minutes)"
    )
    return 0


def _cmd_create_index(settings: Settings) -> int:
    created = ZincClient(settings).create_index()
    print("Index created" if created else "Index not created (see log)")
    return 0


def _cmd_parse(args: argparse.Namespace, settings: Settings) -> int:
    try:
        email = read_email_file(str(args.path), max_content_length=settings.max_content_length)
    except (ParseError, OSError) as exc:
        logger.error("email_parse_failed", path=str(args.path), error=str(exc))
        return 1

    if email is None:
        print(f"Skipped non-email file: {args.path}")
        return 0

    print(json.dumps(email.model_dump(by_alias=True), indent=4))
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the mail-index CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging; stdout is reserved for command output.
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )

    logger.info("mail_index_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    if parsed.command == "run":
        return _cmd_run(parsed, settings)
    if parsed.command == "create-index":
        return _cmd_create_index(settings)
    if parsed.command == "parse":
        return _cmd_parse(parsed, settings)

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
