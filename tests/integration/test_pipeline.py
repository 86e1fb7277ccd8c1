"""End-to-end pipeline tests against a local fake ZincSearch server.

These run the full walk -> parse -> index -> drain flow with real threads and
real HTTP requests to an in-process server.
"""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from mail_index.exceptions import ConfigurationError
from mail_index.pipeline import run_pipeline, walk_email_files
from mail_index.zinc import ZincClient


@pytest.mark.integration
class TestPipeline:
    """Integration tests for the ingestion pipeline."""

    def test_valid_missing_date_and_malformed_files(self, tmp_path, zinc_server, make_settings, email_factory) -> None:
        """One good file, one without Date, one without a blank-line boundary."""
        maildir = tmp_path / "maildir" / "allen-p" / "inbox"
        maildir.mkdir(parents=True)
        (maildir / "valid").write_bytes(email_factory())
        (maildir / "no_date").write_bytes(email_factory(date=None))
        (maildir / "no_boundary").write_bytes(email_factory(separator=False))

        settings = make_settings(batch_size=1, workers=2)
        summary = run_pipeline(settings, root=tmp_path / "maildir")

        bulk = zinc_server.bulk_requests()
        assert len(bulk) == 1
        documents = bulk[0].documents()
        assert len(documents) == 1
        assert documents[0]["filepath"] == str(maildir / "valid")

        assert summary.emails_found == 1
        assert summary.pool_errors == 2
        assert summary.stats.batches_processed == 1
        assert summary.stats.total_processed == 1
        assert summary.stats.total_indexed == 1
        assert summary.stats.errors == {}
        assert len(zinc_server.requests_to("/api/index")) == 1

    def test_partial_batch_is_drained(self, tmp_path, zinc_server, make_settings, email_factory) -> None:
        """Records below the threshold are flushed at the end of the run."""
        for n in range(7):
            (tmp_path / f"{n}").write_bytes(email_factory(message_id=f"<id-{n}@example.com>"))

        summary = run_pipeline(make_settings(batch_size=5, workers=3, queue_size=2), root=tmp_path)

        sizes = sorted(len(r.documents()) for r in zinc_server.bulk_requests())
        assert sizes == [2, 5]
        assert summary.emails_found == 7
        assert summary.stats.total_indexed == 7
        assert summary.stats.batches_processed == 2

    def test_remote_errors_do_not_abort_the_run(self, tmp_path, zinc_server, make_settings, email_factory) -> None:
        """Rejected batches are counted by category and the walk completes."""
        zinc_server.respond("/api/_bulk", 500, {"error": "disk full", "code": 500})
        for n in range(4):
            (tmp_path / f"{n}").write_bytes(email_factory(message_id=f"<id-{n}@example.com>"))

        summary = run_pipeline(make_settings(batch_size=2, workers=2), root=tmp_path)

        # Only the record that filled each batch sees the flush error.
        assert summary.emails_found == 2
        assert summary.pool_errors == 2
        assert summary.stats.total_processed == 4
        assert summary.stats.total_indexed == 0
        assert summary.stats.errors == {"status_500_disk full": 2}

    def test_progress_is_reported(self, tmp_path, zinc_server, make_settings, email_factory) -> None:
        """A progress line is logged every report_interval records."""
        for n in range(6):
            (tmp_path / f"{n}").write_bytes(email_factory(message_id=f"<id-{n}@example.com>"))

        settings = make_settings(batch_size=10, workers=2, report_interval=3)
        with capture_logs() as logs:
            run_pipeline(settings, root=tmp_path, client=ZincClient(settings))

        progress = [e for e in logs if e["event"] == "pipeline_progress"]
        assert [e["batch"] for e in progress] == [1, 2]
        assert all(e["last_from"] == "phillip.allen@enron.com" for e in progress)
        summary = [e for e in logs if e["event"] == "pipeline_summary"]
        assert len(summary) == 1
        assert summary[0]["total_indexed"] == 6

    def test_worker_count_below_one_fails_before_index_creation(self, tmp_path, zinc_server, make_settings) -> None:
        """An invalid worker count is rejected before any request is sent."""
        with pytest.raises(ConfigurationError, match="Worker count"):
            run_pipeline(make_settings(), root=tmp_path, workers=0)

        assert zinc_server.requests == []


def test_walk_email_files_yields_only_files(tmp_path) -> None:
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "2").write_text("x")
    (tmp_path / "a" / "1").write_text("x")
    (tmp_path / "b" / "nested").mkdir()
    (tmp_path / "b" / "nested" / "3").write_text("x")
    (tmp_path / "top").write_text("x")

    paths = list(walk_email_files(tmp_path))

    assert paths == [
        str(tmp_path / "top"),
        str(tmp_path / "a" / "1"),
        str(tmp_path / "a" / "2"),
        str(tmp_path / "b" / "nested" / "3"),
    ]
