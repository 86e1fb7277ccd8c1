"""ZincSearch bulk indexing client.

Records are accumulated in memory and shipped to ``{zinc_url}/api/_bulk`` as
NDJSON once ``batch_size`` of them are pending. The batch is swapped out under
a lock and the HTTP request is made without it, so producers calling
:meth:`ZincClient.index` never wait on network latency unless they are the one
that filled the batch.

Notes:
    Records still pending when the process exits are lost unless
    :meth:`ZincClient.drain` is called. Failed batches are not retried.
"""

from __future__ import annotations

import base64
import http.client
import json
import threading
import urllib.error
import urllib.request

import structlog

from mail_index.config import Settings
from mail_index.exceptions import IndexingRemoteError, IndexingTransportError
from mail_index.models import EmailRecord
from mail_index.utils import retry_on_failure
from mail_index.zinc.stats import IndexingStats, StatsSnapshot

logger = structlog.get_logger()


INDEX_MAPPING = {
    "settings": {"number_of_shards": 1, "number_of_replicas": 0},
    "mappings": {
        "properties": {
            "message_id": {"type": "keyword"},
            "date": {"type": "date"},
            "from": {"type": "keyword"},
            "to": {"type": "text"},
            "subject": {"type": "text"},
            "content": {"type": "text"},
            "filepath": {"type": "keyword"},
        }
    },
}


def remote_error(status: int, body: bytes) -> IndexingRemoteError:
    """Build the error for a >= 400 response.

    A JSON body of the form ``{"error": str, "code": int}`` yields the category
    ``status_<code>_<error>``; ``code`` falls back to the HTTP status when it is
    absent. Any other body yields ``status_<http status>``.
    """

    text = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text)
    except ValueError:
        payload = None

    if isinstance(payload, dict) and isinstance(payload.get("error", ""), str):
        message = payload.get("error", "")
        code = payload.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            code = status
        return IndexingRemoteError(status, f"status_{code}_{message}", message)

    return IndexingRemoteError(status, f"status_{status}", text)


class ZincClient:
    """Batching client for the ZincSearch bulk API."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        stats: IndexingStats | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings. If None, uses default settings.
            stats: Counters to update. If None, a fresh set is created.
            retry_delay: Initial backoff for retrying index creation.
        """
        from mail_index.config import get_settings

        self.settings = settings or get_settings()
        self.stats = stats or IndexingStats()
        self._retry_delay = retry_delay
        self._base_url = self.settings.zinc_url.rstrip("/")
        credentials = f"{self.settings.zinc_username}:{self.settings.zinc_password}"
        self._authorization = "Basic " + base64.b64encode(credentials.encode("utf-8")).decode("ascii")

        self._batch: list[EmailRecord] = []
        self._batch_lock = threading.Lock()
        self._send_lock = threading.Lock()

        logger.info(
            "zinc_client_initialized",
            url=self._base_url,
            index=self.settings.index_name,
            batch_size=self.settings.batch_size,
        )

    @property
    def batch_size(self) -> int:
        return self.settings.batch_size

    @property
    def pending_count(self) -> int:
        """Number of records waiting for the next flush."""

        with self._batch_lock:
            return len(self._batch)

    def index(self, record: EmailRecord) -> None:
        """Add a record to the current batch, flushing it once full.

        The record is accepted even when the resulting flush fails.

        Raises:
            IndexingTransportError: If the service could not be reached.
            IndexingRemoteError: If the service rejected the batch.
        """

        with self._batch_lock:
            self._batch.append(record)
            if len(self._batch) < self.batch_size:
                return
            batch = self._swap_batch()

        self._send_batch(batch)

    def flush(self) -> None:
        """Send whatever is pending, regardless of the batch size."""

        with self._batch_lock:
            batch = self._swap_batch()

        if batch:
            self._send_batch(batch)

    def drain(self) -> None:
        """Flush the final partial batch. Call exactly once at shutdown."""

        logger.info("zinc_drain", pending=self.pending_count)
        self.flush()

    def get_stats(self) -> StatsSnapshot:
        return self.stats.snapshot()

    def create_index(self) -> bool:
        """Create the index with the email mapping.

        Failures are logged rather than raised since the index commonly exists
        already. Transport failures are retried up to ``max_retries`` times.

        Returns:
            True if the service accepted the mapping.
        """

        post = retry_on_failure(
            max_retries=self.settings.max_retries,
            delay=self._retry_delay,
            exceptions=(IndexingTransportError,),
        )(self._post)

        try:
            status, body = post("/api/index", json.dumps(INDEX_MAPPING).encode("utf-8"), "application/json")
        except IndexingTransportError as exc:
            logger.warning("index_creation_failed", error=str(exc))
            return False

        if status >= 400:
            logger.warning(
                "index_creation_failed",
                status=status,
                body=body.decode("utf-8", errors="replace"),
            )
            return False

        logger.info("index_created", index=self.settings.index_name)
        return True

    def _swap_batch(self) -> list[EmailRecord]:
        batch = self._batch
        self._batch = []
        return batch

    def _build_bulk_body(self, batch: list[EmailRecord]) -> bytes:
        action = json.dumps({"index": {"_index": self.settings.index_name}})
        lines: list[str] = []
        for record in batch:
            lines.append(action)
            lines.append(record.to_document())
        return ("\n".join(lines) + "\n").encode("utf-8")

    def _send_batch(self, batch: list[EmailRecord]) -> None:
        self.stats.record_attempt(len(batch))
        body = self._build_bulk_body(batch)

        with self._send_lock:
            try:
                status, response = self._post("/api/_bulk", body, "application/x-ndjson")
            except IndexingTransportError as exc:
                logger.error("zinc_batch_failed", batch_size=len(batch), error=str(exc))
                raise

        if status >= 400:
            error = remote_error(status, response)
            self.stats.record_error(error.category)
            logger.error(
                "zinc_batch_failed",
                batch_size=len(batch),
                status=status,
                category=error.category,
            )
            raise error

        self.stats.record_success(len(batch))
        logger.debug("zinc_batch_flushed", batch_size=len(batch), status=status)

    def _post(self, path: str, body: bytes, content_type: str) -> tuple[int, bytes]:
        req = urllib.request.Request(
            url=f"{self._base_url}{path}",
            data=body,
            headers={
                "Authorization": self._authorization,
                "Content-Type": content_type,
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.settings.http_timeout) as resp:  # noqa: S310
                return resp.status, resp.read()
        except urllib.error.HTTPError as e:
            try:
                return e.code, e.read()
            finally:
                e.close()
        except (OSError, http.client.HTTPException) as e:
            raise IndexingTransportError(f"error sending request to {path}: {e}") from e
