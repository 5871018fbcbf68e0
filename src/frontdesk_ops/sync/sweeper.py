"""Cloud sync sweep over the local ledger.

Pushes every PENDING record, and retries every FAILED one, to the cloud
store. The cloud store itself is external: anything satisfying
``CloudPusher`` can be plugged in. Pushes are upserts keyed by
(table_name, record_id), so re-running a sweep never duplicates data.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ..errors import SyncFailure
from ..models import SyncRecord, SyncStatus
from ..storage.cache import LocalCache
from ..storage.sync_tracker import SyncStatusTracker
from .models import PushResult, SyncReport

logger = logging.getLogger(__name__)


class CloudPusher(Protocol):
    """Protocol that cloud store adapters must satisfy."""

    def push(self, table_name: str, record: dict[str, Any]) -> None:
        """Upsert one local row into the cloud store.

        Args:
            table_name: Local table name (doubles as the cloud container).
            record: The full local row, including its ``id``.

        Raises:
            Exception: Any failure; the sweep records it on the ledger.
        """
        ...  # pragma: no cover


class CloudSyncSweeper:
    def __init__(
        self,
        cache: LocalCache,
        tracker: SyncStatusTracker,
        pusher: CloudPusher,
    ) -> None:
        self.cache = cache
        self.tracker = tracker
        self.pusher = pusher

    def _push_one(self, record: SyncRecord) -> PushResult:
        retried = record.sync_status == SyncStatus.FAILED
        table, record_id = record.table_name, record.record_id
        try:
            row = self.cache.get_row(table, record_id)
            if row is None:
                raise SyncFailure(table, record_id, "local record no longer exists")
            try:
                self.pusher.push(table, row)
            except Exception as e:
                raise SyncFailure(table, record_id, str(e)) from e
        except (SyncFailure, ValueError) as e:
            self.tracker.mark_failed(
                table, record_id, str(e), generation=record.generation
            )
            return PushResult(
                table_name=table,
                record_id=record_id,
                retried=retried,
                success=False,
                error=str(e),
            )

        self.tracker.mark_synced(table, record_id, generation=record.generation)
        return PushResult(
            table_name=table,
            record_id=record_id,
            retried=retried,
            success=True,
        )

    def run(self) -> SyncReport:
        """Push all PENDING records, then retry all FAILED ones.

        Every outcome is written to the ledger; nothing is dropped.
        """
        started_at = self.cache.now_iso()
        queue = self.tracker.list_pending() + self.tracker.list_retryable()
        logger.info("Cloud sync sweep: %d record(s) to push", len(queue))

        results = [self._push_one(record) for record in queue]

        report = SyncReport(
            results=results,
            started_at=started_at,
            completed_at=self.cache.now_iso(),
        )
        logger.info(
            "Cloud sync sweep finished: %d synced, %d failed",
            len(report.synced),
            len(report.failed),
        )
        return report
