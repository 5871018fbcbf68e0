"""Cloud sync ledger.

Tracks, per (table_name, record_id), whether a local record has been pushed
to the cloud store. Rows are never deleted: the ledger doubles as an audit
trail. A FAILED row is picked up again by the next retry sweep, and any new
local write resets its row to PENDING.

Every local write also bumps the row's ``generation``. A push outcome
recorded with the generation that was read before the push only applies
if no local write happened since; otherwise the row stays PENDING and the
newer version goes out with the next sweep.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import TYPE_CHECKING

from ..models import SyncRecord, SyncStatus

if TYPE_CHECKING:
    from .cache import LocalCache

logger = logging.getLogger(__name__)

_RECORD_PENDING = """
    INSERT INTO cloud_sync
        (table_name, record_id, sync_status, created_at)
    VALUES (:table, :record_id, 'pending', :now)
    ON CONFLICT(table_name, record_id) DO UPDATE SET
        sync_status = 'pending',
        error_message = NULL,
        generation = cloud_sync.generation + 1
"""

_UPSERT_OUTCOME = """
    INSERT INTO cloud_sync
        (table_name, record_id, sync_status, last_attempt_at, error_message, created_at)
    VALUES (:table, :record_id, :status, :now, :error, :now)
    ON CONFLICT(table_name, record_id) DO UPDATE SET
        sync_status = excluded.sync_status,
        last_attempt_at = excluded.last_attempt_at,
        error_message = excluded.error_message
"""

_OUTCOME_IF_UNCHANGED = """
    UPDATE cloud_sync
    SET sync_status = :status, last_attempt_at = :now, error_message = :error
    WHERE table_name = :table AND record_id = :record_id
      AND generation = :generation
"""


def record_pending(
    conn: sqlite3.Connection, table: str, record_id: int, now: str
) -> None:
    """Create or reset the ledger row for a freshly written local record.

    Runs on the caller's connection so it commits with the write itself.
    """
    conn.execute(
        _RECORD_PENDING, {"table": table, "record_id": record_id, "now": now}
    )


def _row_to_record(row: sqlite3.Row) -> SyncRecord:
    return SyncRecord(
        table_name=row["table_name"],
        record_id=row["record_id"],
        sync_status=SyncStatus(row["sync_status"]),
        last_attempt_at=row["last_attempt_at"] or None,
        error_message=row["error_message"],
        generation=row["generation"],
    )


class SyncStatusTracker:
    """Records the outcome of pushing local writes to the cloud store."""

    def __init__(self, cache: LocalCache) -> None:
        self._cache = cache

    def _record_outcome(
        self,
        table: str,
        record_id: int,
        status: SyncStatus,
        error: str | None,
        generation: int | None,
    ) -> bool:
        with self._cache.transaction() as conn:
            params = {
                "table": table,
                "record_id": record_id,
                "status": status.value,
                "error": error,
                "now": self._cache.now_iso(),
            }
            if generation is None:
                conn.execute(_UPSERT_OUTCOME, params)
                return True
            applied = conn.execute(
                _OUTCOME_IF_UNCHANGED, {**params, "generation": generation}
            ).rowcount
        if not applied:
            logger.info(
                "%s#%s changed during the push; left pending", table, record_id
            )
            return False
        return True

    def mark_pending(self, table: str, record_id: int) -> None:
        with self._cache.transaction() as conn:
            record_pending(conn, table, record_id, self._cache.now_iso())

    def mark_synced(
        self, table: str, record_id: int, generation: int | None = None
    ) -> bool:
        """Mark a record SYNCED.

        With ``generation``, only applies if the record was not written
        locally since that generation was read. Returns whether it applied.
        """
        applied = self._record_outcome(
            table, record_id, SyncStatus.SYNCED, None, generation
        )
        if applied:
            logger.debug("Synced %s#%s", table, record_id)
        return applied

    def mark_failed(
        self,
        table: str,
        record_id: int,
        error: str,
        generation: int | None = None,
    ) -> bool:
        """Mark a record FAILED; ``generation`` works as for ``mark_synced``."""
        applied = self._record_outcome(
            table, record_id, SyncStatus.FAILED, error, generation
        )
        if applied:
            logger.warning("Sync failed for %s#%s: %s", table, record_id, error)
        return applied

    def get(self, table: str, record_id: int) -> SyncRecord | None:
        with self._cache.read() as conn:
            row = conn.execute(
                "SELECT * FROM cloud_sync WHERE table_name = ? AND record_id = ?",
                (table, record_id),
            ).fetchone()
        return _row_to_record(row) if row else None

    def list_by_status(self, status: SyncStatus) -> list[SyncRecord]:
        with self._cache.read() as conn:
            rows = conn.execute(
                "SELECT * FROM cloud_sync WHERE sync_status = ? "
                "ORDER BY table_name, record_id",
                (status.value,),
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_retryable(self) -> list[SyncRecord]:
        """All FAILED records, eligible for the next retry sweep."""
        return self.list_by_status(SyncStatus.FAILED)

    def list_pending(self) -> list[SyncRecord]:
        return self.list_by_status(SyncStatus.PENDING)

    def counts(self) -> dict[str, int]:
        """Number of ledger rows per status (every status is present)."""
        with self._cache.read() as conn:
            rows = conn.execute(
                "SELECT sync_status, COUNT(*) AS n FROM cloud_sync GROUP BY sync_status"
            ).fetchall()
        result = {s.value: 0 for s in SyncStatus}
        result.update({r["sync_status"]: r["n"] for r in rows})
        return result

    def last_attempt(self) -> datetime | None:
        with self._cache.read() as conn:
            row = conn.execute(
                "SELECT MAX(last_attempt_at) AS ts FROM cloud_sync"
            ).fetchone()
        return datetime.fromisoformat(row["ts"]) if row["ts"] else None
