"""Pydantic models for the cloud sync sweep.

- ``PushResult``: outcome of pushing one ledger record.
- ``SyncReport``: aggregate results for one sweep.

All models are frozen (immutable).
"""

from __future__ import annotations

from pydantic import BaseModel


class PushResult(BaseModel):
    """Result of pushing one local record to the cloud store.

    Attributes:
        table_name: Local table the record lives in.
        record_id: Local surrogate key.
        retried: True if the record was FAILED before this attempt.
        success: Whether the push succeeded.
        error: Error message if the push failed.
    """

    table_name: str
    record_id: int
    retried: bool = False
    success: bool
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one sweep over the ledger.

    Attributes:
        results: Individual push results, in sweep order.
        started_at: ISO 8601 timestamp when the sweep started.
        completed_at: ISO 8601 timestamp when the sweep completed.
    """

    results: list[PushResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def synced(self) -> list[PushResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[PushResult]:
        return [r for r in self.results if not r.success]

    @property
    def retried(self) -> list[PushResult]:
        return [r for r in self.results if r.retried]

    def summary(self) -> str:
        """Format a human-readable summary of the sweep.

        Returns:
            Multi-line summary string with counts by outcome.
        """
        lines = [
            f"Cloud sync sweep started {self.started_at}",
            f"  Synced:  {len(self.synced)}",
            f"  Failed:  {len(self.failed)}",
            f"  Retried: {len(self.retried)}",
            f"  Total:   {len(self.results)}",
        ]
        for result in self.failed:
            lines.append(
                f"  ! {result.table_name}#{result.record_id}: {result.error}"
            )
        return "\n".join(lines)
