"""Local persistence: the SQLite cache and the cloud sync ledger."""

from .cache import LocalCache
from .sync_tracker import SyncStatusTracker

__all__ = ["LocalCache", "SyncStatusTracker"]
