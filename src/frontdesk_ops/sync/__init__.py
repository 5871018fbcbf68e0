"""Reconciliation of local records against the cloud store."""

from .models import PushResult, SyncReport
from .sweeper import CloudPusher, CloudSyncSweeper

__all__ = ["CloudPusher", "CloudSyncSweeper", "PushResult", "SyncReport"]
