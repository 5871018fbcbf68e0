"""Wiring of the front desk components.

Every component receives its collaborators through its constructor; this
module is the only place that knows the full graph.
"""

from dataclasses import dataclass

from .config import Config
from .core.auth import AuthenticationManager
from .core.client import RemoteDirectoryClient
from .health.monitor import ConnectionHealthMonitor, default_probes
from .integrations.scanner_export import ScannerExport
from .integrations.time_clock import TimeClockStore
from .resolver import IdentityResolver
from .storage.cache import LocalCache
from .storage.sync_tracker import SyncStatusTracker


@dataclass
class FrontDesk:
    """All long-lived services for one running instance."""

    config: Config
    cache: LocalCache
    tracker: SyncStatusTracker
    auth: AuthenticationManager
    remote: RemoteDirectoryClient
    resolver: IdentityResolver
    scanner: ScannerExport
    time_clock: TimeClockStore
    monitor: ConnectionHealthMonitor


def build_services(config: Config) -> FrontDesk:
    """Construct the component graph. Performs no I/O."""
    cache = LocalCache(config.cache_db_path)
    auth = AuthenticationManager(config)
    remote = RemoteDirectoryClient(config, auth)
    scanner = ScannerExport(config.scanner_export_path)
    time_clock = TimeClockStore(config)
    monitor = ConnectionHealthMonitor(
        config, default_probes(auth, cache, scanner, time_clock)
    )
    return FrontDesk(
        config=config,
        cache=cache,
        tracker=SyncStatusTracker(cache),
        auth=auth,
        remote=remote,
        resolver=IdentityResolver(cache, remote),
        scanner=scanner,
        time_clock=time_clock,
        monitor=monitor,
    )
