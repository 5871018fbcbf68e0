"""Connection health monitor for the desk's backends.

Each backend has its own blocking probe. A round runs every probe in a
worker thread concurrently, each bounded by ``probe_timeout``, and each
backend's state is updated as soon as its own probe finishes, so one hung
backend never delays the others.

Status flow per backend::

    UNKNOWN -> CONNECTING -> CONNECTED | DISCONNECTED -> CONNECTING -> ...

CONNECTING is visible in ``status()``/``snapshot()`` while a probe is in
flight but is never published. A ``StatusChange`` is published only when a
probe settles on a different status than the previous settled one, so
repeated identical outcomes produce no events.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..config import Config
from ..core.async_utils import run_sync_bounded
from ..core.auth import AuthenticationManager
from ..errors import ConfigurationMissing, FrontDeskError
from ..integrations.scanner_export import ScannerExport
from ..integrations.time_clock import TimeClockStore
from ..models import BackendId, ConnectionState, ConnectionStatus, StatusChange
from ..storage.cache import LocalCache

logger = logging.getLogger(__name__)

Subscriber = Callable[[StatusChange], Any]


@dataclass(frozen=True)
class ProbeResult:
    connected: bool
    detail: str | None = None
    # backend-specific facts kept alongside the state, e.g. scanner file counts
    extra: dict[str, Any] | None = None


Probe = Callable[[], ProbeResult]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionHealthMonitor:
    """Tracks the health of every backend and publishes status changes.

    Args:
        config: Supplies ``poll_interval`` and ``probe_timeout``.
        probes: Blocking probe per backend. Use ``default_probes()`` to
            build the standard set.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        config: Config,
        probes: dict[BackendId, Probe],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config
        self.probes = probes
        self._clock = clock
        self._lock = threading.Lock()
        self._states = self._initial_states()
        self._settled = {b: ConnectionStatus.UNKNOWN for b in probes}
        self._details: dict[BackendId, dict[str, Any]] = {}
        self._subscribers: list[Subscriber] = []
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self.last_checked: datetime | None = None

    def _initial_states(self) -> dict[BackendId, ConnectionState]:
        return {b: ConnectionState(backend_id=b) for b in self.probes}

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback (sync or async) for ``StatusChange`` events."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def subscribe_queue(self) -> asyncio.Queue:
        """Return a queue that receives every future ``StatusChange``."""
        queue: asyncio.Queue = asyncio.Queue()
        self.subscribe(queue.put_nowait)
        return queue

    async def _publish(self, change: StatusChange) -> None:
        logger.info(
            "%s: %s -> %s",
            change.backend_id.value,
            change.old_status.value,
            change.new_status.value,
        )
        for callback in list(self._subscribers):
            try:
                result = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Status subscriber failed for %s", change.backend_id.value
                )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def status(self, backend: BackendId) -> ConnectionState:
        with self._lock:
            return self._states[backend]

    def snapshot(self) -> dict[str, Any]:
        """All backend states plus the time the last full round finished."""
        with self._lock:
            states = dict(self._states)
            details = dict(self._details)
        return {
            "backends": {b.value: s for b, s in states.items()},
            "details": {b.value: d for b, d in details.items()},
            "last_checked": self.last_checked,
        }

    def _mark_connecting(self, backend: BackendId) -> None:
        with self._lock:
            state = self._states[backend]
            self._states[backend] = state.model_copy(
                update={"status": ConnectionStatus.CONNECTING}
            )

    def _settle(
        self, backend: BackendId, result: ProbeResult
    ) -> StatusChange | None:
        new_status = (
            ConnectionStatus.CONNECTED
            if result.connected
            else ConnectionStatus.DISCONNECTED
        )
        now = self._clock()
        with self._lock:
            old_status = self._settled[backend]
            self._settled[backend] = new_status
            if result.extra is not None:
                self._details[backend] = result.extra
            state = self._states[backend]
            update: dict[str, Any] = {
                "status": new_status,
                "detail": result.detail,
            }
            if old_status != new_status:
                update["last_transition_at"] = now
            self._states[backend] = state.model_copy(update=update)

        if old_status == new_status:
            return None
        return StatusChange(
            backend_id=backend,
            old_status=old_status,
            new_status=new_status,
            timestamp=now,
        )

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def _check_backend(self, backend: BackendId) -> None:
        self._mark_connecting(backend)
        try:
            result = await run_sync_bounded(
                self.probes[backend], self.config.probe_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s probe timed out after %ss",
                backend.value,
                self.config.probe_timeout,
            )
            result = ProbeResult(
                False, f"Probe timed out after {self.config.probe_timeout}s"
            )
        except FrontDeskError as e:
            logger.warning("%s unavailable: %s", backend.value, e)
            result = ProbeResult(False, str(e))
        except Exception as e:
            logger.error("%s probe failed: %s", backend.value, e)
            result = ProbeResult(False, f"Probe error: {e}")

        change = self._settle(backend, result)
        if change is not None:
            await self._publish(change)

    async def check_all(self) -> None:
        """Run one round of every probe concurrently."""
        await asyncio.gather(*(self._check_backend(b) for b in self.probes))
        self.last_checked = self._clock()
        logger.debug("Health round finished at %s", self.last_checked)

    async def _run(self) -> None:
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            await self.check_all()
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), self.config.poll_interval
                )
            except asyncio.TimeoutError:
                pass

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Reset every backend to UNKNOWN and start the probe loop.

        The first round starts immediately; later rounds follow every
        ``poll_interval`` seconds.
        """
        if self.running:
            return
        with self._lock:
            self._states = self._initial_states()
            self._settled = {b: ConnectionStatus.UNKNOWN for b in self.probes}
            self._details = {}
        self.last_checked = None
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Connection monitor started (interval %ss, %d backends)",
            self.config.poll_interval,
            len(self.probes),
        )

    async def stop(self) -> None:
        """Stop the loop and tear down state. Safe to call repeatedly."""
        if self._task is None:
            return
        task, self._task = self._task, None
        if self._stop_event is not None:
            self._stop_event.set()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        with self._lock:
            self._states = self._initial_states()
            self._details = {}
        logger.info("Connection monitor stopped")


def default_probes(
    auth: AuthenticationManager,
    cache: LocalCache,
    scanner: ScannerExport,
    time_clock: TimeClockStore,
) -> dict[BackendId, Probe]:
    """Build the standard probe for each of the four backends."""

    def remote_directory() -> ProbeResult:
        if not auth.has_credentials():
            raise ConfigurationMissing("remote directory credentials")
        if auth.authenticate():
            credential = auth.current_credential()
            strategy = credential.strategy.value if credential else "?"
            return ProbeResult(True, f"Authenticated via {strategy}")
        return ProbeResult(False, "All authentication methods failed")

    def local_cache() -> ProbeResult:
        if cache.ping():
            return ProbeResult(True, str(cache.db_path))
        return ProbeResult(False, "Liveness query failed")

    def scanner_export() -> ProbeResult:
        check = scanner.check()
        return ProbeResult(
            check.available,
            check.detail,
            extra={
                "path": str(check.path),
                "files_today": check.files_today,
                "latest_file": check.latest_file,
            },
        )

    def time_clock_store() -> ProbeResult:
        if time_clock.exists():
            return ProbeResult(True, str(time_clock.path))
        return ProbeResult(False, "Time-clock database not found")

    return {
        BackendId.REMOTE_DIRECTORY: remote_directory,
        BackendId.LOCAL_CACHE: local_cache,
        BackendId.SCANNER_EXPORT: scanner_export,
        BackendId.TIME_CLOCK_STORE: time_clock_store,
    }
