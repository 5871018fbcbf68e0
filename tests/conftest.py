"""Shared pytest fixtures for frontdesk-ops tests."""

import os
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from frontdesk_ops.config import Config
from frontdesk_ops.storage.cache import LocalCache
from frontdesk_ops.storage.sync_tracker import SyncStatusTracker

FIXED_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live remote directory",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live remote directory"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep a developer's FRONTDESK_* environment out of the tests."""
    for key in list(os.environ):
        if key.startswith("FRONTDESK_") or key in ("LOG_LEVEL", "LOG_FILE"):
            monkeypatch.delenv(key, raising=False)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    """Config with directory credentials (API key + site id) and tmp paths."""
    return Config(
        api_key="test-api-key",
        site_id="site-123",
        base_url="https://directory.example.com",
        token_url="https://auth.example.com/oauth/access",
        scanner_export_path=str(tmp_path / "scan-id"),
        time_clock_db_path=None,
        cache_db_path=str(tmp_path / "cache.sqlite3"),
        poll_interval=30.0,
        probe_timeout=2.0,
        request_timeout=5.0,
    )


@pytest.fixture
def cache(tmp_path, clock):
    """Initialized LocalCache in a temporary directory."""
    store = LocalCache(tmp_path / "data" / "cache.sqlite3", clock=clock)
    store.initialize()
    return store


@pytest.fixture
def tracker(cache):
    return SyncStatusTracker(cache)


@pytest.fixture
def make_response():
    """Factory fixture for ``requests.Response`` lookalikes."""

    def _create_response(status_code=200, payload=None, text=""):
        response = Mock()
        response.status_code = status_code
        response.json.return_value = payload if payload is not None else {}
        response.content = b"{}" if payload is not None else text.encode()
        response.text = text
        return response

    return _create_response


@pytest.fixture
def desk(config):
    """Fully wired FrontDesk services on an initialized temporary cache."""
    from frontdesk_ops.services import build_services

    services = build_services(config)
    services.cache.initialize()
    return services
