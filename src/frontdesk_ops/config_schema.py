"""Unified configuration schema for frontdesk_ops.

Defines Pydantic models for the YAML config structure with dedicated
sections for the remote directory, the two file-based integrations, the
local cache, the health monitor and logging. Includes an adapter that
flattens the sections into the fallback dict consumed by ``load_config()``.

Usage:
    from frontdesk_ops.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class DirectoryConfig(BaseModel):
    """Remote member directory settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    api_key: str | None = Field(default=None, description="API key")
    site_id: str | None = Field(
        default=None, description="Site/tenant identifier"
    )
    client_id: str | None = Field(
        default=None, description="OAuth client id"
    )
    client_secret: str | None = Field(
        default=None, description="OAuth client secret"
    )
    base_url: str | None = Field(
        default=None, description="Directory API base URL"
    )
    token_url: str | None = Field(
        default=None, description="OAuth token endpoint"
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for directory requests in seconds",
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )

    model_config = {"frozen": True}


class ScannerConfig(BaseModel):
    """ID-scanner export directory."""

    path: str | None = Field(
        default=None,
        description="Export directory (platform default when unset)",
    )

    model_config = {"frozen": True}


class TimeClockConfig(BaseModel):
    """Time-clock database file."""

    db_path: str | None = Field(
        default=None,
        description="Database file (auto-discovered when unset)",
    )

    model_config = {"frozen": True}


class CacheConfig(BaseModel):
    db_path: str | None = Field(
        default=None, description="Local cache database file"
    )

    model_config = {"frozen": True}


class HealthConfig(BaseModel):
    """Connection health monitor timings."""

    poll_interval: float = Field(
        default=30.0,
        ge=1,
        le=3600,
        description="Seconds between probe rounds",
    )
    probe_timeout: float = Field(
        default=15.0,
        gt=0,
        le=300,
        description="Seconds before a single probe is treated as failed",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    time_clock: TimeClockConfig = Field(default_factory=TimeClockConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully -- anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten a ``UnifiedConfig`` into ``load_config()`` fallback keys.

    Only values that are actually set are returned, so built-in defaults
    in ``load_config()`` still apply for the rest.
    """
    d = unified.directory
    flat = {
        "api_key": d.api_key,
        "site_id": d.site_id,
        "client_id": d.client_id,
        "client_secret": d.client_secret,
        "base_url": d.base_url,
        "token_url": d.token_url,
        "request_timeout": d.request_timeout,
        "insecure": d.insecure,
        "scanner_export_path": unified.scanner.path,
        "time_clock_db_path": unified.time_clock.db_path,
        "cache_db_path": unified.cache.db_path,
        "poll_interval": unified.health.poll_interval,
        "probe_timeout": unified.health.probe_timeout,
    }
    return {k: v for k, v in flat.items() if v is not None}
