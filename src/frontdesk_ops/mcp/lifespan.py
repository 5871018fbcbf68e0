"""Startup and shutdown of the front desk services for the MCP server.

Startup is offline-first: the remote directory is never contacted here,
so a desk without network or credentials still serves the local cache.
The connection monitor reports the directory's state once its first
round has run.
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import build_config, to_fallbacks
from ..core.async_utils import run_sync
from ..services import FrontDesk, build_services

logger = logging.getLogger(__name__)

# CLI override keys understood by load_config()
CONFIG_KEYS = (
    "api_key",
    "site_id",
    "scanner_path",
    "time_clock_db",
    "cache_db",
    "poll_interval",
    "insecure",
    "debug",
)


def _stderr_print(msg: str) -> None:
    """Print to stderr, the only console output allowed in MCP mode."""
    print(msg, file=sys.stderr, flush=True)


def _resolve_config(overrides: dict[str, Any]) -> tuple[Config, list[str]]:
    """Merge CLI overrides, env vars / .env and YAML into a Config.

    Returns the config and a description of the sources that were used.
    """
    # .env first, so ${VAR} references in YAML see its values
    load_dotenv()

    sources: list[str] = []
    yaml_fallbacks = None
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = to_fallbacks(unified)
        if not os.getenv("LOG_LEVEL"):
            logging.getLogger("frontdesk_ops").setLevel(
                unified.logging.level.upper()
            )
        sources.append(f"config file: {config_files[0]}")

    kwargs = {key: overrides[key] for key in CONFIG_KEYS if key in overrides}
    if kwargs:
        sources.append("CLI arguments")
    sources.append("environment variables")
    return load_config(yaml_fallbacks=yaml_fallbacks, **kwargs), sources


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[FrontDesk]:
    """
    Build the services, open the cache and run the connection monitor.

    Args:
        config_overrides: Values from the command line; keys not in
            ``CONFIG_KEYS`` (``read_only``, ``log_file``) are ignored here.

    Yields:
        The ``FrontDesk`` services bundle.

    Raises:
        RuntimeError: The configuration is invalid or the local cache
            cannot be initialized.
    """
    logger.info("MCP server starting...")
    _stderr_print("Front desk MCP server starting...")

    try:
        config, sources = _resolve_config(config_overrides or {})
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e
    logger.info("Configuration loaded from: %s", ", ".join(sources))
    _stderr_print(f"  Configuration loaded from: {', '.join(sources)}")

    services = build_services(config)
    try:
        await run_sync(services.cache.initialize)
    except Exception as e:
        logger.error("Failed to initialize local cache: %s", e)
        _stderr_print(f"ERROR: Local cache unavailable: {e}")
        raise RuntimeError(f"Local cache unavailable: {e}") from e
    _stderr_print(f"  Local cache: {services.cache.db_path}")

    if not config.has_directory_credentials:
        _stderr_print(
            "  Remote directory credentials not set; running on the local cache only."
        )

    await services.monitor.start()
    _stderr_print(f"  Connection monitor running every {config.poll_interval:g}s")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield services
    finally:
        await services.monitor.stop()
        logger.info("MCP server shutting down")
        _stderr_print("Front desk MCP server shutting down.")
