"""Runtime configuration for the front desk core.

Reads directory credentials, integration paths and monitor timings from CLI
args, environment variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Every credential and path is optional: the tool works offline-first, and a
missing value only marks the affected backend as disconnected.

Environment variables:
    FRONTDESK_API_KEY: Remote directory API key
    FRONTDESK_SITE_ID: Remote directory site/tenant identifier
    FRONTDESK_CLIENT_ID: OAuth client id (optional fallback strategy)
    FRONTDESK_CLIENT_SECRET: OAuth client secret
    FRONTDESK_BASE_URL: Remote directory API base URL
    FRONTDESK_TOKEN_URL: OAuth token endpoint
    FRONTDESK_SCANNER_PATH: ID-scanner export directory
    FRONTDESK_TIME_CLOCK_DB: Time-clock database file
    FRONTDESK_CACHE_DB: Local cache database file
    FRONTDESK_POLL_INTERVAL: Health-check interval in seconds (default: 30)
    FRONTDESK_PROBE_TIMEOUT: Per-probe timeout in seconds (default: 15)
    FRONTDESK_REQUEST_TIMEOUT: Remote request timeout in seconds (default: 30)
    FRONTDESK_INSECURE: Skip SSL verification (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.wixapis.com"
DEFAULT_TOKEN_URL = "https://www.wix.com/oauth/access"
DEFAULT_CACHE_DB = str(
    Path.home() / ".frontdesk" / "data" / "frontdeskops.sqlite3"
)


@dataclass
class Config:
    api_key: str | None = None
    site_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    base_url: str = DEFAULT_BASE_URL
    token_url: str = DEFAULT_TOKEN_URL
    scanner_export_path: str | None = None
    time_clock_db_path: str | None = None
    cache_db_path: str = DEFAULT_CACHE_DB
    poll_interval: float = 30.0
    probe_timeout: float = 15.0
    request_timeout: float = 30.0
    insecure: bool = False
    debug: bool = False

    @property
    def has_directory_credentials(self) -> bool:
        """True when at least one authentication strategy can be attempted."""
        return bool(self.api_key) or bool(
            self.client_id and self.client_secret
        )


def _validate_url(name: str, value: str) -> str:
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid {name} '{value}': must start with http:// or https://"
        )
    if not urlparse(value).hostname:
        raise ValueError(
            f"Invalid {name} '{value}': URL must include a hostname"
        )
    return value.removesuffix("/")


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate (URLs are normalized in place).

    Raises:
        ValueError: If a URL is malformed or a timing is out of range.
    """
    config.base_url = _validate_url("base URL", config.base_url)
    config.token_url = _validate_url("token URL", config.token_url)

    if not (1 <= config.poll_interval <= 3600):
        raise ValueError(
            f"Invalid poll interval {config.poll_interval}: must be between 1 and 3600 seconds"
        )
    if not (0 < config.probe_timeout <= 300):
        raise ValueError(
            f"Invalid probe timeout {config.probe_timeout}: must be between 0 and 300 seconds"
        )
    if not (0 < config.request_timeout <= 300):
        raise ValueError(
            f"Invalid request timeout {config.request_timeout}: must be between 0 and 300 seconds"
        )

    if not config.has_directory_credentials:
        logger.warning(
            "Remote directory credentials not configured; member lookups will use the local cache only"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_float_env(key: str) -> float | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} '{raw}': must be a number") from None


def load_config(
    api_key: str | None = None,
    site_id: str | None = None,
    scanner_path: str | None = None,
    time_clock_db: str | None = None,
    cache_db: str | None = None,
    poll_interval: float | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        api_key: Override remote directory API key.
        site_id: Override remote directory site id.
        scanner_path: Override scanner export directory.
        time_clock_db: Override time-clock database path.
        cache_db: Override local cache database path.
        poll_interval: Override health-check interval (seconds).
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file.
            Used as fallback when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is malformed.
    """
    fb = yaml_fallbacks or {}

    def pick(cli_value, env_key: str, fb_key: str):
        value = cli_value or os.getenv(env_key) or fb.get(fb_key)
        if isinstance(value, str):
            value = value.strip() or None
        return value

    def pick_float(cli_value, env_key: str, fb_key: str, default: float):
        if cli_value is not None:
            return float(cli_value)
        env_value = _get_float_env(env_key)
        if env_value is not None:
            return env_value
        if fb.get(fb_key) is not None:
            return float(fb[fb_key])
        return default

    def pick_bool(cli_value: bool, env_key: str, fb_key: str) -> bool:
        if cli_value:
            return True
        env_value = _get_bool_env(env_key)
        if env_value is not None:
            return env_value
        return bool(fb.get(fb_key, False))

    config = Config(
        api_key=pick(api_key, "FRONTDESK_API_KEY", "api_key"),
        site_id=pick(site_id, "FRONTDESK_SITE_ID", "site_id"),
        client_id=pick(None, "FRONTDESK_CLIENT_ID", "client_id"),
        client_secret=pick(
            None, "FRONTDESK_CLIENT_SECRET", "client_secret"
        ),
        base_url=pick(None, "FRONTDESK_BASE_URL", "base_url")
        or DEFAULT_BASE_URL,
        token_url=pick(None, "FRONTDESK_TOKEN_URL", "token_url")
        or DEFAULT_TOKEN_URL,
        scanner_export_path=pick(
            scanner_path, "FRONTDESK_SCANNER_PATH", "scanner_export_path"
        ),
        time_clock_db_path=pick(
            time_clock_db, "FRONTDESK_TIME_CLOCK_DB", "time_clock_db_path"
        ),
        cache_db_path=pick(cache_db, "FRONTDESK_CACHE_DB", "cache_db_path")
        or DEFAULT_CACHE_DB,
        poll_interval=pick_float(
            poll_interval, "FRONTDESK_POLL_INTERVAL", "poll_interval", 30.0
        ),
        probe_timeout=pick_float(
            None, "FRONTDESK_PROBE_TIMEOUT", "probe_timeout", 15.0
        ),
        request_timeout=pick_float(
            None, "FRONTDESK_REQUEST_TIMEOUT", "request_timeout", 30.0
        ),
        insecure=pick_bool(insecure, "FRONTDESK_INSECURE", "insecure"),
        debug=pick_bool(debug, "FRONTDESK_DEBUG", "debug"),
    )

    validate_config(config)

    return config
