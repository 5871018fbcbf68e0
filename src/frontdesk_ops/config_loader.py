"""
YAML config files for the front desk.

Files are found by convention (explicit path, project, user), may pull in
other files with ``!include``, and may reference the environment with
``${VAR}`` or ``${VAR:-default}``. The merged result is a plain dict that
``config_schema.build_config`` validates.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".frontdesk"
CONFIG_ENV_VAR = "FRONTDESK_CONFIG"

_ENV_REFERENCE = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-default}`` references in one string.

    Unset and empty variables both take the default, or "" without one.
    A ``${`` with no closing brace is not a reference.
    """

    def _expand(match: re.Match) -> str:
        name, default = match.groups()
        return os.environ.get(name) or (default or "")

    return _ENV_REFERENCE.sub(_expand, value)


def _interpolate_recursive(node: Any) -> Any:
    match node:
        case str():
            return interpolate_env_vars(node)
        case dict():
            return {key: _interpolate_recursive(val) for key, val in node.items()}
        case list():
            return [_interpolate_recursive(item) for item in node]
        case _:
            return node


class ConfigLoader(yaml.SafeLoader):
    """Safe loader that understands ``!include``.

    ``chain`` holds the files currently being loaded, outermost first, so
    an include cycle is reported instead of recursing forever.
    """

    def __init__(self, stream, chain: tuple[Path, ...]):
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        including = self.chain[-1]
        target = Path(self.construct_scalar(node))
        if not target.is_absolute():
            target = including.parent / target
        target = target.resolve()

        if target in self.chain:
            cycle = " -> ".join(str(p) for p in (*self.chain, target))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.exists():
            raise FileNotFoundError(
                f"Include file not found: {target} (referenced from {including})"
            )
        return _load_yaml(target, _chain=(*self.chain, target))


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def _load_yaml(path: Path, *, _chain: tuple[Path, ...] = ()) -> Any:
    path = path.resolve()
    with open(path, encoding="utf-8") as fh:
        loader = ConfigLoader(fh, _chain or (path,))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def _search_paths() -> list[Path]:
    paths = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser().resolve()
        if not path.exists():
            logger.warning("%s points at a missing file: %s", CONFIG_ENV_VAR, path)
        paths.append(path)
    project = Path.cwd() / CONFIG_DIR_NAME
    paths += [project / "config.yml", project / "config.yaml"]
    paths.append(Path.home() / ".config" / "frontdesk" / "config.yml")
    return paths


def discover_config_files() -> list[Path]:
    """Existing config files, most specific first.

    ``$FRONTDESK_CONFIG``, then ``./.frontdesk/config.yml`` and
    ``./.frontdesk/config.yaml``, then ``~/.config/frontdesk/config.yml``.
    """
    return [path for path in _search_paths() if path.exists()]


_STARTER_CONFIG = """\
# frontdesk-ops configuration
#
# Every value can also come from the environment, e.g.
#   FRONTDESK_API_KEY, FRONTDESK_SITE_ID, FRONTDESK_SCANNER_PATH
# and ${VAR} / ${VAR:-default} references are expanded below.
#
# directory:
#   api_key: ${FRONTDESK_API_KEY}
#   site_id: your-site-id
#   client_id: null
#   client_secret: null
#   request_timeout: 30
#
# scanner:
#   path: ~/BCR/Scan-ID
#
# time_clock:
#   db_path: null        # auto-discovered when unset
#
# cache:
#   db_path: ~/.frontdesk/data/frontdeskops.sqlite3
#
# health:
#   poll_interval: 30
#   probe_timeout: 15
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to create the starter file. Defaults to
            ``CWD / .frontdesk / config.yml``.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / CONFIG_DIR_NAME / "config.yml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one dict.

    The least specific file is read first. A later file replaces whole
    top-level sections (``directory``, ``health`` and so on) rather than
    merging into them. ``${VAR}`` references are expanded last. With no
    config files the result is ``{}``.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Reading config file %s", path)
        data = _load_yaml(path)
        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring %s: expected a mapping at the top, got %s",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)
    return _interpolate_recursive(merged)
