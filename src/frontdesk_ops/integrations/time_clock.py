"""Read-only access to the time-clock vendor's embedded database.

The vendor schema is not ours: this module only answers "can we reach it"
and hands back raw rows for queries the caller writes.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from ..config import Config
from .platform_paths import find_first_existing, time_clock_candidates

logger = logging.getLogger(__name__)


class TimeClockStore:
    """Locates and reads the time-clock database.

    When no path is configured, the platform default locations are searched
    and the first hit is stored on ``config.time_clock_db_path`` so later
    probes go straight to it.
    """

    def __init__(
        self, config: Config, candidates: list[Path] | None = None
    ):
        self.config = config
        self._candidates = candidates

    @property
    def path(self) -> Path | None:
        if self.config.time_clock_db_path:
            return Path(self.config.time_clock_db_path).expanduser()
        return None

    def discover(self) -> Path | None:
        """Return the configured path, or search the default locations."""
        if self.path is not None:
            return self.path
        candidates = (
            self._candidates
            if self._candidates is not None
            else time_clock_candidates()
        )
        found = find_first_existing(candidates)
        if found is not None:
            logger.info("Discovered time-clock database at %s", found)
            self.config.time_clock_db_path = str(found)
        return found

    def exists(self) -> bool:
        path = self.discover()
        return path is not None and path.is_file()

    def _connect(self) -> sqlite3.Connection:
        path = self.discover()
        if path is None:
            raise FileNotFoundError("Time-clock database not found")
        conn = sqlite3.connect(f"{path.as_uri()}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    def ping(self) -> bool:
        """Open the database read-only and run a trivial query."""
        try:
            conn = self._connect()
        except (FileNotFoundError, sqlite3.Error) as e:
            logger.warning("Time-clock database unreachable: %s", e)
            return False
        try:
            conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning("Time-clock database query failed: %s", e)
            return False
        finally:
            conn.close()

    def fetch_rows(
        self, sql: str, params: tuple | dict = ()
    ) -> list[dict[str, Any]]:
        """Run a read-only query and return rows as plain dicts.

        Raises:
            FileNotFoundError: If no database could be located.
            sqlite3.Error: On query errors, including attempted writes.
        """
        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [dict(r) for r in rows]
