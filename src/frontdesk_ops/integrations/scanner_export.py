"""ID-scanner export directory.

The scanner software drops one CSV per scan into a directory, named with
the scan date first (``YYYYMMDD...csv``). Only the directory and the file
names matter here; the CSV contents belong to the scanner integration.
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from .platform_paths import default_scanner_export_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannerCheck:
    """Outcome of probing the export directory.

    ``available`` only reflects directory existence; file enumeration is
    informational and a failure there leaves ``files_today`` at 0.
    """

    path: Path
    available: bool
    files_today: int = 0
    latest_file: str | None = None
    detail: str | None = None


class ScannerExport:
    def __init__(self, path: str | Path | None = None):
        self.path = (
            Path(path).expanduser() if path else default_scanner_export_dir()
        )

    def todays_files(self, today: date | None = None) -> list[Path]:
        """CSV exports whose name starts with today's date, sorted by name."""
        prefix = (today or date.today()).strftime("%Y%m%d")
        return sorted(
            p
            for p in self.path.iterdir()
            if p.is_file()
            and p.name.startswith(prefix)
            and p.name.lower().endswith(".csv")
        )

    def latest_file(self) -> Path | None:
        """Most recently modified CSV export, or None."""
        files = [
            p
            for p in self.path.glob("*.csv")
            if p.is_file()
        ]
        if not files:
            return None
        return max(files, key=lambda p: p.stat().st_mtime)

    def check(self, today: date | None = None) -> ScannerCheck:
        if not self.path.is_dir():
            logger.warning("Scan-ID directory not found: %s", self.path)
            return ScannerCheck(
                path=self.path,
                available=False,
                detail=f"Directory not found: {self.path}",
            )

        try:
            files = self.todays_files(today)
        except OSError as e:
            logger.warning(
                "Could not list Scan-ID exports in %s: %s", self.path, e
            )
            return ScannerCheck(
                path=self.path, available=True, detail=f"Listing failed: {e}"
            )

        latest = files[-1].name if files else None
        return ScannerCheck(
            path=self.path,
            available=True,
            files_today=len(files),
            latest_file=latest,
            detail=f"{len(files)} export(s) today",
        )
