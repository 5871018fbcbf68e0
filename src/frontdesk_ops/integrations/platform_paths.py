"""Default filesystem locations of the desk's local integrations, per OS."""

import os
import sys
from pathlib import Path


def _platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def default_scanner_export_dir(home: Path | None = None) -> Path:
    """Where the ID-scanner software writes its CSV exports by default."""
    home = home or Path.home()
    match _platform():
        case "windows":
            return home / "OneDrive" / "Documents" / "BCR" / "Scan-ID"
        case "macos":
            return home / "Documents" / "BCR" / "Scan-ID"
        case _:
            return home / "BCR" / "Scan-ID"


def time_clock_candidates(home: Path | None = None) -> list[Path]:
    """Candidate time-clock database files, most likely first."""
    home = home or Path.home()
    relative = Path("TimeXpress") / "Database" / "TimeXpress.db"
    match _platform():
        case "windows":
            candidates = [
                Path(os.environ[var]) / relative
                for var in ("ProgramFiles", "ProgramFiles(x86)")
                if os.environ.get(var)
            ]
            candidates.append(home / "Documents" / relative)
            return candidates
        case "macos":
            return [home / "Applications" / relative]
        case _:
            return [home / relative]


def find_first_existing(paths: list[Path]) -> Path | None:
    for path in paths:
        if path.exists():
            return path
    return None
