"""Local, file-based integrations: the scanner export and the time clock."""

from .scanner_export import ScannerCheck, ScannerExport
from .time_clock import TimeClockStore

__all__ = ["ScannerCheck", "ScannerExport", "TimeClockStore"]
