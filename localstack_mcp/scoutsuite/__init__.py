"""Scout Suite security scans of the emulated account."""

from .reporter import format_scan_results
from .runner import ScanError, build_scan_args, read_scan_report, run_scan

__all__ = ["ScanError", "build_scan_args", "format_scan_results", "read_scan_report", "run_scan"]
