"""Centralized state for the MCP server: the pre-loaded file, path sandbox, and report cache."""
import logging
import os
import threading
import time
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple

logger = logging.getLogger("BinStrings")

# Maximum number of extraction reports kept in the per-server cache.
MAX_CACHED_REPORTS = 16


class AnalyzerState:
    """Server-wide state shared by the MCP tools."""
    def __init__(self):
        self.filepath: Optional[str] = None
        self.mode: str = "auto"
        self.raw_base: int = 0

        # Path sandboxing for network-exposed MCP servers
        self.allowed_paths: Optional[List[str]] = None  # None = no restriction

        # (realpath, mode, raw_base, min_length) -> ExtractionReport, insertion ordered
        self._report_lock = threading.Lock()
        self._reports: Dict[Tuple[str, str, int, int], Any] = {}

        self.last_active: float = time.time()

    def check_path_allowed(self, file_path: str) -> None:
        """Raise RuntimeError if the path is outside all allowed directories."""
        if self.allowed_paths is None:
            return
        resolved = Path(os.path.realpath(file_path))
        for allowed in self.allowed_paths:
            allowed_resolved = Path(os.path.realpath(allowed))
            if resolved == allowed_resolved or resolved.is_relative_to(allowed_resolved):
                return
        raise RuntimeError(
            f"Access denied: '{file_path}' is outside the allowed paths. "
            f"Allowed: {self.allowed_paths}. "
            "Configure with --allowed-paths at server startup."
        )

    def get_report(self, key: Tuple[str, str, int, int]) -> Optional[Any]:
        """Thread-safe read of a cached extraction report."""
        with self._report_lock:
            return self._reports.get(key)

    def set_report(self, key: Tuple[str, str, int, int], report: Any) -> None:
        """Thread-safe insert; evicts the oldest reports beyond MAX_CACHED_REPORTS."""
        with self._report_lock:
            self._reports.pop(key, None)
            self._reports[key] = report
            while len(self._reports) > MAX_CACHED_REPORTS:
                oldest = next(iter(self._reports))
                del self._reports[oldest]
                logger.debug(f"Evicted cached report for {oldest[0]}")

    def clear_reports(self) -> int:
        """Drop every cached report. Returns how many were removed."""
        with self._report_lock:
            count = len(self._reports)
            self._reports.clear()
            return count

    def touch(self):
        """Update the last-active timestamp (called by the tool decorator)."""
        self.last_active = time.time()
