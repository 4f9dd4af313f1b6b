"""RunLogger for writing consolidation runs to a structured log file.

The log has sections for header, scan phase, folder merge report,
consolidation groups and summary, separated by rule lines.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO

from foldmerge.models import MergeGroup, ReportEntry, RunRequest


class RunLogger:
    """Logger for runs with structured output format.

    Usage:
        with RunLogger(log_file_path) as run_log:
            run_log.log_header("RUN")
            run_log.log_scan_phase(request, total_files, total_folders, leaf_folders)
            run_log.log_folder_report(report)
            run_log.log_summary(stats, errors, duration)

    Attributes:
        SEPARATOR: The 65-character separator line used between sections.
    """

    SEPARATOR = "=" * 65

    def __init__(self, log_file_path: Optional[Path] = None) -> None:
        """Initialize the RunLogger.

        Args:
            log_file_path: Optional path for the log file. If not provided,
                generates a timestamped filename in the current directory.

        Raises:
            OSError: If the log file path is not writable.
        """
        self._start_timestamp = datetime.now()
        self._file_handle: Optional[TextIO] = None

        if log_file_path is None:
            timestamp_str = self._start_timestamp.strftime("%Y-%m-%d_%H-%M-%S")
            self._log_file_path = Path.cwd() / f"foldmerge_{timestamp_str}.log"
        else:
            self._log_file_path = Path(log_file_path)

        self._validate_path()

    def _validate_path(self) -> None:
        """Validate that the log file path is writable.

        Raises:
            OSError: If the parent directory doesn't exist or is not writable.
        """
        parent = self._log_file_path.parent
        if not parent.exists():
            raise OSError(f"Parent directory does not exist: {parent}")
        if not parent.is_dir():
            raise OSError(f"Parent path is not a directory: {parent}")
        try:
            test_file = parent / f".foldmerge_test_{id(self)}"
            test_file.touch()
            test_file.unlink()
        except PermissionError:
            raise OSError(f"Permission denied: cannot write to {parent}")

    def __enter__(self) -> "RunLogger":
        """Open the log file for appending.

        Raises:
            OSError: If the file cannot be opened for writing.
        """
        try:
            self._file_handle = open(self._log_file_path, "a", encoding="utf-8")
        except OSError as e:
            raise OSError(f"Cannot open log file for writing: {e}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the log file if open."""
        if self._file_handle is not None:
            try:
                self._file_handle.close()
            except OSError as e:
                print(f"Warning: Error closing log file: {e}", file=sys.stderr)
            finally:
                self._file_handle = None

    def get_log_path(self) -> Path:
        return self._log_file_path

    def log_header(self, mode: str) -> None:
        """Write the title, timestamp and mode (RUN, RESUME or CONSOLIDATE)."""
        self._write_separator()
        self._write_line("foldmerge - Run Log")
        self._write_separator()
        self._write_line(f"Timestamp: {self._format_timestamp(datetime.now())}")
        self._write_line(f"Mode: {mode}")
        self._write_line("")

    def log_scan_phase(
        self,
        request: RunRequest,
        total_files: int,
        total_folders: int,
        leaf_folders: int,
    ) -> None:
        """Write the scan phase section."""
        self._write_separator()
        self._write_line("SCAN PHASE")
        self._write_separator()
        self._write_line("Sources:")
        for source in request.sources:
            self._write_line(f"- {source}", indent=2)
        self._write_line(f"Destination: {request.destination}")
        extensions = ", ".join(request.extensions) if request.extensions else "all"
        self._write_line(f"Extensions: {extensions}")
        self._write_line(f"Conflict policy: {request.conflict_policy.value}")
        self._write_line(f"Files found: {total_files:,}")
        self._write_line(f"Folders found: {total_folders:,} ({leaf_folders:,} leaf)")
        self._write_line("")

    def log_folder_report(self, report: Sequence[ReportEntry]) -> None:
        """Write one line per merged or skipped source folder."""
        self._write_separator()
        self._write_line("FOLDER MERGE")
        self._write_separator()
        if not report:
            self._write_line("No leaf folders merged.")
        for entry in report:
            self._write_line(f"{entry.source_path} -> {entry.destination_path}")
            self._write_line(f"Status: {entry.status}", indent=2)
        self._write_line("")

    def log_consolidation(self, groups: Sequence[MergeGroup]) -> None:
        """Write the groups chosen for consolidation."""
        self._write_separator()
        self._write_line("CONSOLIDATION")
        self._write_separator()
        for i, group in enumerate(groups, start=1):
            self._write_line(f"Group {i}: {group.name} ({group.count} folders)")
            self._write_line(f"Primary: {group.folders[0]}", indent=2)
            for folder in group.folders[1:]:
                self._write_line(f"- {folder}", indent=4)
        self._write_line("")

    def log_summary(
        self,
        stats: Dict[str, int],
        errors: List[str],
        duration_seconds: float,
        paused: bool = False,
        error: Optional[str] = None,
    ) -> None:
        """Write the summary section."""
        self._write_separator()
        self._write_line("SUMMARY")
        self._write_separator()
        if paused:
            self._write_line("Status: PAUSED")
        elif error:
            self._write_line(f"Status: FAILED ({error})")
        else:
            self._write_line("Status: COMPLETE")
        self._write_line(f"Files scanned: {stats.get('scanned', 0):,}")
        self._write_line(f"Files copied: {stats.get('copied', 0):,}")
        self._write_line(f"Duplicates: {stats.get('duplicates', 0):,}")
        self._write_line(f"Bytes copied: {stats.get('size_copied_bytes', 0):,}")

        if errors:
            self._write_line(f"Total errors: {len(errors)}")
            self._write_line("Errors:")
            for message in errors:
                self._write_line(f"- {message}", indent=2)

        self._write_line(f"Duration: {self._format_duration(duration_seconds)}")
        self._write_line("")
        self._write_line(f"Log file: {self._log_file_path}")
        self._write_separator()

    def _format_duration(self, seconds: float) -> str:
        """Format duration like "5m 23s", "1h 5m 30s", or "45s"."""
        total_seconds = int(seconds)

        if total_seconds < 60:
            return f"{total_seconds}s"

        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        secs = total_seconds % 60

        if hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        return f"{minutes}m {secs}s"

    def _format_timestamp(self, dt: datetime) -> str:
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    def _write_separator(self) -> None:
        self._write_line(self.SEPARATOR)

    def _write_line(self, text: str, indent: int = 0) -> None:
        if self._file_handle is None:
            print(
                f"Warning: Attempted to write to closed log file: {text}",
                file=sys.stderr,
            )
            return

        try:
            self._file_handle.write(" " * indent + text + "\n")
        except OSError as e:
            print(f"Warning: Error writing to log file: {e}", file=sys.stderr)
