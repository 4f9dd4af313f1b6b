"""
Run context models.

- CancelToken: Cooperative pause flag polled at every suspension point
- RunRequest: Validated inputs of a run
- RunState: Single-owner mutable context threaded through every phase
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from .conflict_policy import ConflictPolicy
from .data_models import ContentKey, FileRecord, FolderRecord, ReportEntry, RunStats
from .run_phase import RunPhase


class CancelToken:
    """Pause flag shared between the scheduler and the code it drives.

    Raising the flag never interrupts work in flight; loops observe it at
    their next check and unwind.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


def normalize_extensions(extensions: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Lowercase extensions without the leading dot; empty means allow all."""
    if not extensions:
        return ()
    result: List[str] = []
    for ext in extensions:
        cleaned = ext.strip().lower().lstrip(".")
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return tuple(result)


@dataclass(frozen=True)
class RunRequest:
    """Inputs of a consolidation run."""
    sources: Tuple[Path, ...]
    destination: Path
    extensions: Tuple[str, ...] = ()
    conflict_policy: ConflictPolicy = ConflictPolicy.SKIP

    @classmethod
    def create(
        cls,
        sources: Iterable[Union[str, Path]],
        destination: Union[str, Path],
        extensions: Optional[Iterable[str]] = None,
        conflict_policy: Union[ConflictPolicy, str] = ConflictPolicy.SKIP,
    ) -> "RunRequest":
        """Build a request from raw inputs.

        Raises:
            ValueError: If no sources are given, the destination is an
                existing file, or the conflict policy is unknown.
        """
        source_paths = tuple(Path(s).expanduser().absolute() for s in sources)
        if not source_paths:
            raise ValueError("At least one source folder is required")

        destination_path = Path(destination).expanduser().absolute()
        if destination_path.exists() and not destination_path.is_dir():
            raise ValueError(f"Destination is not a directory: {destination}")

        if not isinstance(conflict_policy, ConflictPolicy):
            try:
                conflict_policy = ConflictPolicy(conflict_policy)
            except ValueError:
                raise ValueError(f"Unknown conflict policy: {conflict_policy}")

        return cls(
            sources=source_paths,
            destination=destination_path,
            extensions=normalize_extensions(extensions),
            conflict_policy=conflict_policy,
        )


@dataclass
class RunState:
    """Everything a run carries across phases and across pause/resume.

    Created fresh by every run start. The cursor and the dedup set survive
    pause and resume; nothing here is persisted to disk.
    """
    request: RunRequest
    cancel_token: CancelToken = field(default_factory=CancelToken)
    phase: RunPhase = RunPhase.IDLE
    scan_complete: bool = False
    cursor: int = 0                                               # Next index into files
    seen_keys: Set[ContentKey] = field(default_factory=set)       # Dedup set of this run
    files: List[FileRecord] = field(default_factory=list)
    folders: List[FolderRecord] = field(default_factory=list)
    folder_map: Dict[Path, FolderRecord] = field(default_factory=dict)
    absorbed_folders: Set[Path] = field(default_factory=set)
    merged_files: Set[Path] = field(default_factory=set)           # Source files the folder merge handled
    report: List[ReportEntry] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)
    errors: List[str] = field(default_factory=list)

    @property
    def is_paused(self) -> bool:
        return self.cancel_token.is_cancelled

    def reset_scan(self) -> None:
        """Drop partial scan data before scanning again."""
        self.scan_complete = False
        self.cursor = 0
        self.files.clear()
        self.folders.clear()
        self.folder_map.clear()
