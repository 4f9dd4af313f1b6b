"""
Notifications emitted by the scheduler to its shell.

- ProgressUpdate: Zero or more per invocation
- ProcessComplete: Exactly one per start/resume invocation
- MergeConfirmation: Groups proposed by the consolidation discovery pass
- MergeComplete: Terminal event of a consolidation
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .data_models import MergeGroup, ReportEntry


@dataclass(frozen=True)
class ProgressUpdate:
    current_item: str
    stats: Dict[str, int]


@dataclass(frozen=True)
class ProcessComplete:
    stats: Dict[str, int]
    report: List[ReportEntry] = field(default_factory=list)
    error: Optional[str] = None
    paused: bool = False              # Ended on a pause; the run can be resumed


@dataclass(frozen=True)
class MergeConfirmation:
    groups: List[MergeGroup]


@dataclass(frozen=True)
class MergeComplete:
    stats: Dict[str, int]
    error: Optional[str] = None
    message: Optional[str] = None
    errors: List[str] = field(default_factory=list)   # Per-folder failures that were skipped
    paused: bool = False


RunEvent = Union[ProgressUpdate, ProcessComplete, MergeConfirmation, MergeComplete]
