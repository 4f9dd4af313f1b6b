"""
Models package for foldmerge.

This package provides convenient imports for all data models:
- RunPhase: States of a run
- ConflictPolicy: Same-name handling in the per-file pass
- Outcome / OutcomeStatus / StructuralError: Results of suspendable operations
- FileRecord, FolderRecord, ContentKey, FolderSignature: Scan products
- DestinationIndex, ReportEntry, MergeGroup, TreeMergeResult, RunStats: Run data
- CancelToken, RunRequest, RunState: Run context
- ProgressUpdate, ProcessComplete, MergeConfirmation, MergeComplete: Events
"""

from .conflict_policy import ConflictPolicy
from .data_models import (
    STATUS_COPIED,
    STATUS_DUPLICATE,
    STATUS_ERROR_PREFIX,
    ContentKey,
    DestinationIndex,
    FileRecord,
    FolderRecord,
    FolderSignature,
    MergeGroup,
    ReportEntry,
    RunStats,
    TreeMergeResult,
)
from .events import (
    MergeComplete,
    MergeConfirmation,
    ProcessComplete,
    ProgressUpdate,
    RunEvent,
)
from .outcome import Outcome, OutcomeStatus, StructuralError
from .run_phase import RunPhase
from .run_state import CancelToken, RunRequest, RunState, normalize_extensions

__all__ = [
    "ConflictPolicy",
    "STATUS_COPIED",
    "STATUS_DUPLICATE",
    "STATUS_ERROR_PREFIX",
    "ContentKey",
    "DestinationIndex",
    "FileRecord",
    "FolderRecord",
    "FolderSignature",
    "MergeGroup",
    "ReportEntry",
    "RunStats",
    "TreeMergeResult",
    "MergeComplete",
    "MergeConfirmation",
    "ProcessComplete",
    "ProgressUpdate",
    "RunEvent",
    "Outcome",
    "OutcomeStatus",
    "StructuralError",
    "RunPhase",
    "CancelToken",
    "RunRequest",
    "RunState",
    "normalize_extensions",
]
