"""foldmerge - Content-aware folder consolidation tool.

Merges several source folder trees into one destination, copying each
distinct file content once, absorbing same-named leaf folders, and
consolidating duplicate-named folders inside a destination.
"""

__version__ = "1.0.0"

from .models import (
    ConflictPolicy,
    ContentKey,
    FileRecord,
    FolderRecord,
    FolderSignature,
    MergeGroup,
    ReportEntry,
    RunPhase,
    RunStats,
)
from .orchestration import RunScheduler

__all__ = [
    "__version__",
    "ConflictPolicy",
    "ContentKey",
    "FileRecord",
    "FolderRecord",
    "FolderSignature",
    "MergeGroup",
    "ReportEntry",
    "RunPhase",
    "RunStats",
    "RunScheduler",
]


def main() -> None:
    """Entry point for the foldmerge CLI application.

    Imports and runs the Typer app from the foldmerge.cli module.
    """
    from foldmerge.cli import app
    app()
