"""Workflow orchestration package for foldmerge.

This package contains orchestration components for managing runs:
- RunLogger: Structured logging of runs to a log file.
- RunScheduler: Single owner of run state; sequences phases, pause and resume.
"""

from foldmerge.orchestration.run_logger import RunLogger
from foldmerge.orchestration.run_scheduler import RunScheduler

__all__ = ["RunLogger", "RunScheduler"]
