"""Terminal shell package for foldmerge."""

from foldmerge.ui.run_console import RunConsole

__all__ = ["RunConsole"]
