"""Terminal shell for foldmerge runs.

This module provides the RunConsole class, a Rich-based console that listens
to scheduler events, renders live progress, and displays run reports,
consolidation groups and summaries.

Example:
    from foldmerge.orchestration import RunScheduler
    from foldmerge.ui import RunConsole

    shell = RunConsole()
    scheduler = RunScheduler(event_listener=shell.handle_event)
    with shell.live_progress("Consolidating"):
        scheduler.start_process(sources, destination)
    shell.display_run_summary(shell.last_process_complete)
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.prompt import Confirm
from rich.table import Table

from foldmerge.models import (
    STATUS_COPIED,
    MergeComplete,
    MergeConfirmation,
    MergeGroup,
    ProcessComplete,
    ProgressUpdate,
    ReportEntry,
    RunEvent,
)


class RunConsole:
    """Rich-based terminal shell for runs and consolidations.

    Args:
        console: Optional Rich Console instance for output. Pass a Console
            writing to a StringIO for testing.

    Attributes:
        console: The Rich Console instance used for all output.
        last_process_complete: The most recent ProcessComplete event.
        last_merge_complete: The most recent MergeComplete event.
        proposed_groups: Groups from the most recent MergeConfirmation.
    """

    MAX_REPORT_ROWS = 50

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.last_process_complete: Optional[ProcessComplete] = None
        self.last_merge_complete: Optional[MergeComplete] = None
        self.proposed_groups: List[MergeGroup] = []
        self._progress: Optional[Progress] = None
        self._task_id = None

    def handle_event(self, event: RunEvent) -> None:
        """Scheduler event listener."""
        if isinstance(event, ProgressUpdate):
            self._update_progress(event)
        elif isinstance(event, ProcessComplete):
            self.last_process_complete = event
        elif isinstance(event, MergeConfirmation):
            self.proposed_groups = list(event.groups)
        elif isinstance(event, MergeComplete):
            self.last_merge_complete = event

    @contextmanager
    def live_progress(self, title: str) -> Iterator[Progress]:
        """Render a live progress line while the block runs.

        Args:
            title: Initial description shown before the first update.
        """
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TextColumn("[dim]{task.fields[counters]}[/dim]"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._progress = progress
        self._task_id = progress.add_task(title, total=None, counters="")
        try:
            with progress:
                yield progress
        finally:
            self._progress = None
            self._task_id = None

    def display_run_summary(self, complete: Optional[ProcessComplete]) -> None:
        """Display the folder report and counters of a finished invocation.

        Args:
            complete: The ProcessComplete event of the invocation.
        """
        if complete is None:
            self.console.print("[red]Run ended without a result.[/red]")
            return

        if complete.report:
            self._display_report(complete.report)

        if complete.error:
            title, border = "Run Failed", "red"
        elif complete.paused:
            title, border = "Run Paused", "yellow"
        else:
            title, border = "Run Complete", "green"
        self.console.print(Panel(title, border_style=border))
        self.console.print(self._stats_table(complete.stats))

        if complete.error:
            self.console.print(f"[red]Error:[/red] {complete.error}")

    def display_groups(self, groups: Sequence[MergeGroup]) -> None:
        """Display duplicate-named folder groups in a table."""
        table = Table(title="Duplicate Folder Groups")
        table.add_column("Group #", justify="right", style="cyan", no_wrap=True)
        table.add_column("Name", style="magenta")
        table.add_column("Folders", style="white")

        for idx, group in enumerate(groups, start=1):
            names = []
            for position, folder in enumerate(group.folders):
                marker = " [green](primary)[/green]" if position == 0 else ""
                names.append(self._truncate_name(str(folder), max_length=70) + marker)
            table.add_row(str(idx), group.name, "\n".join(names))

        self.console.print(table)

    def review_merge_groups(
        self, groups: Sequence[MergeGroup], assume_yes: bool = False
    ) -> List[MergeGroup]:
        """Ask, group by group, which groups to consolidate.

        Args:
            groups: Groups proposed by the discovery pass.
            assume_yes: Accept every group without prompting.

        Returns:
            The accepted groups, in their original order. A Ctrl+C during
            the review returns the groups accepted so far.
        """
        if assume_yes:
            return list(groups)

        chosen: List[MergeGroup] = []
        for idx, group in enumerate(groups, start=1):
            members = "\n".join(f"  - {folder}" for folder in group.folders[1:])
            text = (
                f"[bold green]Merge into:[/bold green] {group.folders[0]}\n\n"
                f"[bold]Merging from:[/bold]\n{members}\n\n"
                "[yellow]Merged folders are deleted afterwards.[/yellow]"
            )
            self.console.print(
                Panel(text, title=f"Group {idx}/{len(groups)}: {group.name}", border_style="yellow")
            )
            try:
                if Confirm.ask("Merge this group?", default=False):
                    chosen.append(group)
            except KeyboardInterrupt:
                self.console.print("\n[yellow]Review cancelled by user.[/yellow]")
                break
        return chosen

    def display_merge_complete(self, complete: Optional[MergeComplete]) -> None:
        """Display the outcome of a consolidation."""
        if complete is None:
            self.console.print("[red]Consolidation ended without a result.[/red]")
            return

        if complete.message:
            self.console.print(f"[yellow]{complete.message}[/yellow]")

        border = "red" if complete.error else "green"
        self.console.print(Panel("Consolidation Summary", border_style=border))
        self.console.print(self._stats_table(complete.stats))

        if complete.errors:
            self.display_errors(complete.errors)
        if complete.error:
            self.console.print(f"[red]Error:[/red] {complete.error}")

    def _update_progress(self, event: ProgressUpdate) -> None:
        if self._progress is None or self._task_id is None:
            return
        stats = event.stats
        counters = (
            f"scanned {stats.get('scanned', 0):,} | copied {stats.get('copied', 0):,}"
            f" | duplicates {stats.get('duplicates', 0):,}"
        )
        self._progress.update(
            self._task_id,
            description=self._truncate_name(event.current_item, max_length=50),
            counters=counters,
        )

    def _display_report(self, report: Sequence[ReportEntry]) -> None:
        table = Table(title="Folder Merge Report")
        table.add_column("Source", style="white")
        table.add_column("Destination", style="white")
        table.add_column("Status")

        for entry in report[: self.MAX_REPORT_ROWS]:
            table.add_row(
                self._truncate_name(str(entry.source_path), max_length=50),
                self._truncate_name(str(entry.destination_path), max_length=50),
                self._format_status(entry.status),
            )
        remaining = len(report) - self.MAX_REPORT_ROWS
        if remaining > 0:
            table.caption = f"... and {remaining} more folders"

        self.console.print(table)

    def _stats_table(self, stats: Dict[str, int]) -> Table:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Files scanned", f"{stats.get('scanned', 0):,}")
        table.add_row("Files copied", f"{stats.get('copied', 0):,}")
        table.add_row("Duplicates skipped", f"{stats.get('duplicates', 0):,}")
        table.add_row("Data copied", self._format_size(stats.get("size_copied_bytes", 0)))
        return table

    def display_errors(self, errors: List[str]) -> None:
        """Display up to ten error messages in a red panel."""
        max_display = 10
        error_text = "\n".join(f"- {e}" for e in errors[:max_display])
        remaining = len(errors) - max_display
        if remaining > 0:
            error_text += f"\n\n... and {remaining} more errors"

        self.console.print(
            Panel(error_text, title=f"Errors ({len(errors)})", border_style="red")
        )

    def _format_status(self, status: str) -> str:
        if status == STATUS_COPIED:
            return f"[green]{status}[/green]"
        if status.startswith("Error"):
            return f"[red]{status}[/red]"
        return f"[yellow]{status}[/yellow]"

    def _format_size(self, bytes_size: int) -> str:
        """Convert bytes to human-readable format (e.g. "10.5 MB")."""
        if bytes_size < 1024:
            return f"{bytes_size} B"
        elif bytes_size < 1024 * 1024:
            return f"{bytes_size / 1024:.1f} KB"
        elif bytes_size < 1024 * 1024 * 1024:
            return f"{bytes_size / (1024 * 1024):.1f} MB"
        else:
            return f"{bytes_size / (1024 * 1024 * 1024):.1f} GB"

    def _truncate_name(self, name: str, max_length: int = 60) -> str:
        if len(name) > max_length:
            return name[: max_length - 3] + "..."
        return name
