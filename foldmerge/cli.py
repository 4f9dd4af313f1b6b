"""
foldmerge - Content-aware folder consolidation tool. CLI Interface.

Merges several source folder trees into one destination, deduplicating by
file content, and consolidates duplicate-named folders inside a destination.

Usage Examples:
    # Consolidate two backups into one destination
    foldmerge run /backup/a /backup/b --dest /merged

    # Only photos, keep same-named files with different content
    foldmerge run /backup/a --dest /merged --ext jpg --ext png --on-conflict rename

    # Merge Photos, Photos_bak, ... inside a destination
    foldmerge consolidate /merged

    # Run with a log file and verbose output
    foldmerge run /backup/a --dest /merged --log-file run.log --verbose
"""

import logging
import os
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm

from foldmerge.models import ConflictPolicy
from foldmerge.orchestration import RunLogger, RunScheduler
from foldmerge.ui import RunConsole

__version__ = "1.0.0"

app = typer.Typer(
    name="foldmerge",
    help="Merge folder trees into one destination without duplicate content.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"foldmerge v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich; DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def validate_directory(path: Path, label: str) -> None:
    """
    Validate that a path exists, is a directory and is readable.

    Raises:
        typer.Exit: If validation fails with descriptive error message.
    """
    if not path.exists():
        console.print(f"[red]Error:[/red] {label} does not exist: {path}")
        raise typer.Exit(1)

    if not path.is_dir():
        console.print(f"[red]Error:[/red] {label} is not a directory: {path}")
        raise typer.Exit(1)

    if not os.access(path, os.R_OK):
        console.print(f"[red]Error:[/red] Permission denied - cannot read: {path}")
        raise typer.Exit(1)


def resolve_log_file(log_file: Optional[Path]) -> Optional[Path]:
    """Check the log file location up front; a bad location disables logging."""
    if log_file is None:
        return None
    try:
        return RunLogger(log_file).get_log_path()
    except OSError as e:
        console.print(
            f"[yellow]Warning:[/yellow] Failed to create log file: {e}. "
            "Continuing without logging."
        )
        return None


@contextmanager
def pause_on_interrupt(scheduler: RunScheduler) -> Iterator[None]:
    """Turn Ctrl+C into a pause request for the duration of the block."""

    def handler(signum, frame) -> None:
        console.print("\n[yellow]Pausing after the current file...[/yellow]")
        scheduler.pause_process()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Merge folder trees into one destination without duplicate content."""
    pass


@app.command()
def run(
    sources: List[Path] = typer.Argument(
        ...,
        help="Source folders to merge.",
        exists=False,  # We do our own validation
    ),
    dest: Path = typer.Option(
        ...,
        "--dest",
        "-d",
        help="Destination folder (created if missing).",
    ),
    ext: Optional[List[str]] = typer.Option(
        None,
        "--ext",
        "-e",
        help="Only include files with this extension (repeatable).",
    ),
    on_conflict: ConflictPolicy = typer.Option(
        ConflictPolicy.SKIP,
        "--on-conflict",
        case_sensitive=False,
        help="What to do when a different file already has the same name.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path for log file output.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output.",
    ),
) -> None:
    """
    Merge source folders into a destination.

    Runs the full pipeline:
    1. Scan: Walk every source folder
    2. Index: Hash the destination's existing content
    3. Folder merge: Absorb same-named leaf folders
    4. File pass: Copy remaining files whose content is new

    Press Ctrl+C to pause; the run can be resumed where it stopped.
    """
    configure_logging(verbose)

    for source in sources:
        validate_directory(source, "Source folder")
    if dest.exists() and not dest.is_dir():
        console.print(f"[red]Error:[/red] Destination is not a directory: {dest}")
        raise typer.Exit(1)

    shell = RunConsole(console)
    scheduler = RunScheduler(
        event_listener=shell.handle_event,
        log_file_path=resolve_log_file(log_file),
    )

    resume = False
    try:
        while True:
            with shell.live_progress("Scanning sources..."):
                with pause_on_interrupt(scheduler):
                    if resume:
                        scheduler.resume_process(sources, dest, ext, on_conflict)
                    else:
                        scheduler.start_process(sources, dest, ext, on_conflict)

            complete = shell.last_process_complete
            shell.display_run_summary(complete)
            if complete is None or not complete.paused:
                break
            if not Confirm.ask("Resume the paused run?", default=True):
                console.print("[yellow]Run paused. Nothing more will be copied.[/yellow]")
                raise typer.Exit(130)
            resume = True

    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    errors = scheduler.state.errors if scheduler.state is not None else []
    if errors:
        shell.display_errors(errors)
        console.print(f"\n[yellow]Completed with {len(errors)} error(s).[/yellow]")

    if scheduler.log_file_path is not None:
        console.print(f"[dim]Log written to: {scheduler.log_file_path}[/dim]")

    if complete is None or complete.error:
        raise typer.Exit(1)


@app.command()
def consolidate(
    destination: Path = typer.Argument(
        ...,
        help="Destination folder to tidy up.",
        exists=False,  # We do our own validation
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Merge every group without asking.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path for log file output.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output.",
    ),
) -> None:
    """
    Merge duplicate-named folders (Photos, Photos_bak, ...) inside a destination.

    Each group is merged into its first folder; merged folders are deleted
    once every file has been carried over.
    """
    configure_logging(verbose)
    validate_directory(destination, "Destination")

    if not os.access(destination, os.W_OK):
        console.print(f"[red]Error:[/red] Permission denied - cannot write to: {destination}")
        raise typer.Exit(1)

    shell = RunConsole(console)
    scheduler = RunScheduler(
        event_listener=shell.handle_event,
        log_file_path=resolve_log_file(log_file),
    )

    groups = scheduler.merge_folders(destination)
    if not groups:
        shell.display_merge_complete(shell.last_merge_complete)
        complete = shell.last_merge_complete
        raise typer.Exit(1 if complete is not None and complete.error else 0)

    shell.display_groups(groups)
    chosen = shell.review_merge_groups(groups, assume_yes=yes)
    if not chosen:
        console.print("[yellow]No groups selected. Nothing was changed.[/yellow]")
        return

    with shell.live_progress("Merging folders..."):
        with pause_on_interrupt(scheduler):
            scheduler.confirm_merge(destination, chosen)

    complete = shell.last_merge_complete
    shell.display_merge_complete(complete)

    if scheduler.log_file_path is not None:
        console.print(f"[dim]Log written to: {scheduler.log_file_path}[/dim]")

    if complete is None or complete.error:
        raise typer.Exit(1)
    if complete.paused:
        raise typer.Exit(130)


if __name__ == "__main__":
    app()
