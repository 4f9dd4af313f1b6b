"""RunScheduler for sequencing consolidation runs.

This module provides the RunScheduler class, the single owner of the run
context. It sequences the phases of a run (scan sources, index destination,
folder merge, file dedup), handles cooperative pause and resume, runs the
two-step consolidation of duplicate-named folders inside a destination, and
reports everything through events.

Example:
    from foldmerge.orchestration import RunScheduler

    scheduler = RunScheduler(event_listener=print)
    scheduler.start_process([Path("/backup/a"), Path("/backup/b")], Path("/merged"))

    # From a signal handler or a progress listener
    scheduler.pause_process()

    scheduler.resume_process([Path("/backup/a"), Path("/backup/b")], Path("/merged"))
"""

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from foldmerge.matching import FolderGrouper
from foldmerge.models import (
    CancelToken,
    ConflictPolicy,
    MergeComplete,
    MergeConfirmation,
    MergeGroup,
    ProcessComplete,
    ProgressUpdate,
    RunEvent,
    RunPhase,
    RunRequest,
    RunState,
    RunStats,
)
from foldmerge.operations import FileDedupEngine, FolderMergeEngine, TreeOperations
from foldmerge.orchestration.run_logger import RunLogger
from foldmerge.scanning import DestinationIndexer, DirectoryScanner, FileHasher

logger = logging.getLogger(__name__)

EventListener = Callable[[RunEvent], None]
PathLike = Union[str, Path]

NO_GROUPS_MESSAGE = "No duplicate folders found to merge."
MERGE_PAUSED_MESSAGE = "Merge paused; run the consolidation again to finish."


class RunScheduler:
    """Sequences runs and owns their state.

    Phases: IDLE -> SCANNING_SOURCES -> INDEXING_DESTINATION -> FOLDER_MERGE
    -> FILE_DEDUP -> COMPLETE, with PAUSED reachable from any in-progress
    phase. A resume re-indexes the destination, replays the folder merge in
    full (idempotent) and continues the file pass from the saved cursor.

    Only one run or consolidation can be active at a time. Every
    start/resume invocation emits exactly one ProcessComplete.

    Attributes:
        log_file_path: Optional path of a structured run log, appended to
            after every invocation.
    """

    def __init__(
        self,
        event_listener: Optional[EventListener] = None,
        log_file_path: Optional[Path] = None,
        file_hasher: Optional[FileHasher] = None,
    ) -> None:
        """Initialize the RunScheduler.

        Args:
            event_listener: Callable receiving every event.
            log_file_path: Optional path for the run log.
            file_hasher: Optional shared FileHasher (a new one by default).
        """
        self._listener = event_listener
        self.log_file_path = log_file_path

        self._file_hasher = file_hasher if file_hasher is not None else FileHasher()
        self._scanner = DirectoryScanner()
        self._indexer = DestinationIndexer(self._file_hasher, self._scanner)
        self._tree_ops = TreeOperations(self._file_hasher)
        self._folder_engine = FolderMergeEngine(self._file_hasher, self._tree_ops)
        self._file_engine = FileDedupEngine(self._file_hasher, self._tree_ops)
        self._grouper = FolderGrouper()

        self._state: Optional[RunState] = None
        self._active_token: Optional[CancelToken] = None
        self._busy = False

    @property
    def phase(self) -> RunPhase:
        return self._state.phase if self._state is not None else RunPhase.IDLE

    @property
    def state(self) -> Optional[RunState]:
        return self._state

    def start_process(
        self,
        sources: Iterable[PathLike],
        destination: PathLike,
        extensions: Optional[Iterable[str]] = None,
        conflict_policy: Union[ConflictPolicy, str] = ConflictPolicy.SKIP,
    ) -> RunStats:
        """Start a new run, discarding any previous state.

        Raises:
            RuntimeError: If a run or consolidation is already active.
            ValueError: If the inputs are invalid.

        Returns:
            The run's counters when the invocation ends (complete, paused or failed).
        """
        self._ensure_idle()
        request = RunRequest.create(sources, destination, extensions, conflict_policy)
        self._state = RunState(request=request)
        logger.info(f"Starting run: {len(request.sources)} source(s) -> {request.destination}")
        return self._execute(self._state, mode="RUN")

    def pause_process(self) -> None:
        """Raise the pause flag of whatever is running.

        Work in flight finishes its current file; the run stops at the
        next suspension point.
        """
        if self._active_token is None:
            logger.debug("Pause requested while nothing is running")
            return
        self._active_token.cancel()
        logger.info("Pause requested")

    def resume_process(
        self,
        sources: Iterable[PathLike],
        destination: PathLike,
        extensions: Optional[Iterable[str]] = None,
        conflict_policy: Optional[Union[ConflictPolicy, str]] = None,
    ) -> RunStats:
        """Continue a paused run, or start a new one if none is paused.

        The cursor, dedup set, absorbed folders, counters and report carry
        over. A run paused while scanning sources scans again from scratch.
        """
        self._ensure_idle()
        state = self._state
        if state is None or state.phase is not RunPhase.PAUSED:
            logger.info("No paused run to resume; starting a new run")
            return self.start_process(
                sources, destination, extensions, conflict_policy or ConflictPolicy.SKIP
            )

        request = RunRequest.create(
            sources,
            destination,
            extensions,
            conflict_policy or state.request.conflict_policy,
        )
        if state.scan_complete:
            state.request = replace(
                state.request,
                destination=request.destination,
                extensions=request.extensions,
                conflict_policy=request.conflict_policy,
            )
        else:
            state.request = request

        state.cancel_token.reset()
        logger.info(f"Resuming run at file index {state.cursor}")
        return self._execute(state, mode="RESUME")

    def merge_folders(self, destination: PathLike) -> List[MergeGroup]:
        """Discover duplicate-named leaf folders inside a destination.

        Emits MergeConfirmation with the groups found, or MergeComplete when
        there is nothing to consolidate. Nothing is modified.
        """
        self._ensure_idle()
        dest = Path(destination).expanduser().absolute()
        stats = RunStats()
        token = CancelToken()
        self._busy = True
        self._active_token = token

        try:
            self._emit(ProgressUpdate("Scanning destination folder...", stats.as_dict()))
            leaves = self._scanner.find_leaf_folders(dest, token)
            groups = self._grouper.find_merge_groups(leaves)
        except Exception as e:
            logger.exception(f"Folder discovery failed in {dest}")
            self._emit(MergeComplete(stats=stats.as_dict(), error=str(e)))
            return []
        finally:
            self._busy = False
            self._active_token = None

        if not groups:
            self._emit(MergeComplete(stats=stats.as_dict(), message=NO_GROUPS_MESSAGE))
            return []

        logger.info(f"Found {len(groups)} duplicate-named folder group(s) in {dest}")
        self._emit(MergeConfirmation(groups=groups))
        return groups

    def confirm_merge(
        self, destination: PathLike, chosen_groups: Sequence[MergeGroup]
    ) -> RunStats:
        """Merge every non-primary member of each group into its first member.

        A member is deleted only after it merged completely, without a pause
        and without errors. Emits MergeComplete.
        """
        self._ensure_idle()
        stats = RunStats()
        errors: List[str] = []
        token = CancelToken()
        self._busy = True
        self._active_token = token
        start_time = time.time()
        error: Optional[str] = None

        try:
            for group in chosen_groups:
                if token.is_cancelled:
                    break
                self._emit(ProgressUpdate(f"Merging folder: {group.name}", stats.as_dict()))
                self._consolidate_group(group, stats, errors, token)
        except Exception as e:
            logger.exception("Consolidation failed")
            error = str(e) or e.__class__.__name__
        finally:
            self._busy = False
            self._active_token = None

        message = MERGE_PAUSED_MESSAGE if token.is_cancelled else None
        self._write_consolidation_log(chosen_groups, stats, errors, time.time() - start_time, error)
        self._emit(
            MergeComplete(
                stats=stats.as_dict(),
                error=error,
                message=message,
                errors=errors,
                paused=token.is_cancelled,
            )
        )
        return stats

    def _consolidate_group(
        self,
        group: MergeGroup,
        stats: RunStats,
        errors: List[str],
        token: CancelToken,
    ) -> None:
        target = Path(group.folders[0])
        keys = self._indexer.collect_content_keys(target, token)
        if keys.is_cancelled:
            return
        known_keys = keys.value

        for member in group.folders[1:]:
            if token.is_cancelled:
                return
            member = Path(member)
            if member == target:
                continue

            try:
                result = self._tree_ops.merge_tree(member, target, known_keys, token)
            except OSError as e:
                message = f"Error merging {member} into {target}: {e}"
                logger.warning(message)
                errors.append(message)
                continue

            stats.add_tree_result(result)
            stats.scanned += result.files_copied + result.files_skipped
            errors.extend(result.errors)

            if result.cancelled:
                return
            if result.errors:
                errors.append(f"Kept {member}: not every file could be merged")
                continue

            try:
                self._tree_ops.remove_tree(member)
            except OSError as e:
                message = f"Merged but could not remove {member}: {e}"
                logger.warning(message)
                errors.append(message)

    def _execute(self, state: RunState, mode: str) -> RunStats:
        self._busy = True
        self._active_token = state.cancel_token
        start_time = time.time()
        paused = False
        error: Optional[str] = None

        try:
            paused = not self._run_phases(state)
        except Exception as e:
            logger.exception("Run failed")
            error = str(e) or e.__class__.__name__
            state.phase = RunPhase.IDLE
        finally:
            self._busy = False
            self._active_token = None

        if paused:
            logger.info(f"Run paused during {state.phase.value}")
            state.phase = RunPhase.PAUSED

        self._write_run_log(state, mode, time.time() - start_time, paused, error)
        self._emit(
            ProcessComplete(
                stats=state.stats.as_dict(),
                report=list(state.report),
                error=error,
                paused=paused,
            )
        )
        return state.stats

    def _run_phases(self, state: RunState) -> bool:
        """Run the remaining phases; False when a pause stopped them."""
        token = state.cancel_token
        request = state.request

        def progress(label: str) -> None:
            self._emit(ProgressUpdate(label, state.stats.as_dict()))

        if not state.scan_complete:
            state.phase = RunPhase.SCANNING_SOURCES
            state.reset_scan()
            self._scanner.clear_errors()
            for source in request.sources:
                if token.is_cancelled:
                    break
                files, folders = self._scanner.scan(source, request.extensions, token)
                state.files.extend(files)
                state.folders.extend(folders)
            state.errors.extend(self._scanner.get_errors())
            if token.is_cancelled:
                return False
            state.folder_map = {folder.path: folder for folder in state.folders}
            state.scan_complete = True
            logger.info(f"Scanned {len(state.files)} files in {len(state.folders)} folders")

        state.phase = RunPhase.INDEXING_DESTINATION
        progress("Scanning destination folder...")
        request.destination.mkdir(parents=True, exist_ok=True)
        indexed = self._indexer.build(request.destination, request.extensions, token)
        if indexed.is_cancelled:
            return False
        index = indexed.value

        state.phase = RunPhase.FOLDER_MERGE
        if self._folder_engine.run(state, index, progress).is_cancelled:
            return False

        state.phase = RunPhase.FILE_DEDUP
        if self._file_engine.run(state, index, progress).is_cancelled:
            return False

        state.phase = RunPhase.COMPLETE
        logger.info(f"Run complete: {state.stats.as_dict()}")
        return True

    def _ensure_idle(self) -> None:
        if self._busy:
            raise RuntimeError("A run is already in progress")

    def _emit(self, event: RunEvent) -> None:
        if self._listener is not None:
            self._listener(event)

    def _write_run_log(
        self,
        state: RunState,
        mode: str,
        duration: float,
        paused: bool,
        error: Optional[str],
    ) -> None:
        if self.log_file_path is None:
            return
        try:
            with RunLogger(self.log_file_path) as run_log:
                run_log.log_header(mode)
                leaf_count = sum(1 for folder in state.folders if folder.is_leaf)
                run_log.log_scan_phase(
                    state.request, len(state.files), len(state.folders), leaf_count
                )
                run_log.log_folder_report(state.report)
                run_log.log_summary(state.stats.as_dict(), state.errors, duration, paused, error)
        except OSError as e:
            logger.warning(f"Could not write log file: {e}")

    def _write_consolidation_log(
        self,
        groups: Sequence[MergeGroup],
        stats: RunStats,
        errors: List[str],
        duration: float,
        error: Optional[str],
    ) -> None:
        if self.log_file_path is None:
            return
        try:
            with RunLogger(self.log_file_path) as run_log:
                run_log.log_header("CONSOLIDATE")
                run_log.log_consolidation(groups)
                run_log.log_summary(stats.as_dict(), errors, duration, error=error)
        except OSError as e:
            logger.warning(f"Could not write log file: {e}")
