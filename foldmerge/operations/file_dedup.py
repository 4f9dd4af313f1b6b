"""
Per-file deduplication pass.

This module contains the FileDedupEngine, which walks the flat file list from
the run's resumable cursor, skips files owned by absorbed folders, and copies
every file whose content is neither in the destination nor already copied in
this run.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Set

from foldmerge.matching import normalize_folder_name
from foldmerge.models import (
    ConflictPolicy,
    ContentKey,
    DestinationIndex,
    FileRecord,
    Outcome,
    RunState,
)
from foldmerge.scanning import FileHasher

from .tree_operations import TreeOperations, unique_destination

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def is_absorbed(file_record: FileRecord, absorbed_folders: Set[Path]) -> bool:
    """True when the file's folder, or any folder above it, was absorbed."""
    if file_record.folder_path in absorbed_folders:
        return True
    path_str = str(file_record.path)
    return any(path_str.startswith(f"{folder}{os.sep}") for folder in absorbed_folders)


def destination_folder_for(file_record: FileRecord, destination: Path) -> Path:
    """Reproduce the file's folder path under destination, every segment normalized."""
    parts = [p for p in file_record.folder_relative_path.parts if p not in ("", ".")]
    return destination.joinpath(*(normalize_folder_name(p) for p in parts))


class FileDedupEngine:
    """
    Copies residual files not absorbed by folder merges.

    A pause stores the index of the file being worked on in `state.cursor`,
    so a resumed run starts again at exactly that file.
    """

    def __init__(
        self,
        file_hasher: Optional[FileHasher] = None,
        tree_operations: Optional[TreeOperations] = None,
    ) -> None:
        self._file_hasher = file_hasher if file_hasher is not None else FileHasher()
        self._tree_ops = (
            tree_operations if tree_operations is not None else TreeOperations(self._file_hasher)
        )

    def run(
        self,
        state: RunState,
        index: DestinationIndex,
        progress: Optional[ProgressCallback] = None,
    ) -> Outcome[None]:
        """
        Process state.files from state.cursor to the end.

        Per-file failures are logged and skipped with no counter incremented.

        Returns:
            Outcome: OK when the list is exhausted, CANCELLED on pause.
        """
        token = state.cancel_token
        absorbed = set(state.absorbed_folders)

        for i in range(state.cursor, len(state.files)):
            if token.is_cancelled:
                state.cursor = i
                return Outcome.cancelled()

            file_record = state.files[i]
            if is_absorbed(file_record, absorbed):
                continue

            if progress is not None:
                progress(file_record.name)

            outcome = self._file_hasher.content_key(file_record.path, token)
            if outcome.is_cancelled:
                state.cursor = i
                logger.info(f"File pass paused at index {i}: {file_record.path}")
                return Outcome.cancelled()
            if outcome.is_failed:
                state.errors.append(outcome.error)
                continue

            state.stats.scanned += 1
            self._process_file(state, index, file_record, outcome.value, progress)

        state.cursor = len(state.files)
        return Outcome.ok()

    def _process_file(
        self,
        state: RunState,
        index: DestinationIndex,
        file_record: FileRecord,
        key: ContentKey,
        progress: Optional[ProgressCallback],
    ) -> None:
        if key in state.seen_keys or key in index.content_keys:
            state.stats.duplicates += 1
            logger.debug(f"Duplicate content: {file_record.path}")
            return

        state.seen_keys.add(key)

        dest_folder = destination_folder_for(file_record, state.request.destination)
        dest_path = dest_folder / file_record.name

        try:
            dest_folder.mkdir(parents=True, exist_ok=True)

            if dest_path.exists():
                if state.request.conflict_policy is ConflictPolicy.SKIP:
                    state.stats.duplicates += 1
                    logger.debug(f"Name already taken, skipped: {dest_path}")
                    return
                dest_path = unique_destination(dest_path)
                logger.debug(f"Name already taken, copying as: {dest_path.name}")

            self._tree_ops.copy_file(file_record.path, dest_path)
        except OSError as e:
            state.seen_keys.discard(key)
            message = f"Error copying {file_record.path}: {e}"
            logger.warning(message)
            state.errors.append(message)
            return

        state.stats.copied += 1
        state.stats.size_copied_bytes += key.size
        logger.debug(f"Copied: {file_record.path} -> {dest_path}")

        if progress is not None:
            progress(file_record.name)
