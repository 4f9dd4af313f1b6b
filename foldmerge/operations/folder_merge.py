"""
Folder-level deduplication and merging.

This module contains the FolderMergeEngine, which groups source leaf folders
by normalized name and absorbs each member into the destination folder of the
same name, either as a duplicate of an existing top-level destination folder
or by merging its content.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Set

from foldmerge.matching import FolderGrouper
from foldmerge.models import (
    STATUS_COPIED,
    STATUS_DUPLICATE,
    STATUS_ERROR_PREFIX,
    ContentKey,
    DestinationIndex,
    FolderRecord,
    FolderSignature,
    Outcome,
    ReportEntry,
    RunState,
)
from foldmerge.scanning import DestinationIndexer, FileHasher, FolderSignatureBuilder

from .tree_operations import TreeOperations

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class FolderMergeEngine:
    """
    Absorbs source leaf folders into normalized-name destination folders.

    Replaying the engine over the same RunState is idempotent: members
    already in the absorbed set are skipped, and source files a paused merge
    already copied or skipped are passed over without being counted again.
    """

    def __init__(
        self,
        file_hasher: Optional[FileHasher] = None,
        tree_operations: Optional[TreeOperations] = None,
        grouper: Optional[FolderGrouper] = None,
    ) -> None:
        self._file_hasher = file_hasher if file_hasher is not None else FileHasher()
        self._signature_builder = FolderSignatureBuilder(self._file_hasher)
        self._indexer = DestinationIndexer(self._file_hasher)
        self._tree_ops = (
            tree_operations if tree_operations is not None else TreeOperations(self._file_hasher)
        )
        self._grouper = grouper if grouper is not None else FolderGrouper()

    def run(
        self,
        state: RunState,
        index: DestinationIndex,
        progress: Optional[ProgressCallback] = None,
    ) -> Outcome[None]:
        """
        Merge every leaf-folder group of the scan into the destination.

        Parameters:
            state (RunState): Run context; stats, report, absorbed set and errors are updated.
            index (DestinationIndex): Destination indices built for this invocation.
            progress (callable): Receives a label after each merged member.

        Returns:
            Outcome: OK when all groups were handled, CANCELLED when a pause was observed.
        """
        token = state.cancel_token
        groups = self._grouper.group_leaf_folders(state.folders)

        for name, members in groups.items():
            pending = [m for m in members if m.path not in state.absorbed_folders]
            if not pending:
                continue
            if token.is_cancelled:
                return Outcome.cancelled()

            outcome = self._merge_group(state, index, name, pending, progress)
            if outcome.is_cancelled:
                logger.info(f"Folder merge paused in group '{name}'")
                return outcome

        return Outcome.ok()

    def _merge_group(
        self,
        state: RunState,
        index: DestinationIndex,
        name: str,
        members: List[FolderRecord],
        progress: Optional[ProgressCallback],
    ) -> Outcome[None]:
        token = state.cancel_token
        extensions = state.request.extensions

        signatures: List[FolderSignature] = []
        for member in members:
            outcome = self._signature_builder.build(member, extensions, token)
            if outcome.is_cancelled:
                return Outcome.cancelled()
            signatures.append(outcome.value)

        dest_folder = state.request.destination / name
        existed = dest_folder.is_dir()
        local_keys: Set[ContentKey] = set()
        if existed:
            keys_outcome = self._indexer.collect_content_keys(dest_folder, token)
            if keys_outcome.is_cancelled:
                return Outcome.cancelled()
            local_keys = keys_outcome.value

        # A lone member going into a new folder needs no content arbitration
        plain_copy = not existed and len(members) == 1

        for member, signature in zip(members, signatures):
            if token.is_cancelled:
                return Outcome.cancelled()

            if signature.digest in index.folder_signatures:
                state.absorbed_folders.add(member.path)
                state.stats.duplicates += signature.file_count
                logger.info(f"Duplicate folder: {member.path}")
                self._report(state, member.path, dest_folder, STATUS_DUPLICATE)
                continue

            try:
                if plain_copy:
                    result = self._tree_ops.copy_tree(
                        member.path, dest_folder, token,
                        copied_keys=local_keys, handled_files=state.merged_files,
                    )
                else:
                    result = self._tree_ops.merge_tree(
                        member.path, dest_folder, local_keys, token,
                        handled_files=state.merged_files,
                    )
            except OSError as e:
                message = f"Error merging {member.path}: {e}"
                logger.warning(message)
                state.errors.append(message)
                self._report(state, member.path, dest_folder, f"{STATUS_ERROR_PREFIX}{e}")
                continue

            state.stats.add_tree_result(result)
            state.errors.extend(result.errors)
            state.seen_keys.update(local_keys)

            if result.cancelled:
                return Outcome.cancelled()

            if result.errors:
                status = f"{STATUS_ERROR_PREFIX}{len(result.errors)} file(s) could not be merged"
            else:
                state.absorbed_folders.add(member.path)
                status = STATUS_COPIED
            self._report(state, member.path, dest_folder, status)

            if progress is not None:
                progress(f"Folder: {name}")

        return Outcome.ok()

    def _report(self, state: RunState, source: Path, destination: Path, status: str) -> None:
        state.report.append(
            ReportEntry(source_path=source, destination_path=destination, status=status)
        )
