"""
Recursive copy and merge primitives.

This module contains the TreeOperations class, which mirrors source subtrees
into destination paths either unconditionally (plain copy) or arbitrated by
content (merge against a mutable set of ContentKeys).
"""

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Set

from foldmerge.models import CancelToken, ContentKey, StructuralError, TreeMergeResult
from foldmerge.scanning import FileHasher

logger = logging.getLogger(__name__)


def unique_destination(path: Path) -> Path:
    """Return path, or the first free ``stem_N.suffix`` next to it."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


class TreeOperations:
    """
    Copies and merges directory subtrees.

    Both primitives visit entries in name order, skip entries that fail, and
    stop at the next entry once the pause flag is raised, leaving the subtree
    partially merged. A failure to create the destination or list the source
    root, and a full disk, raise StructuralError.
    """

    def __init__(self, file_hasher: Optional[FileHasher] = None) -> None:
        """
        Create a TreeOperations instance.

        Parameters:
            file_hasher (FileHasher): Used to compute ContentKeys during merges.
        """
        self.file_hasher = file_hasher if file_hasher is not None else FileHasher()

    def copy_tree(
        self,
        source: Path,
        destination: Path,
        token: Optional[CancelToken] = None,
        copied_keys: Optional[Set[ContentKey]] = None,
        handled_files: Optional[Set[Path]] = None,
    ) -> TreeMergeResult:
        """
        Mirror source into destination, copying every file.

        Parameters:
            copied_keys (set): When given, receives the ContentKey of every copied file.
            handled_files (set): Source files to pass over; every file copied here is added.

        Returns:
            TreeMergeResult: Counters; `cancelled` is set when a pause stopped the copy.
        """
        result = TreeMergeResult()
        self._walk(
            Path(source), Path(destination), copied_keys, token, result,
            handled_files=handled_files, plain=True, top_level=True,
        )
        return result

    def merge_tree(
        self,
        source: Path,
        destination: Path,
        known_keys: Set[ContentKey],
        token: Optional[CancelToken] = None,
        handled_files: Optional[Set[Path]] = None,
    ) -> TreeMergeResult:
        """
        Mirror source into destination, copying only content absent from known_keys.

        known_keys is updated in place with every copied file. A same-named file with
        different content already at the target path is kept; the incoming file gets
        the next free `name_N.ext`. Files in handled_files are passed over without
        touching any counter; every file copied or skipped here is added to it.

        Returns:
            TreeMergeResult: Counters; `files_skipped` counts content already present.
        """
        result = TreeMergeResult()
        self._walk(
            Path(source), Path(destination), known_keys, token, result,
            handled_files=handled_files, top_level=True,
        )
        return result

    def _walk(
        self,
        source: Path,
        destination: Path,
        known_keys: Optional[Set[ContentKey]],
        token: Optional[CancelToken],
        result: TreeMergeResult,
        handled_files: Optional[Set[Path]] = None,
        plain: bool = False,
        top_level: bool = False,
    ) -> None:
        try:
            destination.mkdir(parents=True, exist_ok=True)
            with os.scandir(source) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if top_level:
                raise StructuralError(f"Cannot merge {source} into {destination}: {e}") from e
            self._record_error(result, f"Skipped directory {source}: {e}")
            return

        for entry in entries:
            if token is not None and token.is_cancelled:
                result.cancelled = True
                return

            source_entry = Path(entry.path)
            dest_entry = destination / entry.name

            try:
                if entry.is_dir(follow_symlinks=False):
                    self._walk(
                        source_entry, dest_entry, known_keys, token, result,
                        handled_files=handled_files, plain=plain,
                    )
                elif entry.is_file():
                    self._handle_file(
                        source_entry, dest_entry, known_keys, token, result, handled_files, plain
                    )
            except StructuralError:
                raise
            except OSError as e:
                self._record_error(result, f"Error processing {source_entry}: {e}")
                continue

            if result.cancelled:
                return

    def _handle_file(
        self,
        source_file: Path,
        dest_file: Path,
        known_keys: Optional[Set[ContentKey]],
        token: Optional[CancelToken],
        result: TreeMergeResult,
        handled_files: Optional[Set[Path]],
        plain: bool,
    ) -> None:
        if handled_files is not None and source_file in handled_files:
            logger.debug(f"Already handled in this run: {source_file}")
            return

        if plain:
            done = self._copy_file_entry(source_file, dest_file, known_keys, token, result)
        else:
            done = self._merge_file(source_file, dest_file, known_keys, token, result)

        if done and handled_files is not None:
            handled_files.add(source_file)

    def _copy_file_entry(
        self,
        source_file: Path,
        dest_file: Path,
        copied_keys: Optional[Set[ContentKey]],
        token: Optional[CancelToken],
        result: TreeMergeResult,
    ) -> bool:
        key = None
        if copied_keys is not None:
            outcome = self.file_hasher.content_key(source_file, token)
            if outcome.is_cancelled:
                result.cancelled = True
                return False
            # Unhashable files are still copied
            key = outcome.value

        size = key.size if key is not None else source_file.stat().st_size
        self.copy_file(source_file, dest_file)
        if key is not None:
            copied_keys.add(key)
        result.files_copied += 1
        result.bytes_copied += size
        logger.debug(f"Copied: {source_file} -> {dest_file}")
        return True

    def _merge_file(
        self,
        source_file: Path,
        dest_file: Path,
        known_keys: Set[ContentKey],
        token: Optional[CancelToken],
        result: TreeMergeResult,
    ) -> bool:
        outcome = self.file_hasher.content_key(source_file, token)
        if outcome.is_cancelled:
            result.cancelled = True
            return False
        if outcome.is_failed:
            self._record_error(result, outcome.error)
            return False

        key = outcome.value
        if key in known_keys:
            result.files_skipped += 1
            logger.debug(f"Skipped duplicate content: {source_file}")
            return True

        target = unique_destination(dest_file)
        self.copy_file(source_file, target)
        known_keys.add(key)
        result.files_copied += 1
        result.bytes_copied += key.size
        logger.debug(f"Merged new file: {source_file} -> {target}")
        return True

    def copy_file(self, source: Path, dest: Path) -> None:
        """
        Copy one file, creating parent directories and preserving metadata.

        Raises:
            StructuralError: When the device is full.
            OSError: For any other copy failure.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copy2(source, dest)
        except OSError as e:
            if e.errno == errno.ENOSPC:
                logger.critical(f"Disk full while copying {source}")
                raise StructuralError(errno.ENOSPC, f"No space left on device: {dest}") from e
            raise

    def remove_tree(self, folder: Path) -> None:
        """Delete a folder and everything below it."""
        shutil.rmtree(folder)
        logger.debug(f"Removed merged folder: {folder}")

    def _record_error(self, result: TreeMergeResult, message: str) -> None:
        logger.warning(message)
        result.errors.append(message)
