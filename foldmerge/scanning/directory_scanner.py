"""Directory scanning utility for building file and folder records.

This module provides the DirectoryScanner class for walking source trees into
a flat list of FileRecords and a list of FolderRecords annotated with leaf
status, filtered by extension.

Example:
    >>> from foldmerge.scanning import DirectoryScanner
    >>> scanner = DirectoryScanner()
    >>> files, folders = scanner.scan(Path("/data/backup"), extensions=("jpg",))
    >>> leaves = [f for f in folders if f.is_leaf]
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from foldmerge.models import CancelToken, FileRecord, FolderRecord

logger = logging.getLogger(__name__)


def matches_extension(name: str, extensions: Sequence[str]) -> bool:
    """Check a file name against a lowercase, dotless extension filter.

    An empty filter allows every file. Names starting with a dot and
    without another dot (".bashrc") have no extension.
    """
    if not extensions:
        return True
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    return ext in extensions


class DirectoryScanner:
    """Walks directory trees and records files and folders.

    Entries are visited in name order. Directory symlinks are not followed.
    Failures on individual entries are recorded and skipped; the pause flag
    is polled between entries and stops the enumeration of the directory
    being read (the scan is then incomplete, not resumable).

    Attributes:
        _errors: List of error messages encountered during scanning.
    """

    def __init__(self) -> None:
        """Initialize the DirectoryScanner."""
        self._errors: List[str] = []

    def scan(
        self,
        root: Path,
        extensions: Sequence[str] = (),
        token: Optional[CancelToken] = None,
    ) -> Tuple[List[FileRecord], List[FolderRecord]]:
        """Recursively scan a source root.

        Args:
            root: Source root to walk.
            extensions: Lowercase extensions without dots; empty allows all.
            token: Optional pause flag.

        Returns:
            Tuple of (files, folders). Folders with neither matching files nor
            subdirectories are omitted. An unreadable root yields two empty lists.
        """
        files: List[FileRecord] = []
        folders: List[FolderRecord] = []
        root_path = Path(root).absolute()
        self._scan_directory(root_path, root_path, extensions, token, files, folders)
        return files, folders

    def _scan_directory(
        self,
        directory: Path,
        root: Path,
        extensions: Sequence[str],
        token: Optional[CancelToken],
        files: List[FileRecord],
        folders: List[FolderRecord],
    ) -> None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._record_error(f"Cannot read directory {directory}: {e}")
            return

        relative_dir = directory.relative_to(root)
        folder_files: List[FileRecord] = []
        subfolders: List[Path] = []

        for entry in entries:
            if token is not None and token.is_cancelled:
                break

            entry_path = Path(entry.path)
            try:
                if entry.is_dir(follow_symlinks=False):
                    subfolders.append(entry_path.relative_to(root))
                    self._scan_directory(entry_path, root, extensions, token, files, folders)
                elif entry.is_file() and matches_extension(entry.name, extensions):
                    record = FileRecord(
                        path=entry_path,
                        size=entry.stat().st_size,
                        name=entry.name,
                        relative_path=entry_path.relative_to(root),
                        folder_path=directory,
                        folder_relative_path=relative_dir,
                    )
                    files.append(record)
                    folder_files.append(record)
            except OSError as e:
                self._record_error(f"Error accessing {entry_path}: {e}")
                continue

        if folder_files or subfolders:
            folders.append(
                FolderRecord(
                    path=directory,
                    relative_path=relative_dir,
                    files=tuple(folder_files),
                    subfolders=tuple(subfolders),
                    is_leaf=not subfolders,
                )
            )

    def list_direct_files(
        self,
        folder: Path,
        extensions: Sequence[str] = (),
        token: Optional[CancelToken] = None,
    ) -> FolderRecord:
        """Build a FolderRecord of one folder's direct matching files.

        Subdirectories are listed but not entered.
        """
        folder_path = Path(folder).absolute()
        folder_files: List[FileRecord] = []
        subfolders: List[Path] = []

        try:
            with os.scandir(folder_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._record_error(f"Cannot read directory {folder_path}: {e}")
            entries = []

        for entry in entries:
            if token is not None and token.is_cancelled:
                break
            try:
                if entry.is_dir(follow_symlinks=False):
                    subfolders.append(Path(entry.name))
                elif entry.is_file() and matches_extension(entry.name, extensions):
                    folder_files.append(
                        FileRecord(
                            path=Path(entry.path),
                            size=entry.stat().st_size,
                            name=entry.name,
                            relative_path=Path(entry.name),
                            folder_path=folder_path,
                            folder_relative_path=Path("."),
                        )
                    )
            except OSError as e:
                self._record_error(f"Error accessing {entry.path}: {e}")

        return FolderRecord(
            path=folder_path,
            relative_path=Path(folder_path.name),
            files=tuple(folder_files),
            subfolders=tuple(subfolders),
            is_leaf=not subfolders,
        )

    def find_leaf_folders(
        self, root: Path, token: Optional[CancelToken] = None
    ) -> List[Path]:
        """List every folder below root that has no subdirectories.

        The root itself is never returned.
        """
        leaves: List[Path] = []
        self._collect_leaves(Path(root).absolute(), leaves, token, is_root=True)
        return leaves

    def _collect_leaves(
        self,
        directory: Path,
        leaves: List[Path],
        token: Optional[CancelToken],
        is_root: bool = False,
    ) -> None:
        try:
            with os.scandir(directory) as it:
                subdirs = sorted(
                    Path(e.path) for e in it if e.is_dir(follow_symlinks=False)
                )
        except OSError as e:
            self._record_error(f"Cannot read directory {directory}: {e}")
            return

        if not subdirs:
            if not is_root:
                leaves.append(directory)
            return

        for subdir in subdirs:
            if token is not None and token.is_cancelled:
                break
            self._collect_leaves(subdir, leaves, token)

    def _record_error(self, message: str) -> None:
        self._errors.append(message)
        logger.warning(message)

    def get_errors(self) -> List[str]:
        """Get list of errors encountered during scanning operations."""
        return self._errors.copy()

    def clear_errors(self) -> None:
        """Clear the list of accumulated errors."""
        self._errors.clear()
