"""File operations package for foldmerge.

This package provides the merge machinery of a run:

- TreeOperations: Plain recursive copy and content-aware recursive merge.
- FolderMergeEngine: Absorbs source leaf folders grouped by normalized name.
- FileDedupEngine: Resumable per-file pass over the remaining files.

Example:
    >>> from foldmerge.operations import TreeOperations
    >>> ops = TreeOperations()
    >>> result = ops.merge_tree(source, destination, known_keys=set())
    >>> print(f"Copied: {result.files_copied}, Skipped: {result.files_skipped}")
"""

from .file_dedup import FileDedupEngine, destination_folder_for, is_absorbed
from .folder_merge import FolderMergeEngine
from .tree_operations import TreeOperations, unique_destination

__all__ = [
    "FileDedupEngine",
    "FolderMergeEngine",
    "TreeOperations",
    "destination_folder_for",
    "is_absorbed",
    "unique_destination",
]
