"""Folder matching package for foldmerge.

This package groups folders that hold the same subject across sources,
using the normalized folder name (base name cut at the first underscore).

Example:
    >>> from foldmerge.matching import FolderGrouper
    >>> grouper = FolderGrouper()
    >>> groups = grouper.group_leaf_folders(folders)
    >>> for name, members in groups.items():
    ...     print(f"{name}: {len(members)} folders")
"""

from .folder_grouper import FolderGrouper, normalize_folder_name

__all__ = [
    "FolderGrouper",
    "normalize_folder_name",
]
