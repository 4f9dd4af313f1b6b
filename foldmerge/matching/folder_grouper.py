"""Folder grouping by normalized name.

This module provides the FolderGrouper class which collects folders that
share a normalized name. A folder's normalized name is its base name cut at
the first underscore, so ``Trip``, ``Trip_2`` and ``Trip_backup`` all become
``Trip``. The normalized name is also the destination folder name used for
the whole group.

Example:
    >>> from foldmerge.matching import FolderGrouper, normalize_folder_name
    >>> normalize_folder_name("Alpha_v2")
    'Alpha'
    >>> grouper = FolderGrouper()
    >>> groups = grouper.group_leaf_folders(folders)
"""

from pathlib import Path
from typing import Dict, List, Sequence

from foldmerge.models import FolderRecord, MergeGroup


def normalize_folder_name(folder_name: str) -> str:
    """Truncate a folder name at its first underscore."""
    underscore_index = folder_name.find("_")
    if underscore_index != -1:
        return folder_name[:underscore_index]
    return folder_name


class FolderGrouper:
    """Groups folders across sources by normalized name.

    Groups keep first-seen order, and members keep the order they were
    given in. Folders whose names normalize differently never share a
    group, even when their content is identical.
    """

    def group_leaf_folders(
        self, folders: Sequence[FolderRecord]
    ) -> Dict[str, List[FolderRecord]]:
        """Group the leaf folders of a scan by normalized name.

        Non-leaf folders are ignored.

        Returns:
            Mapping of normalized name to member folders.
        """
        groups: Dict[str, List[FolderRecord]] = {}
        for folder in folders:
            if not folder.is_leaf:
                continue
            key = normalize_folder_name(folder.name)
            groups.setdefault(key, []).append(folder)
        return groups

    def find_merge_groups(self, folder_paths: Sequence[Path]) -> List[MergeGroup]:
        """Propose consolidation groups among existing folders.

        Only names shared by more than one folder produce a group. The first
        member of each group is the merge target.
        """
        by_name: Dict[str, List[Path]] = {}
        for path in folder_paths:
            by_name.setdefault(normalize_folder_name(path.name), []).append(path)

        return [
            MergeGroup(name=name, folders=paths, parent=paths[0].parent)
            for name, paths in by_name.items()
            if len(paths) > 1
        ]
