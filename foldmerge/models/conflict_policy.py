"""
ConflictPolicy enum for same-name files at a destination path.

1. Skip (default) - An existing same-named file counts as a duplicate and nothing is copied
2. Rename - The file is copied under the first free name_N.ext
"""

from enum import Enum


class ConflictPolicy(Enum):
    """What the per-file pass does when the destination name is taken."""
    SKIP = "skip"        # Name collision counts as a duplicate
    RENAME = "rename"    # Copy under name_1.ext, name_2.ext, ...
