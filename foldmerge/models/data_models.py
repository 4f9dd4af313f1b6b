"""
Core data models for foldmerge.

This module contains the following dataclasses:
- FileRecord: A scanned source file
- FolderRecord: A scanned source folder with its direct files
- ContentKey: (size, digest) identity of file content
- FolderSignature: Order-independent fingerprint of a folder's direct files
- DestinationIndex: Content keys and folder signatures of the destination tree
- ReportEntry: One line of the folder merge report
- MergeGroup: Duplicate-named folders proposed for consolidation
- TreeMergeResult: Counters of a single subtree copy or merge
- RunStats: Aggregate counters of a run
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Set, Tuple

STATUS_COPIED = "Copied"
STATUS_DUPLICATE = "Duplicate (Exists in Destination)"
STATUS_ERROR_PREFIX = "Error: "


@dataclass(frozen=True)
class FileRecord:
    """A file found under a source root."""
    path: Path                        # Absolute path
    size: int                         # Bytes
    name: str                         # Base name
    relative_path: Path               # Relative to the source root
    folder_path: Path                 # Owning folder, absolute
    folder_relative_path: Path        # Owning folder relative to the source root ("." at the root)


@dataclass(frozen=True)
class FolderRecord:
    """A folder found under a source root, listing direct matches only."""
    path: Path                                   # Absolute path
    relative_path: Path                          # Relative to the source root
    files: Tuple[FileRecord, ...] = ()           # Direct matching files
    subfolders: Tuple[Path, ...] = ()            # Direct subfolder relative paths
    is_leaf: bool = True                         # No subdirectories

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class ContentKey:
    """Identifies file content irrespective of name or location."""
    size: int
    digest: str


@dataclass(frozen=True)
class FolderSignature:
    """Content fingerprint of a folder's direct files."""
    digest: str                                  # SHA256 over sorted name:size:hash lines
    file_count: int                              # Files that hashed successfully
    total_size: int                              # Bytes across all direct files
    entries: Tuple[Tuple[str, int, str], ...] = ()  # (name, size, hash) in signature order


@dataclass
class DestinationIndex:
    """Two independent indices over the destination tree."""
    content_keys: Set[ContentKey] = field(default_factory=set)   # Every file, recursively
    folder_signatures: Set[str] = field(default_factory=set)     # Immediate subfolders only


@dataclass(frozen=True)
class ReportEntry:
    """Outcome of one source folder in the folder merge phase."""
    source_path: Path
    destination_path: Path
    status: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "source_path": str(self.source_path),
            "destination_path": str(self.destination_path),
            "status": self.status,
        }


@dataclass
class MergeGroup:
    """Leaf folders inside a destination sharing one normalized name."""
    name: str                         # Normalized name
    folders: List[Path]               # First entry is the merge target
    parent: Path                      # Parent of the first folder

    @property
    def count(self) -> int:
        return len(self.folders)


@dataclass
class TreeMergeResult:
    """Counters for a single recursive copy or merge."""
    files_copied: int = 0
    files_skipped: int = 0            # Content already present
    bytes_copied: int = 0
    cancelled: bool = False
    errors: List[str] = field(default_factory=list)


@dataclass
class RunStats:
    """Aggregate counters reported with every progress event."""
    scanned: int = 0
    copied: int = 0
    duplicates: int = 0
    size_copied_bytes: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)

    def add_tree_result(self, result: TreeMergeResult) -> None:
        self.copied += result.files_copied
        self.duplicates += result.files_skipped
        self.size_copied_bytes += result.bytes_copied
