"""File scanning package for foldmerge.

This package provides utilities for walking trees and fingerprinting content:

- FileHasher: Computes SHA256 hashes of files with caching and cancellation.
- DirectoryScanner: Walks source trees into FileRecords and FolderRecords.
- FolderSignatureBuilder: Order-independent fingerprints of a folder's direct files.
- DestinationIndexer: Content keys and top-level folder signatures of a destination.

Example:
    >>> from foldmerge.scanning import DirectoryScanner, FolderSignatureBuilder
    >>> from pathlib import Path
    >>>
    >>> scanner = DirectoryScanner()
    >>> files, folders = scanner.scan(Path("/data/backup"))
    >>>
    >>> builder = FolderSignatureBuilder()
    >>> outcome = builder.build(folders[0])
"""

from .destination_indexer import DestinationIndexer
from .directory_scanner import DirectoryScanner, matches_extension
from .file_hasher import CHUNK_SIZE, FileHasher
from .signature_builder import FolderSignatureBuilder, signature_digest

__all__ = [
    "CHUNK_SIZE",
    "DestinationIndexer",
    "DirectoryScanner",
    "FileHasher",
    "FolderSignatureBuilder",
    "matches_extension",
    "signature_digest",
]
