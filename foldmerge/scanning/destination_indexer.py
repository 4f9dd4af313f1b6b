"""Destination tree indexing.

Builds the two indices the merge phases consult:
- every file's ContentKey, recursively, for per-file deduplication;
- a FolderSignature per immediate subfolder of the destination root, for
  folder-level deduplication.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Sequence, Set

from foldmerge.models import CancelToken, ContentKey, DestinationIndex, Outcome

from .directory_scanner import DirectoryScanner
from .file_hasher import FileHasher
from .signature_builder import FolderSignatureBuilder

logger = logging.getLogger(__name__)


class DestinationIndexer:
    """Hashes an existing destination tree.

    The content index ignores the extension filter; folder signatures
    apply it, like source signatures do.
    """

    def __init__(
        self,
        file_hasher: Optional[FileHasher] = None,
        scanner: Optional[DirectoryScanner] = None,
    ) -> None:
        self._file_hasher = file_hasher if file_hasher is not None else FileHasher()
        self._scanner = scanner if scanner is not None else DirectoryScanner()
        self._signature_builder = FolderSignatureBuilder(self._file_hasher)

    def build(
        self,
        destination: Path,
        extensions: Sequence[str] = (),
        token: Optional[CancelToken] = None,
    ) -> Outcome[DestinationIndex]:
        """Index the destination.

        Returns:
            Outcome with the DestinationIndex, or CANCELLED on pause.
            A missing or unreadable destination gives an empty index.
        """
        index = DestinationIndex()
        destination = Path(destination)

        keys = self.collect_content_keys(destination, token)
        if keys.is_cancelled:
            return Outcome.cancelled()
        index.content_keys = keys.value

        try:
            with os.scandir(destination) as it:
                top_level = sorted(Path(e.path) for e in it if e.is_dir(follow_symlinks=False))
        except OSError as e:
            logger.warning(f"Cannot list destination {destination}: {e}")
            top_level = []

        for folder_path in top_level:
            if token is not None and token.is_cancelled:
                return Outcome.cancelled()

            folder = self._scanner.list_direct_files(folder_path, extensions, token)
            outcome = self._signature_builder.build(folder, extensions, token)
            if outcome.is_cancelled:
                return Outcome.cancelled()
            # Empty signatures would match any folder whose files all failed to hash
            if outcome.is_ok and outcome.value.file_count > 0:
                index.folder_signatures.add(outcome.value.digest)

        logger.info(
            f"Indexed destination {destination}: {len(index.content_keys)} files, "
            f"{len(index.folder_signatures)} folder signatures"
        )
        return Outcome.ok(index)

    def collect_content_keys(
        self, root: Path, token: Optional[CancelToken] = None
    ) -> Outcome[Set[ContentKey]]:
        """Hash every file below root into a set of ContentKeys.

        Unreadable entries are skipped. Returns CANCELLED on pause.
        """
        keys: Set[ContentKey] = set()

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for filename in sorted(filenames):
                if token is not None and token.is_cancelled:
                    return Outcome.cancelled()

                outcome = self._file_hasher.content_key(Path(dirpath) / filename, token)
                if outcome.is_cancelled:
                    return Outcome.cancelled()
                if outcome.is_ok:
                    keys.add(outcome.value)

        return Outcome.ok(keys)

    @property
    def file_hasher(self) -> FileHasher:
        return self._file_hasher
