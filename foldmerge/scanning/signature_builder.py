"""Folder signature construction.

A folder's signature is the SHA256 of the ``name:size:hash`` lines of its
direct files, sorted by name with the active locale's collation. Two folders
holding the same (name, size, content) triples therefore share a signature
whatever order the filesystem lists them in. Subfolders never contribute.
"""

import hashlib
import locale
import logging
from typing import List, Optional, Sequence, Tuple

from foldmerge.models import CancelToken, FolderRecord, FolderSignature, Outcome

from .directory_scanner import matches_extension
from .file_hasher import FileHasher

logger = logging.getLogger(__name__)


def signature_digest(entries: Sequence[Tuple[str, int, str]]) -> str:
    """Digest already-sorted (name, size, hash) triples."""
    signature = hashlib.sha256()
    for name, size, file_hash in entries:
        signature.update(f"{name}:{size}:{file_hash}".encode("utf-8"))
    return signature.hexdigest()


class FolderSignatureBuilder:
    """Builds FolderSignatures from FolderRecords.

    Files that fail to hash are left out of the signature; the folder is
    still fingerprinted from the remaining files.
    """

    def __init__(self, file_hasher: Optional[FileHasher] = None) -> None:
        self._file_hasher = file_hasher if file_hasher is not None else FileHasher()

    def build(
        self,
        folder: FolderRecord,
        extensions: Sequence[str] = (),
        token: Optional[CancelToken] = None,
    ) -> Outcome[FolderSignature]:
        """Fingerprint a folder's direct files.

        Args:
            folder: Folder whose direct files are hashed.
            extensions: Filter applied again to the folder's files.
            token: Optional pause flag.

        Returns:
            Outcome with the FolderSignature, or CANCELLED if a pause was
            observed before every file was hashed.
        """
        entries: List[Tuple[str, int, str]] = []
        files = [f for f in folder.files if matches_extension(f.name, extensions)]

        for file_record in files:
            if token is not None and token.is_cancelled:
                return Outcome.cancelled()

            outcome = self._file_hasher.hash_file(file_record.path, token)
            if outcome.is_cancelled:
                return Outcome.cancelled()
            if outcome.is_failed:
                logger.debug(f"Excluded from signature of {folder.path}: {outcome.error}")
                continue
            entries.append((file_record.name, file_record.size, outcome.value))

        entries.sort(key=lambda entry: locale.strxfrm(entry[0]))

        return Outcome.ok(
            FolderSignature(
                digest=signature_digest(entries),
                file_count=len(entries),
                total_size=sum(f.size for f in files),
                entries=tuple(entries),
            )
        )

    @property
    def file_hasher(self) -> FileHasher:
        return self._file_hasher
