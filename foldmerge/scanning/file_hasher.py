"""File hashing utility with caching and cooperative cancellation.

This module provides the FileHasher class for computing SHA256 hashes of files
with an in-memory cache to avoid redundant hashing operations. Hashing polls a
CancelToken between chunks so a pause takes effect mid-file.

Example:
    >>> from foldmerge.scanning import FileHasher
    >>> hasher = FileHasher()
    >>> outcome = hasher.hash_file(Path("/path/to/file.txt"))
    >>> if outcome.is_ok:
    ...     print(f"SHA256: {outcome.value}")
"""

import hashlib
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from foldmerge.models import CancelToken, ContentKey, Outcome

logger = logging.getLogger(__name__)

# Buffer size for chunked file reading (64KB)
CHUNK_SIZE = 65536


class FileHasher:
    """Computes SHA256 hashes of files with caching support.

    The cache is keyed by (path, mtime, size) so that modified files are
    re-hashed automatically. Files are streamed in CHUNK_SIZE blocks and the
    optional CancelToken is checked before every block; a cancelled hash
    yields no digest and is never cached.

    Attributes:
        _cache: Dictionary mapping (path, mtime, size) to SHA256 hex digests.
        _errors: List of error messages encountered during hashing operations.
        _cache_hits: Counter for cache hits.
        _cache_misses: Counter for cache misses.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        """Initialize the FileHasher with an empty cache.

        Args:
            chunk_size: Bytes read per block. Must be positive.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._chunk_size = chunk_size
        self._cache: Dict[Tuple[Path, float, int], str] = {}
        self._errors: List[str] = []
        self._cache_hits: int = 0
        self._cache_misses: int = 0

    def hash_file(
        self, file_path: Path, token: Optional[CancelToken] = None
    ) -> Outcome[str]:
        """Compute the SHA256 hash of a file.

        Args:
            file_path: Path to the file to hash.
            token: Optional pause flag polled between chunks.

        Returns:
            Outcome with the hex digest, CANCELLED if the token was raised
            before the stream finished, or FAILED with the error message for
            missing, unreadable or vanished files.
        """
        try:
            resolved_path = Path(file_path).resolve()

            if not resolved_path.is_file():
                return self._fail(f"Not a file: {file_path}")

            stat_result = resolved_path.stat()
            cache_key = (resolved_path, stat_result.st_mtime, stat_result.st_size)
            if cache_key in self._cache:
                self._cache_hits += 1
                return Outcome.ok(self._cache[cache_key])

            self._cache_misses += 1
            outcome = self._compute_hash(resolved_path, token)
            if outcome.is_ok:
                self._cache[cache_key] = outcome.value
            return outcome

        except PermissionError:
            return self._fail(f"Permission denied: {file_path}")
        except FileNotFoundError:
            return self._fail(f"File not found: {file_path}")
        except OSError as e:
            return self._fail(f"OS error reading {file_path}: {e}")

    def content_key(
        self, file_path: Path, token: Optional[CancelToken] = None
    ) -> Outcome[ContentKey]:
        """Compute the (size, digest) ContentKey of a file."""
        try:
            size = Path(file_path).stat().st_size
        except OSError as e:
            return self._fail(f"Cannot stat {file_path}: {e}")

        outcome = self.hash_file(file_path, token)
        if not outcome.is_ok:
            return Outcome(outcome.status, error=outcome.error)
        return Outcome.ok(ContentKey(size=size, digest=outcome.value))

    def _compute_hash(
        self, file_path: Path, token: Optional[CancelToken]
    ) -> Outcome[str]:
        """Stream the file through SHA256, stopping if the token is raised."""
        sha256_hash = hashlib.sha256()

        with open(file_path, "rb") as f:
            while True:
                if token is not None and token.is_cancelled:
                    logger.debug(f"Hash cancelled: {file_path}")
                    return Outcome.cancelled()
                chunk = f.read(self._chunk_size)
                if not chunk:
                    break
                sha256_hash.update(chunk)

        return Outcome.ok(sha256_hash.hexdigest())

    def _fail(self, message: str) -> Outcome:
        self._errors.append(message)
        logger.warning(message)
        return Outcome.failed(message)

    def clear_cache(self) -> None:
        """Clear the internal hash cache and reset the hit/miss counters."""
        self._cache.clear()
        self._cache_hits = 0
        self._cache_misses = 0

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with 'size', 'hits' and 'misses'.
        """
        return {
            "size": len(self._cache),
            "hits": self._cache_hits,
            "misses": self._cache_misses,
        }

    def get_errors(self) -> List[str]:
        """Get list of errors encountered during hashing operations."""
        return self._errors.copy()

    def clear_errors(self) -> None:
        """Clear the list of accumulated errors."""
        self._errors.clear()
