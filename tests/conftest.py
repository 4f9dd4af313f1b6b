"""Pytest fixtures for foldmerge tests."""

import io
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List

import pytest
from rich.console import Console

from foldmerge.models import CancelToken, RunEvent, RunRequest, RunState
from foldmerge.scanning import DirectoryScanner, FileHasher


def pytest_configure(config) -> None:
    config.addinivalue_line("markers", "unit: fast component tests")
    config.addinivalue_line("markers", "integration: end-to-end pipeline tests")


def write_tree(root: Path, files: Dict[str, bytes]) -> Path:
    """Create files below root from a {relative path: content} mapping.

    Args:
        root: Base directory (created if missing).
        files: Relative POSIX paths mapped to file contents.

    Returns:
        The root path.
    """
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


def list_files(root: Path) -> List[str]:
    """Sorted POSIX paths of every file below root, relative to root."""
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


class CountdownToken(CancelToken):
    """CancelToken that raises itself after a fixed number of checks."""

    def __init__(self, checks_before_cancel: int) -> None:
        super().__init__()
        self.remaining = checks_before_cancel

    @property
    def is_cancelled(self) -> bool:
        if not self._event.is_set():
            if self.remaining <= 0:
                self._event.set()
            else:
                self.remaining -= 1
        return self._event.is_set()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for isolated test environments.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def hasher() -> FileHasher:
    return FileHasher()


@pytest.fixture
def scanner() -> DirectoryScanner:
    return DirectoryScanner()


@pytest.fixture
def destination(temp_dir: Path) -> Path:
    dest = temp_dir / "dest"
    dest.mkdir()
    return dest


@pytest.fixture
def two_sources(temp_dir: Path) -> List[Path]:
    """Create two overlapping backup trees.

    Creates:
        s1/
        ├── Trip/
        │   ├── a.jpg ("A")
        │   └── b.jpg ("B")
        └── loose.txt ("L")
        s2/
        ├── Trip_2/
        │   ├── a.jpg ("A")
        │   └── c.jpg ("C")
        └── Docs/
            └── notes.txt ("N")

    Returns:
        [s1, s2]
    """
    s1 = write_tree(
        temp_dir / "s1",
        {"Trip/a.jpg": b"A", "Trip/b.jpg": b"B", "loose.txt": b"L"},
    )
    s2 = write_tree(
        temp_dir / "s2",
        {"Trip_2/a.jpg": b"A", "Trip_2/c.jpg": b"C", "Docs/notes.txt": b"N"},
    )
    return [s1, s2]


@pytest.fixture
def make_state() -> Callable[..., RunState]:
    """Factory for a RunState with its sources already scanned."""

    def factory(sources, dest, extensions=None, conflict_policy="skip") -> RunState:
        request = RunRequest.create(sources, dest, extensions, conflict_policy)
        state = RunState(request=request)
        scanner = DirectoryScanner()
        for source in request.sources:
            files, folders = scanner.scan(source, request.extensions)
            state.files.extend(files)
            state.folders.extend(folders)
        state.folder_map = {folder.path: folder for folder in state.folders}
        state.scan_complete = True
        return state

    return factory


@pytest.fixture
def events() -> List[RunEvent]:
    """Collects scheduler events; use events.append as the listener."""
    return []


@pytest.fixture
def string_console() -> Console:
    """Rich console writing to a StringIO for output assertions."""
    return Console(file=io.StringIO(), force_terminal=False, width=120)


@pytest.fixture
def tree() -> Callable[[Path, Dict[str, bytes]], Path]:
    """The write_tree helper as a fixture."""
    return write_tree


@pytest.fixture
def tree_files() -> Callable[[Path], List[str]]:
    """The list_files helper as a fixture."""
    return list_files


@pytest.fixture
def countdown_token() -> Callable[[int], CancelToken]:
    """Factory for tokens that raise themselves after N checks."""
    return CountdownToken
