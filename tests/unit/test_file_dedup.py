"""
Unit tests for FileDedupEngine in foldmerge.operations.file_dedup.

Tests cover:
- Destination path reconstruction with normalized segments
- Absorbed-folder filtering
- Content dedup against destination and within the run
- Conflict policies (skip, rename)
- Pause cursor semantics
- Copy failures
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from foldmerge.models import FileRecord
from foldmerge.operations import FileDedupEngine, destination_folder_for, is_absorbed
from foldmerge.scanning import DestinationIndexer


def _record(path: str, folder_relative: str) -> FileRecord:
    file_path = Path(path)
    return FileRecord(
        path=file_path,
        size=1,
        name=file_path.name,
        relative_path=Path(folder_relative) / file_path.name,
        folder_path=file_path.parent,
        folder_relative_path=Path(folder_relative),
    )


def _index(state):
    return DestinationIndexer().build(state.request.destination).value


@pytest.mark.unit
class TestHelpers:
    def test_destination_folder_normalizes_every_segment(self):
        record = _record("/s/Trips_2019/Paris_v2/a.jpg", "Trips_2019/Paris_v2")

        assert destination_folder_for(record, Path("/d")) == Path("/d/Trips/Paris")

    def test_root_files_go_to_destination_root(self):
        record = _record("/s/a.jpg", ".")

        assert destination_folder_for(record, Path("/d")) == Path("/d")

    def test_is_absorbed_exact_folder(self):
        record = _record("/s/Trip/a.jpg", "Trip")

        assert is_absorbed(record, {Path("/s/Trip")})

    def test_is_absorbed_needs_separator_boundary(self):
        record = _record("/s/Trip2/a.jpg", "Trip2")

        assert not is_absorbed(record, {Path("/s/Trip")})


@pytest.mark.unit
class TestFileDedupEngine:
    """Per-file pass over the flat file list."""

    def test_copies_new_content_and_counts_duplicates(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        tree(destination, {"existing.txt": b"E"})
        source = tree(
            temp_dir / "src",
            {"a.txt": b"A", "Docs/same_as_a.txt": b"A", "Docs/old.txt": b"E"},
        )
        state = make_state([source], destination)

        outcome = FileDedupEngine().run(state, _index(state))

        assert outcome.is_ok
        # Docs sorts before a.txt, so Docs/same_as_a.txt is the copy that lands
        assert tree_files(destination) == ["Docs/same_as_a.txt", "existing.txt"]
        assert state.stats.scanned == 3
        assert state.stats.copied == 1
        assert state.stats.duplicates == 2
        assert state.cursor == len(state.files)

    def test_scan_order_decides_which_copy_wins(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        source = tree(temp_dir / "src", {"A/x.txt": b"X", "B/y.txt": b"X"})
        state = make_state([source], destination)

        FileDedupEngine().run(state, _index(state))

        assert tree_files(destination) == ["A/x.txt"]

    def test_absorbed_files_skipped(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        source = tree(temp_dir / "src", {"Trip/a.jpg": b"A", "b.jpg": b"B"})
        state = make_state([source], destination)
        state.absorbed_folders.add(source / "Trip")

        FileDedupEngine().run(state, _index(state))

        assert tree_files(destination) == ["b.jpg"]
        assert state.stats.scanned == 1

    def test_skip_policy_counts_name_clash_as_duplicate(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        tree(destination, {"Docs/notes.txt": b"OLD"})
        source = tree(temp_dir / "src", {"Docs/notes.txt": b"NEW"})
        state = make_state([source], destination, conflict_policy="skip")

        FileDedupEngine().run(state, _index(state))

        assert (destination / "Docs" / "notes.txt").read_bytes() == b"OLD"
        assert tree_files(destination) == ["Docs/notes.txt"]
        assert state.stats.duplicates == 1
        assert state.stats.copied == 0

    def test_rename_policy_keeps_both(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        tree(destination, {"Docs/notes.txt": b"OLD"})
        source = tree(temp_dir / "src", {"Docs/notes.txt": b"NEW"})
        state = make_state([source], destination, conflict_policy="rename")

        FileDedupEngine().run(state, _index(state))

        assert tree_files(destination) == ["Docs/notes.txt", "Docs/notes_1.txt"]
        assert (destination / "Docs" / "notes_1.txt").read_bytes() == b"NEW"
        assert state.stats.copied == 1

    def test_pause_saves_cursor_at_unprocessed_file(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        source = tree(temp_dir / "src", {"a.txt": b"A", "b.txt": b"B", "c.txt": b"C"})
        state = make_state([source], destination)
        engine = FileDedupEngine()

        def pause_after_first_copy(label: str) -> None:
            if state.stats.copied == 1:
                state.cancel_token.cancel()

        outcome = engine.run(state, _index(state), pause_after_first_copy)

        assert outcome.is_cancelled
        assert state.cursor == 1
        assert tree_files(destination) == ["a.txt"]

        state.cancel_token.reset()
        outcome = engine.run(state, _index(state))

        assert outcome.is_ok
        assert tree_files(destination) == ["a.txt", "b.txt", "c.txt"]
        assert state.stats.copied == 3
        assert state.stats.scanned == 3

    def test_hash_failure_skipped_without_counting(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        source = tree(temp_dir / "src", {"a.txt": b"A", "b.txt": b"B"})
        state = make_state([source], destination)
        (source / "a.txt").unlink()

        FileDedupEngine().run(state, _index(state))

        assert tree_files(destination) == ["b.txt"]
        assert state.stats.scanned == 1
        assert len(state.errors) == 1

    def test_content_key_reflects_file_at_hash_time(
        self, temp_dir: Path, tree, destination: Path, make_state
    ):
        source = tree(temp_dir / "src", {"a.txt": b"A"})
        state = make_state([source], destination)
        (source / "a.txt").write_bytes(b"grown since scan")

        FileDedupEngine().run(state, _index(state))

        assert state.stats.size_copied_bytes == len(b"grown since scan")
        assert [key.size for key in state.seen_keys] == [len(b"grown since scan")]

    def test_copy_failure_releases_content_key(
        self, temp_dir: Path, tree, tree_files, destination: Path, make_state
    ):
        source = tree(temp_dir / "src", {"A/x.txt": b"X", "B/x.txt": b"X"})
        state = make_state([source], destination)
        engine = FileDedupEngine()
        real_copy = engine._tree_ops.copy_file
        calls = []

        def fail_first(src: Path, dst: Path) -> None:
            calls.append(src)
            if len(calls) == 1:
                raise PermissionError("denied")
            real_copy(src, dst)

        with patch.object(engine._tree_ops, "copy_file", side_effect=fail_first):
            engine.run(state, _index(state))

        # The second file with the same content is still copied
        assert tree_files(destination) == ["B/x.txt"]
        assert state.stats.copied == 1
        assert state.stats.duplicates == 0
        assert len(state.errors) == 1
