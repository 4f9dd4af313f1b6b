"""
Unit tests for DirectoryScanner in foldmerge.scanning.directory_scanner.

Tests cover:
- File and folder records with relative paths
- Extension filtering
- Leaf detection and omission of empty folders
- Directory symlinks not followed
- Pause between entries
- Leaf folder discovery for consolidation
"""

import os
import platform
from pathlib import Path

import pytest

from foldmerge.models import CancelToken
from foldmerge.scanning import DirectoryScanner, matches_extension


@pytest.mark.unit
class TestMatchesExtension:
    def test_empty_filter_allows_all(self):
        assert matches_extension("anything.bin", ())
        assert matches_extension("README", ())

    def test_case_insensitive(self):
        assert matches_extension("IMG_001.JPG", ("jpg",))
        assert not matches_extension("notes.txt", ("jpg",))

    def test_no_extension(self):
        assert not matches_extension("Makefile", ("jpg",))


@pytest.mark.unit
class TestScan:
    """Tests for DirectoryScanner.scan."""

    def test_records_files_and_folders(self, temp_dir: Path, tree):
        root = tree(
            temp_dir / "src",
            {"root.txt": b"r", "A/one.txt": b"1", "A/B/two.txt": b"2"},
        )

        files, folders = DirectoryScanner().scan(root)

        relative = sorted(f.relative_path.as_posix() for f in files)
        assert relative == ["A/B/two.txt", "A/one.txt", "root.txt"]

        by_rel = {f.relative_path.as_posix(): f for f in folders}
        assert set(by_rel) == {".", "A", "A/B"}
        assert by_rel["A/B"].is_leaf
        assert not by_rel["A"].is_leaf
        assert not by_rel["."].is_leaf
        assert [f.name for f in by_rel["A"].files] == ["one.txt"]
        assert by_rel["A"].subfolders == (Path("A/B"),)

    def test_file_record_fields(self, temp_dir: Path, tree):
        root = tree(temp_dir / "src", {"Trip/a.jpg": b"abc"})

        files, _ = DirectoryScanner().scan(root)

        record = files[0]
        assert record.name == "a.jpg"
        assert record.size == 3
        assert record.path == root / "Trip" / "a.jpg"
        assert record.folder_path == root / "Trip"
        assert record.folder_relative_path == Path("Trip")

    def test_extension_filter(self, temp_dir: Path, tree):
        root = tree(
            temp_dir / "src",
            {"Pics/a.JPG": b"a", "Pics/b.txt": b"b", "Docs/c.txt": b"c"},
        )

        files, folders = DirectoryScanner().scan(root, ("jpg",))

        assert [f.name for f in files] == ["a.JPG"]
        by_rel = {f.relative_path.as_posix(): f for f in folders}
        # Docs has no matching files and no subfolders
        assert "Docs" not in by_rel
        assert "Pics" in by_rel

    def test_leaf_without_matching_files_but_with_subfolders(self, temp_dir: Path, tree):
        root = tree(temp_dir / "src", {"Outer/Inner/x.jpg": b"x"})

        _, folders = DirectoryScanner().scan(root, ("jpg",))

        by_rel = {f.relative_path.as_posix(): f for f in folders}
        assert not by_rel["Outer"].is_leaf
        assert by_rel["Outer"].files == ()
        assert by_rel["Outer/Inner"].is_leaf

    def test_empty_folder_omitted(self, temp_dir: Path, tree):
        root = tree(temp_dir / "src", {"Full/a.txt": b"a"})
        (root / "Empty").mkdir()

        _, folders = DirectoryScanner().scan(root)

        assert "Empty" not in {f.relative_path.as_posix() for f in folders}
        # The root still lists Empty as a subfolder, so it is not a leaf
        root_record = next(f for f in folders if f.relative_path == Path("."))
        assert Path("Empty") in root_record.subfolders

    def test_missing_root_gives_empty_result(self, temp_dir: Path):
        scanner = DirectoryScanner()

        files, folders = scanner.scan(temp_dir / "missing")

        assert files == []
        assert folders == []
        assert len(scanner.get_errors()) == 1

    @pytest.mark.skipif(platform.system() == "Windows", reason="symlink support")
    def test_directory_symlinks_not_followed(self, temp_dir: Path, tree):
        root = tree(temp_dir / "src", {"Real/a.txt": b"a"})
        os.symlink(root / "Real", root / "Link")

        files, _ = DirectoryScanner().scan(root)

        assert [f.relative_path.as_posix() for f in files] == ["Real/a.txt"]

    def test_pause_stops_enumeration(self, temp_dir: Path, tree):
        root = tree(temp_dir / "src", {"a.txt": b"a", "b.txt": b"b"})
        token = CancelToken()
        token.cancel()

        files, folders = DirectoryScanner().scan(root, token=token)

        assert files == []
        assert folders == []

    def test_clear_errors(self, temp_dir: Path):
        scanner = DirectoryScanner()
        scanner.scan(temp_dir / "missing")

        scanner.clear_errors()

        assert scanner.get_errors() == []


@pytest.mark.unit
class TestListDirectFiles:
    def test_direct_files_only(self, temp_dir: Path, tree):
        folder = tree(temp_dir / "Trip", {"a.jpg": b"a", "b.txt": b"b", "sub/c.jpg": b"c"})

        record = DirectoryScanner().list_direct_files(folder, ("jpg",))

        assert [f.name for f in record.files] == ["a.jpg"]
        assert record.subfolders == (Path("sub"),)
        assert not record.is_leaf
        assert record.name == "Trip"


@pytest.mark.unit
class TestFindLeafFolders:
    def test_finds_leaves_in_name_order(self, temp_dir: Path, tree):
        root = tree(
            temp_dir / "dest",
            {"Photos/a.jpg": b"a", "Photos_bak/b.jpg": b"b", "Music/Rock/c.mp3": b"c"},
        )
        (root / "Empty").mkdir()

        leaves = DirectoryScanner().find_leaf_folders(root)

        assert leaves == [
            root / "Empty",
            root / "Music" / "Rock",
            root / "Photos",
            root / "Photos_bak",
        ]

    def test_root_is_never_a_leaf(self, temp_dir: Path, tree):
        root = tree(temp_dir / "dest", {"a.txt": b"a"})

        assert DirectoryScanner().find_leaf_folders(root) == []
