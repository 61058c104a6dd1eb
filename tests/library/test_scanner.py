"""Tests for the directory scanner."""

import os
from pathlib import Path

import pytest

from sslm.library.scanner import DirectoryScanner, normalize_relative_path
from sslm.library.types import ScanError, StatError
from tests.helpers import T_2024_05_01, make_file


class TestNormalizeRelativePath:
    def test_uses_forward_slashes(self, tmp_path: Path) -> None:
        path = tmp_path / "M 42" / "lights" / "a.fit"
        assert normalize_relative_path(path, tmp_path) == "M 42/lights/a.fit"


class TestDirectoryScanner:
    """Tests for DirectoryScanner.scan."""

    def test_scans_nested_files(self, tmp_path: Path) -> None:
        """Should record every regular file with size, mtime and source."""
        make_file(tmp_path, "M 42/Stacked_M 42.fit", size=100, mtime=T_2024_05_01)
        make_file(tmp_path, "M 42_sub/Light_001.fit", size=20)
        make_file(tmp_path, "notes.txt", size=3)

        records = DirectoryScanner().scan(tmp_path, "device")

        assert [r.relative_path for r in records] == [
            "M 42/Stacked_M 42.fit",
            "M 42_sub/Light_001.fit",
            "notes.txt",
        ]
        stacked = records[0]
        assert stacked.size_bytes == 100
        assert stacked.modified_at == T_2024_05_01
        assert stacked.source_id == "device"
        assert stacked.absolute_path.is_file()

    def test_empty_root(self, tmp_path: Path) -> None:
        assert DirectoryScanner().scan(tmp_path, "a") == []

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        """A missing root is a whole-source failure."""
        with pytest.raises(ScanError):
            DirectoryScanner().scan(tmp_path / "missing", "a")

    def test_file_root_raises(self, tmp_path: Path) -> None:
        path = make_file(tmp_path, "file.fit")
        with pytest.raises(ScanError):
            DirectoryScanner().scan(path, "a")

    def test_broken_symlink_is_skipped(self, tmp_path: Path) -> None:
        """An entry that cannot be stat'ed is skipped, not fatal."""
        make_file(tmp_path, "good.fit")
        os.symlink(tmp_path / "nowhere.fit", tmp_path / "broken.fit")

        scanner = DirectoryScanner()
        records = scanner.scan(tmp_path, "a")

        assert [r.relative_path for r in records] == ["good.fit"]
        assert len(scanner.skipped) == 1
        assert isinstance(scanner.skipped[0], StatError)

    def test_symlinked_file_is_followed(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        target = make_file(tmp_path, "outside.fit", size=42)
        os.symlink(target, root / "linked.fit")

        records = DirectoryScanner().scan(root, "a")

        assert len(records) == 1
        assert records[0].relative_path == "linked.fit"
        assert records[0].size_bytes == 42

    def test_symlinked_directory_is_not_descended(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        make_file(root, "own.fit")
        make_file(tmp_path, "other/inner.fit")
        os.symlink(tmp_path / "other", root / "other")

        records = DirectoryScanner().scan(root, "a")

        assert [r.relative_path for r in records] == ["own.fit"]

    def test_skipped_is_reset_between_scans(self, tmp_path: Path) -> None:
        os.symlink(tmp_path / "nowhere", tmp_path / "broken")
        scanner = DirectoryScanner()
        scanner.scan(tmp_path, "a")
        assert scanner.skipped

        clean = tmp_path / "clean"
        make_file(clean, "x.fit")
        scanner.scan(clean, "a")
        assert scanner.skipped == []
