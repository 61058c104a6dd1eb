"""Tests for relative path checks."""

from pathlib import Path

import pytest

from sslm.library.paths import UnsafePathError, resolve_destination, validate_relative_path


class TestValidateRelativePath:
    def test_plain_path(self) -> None:
        assert validate_relative_path("M 42/lights/x.fit") == "M 42/lights/x.fit"

    def test_normalizes_separators_and_dots(self) -> None:
        assert validate_relative_path("./M 42\\x.fit") == "M 42/x.fit"

    @pytest.mark.parametrize(
        "path", ["", ".", "..", "a/../b", "/etc/passwd", "\\\\srv\\share", "C:/x", "d:x"]
    )
    def test_rejects_unsafe_paths(self, path: str) -> None:
        with pytest.raises(UnsafePathError):
            validate_relative_path(path)


class TestResolveDestination:
    def test_inside_root(self, tmp_path: Path) -> None:
        assert resolve_destination(tmp_path, "a/b.fit") == (tmp_path / "a" / "b.fit").resolve()

    def test_symlink_leaving_root_is_refused(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "elsewhere").mkdir()
        (root / "link").symlink_to(tmp_path / "elsewhere")

        with pytest.raises(UnsafePathError):
            resolve_destination(root, "link/x.fit")
