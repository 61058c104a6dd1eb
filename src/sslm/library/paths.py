"""Relative path checks for plan entries.

Plans come back from the caller, so every relative path is checked before
it is joined to a destination root: it must not be absolute, carry a drive
letter or contain ".." components.
"""

from __future__ import annotations

from pathlib import Path

from sslm.library.types import LibraryError


class UnsafePathError(LibraryError):
    """A relative path would leave the root it is joined to."""


def validate_relative_path(path: str) -> str:
    """Validate a "/"-separated relative path.

    Returns:
        The path with "\\" separators and "." components normalized away.

    Raises:
        UnsafePathError: If the path is empty, absolute or escapes its root.
    """
    if not path:
        raise UnsafePathError("Path cannot be empty")

    normalized = path.replace("\\", "/")
    if normalized.startswith("/"):
        raise UnsafePathError(f"Absolute paths not allowed: {path}")

    parts: list[str] = []
    for part in normalized.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            raise UnsafePathError(f"Path traversal not allowed: {path}")
        # Windows drive letter
        if not parts and len(part) >= 2 and part[1] == ":" and part[0].isalpha():
            raise UnsafePathError(f"Absolute paths not allowed: {path}")
        parts.append(part)

    if not parts:
        raise UnsafePathError(f"Path resolves to empty: {path}")
    return "/".join(parts)


def resolve_destination(root: Path, relative_path: str) -> Path:
    """Resolve a relative path to an absolute path inside ``root``.

    Symlinks are followed, so a link inside the root pointing elsewhere is
    refused too.

    Raises:
        UnsafePathError: If the resolved path is not under ``root``.
    """
    safe_path = validate_relative_path(relative_path)
    resolved_root = Path(root).resolve()
    destination = (resolved_root / safe_path).resolve()
    if not destination.is_relative_to(resolved_root) or destination == resolved_root:
        raise UnsafePathError(f"Path escapes destination root: {relative_path}")
    return destination
