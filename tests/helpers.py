"""Helpers to build source trees and records in tests."""

import os
from pathlib import Path

from sslm.library.types import FileRecord

# Fixed timestamps (UTC midnight) used across tests
T_2024_01_01 = 1704067200.0
T_2024_05_01 = 1714521600.0
T_2024_06_15 = 1718409600.0


def make_file(root: Path, relative_path: str, size: int = 10, mtime: float = T_2024_01_01) -> Path:
    """Create a file of ``size`` bytes under root with the given mtime."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    os.utime(path, (mtime, mtime))
    return path


def make_record(
    relative_path: str,
    size: int = 10,
    mtime: float = T_2024_01_01,
    source_id: str = "a",
) -> FileRecord:
    """Build a FileRecord without touching the filesystem."""
    return FileRecord(
        relative_path=relative_path,
        absolute_path=Path("/sources") / source_id / relative_path,
        size_bytes=size,
        modified_at=mtime,
        source_id=source_id,
    )
