"""Directory scanner for source and destination trees.

This module provides:
- normalize_relative_path: "/"-separated relative path of a file under a root
- DirectoryScanner: Recursively enumerates a root into FileRecord objects

A scan never aborts because of a single bad entry: unreadable directories and
entries that cannot be stat'ed (permissions, broken symlinks) are logged and
skipped.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from sslm.library.types import FileRecord, ScanError, StatError

logger = logging.getLogger(__name__)


def normalize_relative_path(path: Path, root: Path) -> str:
    """Compute the "/"-separated path of ``path`` relative to ``root``."""
    relative_path = str(path.relative_to(root))
    # Normalize path separators
    return relative_path.replace("\\", "/")


class DirectoryScanner:
    """Scans a directory tree into file records.

    Symlinked directories are not descended into. Symlinked files are
    followed, so a broken link fails its stat and is skipped. Only regular
    files are recorded.

    Usage:
        scanner = DirectoryScanner()
        records = scanner.scan(Path("/mnt/seestar/MyWorks"), source_id="device")
        for record in records:
            print(record.relative_path, record.size_bytes)
    """

    def __init__(self) -> None:
        self._skipped: list[ScanError | StatError] = []

    @property
    def skipped(self) -> list[ScanError | StatError]:
        """Entries skipped during the last scan."""
        return list(self._skipped)

    def scan(self, root: Path, source_id: str) -> list[FileRecord]:
        """Scan a root directory recursively.

        Args:
            root: Directory to scan.
            source_id: Identifier stored on every produced record.

        Returns:
            List of FileRecord, sorted by relative path.

        Raises:
            ScanError: If root does not exist or is not a directory.
        """
        base_path = Path(root).resolve()
        if not base_path.is_dir():
            raise ScanError(f"Source root is not a directory: {root}")

        self._skipped = []
        records: list[FileRecord] = []

        def on_walk_error(error: OSError) -> None:
            self._skip(ScanError(f"Cannot read directory {error.filename}: {error.strerror}"))

        for root_str, dirs, files in os.walk(base_path, onerror=on_walk_error):
            current = Path(root_str)
            dirs.sort()

            for filename in files:
                file_path = current / filename
                try:
                    st = file_path.stat()
                except OSError as e:
                    self._skip(StatError(f"Cannot access {file_path}: {e.strerror or e}"))
                    continue

                if not stat.S_ISREG(st.st_mode):
                    logger.debug(f"Skipping non-regular file: {file_path}")
                    continue

                records.append(
                    FileRecord(
                        relative_path=normalize_relative_path(file_path, base_path),
                        absolute_path=file_path,
                        size_bytes=st.st_size,
                        modified_at=st.st_mtime,
                        source_id=source_id,
                    )
                )

        records.sort(key=lambda r: r.relative_path)
        logger.debug(
            f"Scanned {base_path} ({source_id}): {len(records)} files, "
            f"{len(self._skipped)} skipped"
        )
        return records

    def _skip(self, error: ScanError | StatError) -> None:
        logger.warning(str(error))
        self._skipped.append(error)
