"""Subframe filtering for library scans.

This module provides:
- is_subframe_non_fit: The subframe-expurge rule for one relative path
- SubframeFilter: Applies a SubframeMode to scanned records

Sub-frame directories (``M 42_sub``, ``NGC 7000_mosaic_sub``...) hold the raw
light frames of a stack. In ``fit_only`` mode only their ``.fit`` files are
kept; thumbnails and previews stored next to them are dropped.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from sslm.core.types import SubframeMode
from sslm.library.types import FileRecord

SUBFRAME_SUFFIX = "_sub"
KEPT_EXTENSION = ".fit"


def is_subframe_non_fit(relative_path: str) -> bool:
    """Check if a file lives under a ``*_sub`` directory and is not a .fit.

    Only directory segments are inspected, never the file name itself.

    Args:
        relative_path: Path relative to the source root.

    Returns:
        True if the file must be dropped in fit_only mode.
    """
    path = PurePosixPath(relative_path.replace("\\", "/"))
    if path.suffix.lower() == KEPT_EXTENSION:
        return False

    return any(part.lower().endswith(SUBFRAME_SUFFIX) for part in path.parts[:-1])


class SubframeFilter:
    """Applies a subframe mode to file records."""

    def __init__(self, mode: SubframeMode = SubframeMode.ALL) -> None:
        self._mode = SubframeMode(mode)

    @property
    def mode(self) -> SubframeMode:
        return self._mode

    def should_exclude(self, relative_path: str) -> bool:
        """Check if a relative path is filtered out in the current mode."""
        if self._mode is SubframeMode.ALL:
            return False
        return is_subframe_non_fit(relative_path)

    def apply(self, records: Iterable[FileRecord]) -> tuple[list[FileRecord], int]:
        """Filter records.

        Returns:
            (kept records, number of excluded records)
        """
        kept: list[FileRecord] = []
        excluded = 0
        for record in records:
            if self.should_exclude(record.relative_path):
                excluded += 1
            else:
                kept.append(record)
        return kept, excluded
