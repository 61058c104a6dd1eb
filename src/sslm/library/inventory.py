"""Unified file inventory across several sources.

This module provides:
- Inventory: Records of all sources grouped by relative path
- InventoryBuilder: Scans sources in order and builds an Inventory

Records live in one flat list (the arena); each relative path maps to the
indices of its candidates in that list, in source order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from sslm.core.types import SubframeMode
from sslm.library.filters import SubframeFilter
from sslm.library.scanner import DirectoryScanner
from sslm.library.types import FileRecord

logger = logging.getLogger(__name__)


@dataclass
class Source:
    """One input tree: its root and the identifier recorded on its files."""

    root: Path
    source_id: str


@dataclass
class Inventory:
    """All candidate records grouped by relative path.

    Attributes:
        source_ids: Source identifiers in scan order.
        filtered_out: Records dropped by the subframe filter.
    """

    source_ids: list[str] = field(default_factory=list)
    filtered_out: int = 0
    _records: list[FileRecord] = field(default_factory=list, repr=False)
    _entries: dict[str, list[int]] = field(default_factory=dict, repr=False)

    def add(self, record: FileRecord) -> None:
        """Add a record under its relative path.

        Raises:
            ValueError: If the path already has a record from the same source.
        """
        indices = self._entries.setdefault(record.relative_path, [])
        for index in indices:
            if self._records[index].source_id == record.source_id:
                raise ValueError(
                    f"Duplicate record for {record.relative_path} in source {record.source_id}"
                )
        indices.append(len(self._records))
        self._records.append(record)

    def candidates(self, relative_path: str) -> list[FileRecord]:
        """Get the candidates for a relative path, in source order."""
        return [self._records[i] for i in self._entries.get(relative_path, [])]

    def entries(self) -> Iterator[tuple[str, list[FileRecord]]]:
        """Iterate (relative_path, candidates) in first-seen order."""
        for relative_path, indices in self._entries.items():
            yield relative_path, [self._records[i] for i in indices]

    @property
    def total_records(self) -> int:
        """Raw number of records across all sources (not deduplicated)."""
        return len(self._records)

    def case_collisions(self) -> list[list[str]]:
        """Find relative paths that differ only by letter case.

        Such paths are distinct entries here but would overwrite each other
        on a case-insensitive destination.
        """
        folded: dict[str, list[str]] = {}
        for relative_path in self._entries:
            folded.setdefault(relative_path.casefold(), []).append(relative_path)
        return [paths for paths in folded.values() if len(paths) > 1]

    def __len__(self) -> int:
        """Number of distinct relative paths."""
        return len(self._entries)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self._entries


class InventoryBuilder:
    """Builds an Inventory from an ordered list of sources.

    The subframe filter configured here is applied to every scan, so plans
    and space estimates built from the same builder settings agree.
    """

    def __init__(
        self,
        subframe_mode: SubframeMode = SubframeMode.ALL,
        scanner: DirectoryScanner | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            subframe_mode: Filter applied to every scanned source.
            scanner: Scanner to use (a new DirectoryScanner by default).
        """
        self._filter = SubframeFilter(subframe_mode)
        self._scanner = scanner or DirectoryScanner()

    @property
    def subframe_mode(self) -> SubframeMode:
        return self._filter.mode

    def build(self, sources: Sequence[Source | tuple[Path, str]]) -> Inventory:
        """Scan each source in order and group records by relative path.

        Args:
            sources: Ordered sources; order decides conflict tie-breaks.

        Returns:
            The populated Inventory.

        Raises:
            ValueError: If two sources share an identifier.
            ScanError: If a source root cannot be scanned at all.
        """
        normalized = [s if isinstance(s, Source) else Source(Path(s[0]), s[1]) for s in sources]
        ids = [s.source_id for s in normalized]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Source identifiers must be unique: {ids}")

        inventory = Inventory(source_ids=ids)

        for i, source in enumerate(normalized, start=1):
            logger.info(f"Scanning source [{i}/{len(normalized)}]: {source.root}")
            records = self._scanner.scan(source.root, source.source_id)
            kept, excluded = self._filter.apply(records)
            inventory.filtered_out += excluded

            if excluded:
                logger.info(
                    f"  Found {len(records)} files, skipping {excluded} non-fit _sub files"
                )
            else:
                logger.info(f"  Found {len(records)} files")

            for record in kept:
                inventory.add(record)

        for paths in inventory.case_collisions():
            logger.warning(f"Paths differ only by case: {', '.join(paths)}")

        return inventory
