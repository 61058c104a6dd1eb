"""Disk space estimation for imports and merges.

This module provides:
- FreeSpaceProbe: Protocol for querying free space on a volume
- DiskUsageProbe: Default probe based on shutil.disk_usage
- missing_or_size_differs / should_copy_incremental: Per-file copy rules
- SpaceCheck: Result of a space check
- SpaceEstimator: Computes required bytes and compares with free space

Strategies:
    full         A winner needs copying unless the destination already has
                 a file of the same size at its relative path.
    incremental  Single source only. A file needs copying if the destination
                 is missing, sizes differ, or the source mtime is strictly
                 newer. A destination that cannot be stat'ed means copy.
"""

from __future__ import annotations

import logging
import math
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from sslm.core.formatting import format_bytes
from sslm.core.types import ImportStrategy, SubframeMode
from sslm.library.domain.conflicts import ConflictResolver
from sslm.library.inventory import InventoryBuilder, Source
from sslm.library.types import CopyPolicy, FileRecord, SpaceCheckError

if TYPE_CHECKING:
    from sslm.library.planner import TransferPlan

logger = logging.getLogger(__name__)

# Default safety multiplier applied to required bytes
DEFAULT_SAFETY_MARGIN = 1.1


class FreeSpaceProbe(Protocol):
    """Protocol for querying free space on the volume holding a path."""

    def free_bytes(self, path: Path) -> int:
        """Return the bytes available to the current user."""
        ...


class DiskUsageProbe:
    """Free-space probe backed by shutil.disk_usage.

    Works on POSIX and Windows. Paths that do not exist yet are resolved to
    their nearest existing ancestor, so a destination that will be created
    by the transfer can still be checked.
    """

    def free_bytes(self, path: Path) -> int:
        target = existing_ancestor(Path(path))
        try:
            return shutil.disk_usage(target).free
        except OSError as e:
            raise SpaceCheckError(f"Cannot determine available disk space for {path}: {e}") from e


def existing_ancestor(path: Path) -> Path:
    """Get the path itself or its closest existing parent."""
    current = path.absolute()
    while not current.exists():
        if current.parent == current:
            break
        current = current.parent
    return current


def missing_or_size_differs(record: FileRecord, destination: Path) -> bool:
    """Copy rule for merges and full imports: size-only presence check."""
    try:
        return destination.stat().st_size != record.size_bytes
    except OSError:
        return True


def should_copy_incremental(record: FileRecord, destination: Path) -> bool:
    """Copy rule for incremental imports.

    Equal size with an equal-or-newer destination mtime means skip.
    """
    try:
        dest_stat = destination.stat()
    except FileNotFoundError:
        logger.debug(f"[COPY] {record.relative_path} - destination doesn't exist")
        return True
    except OSError as e:
        logger.debug(f"[COPY] {record.relative_path} - error checking, copying anyway: {e}")
        return True

    if dest_stat.st_size != record.size_bytes:
        logger.debug(
            f"[COPY] {record.relative_path} - size differs "
            f"(src: {record.size_bytes}, dest: {dest_stat.st_size})"
        )
        return True

    if record.modified_at > dest_stat.st_mtime:
        logger.debug(f"[COPY] {record.relative_path} - source newer")
        return True

    logger.debug(f"[SKIP] {record.relative_path} - identical (size: {record.size_bytes})")
    return False


def copy_policy_for(strategy: ImportStrategy) -> CopyPolicy:
    """Get the per-file copy rule of a strategy."""
    if ImportStrategy(strategy) is ImportStrategy.INCREMENTAL:
        return should_copy_incremental
    return missing_or_size_differs


@dataclass
class SpaceCheck:
    """Result of comparing required bytes with free space.

    Attributes:
        strategy: Strategy used to compute required bytes.
        required_bytes: Bytes that will be written, before the margin.
        required_with_margin: required_bytes times the margin, rounded up.
        available_bytes: Free bytes on the destination volume.
        margin: Safety multiplier applied.
    """

    strategy: ImportStrategy
    required_bytes: int
    required_with_margin: int
    available_bytes: int
    margin: float

    @property
    def has_enough_space(self) -> bool:
        return self.available_bytes >= self.required_with_margin

    def to_message(self) -> dict[str, Any]:
        """Convert to a JSON-compatible message."""
        return {
            "hasEnoughSpace": self.has_enough_space,
            "required": self.required_with_margin,
            "requiredFormatted": format_bytes(self.required_with_margin),
            "available": self.available_bytes,
            "availableFormatted": format_bytes(self.available_bytes),
            "bufferApplied": self.margin,
            "requiredWithoutBuffer": self.required_bytes,
            "requiredWithoutBufferFormatted": format_bytes(self.required_bytes),
            "strategy": self.strategy.value,
        }


class SpaceEstimator:
    """Estimates the bytes a transfer needs and checks them against free space.

    Usage:
        estimator = SpaceEstimator()
        check = estimator.estimate(
            [Source(Path("/mnt/seestar/MyWorks"), "device")],
            Path("/data/library"),
            strategy=ImportStrategy.INCREMENTAL,
        )
        if not check.has_enough_space:
            ...
    """

    def __init__(
        self,
        probe: FreeSpaceProbe | None = None,
        margin: float = DEFAULT_SAFETY_MARGIN,
        resolver: ConflictResolver | None = None,
    ) -> None:
        """Initialize the estimator.

        Args:
            probe: Free-space probe (DiskUsageProbe by default).
            margin: Safety multiplier applied to required bytes.
            resolver: Resolver used to pick winners across sources.
        """
        self._probe = probe or DiskUsageProbe()
        self._margin = margin
        self._resolver = resolver or ConflictResolver()

    def should_copy(self, record: FileRecord, destination: Path) -> bool:
        """Incremental copy decision for one file."""
        return should_copy_incremental(record, destination)

    def required_bytes(
        self,
        sources: Sequence[Source],
        destination_root: Path,
        strategy: ImportStrategy = ImportStrategy.FULL,
        subframe_mode: SubframeMode = SubframeMode.ALL,
    ) -> int:
        """Compute the bytes that a transfer would write.

        Raises:
            ValueError: If incremental is requested for several sources.
        """
        strategy = ImportStrategy(strategy)
        if strategy is ImportStrategy.INCREMENTAL and len(sources) != 1:
            raise ValueError("The incremental strategy only applies to a single source")

        inventory = InventoryBuilder(subframe_mode).build(sources)
        summary = self._resolver.resolve(inventory)
        policy = copy_policy_for(strategy)
        destination_root = Path(destination_root)

        required = 0
        for resolution in summary.resolutions:
            winner = resolution.winner
            if policy(winner, destination_root / winner.relative_path):
                required += winner.size_bytes
        return required

    def check(
        self,
        required_bytes: int,
        destination_root: Path,
        strategy: ImportStrategy = ImportStrategy.FULL,
    ) -> SpaceCheck:
        """Compare required bytes (plus margin) with free space.

        Raises:
            SpaceCheckError: If free space cannot be determined.
        """
        # Decimal keeps 100 * 1.1 at exactly 110
        required_with_margin = math.ceil(Decimal(required_bytes) * Decimal(str(self._margin)))
        available = self._probe.free_bytes(Path(destination_root))

        result = SpaceCheck(
            strategy=ImportStrategy(strategy),
            required_bytes=required_bytes,
            required_with_margin=required_with_margin,
            available_bytes=available,
            margin=self._margin,
        )
        logger.info(
            f"Space check ({result.strategy.value}): required "
            f"{format_bytes(required_with_margin)}, available {format_bytes(available)}"
        )
        return result

    def estimate(
        self,
        sources: Sequence[Source],
        destination_root: Path,
        strategy: ImportStrategy = ImportStrategy.FULL,
        subframe_mode: SubframeMode = SubframeMode.ALL,
    ) -> SpaceCheck:
        """Scan sources, compute required bytes and check free space."""
        required = self.required_bytes(sources, destination_root, strategy, subframe_mode)
        return self.check(required, destination_root, strategy)

    def check_plan(self, plan: TransferPlan, destination_root: Path) -> SpaceCheck:
        """Check free space for an existing plan without rescanning."""
        return self.check(plan.total_bytes, destination_root, plan.strategy)
