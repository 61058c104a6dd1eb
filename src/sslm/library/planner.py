"""Transfer plan construction.

This module provides:
- PlannedFile: One file the plan intends to place in the destination
- TransferPlan: Serializable output of planning, resubmitted to execute
- PlanBuilder: Turns an inventory and its resolutions into a TransferPlan

A plan is the whole contract between analysis and execution: nothing is
cached between the two, the caller hands the same plan back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sslm.core.formatting import format_bytes
from sslm.core.types import ImportStrategy, SubframeMode
from sslm.library.domain.conflicts import ResolutionSummary
from sslm.library.inventory import Inventory
from sslm.library.space import missing_or_size_differs
from sslm.library.types import CopyPolicy, FileRecord

logger = logging.getLogger(__name__)

# Duplicate examples kept for preview
DEFAULT_MAX_DUPLICATE_EXAMPLES = 10


@dataclass
class PlannedFile:
    """A file the plan places at ``relative_path`` under the destination."""

    source_path: str
    relative_path: str
    size: int
    mtime: float
    source_id: str = ""

    @classmethod
    def from_record(cls, record: FileRecord) -> PlannedFile:
        return cls(
            source_path=str(record.absolute_path),
            relative_path=record.relative_path,
            size=record.size_bytes,
            mtime=record.modified_at,
            source_id=record.source_id,
        )


@dataclass
class DuplicateExample:
    """A relative path provided by several sources."""

    relative_path: str
    count: int
    sources: list[str]


@dataclass
class SourceStats:
    """Files and bytes each source contributed to the inventory."""

    files: int = 0
    bytes: int = 0


@dataclass
class TransferPlan:
    """Result of planning.

    Attributes:
        total_files: Raw candidates across all sources (not deduplicated).
        unique_files: Winners (one per relative path).
        total_bytes: Bytes of the winners that still need copying.
        total_bytes_all_unique: Bytes of all winners.
        files_to_copy: Files to copy, in execution order.
        files_already_present: Winners the destination already holds.
        duplicate_count: Paths provided by two or more sources.
        duplicate_examples: First duplicate paths, for preview.
        conflict_count: Paths whose candidates differ (true total).
        conflict_resolutions: First conflict resolutions, for preview.
        existing_count: Winners already present in the destination.
        existing_bytes: Bytes of those winners.
        source_stats: Per-source file/byte counts.
        strategy: Copy rule used to build the plan.
        subframe_mode: Subframe filter used to build the plan.
    """

    total_files: int = 0
    unique_files: int = 0
    total_bytes: int = 0
    total_bytes_all_unique: int = 0
    files_to_copy: list[PlannedFile] = field(default_factory=list)
    files_already_present: list[PlannedFile] = field(default_factory=list)
    duplicate_count: int = 0
    duplicate_examples: list[DuplicateExample] = field(default_factory=list)
    conflict_count: int = 0
    conflict_resolutions: list[dict[str, Any]] = field(default_factory=list)
    existing_count: int = 0
    existing_bytes: int = 0
    source_stats: dict[str, SourceStats] = field(default_factory=dict)
    strategy: ImportStrategy = ImportStrategy.FULL
    subframe_mode: SubframeMode = SubframeMode.ALL

    @property
    def is_empty(self) -> bool:
        """Check if there is nothing to copy."""
        return not self.files_to_copy

    def summary_lines(self) -> list[str]:
        """Human-readable summary, one statistic per line."""
        return [
            f"Total files from all sources: {self.total_files}",
            f"Unique files (after deduplication): {self.unique_files}",
            f"Files already in destination: {self.existing_count}",
            f"Files to copy: {len(self.files_to_copy)}",
            f"Duplicates detected: {self.duplicate_count}",
            f"Conflicts resolved: {self.conflict_count}",
            f"Total bytes to copy: {format_bytes(self.total_bytes)}",
        ]


class PlanBuilder:
    """Builds a TransferPlan from an inventory and its resolutions."""

    def __init__(self, max_duplicate_examples: int = DEFAULT_MAX_DUPLICATE_EXAMPLES) -> None:
        self._max_duplicate_examples = max_duplicate_examples

    def build_plan(
        self,
        inventory: Inventory,
        summary: ResolutionSummary,
        destination_root: Path,
        copy_policy: CopyPolicy | None = None,
        strategy: ImportStrategy = ImportStrategy.FULL,
        subframe_mode: SubframeMode = SubframeMode.ALL,
    ) -> TransferPlan:
        """Build the plan.

        Args:
            inventory: Candidates grouped by relative path.
            summary: Resolutions for that inventory.
            destination_root: Directory receiving the files.
            copy_policy: Decides if a winner needs copying given its
                destination path. Defaults to a size-only presence check.
            strategy: Recorded on the plan.
            subframe_mode: Recorded on the plan.

        Returns:
            The TransferPlan.
        """
        policy = copy_policy or missing_or_size_differs
        destination_root = Path(destination_root)

        plan = TransferPlan(
            total_files=inventory.total_records,
            duplicate_count=summary.duplicate_count,
            conflict_count=summary.conflict_count,
            conflict_resolutions=[r.to_message() for r in summary.retained_conflicts],
            source_stats={source_id: SourceStats() for source_id in inventory.source_ids},
            strategy=ImportStrategy(strategy),
            subframe_mode=SubframeMode(subframe_mode),
        )

        if not destination_root.exists():
            logger.info("Destination directory does not exist yet - will be created")

        for resolution in summary.resolutions:
            winner = resolution.winner
            plan.unique_files += 1
            plan.total_bytes_all_unique += winner.size_bytes

            planned = PlannedFile.from_record(winner)
            if policy(winner, destination_root / winner.relative_path):
                plan.files_to_copy.append(planned)
                plan.total_bytes += winner.size_bytes
            else:
                plan.files_already_present.append(planned)
                plan.existing_count += 1
                plan.existing_bytes += winner.size_bytes

            for candidate in resolution.candidates:
                stats = plan.source_stats.setdefault(candidate.source_id, SourceStats())
                stats.files += 1
                stats.bytes += candidate.size_bytes

            if (
                len(resolution.candidates) > 1
                and len(plan.duplicate_examples) < self._max_duplicate_examples
            ):
                plan.duplicate_examples.append(
                    DuplicateExample(
                        relative_path=resolution.relative_path,
                        count=len(resolution.candidates),
                        sources=[c.source_id for c in resolution.candidates],
                    )
                )

        for line in plan.summary_lines():
            logger.info(f"  {line}")

        return plan
