"""Merge and import services.

This module provides:
- MergeService: Consolidates several libraries into one destination
- ImportService: Copies one source (e.g. a device) into a library

Both follow the same two-phase flow: analyze() scans and returns a
TransferPlan without writing anything, then execute() copies exactly what
that plan lists. The plan is not cached between the two calls.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from sslm.core.config import EngineConfig
from sslm.core.types import ImportStrategy, SubframeMode
from sslm.library.domain.conflicts import ConflictResolver
from sslm.library.executor import TransferExecutor, TransferReport
from sslm.library.inventory import InventoryBuilder, Source
from sslm.library.planner import PlanBuilder, TransferPlan
from sslm.library.space import FreeSpaceProbe, SpaceCheck, SpaceEstimator, copy_policy_for
from sslm.library.types import ProgressCallback
from sslm.library.validator import ValidationReport

logger = logging.getLogger(__name__)

# Identifier of the single source of an import
IMPORT_SOURCE_ID = "source"


class _TransferService:
    """Execution half shared by both services."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        executor: TransferExecutor | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._executor = executor or TransferExecutor(self._config)
        self._resolver = ConflictResolver(max_retained=self._config.max_conflict_resolutions)
        self._planner = PlanBuilder(max_duplicate_examples=self._config.max_duplicate_examples)

    @property
    def executor(self) -> TransferExecutor:
        return self._executor

    @property
    def is_running(self) -> bool:
        return self._executor.is_running

    def execute(
        self,
        plan: TransferPlan,
        destination: Path,
        on_event: ProgressCallback | None = None,
    ) -> TransferReport:
        """Copy the files of a previously analyzed plan."""
        return self._executor.run(plan, Path(destination), on_event)

    def validate(
        self,
        plan: TransferPlan,
        destination: Path,
        on_event: ProgressCallback | None = None,
    ) -> ValidationReport:
        """Check that the destination holds every file of the plan."""
        return self._executor.validate(plan, Path(destination), on_event)

    def cancel(self) -> bool:
        """Request cancellation of the running operation."""
        return self._executor.cancel()


class MergeService(_TransferService):
    """Merges several source libraries into one destination.

    Sources are given in priority order: on a conflict with equal mtimes,
    the earlier source wins.
    """

    def analyze(
        self,
        sources: Sequence[Source | tuple[Path, str]],
        destination: Path,
        subframe_mode: SubframeMode = SubframeMode.ALL,
    ) -> TransferPlan:
        """Scan all sources and build a merge plan.

        Raises:
            ValueError: If fewer than two sources are given or ids repeat.
            ScanError: If a source root cannot be scanned.
        """
        if len(sources) < 2:
            raise ValueError("A merge needs at least two sources")

        logger.info(f"Analyzing {len(sources)} libraries for merge")
        inventory = InventoryBuilder(subframe_mode).build(sources)
        summary = self._resolver.resolve(inventory)
        logger.info(
            f"Found {len(inventory)} unique files, {summary.duplicate_count} duplicates, "
            f"{summary.conflict_count} conflicts"
        )
        return self._planner.build_plan(
            inventory,
            summary,
            Path(destination),
            subframe_mode=subframe_mode,
        )


class ImportService(_TransferService):
    """Imports one source tree into a library."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        executor: TransferExecutor | None = None,
        probe: FreeSpaceProbe | None = None,
    ) -> None:
        super().__init__(config, executor)
        self._estimator = SpaceEstimator(
            probe=probe,
            margin=self._config.safety_margin,
            resolver=self._resolver,
        )

    @property
    def estimator(self) -> SpaceEstimator:
        return self._estimator

    def analyze(
        self,
        source: Path,
        destination: Path,
        strategy: ImportStrategy = ImportStrategy.FULL,
        subframe_mode: SubframeMode = SubframeMode.ALL,
    ) -> TransferPlan:
        """Scan the source and build an import plan.

        With the incremental strategy, files whose destination copy has the
        same size and an equal-or-newer mtime are left out.
        """
        strategy = ImportStrategy(strategy)
        logger.info(f"Analyzing import from {source} ({strategy.value})")

        inventory = InventoryBuilder(subframe_mode).build([Source(Path(source), IMPORT_SOURCE_ID)])
        summary = self._resolver.resolve(inventory)
        return self._planner.build_plan(
            inventory,
            summary,
            Path(destination),
            copy_policy=copy_policy_for(strategy),
            strategy=strategy,
            subframe_mode=subframe_mode,
        )

    def check_space(
        self,
        source: Path,
        destination: Path,
        strategy: ImportStrategy = ImportStrategy.FULL,
        subframe_mode: SubframeMode = SubframeMode.ALL,
    ) -> SpaceCheck:
        """Estimate required bytes for an import and compare with free space.

        Raises:
            SpaceCheckError: If free space cannot be determined.
        """
        return self._estimator.estimate(
            [Source(Path(source), IMPORT_SOURCE_ID)],
            Path(destination),
            strategy=strategy,
            subframe_mode=subframe_mode,
        )
