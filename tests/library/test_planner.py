"""Tests for plan construction."""

from pathlib import Path

from sslm.core.types import ImportStrategy
from sslm.library.domain.conflicts import ConflictResolver
from sslm.library.inventory import InventoryBuilder
from sslm.library.planner import PlanBuilder, PlannedFile, TransferPlan
from sslm.library.space import should_copy_incremental
from tests.helpers import T_2024_01_01, T_2024_05_01, make_file, make_record


def plan_for(sources, dest: Path, **kwargs) -> TransferPlan:
    inventory = InventoryBuilder().build(sources)
    summary = ConflictResolver().resolve(inventory)
    return PlanBuilder().build_plan(inventory, summary, dest, **kwargs)


class TestPlannedFile:
    def test_from_record(self) -> None:
        record = make_record("M 42/x.fit", size=7, source_id="b")
        planned = PlannedFile.from_record(record)
        assert planned.source_path == str(record.absolute_path)
        assert planned.relative_path == "M 42/x.fit"
        assert planned.size == 7
        assert planned.mtime == record.modified_at
        assert planned.source_id == "b"


class TestPlanBuilder:
    """Tests for PlanBuilder.build_plan."""

    def test_unique_only_inventory(self, source_a: Path, dest: Path) -> None:
        """Every file is copied when nothing overlaps and dest is empty."""
        make_file(source_a, "one.fit", size=10)
        make_file(source_a, "two.fit", size=20)

        plan = plan_for([(source_a, "a")], dest)

        assert plan.total_files == 2
        assert plan.unique_files == 2
        assert plan.total_bytes == 30
        assert [f.relative_path for f in plan.files_to_copy] == ["one.fit", "two.fit"]
        assert plan.duplicate_count == 0
        assert plan.conflict_count == 0
        assert plan.existing_count == 0

    def test_conflict_scenario(self, source_a: Path, source_b: Path, dest: Path) -> None:
        """x.fit is 100 bytes in a and a newer 150 bytes in b: b's copy is planned."""
        make_file(source_a, "x.fit", size=100, mtime=T_2024_01_01)
        make_file(source_b, "x.fit", size=150, mtime=T_2024_05_01)

        plan = plan_for([(source_a, "a"), (source_b, "b")], dest)

        assert plan.total_files == 2
        assert plan.unique_files == 1
        assert plan.total_bytes == 150
        assert plan.files_to_copy[0].source_id == "b"
        assert plan.duplicate_count == 1
        assert plan.conflict_count == 1
        assert plan.conflict_resolutions[0]["reason"] == "newer (2024-05-01)"
        assert plan.duplicate_examples[0].sources == ["a", "b"]

    def test_identical_duplicates_copied_once(
        self, source_a: Path, source_b: Path, dest: Path
    ) -> None:
        make_file(source_a, "x.fit", size=10)
        make_file(source_b, "x.fit", size=10)

        plan = plan_for([(source_a, "a"), (source_b, "b")], dest)

        assert plan.total_files == 2
        assert plan.unique_files == 1
        assert plan.files_to_copy[0].source_id == "a"
        assert plan.duplicate_count == 1
        assert plan.conflict_count == 0
        assert plan.source_stats["a"].files == 1
        assert plan.source_stats["b"].bytes == 10

    def test_existing_same_size_is_excluded(self, source_a: Path, dest: Path) -> None:
        """A destination file with the same size counts as present, whatever its mtime."""
        make_file(source_a, "kept.fit", size=10, mtime=T_2024_05_01)
        make_file(source_a, "new.fit", size=5)
        make_file(dest, "kept.fit", size=10, mtime=T_2024_01_01)

        plan = plan_for([(source_a, "a")], dest)

        assert [f.relative_path for f in plan.files_to_copy] == ["new.fit"]
        assert [f.relative_path for f in plan.files_already_present] == ["kept.fit"]
        assert plan.existing_count == 1
        assert plan.existing_bytes == 10
        assert plan.total_bytes == 5
        assert plan.total_bytes_all_unique == 15

    def test_existing_different_size_is_copied(self, source_a: Path, dest: Path) -> None:
        make_file(source_a, "x.fit", size=10)
        make_file(dest, "x.fit", size=3)

        plan = plan_for([(source_a, "a")], dest)

        assert [f.relative_path for f in plan.files_to_copy] == ["x.fit"]
        assert plan.existing_count == 0

    def test_custom_copy_policy(self, source_a: Path, dest: Path) -> None:
        """The incremental rule recopies a same-size file when the source is newer."""
        make_file(source_a, "x.fit", size=10, mtime=T_2024_05_01)
        make_file(dest, "x.fit", size=10, mtime=T_2024_01_01)

        plan = plan_for(
            [(source_a, "a")],
            dest,
            copy_policy=should_copy_incremental,
            strategy=ImportStrategy.INCREMENTAL,
        )

        assert [f.relative_path for f in plan.files_to_copy] == ["x.fit"]
        assert plan.strategy is ImportStrategy.INCREMENTAL

    def test_duplicate_examples_are_capped(
        self, source_a: Path, source_b: Path, dest: Path
    ) -> None:
        for i in range(4):
            make_file(source_a, f"f{i}.fit")
            make_file(source_b, f"f{i}.fit")

        inventory = InventoryBuilder().build([(source_a, "a"), (source_b, "b")])
        summary = ConflictResolver().resolve(inventory)
        plan = PlanBuilder(max_duplicate_examples=2).build_plan(inventory, summary, dest)

        assert plan.duplicate_count == 4
        assert len(plan.duplicate_examples) == 2

    def test_empty_plan(self, source_a: Path, dest: Path) -> None:
        plan = plan_for([(source_a, "a")], dest)
        assert plan.is_empty
        assert plan.total_files == 0

    def test_summary_lines(self, source_a: Path, dest: Path) -> None:
        make_file(source_a, "x.fit", size=2048)
        lines = plan_for([(source_a, "a")], dest).summary_lines()
        assert "Files to copy: 1" in lines
        assert "Total bytes to copy: 2 KB" in lines
