"""Tests for post-transfer validation."""

from pathlib import Path

from sslm.core.config import EngineConfig
from sslm.core.types import EventStatus
from sslm.library.planner import PlannedFile, TransferPlan
from sslm.library.types import ProgressEvent
from sslm.library.validator import MismatchKind, Validator, check_file
from tests.helpers import make_file


def planned(relative_path: str, size: int = 10) -> PlannedFile:
    return PlannedFile(
        source_path=f"/sources/a/{relative_path}",
        relative_path=relative_path,
        size=size,
        mtime=0.0,
        source_id="a",
    )


class TestCheckFile:
    """Tests for check_file."""

    def test_matching_file(self, tmp_path: Path) -> None:
        make_file(tmp_path, "x.fit", size=10)
        assert check_file(planned("x.fit"), tmp_path) is None

    def test_missing(self, tmp_path: Path) -> None:
        mismatch = check_file(planned("x.fit"), tmp_path)
        assert mismatch is not None
        assert mismatch.issue is MismatchKind.MISSING

    def test_size_mismatch(self, tmp_path: Path) -> None:
        make_file(tmp_path, "x.fit", size=7)
        mismatch = check_file(planned("x.fit", size=10), tmp_path)
        assert mismatch is not None
        assert mismatch.issue is MismatchKind.SIZE_MISMATCH
        assert mismatch.to_message() == {
            "file": "x.fit",
            "issue": "size_mismatch",
            "message": "Size mismatch: expected 10, got 7",
            "expected": 10,
            "actual": 7,
        }

    def test_directory_is_an_error(self, tmp_path: Path) -> None:
        (tmp_path / "x.fit").mkdir()
        mismatch = check_file(planned("x.fit"), tmp_path)
        assert mismatch is not None
        assert mismatch.issue is MismatchKind.ERROR

    def test_path_outside_destination_is_not_checked(self, tmp_path: Path) -> None:
        make_file(tmp_path, "outside.fit")
        dest = tmp_path / "dest"
        dest.mkdir()

        mismatch = check_file(planned("../outside.fit"), dest)

        assert mismatch is not None
        assert mismatch.issue is MismatchKind.ERROR


class TestValidator:
    """Tests for Validator.validate."""

    def test_valid_destination(self, tmp_path: Path) -> None:
        make_file(tmp_path, "a.fit")
        make_file(tmp_path, "b.fit")
        plan = TransferPlan(
            files_to_copy=[planned("a.fit")], files_already_present=[planned("b.fit")]
        )

        report = Validator().validate(plan, tmp_path)

        assert report.is_valid
        assert report.files_validated == 2
        assert report.mismatches == []

    def test_reports_every_mismatch(self, tmp_path: Path) -> None:
        make_file(tmp_path, "short.fit", size=3)
        plan = TransferPlan(
            files_to_copy=[planned("missing.fit"), planned("short.fit")],
            files_already_present=[planned("gone.fit")],
        )

        report = Validator().validate(plan, tmp_path)

        assert not report.is_valid
        assert [(m.file, m.issue) for m in report.mismatches] == [
            ("missing.fit", MismatchKind.MISSING),
            ("short.fit", MismatchKind.SIZE_MISMATCH),
            ("gone.fit", MismatchKind.MISSING),
        ]

    def test_events_are_batched(self, tmp_path: Path) -> None:
        files = [planned(f"f{i}.fit") for i in range(25)]
        for f in files:
            make_file(tmp_path, f.relative_path)
        events: list[ProgressEvent] = []

        Validator(EngineConfig(validation_batch=10)).validate(
            TransferPlan(files_to_copy=files), tmp_path, events.append, operation_id="op"
        )

        statuses = [e.status for e in events]
        assert statuses == [
            EventStatus.STARTING,
            EventStatus.VALIDATING,
            EventStatus.VALIDATING,
            EventStatus.COMPLETED,
        ]
        assert [e.files_copied for e in events[1:3]] == [10, 20]
        final = events[-1].to_message()
        assert final["type"] == "validation"
        assert final["isValid"] is True
        assert final["filesValidated"] == 25
        assert final["operationId"] == "op"

    def test_final_event_caps_mismatches(self, tmp_path: Path) -> None:
        plan = TransferPlan(files_to_copy=[planned(f"f{i}.fit") for i in range(8)])
        events: list[ProgressEvent] = []

        report = Validator(EngineConfig(max_reported_mismatches=5)).validate(
            plan, tmp_path, events.append
        )

        assert len(report.mismatches) == 8
        final = events[-1].to_message()
        assert final["mismatchCount"] == 8
        assert len(final["mismatches"]) == 5
