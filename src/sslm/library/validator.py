"""Post-transfer validation.

Checks that every file a plan accounts for exists in the destination with
the planned size. Nothing is hashed: validation is metadata only, like the
identity rule used for planning.
"""

from __future__ import annotations

import logging
import stat
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sslm.core.config import EngineConfig
from sslm.core.formatting import format_duration
from sslm.core.types import EventStatus
from sslm.library.paths import UnsafePathError, resolve_destination
from sslm.library.progress import Clock, ProgressEmitter, TransferProgress
from sslm.library.types import ProgressCallback

if TYPE_CHECKING:
    from sslm.library.planner import PlannedFile, TransferPlan

logger = logging.getLogger(__name__)


class MismatchKind(str, Enum):
    """Why a destination file failed validation."""

    MISSING = "missing"
    SIZE_MISMATCH = "size_mismatch"
    ERROR = "error"


@dataclass
class Mismatch:
    """One destination file that does not match the plan."""

    file: str
    issue: MismatchKind
    message: str
    expected: int | None = None
    actual: int | None = None

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "file": self.file,
            "issue": self.issue.value,
            "message": self.message,
        }
        if self.issue is MismatchKind.SIZE_MISMATCH:
            message["expected"] = self.expected
            message["actual"] = self.actual
        return message


@dataclass
class ValidationReport:
    """Result of validating a destination.

    Attributes:
        is_valid: True when no mismatch was found.
        files_validated: Files checked.
        mismatches: Every mismatch found (events carry a bounded subset).
        duration: Seconds spent validating.
        operation_id: Identifier of the operation, empty when run standalone.
    """

    is_valid: bool
    files_validated: int
    mismatches: list[Mismatch] = field(default_factory=list)
    duration: float = 0.0
    operation_id: str = ""

    def to_message(self, limit: int | None = None) -> dict[str, Any]:
        """Convert to a JSON-compatible message, keeping at most ``limit`` mismatches."""
        reported = self.mismatches if limit is None else self.mismatches[:limit]
        return {
            "operationId": self.operation_id,
            "isValid": self.is_valid,
            "filesValidated": self.files_validated,
            "mismatchCount": len(self.mismatches),
            "mismatches": [m.to_message() for m in reported],
            "duration": round(self.duration, 3),
            "durationFormatted": format_duration(self.duration),
        }


def check_file(planned: PlannedFile, destination_root: Path) -> Mismatch | None:
    """Compare one planned file with what the destination holds."""
    try:
        destination = resolve_destination(destination_root, planned.relative_path)
    except UnsafePathError as e:
        return Mismatch(planned.relative_path, MismatchKind.ERROR, str(e))
    try:
        st = destination.stat()
    except FileNotFoundError:
        return Mismatch(
            planned.relative_path, MismatchKind.MISSING, "File not found in destination"
        )
    except OSError as e:
        return Mismatch(planned.relative_path, MismatchKind.ERROR, e.strerror or str(e))

    if not stat.S_ISREG(st.st_mode):
        return Mismatch(planned.relative_path, MismatchKind.ERROR, "Not a regular file")

    if st.st_size != planned.size:
        return Mismatch(
            planned.relative_path,
            MismatchKind.SIZE_MISMATCH,
            f"Size mismatch: expected {planned.size}, got {st.st_size}",
            expected=planned.size,
            actual=st.st_size,
        )
    return None


class Validator:
    """Validates a destination directory against a TransferPlan.

    Both the files the plan copied and the files it found already present
    are checked, so a validation after a run covers the whole library.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._config = config or EngineConfig()
        self._clock = clock

    def validate(
        self,
        plan: TransferPlan,
        destination_root: Path,
        on_event: ProgressCallback | None = None,
        operation_id: str = "",
    ) -> ValidationReport:
        """Check every planned file in the destination.

        Args:
            plan: The plan that was executed.
            destination_root: Directory that received the files.
            on_event: Optional callback receiving validation events.
            operation_id: Echoed in events and in the report.

        Returns:
            ValidationReport listing every mismatch.
        """
        destination_root = Path(destination_root)
        entries = [*plan.files_to_copy, *plan.files_already_present]
        batch = self._config.validation_batch

        progress = TransferProgress(
            total_files=len(entries),
            window=self._config.speed_window,
            clock=self._clock,
        )
        # Validation events are already batched, so no time-based throttling
        emitter = ProgressEmitter(on_event, 0.0, self._clock)
        ids = {"operationId": operation_id}

        logger.info(f"Validating {len(entries)} files in {destination_root}")
        emitter.emit(
            progress.to_event(EventStatus.STARTING, operation="validation", extra=ids),
            force=True,
        )

        mismatches: list[Mismatch] = []
        for index, planned in enumerate(entries, start=1):
            progress.current_file = planned.relative_path
            mismatch = check_file(planned, destination_root)
            if mismatch is not None:
                logger.warning(f"Validation failed for {mismatch.file}: {mismatch.message}")
                mismatches.append(mismatch)
            progress.files_copied = index

            if index % batch == 0:
                emitter.emit(
                    progress.to_event(EventStatus.VALIDATING, operation="validation", extra=ids)
                )

        report = ValidationReport(
            is_valid=not mismatches,
            files_validated=len(entries),
            mismatches=mismatches,
            duration=progress.elapsed,
            operation_id=operation_id,
        )

        if report.is_valid:
            logger.info(f"Validation passed: {report.files_validated} files")
        else:
            logger.warning(
                f"Validation found {len(mismatches)} mismatches in {report.files_validated} files"
            )

        emitter.emit(
            progress.to_event(
                EventStatus.COMPLETED,
                operation="validation",
                extra=report.to_message(limit=self._config.max_reported_mismatches),
            )
        )
        return report
