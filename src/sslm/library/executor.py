"""Transfer executor with cancellation support.

This module provides:
- TransferReport: Result of executing a plan
- TransferExecutor: Copies the files of a TransferPlan one at a time

Lifecycle of one run:
    IDLE -> RUNNING -> COMPLETED   all files processed (some may have failed)
                    -> CANCELLED   cancel() observed between two files
                    -> FAILED      fatal I/O condition on the destination

Each file is streamed into a temporary sibling, then renamed into place, so
a failed copy never leaves a truncated file under its final name.
"""

from __future__ import annotations

import contextlib
import errno
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sslm.core.config import EngineConfig
from sslm.core.formatting import format_bytes, format_duration
from sslm.core.types import EventStatus
from sslm.library.domain.operations import OperationHandle, OperationKind, OperationState
from sslm.library.paths import UnsafePathError, resolve_destination
from sslm.library.progress import Clock, ProgressEmitter, TransferProgress
from sslm.library.types import (
    CopyError,
    CopyFailure,
    FatalIOError,
    OperationAlreadyActive,
    ProgressCallback,
)
from sslm.library.validator import ValidationReport, Validator

if TYPE_CHECKING:
    from sslm.library.planner import PlannedFile, TransferPlan

logger = logging.getLogger(__name__)

# Suffix of the temporary file a copy is streamed into
TMP_SUFFIX = ".sslm-tmp"

# errno values that break the whole operation rather than one file
FATAL_ERRNOS = frozenset(
    code
    for code in (
        errno.ENOSPC,
        errno.EROFS,
        getattr(errno, "EDQUOT", None),
    )
    if code is not None
)


@dataclass
class TransferReport:
    """Result of executing a plan.

    Attributes:
        operation_id: Identifier of the operation (echoed in events).
        state: Terminal state reached.
        files_copied: Files fully copied.
        bytes_copied: Bytes of the fully copied files.
        total_files: Files the plan asked to copy.
        total_bytes: Bytes the plan asked to copy.
        duration: Seconds between start and the terminal state.
        errors: Per-file failures.
        error: Fatal error message when state is FAILED.
    """

    operation_id: str
    state: OperationState
    files_copied: int = 0
    bytes_copied: int = 0
    total_files: int = 0
    total_bytes: int = 0
    duration: float = 0.0
    errors: list[CopyFailure] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        """Completed without any per-file failure."""
        return self.state == OperationState.COMPLETED and not self.errors

    @property
    def cancelled(self) -> bool:
        return self.state == OperationState.CANCELLED

    def to_message(self) -> dict[str, Any]:
        """Convert to a JSON-compatible message."""
        return {
            "operationId": self.operation_id,
            "status": self.state.name.lower(),
            "filesCopied": self.files_copied,
            "bytesCopied": self.bytes_copied,
            "totalFiles": self.total_files,
            "totalBytes": self.total_bytes,
            "duration": round(self.duration, 3),
            "durationFormatted": format_duration(self.duration),
            "errors": [e.to_message() for e in self.errors],
            "error": self.error,
        }

    def event_extra(self) -> dict[str, Any]:
        """Payload attached to the terminal event (its status comes from the event)."""
        message = self.to_message()
        message.pop("status")
        return message


class TransferExecutor:
    """Executes transfer plans, one operation at a time.

    The executor owns at most one running OperationHandle. A second run() or
    validate() while one is running raises OperationAlreadyActive; it is
    never queued. cancel() may be called from any thread and takes effect
    before the next file starts.

    Usage:
        executor = TransferExecutor()
        worker = threading.Thread(target=executor.run, args=(plan, dest, on_event))
        worker.start()
        ...
        executor.cancel()
        worker.join()
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the executor.

        Args:
            config: Engine tunables (defaults to EngineConfig()).
            clock: Monotonic time source used for progress and durations.
        """
        self._config = config or EngineConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._handle: OperationHandle | None = None
        self._validator = Validator(self._config, clock=clock)

    @property
    def handle(self) -> OperationHandle | None:
        """Handle of the running operation, None when idle."""
        return self._handle

    @property
    def is_running(self) -> bool:
        """Check if an operation is currently running."""
        handle = self._handle
        return handle is not None and handle.is_running

    def cancel(self) -> bool:
        """Request cancellation of the running operation.

        Returns:
            True if cancellation was requested, False if nothing is running.
        """
        with self._lock:
            if self._handle is None or not self._handle.is_running:
                return False
            self._handle.request_cancel()
            logger.info(f"Cancellation requested for operation {self._handle.operation_id}")
            return True

    def run(
        self,
        plan: TransferPlan,
        destination_root: Path,
        on_event: ProgressCallback | None = None,
    ) -> TransferReport:
        """Copy every file of a plan into the destination.

        Args:
            plan: The plan returned by analysis, unchanged.
            destination_root: Directory receiving the files.
            on_event: Optional callback receiving progress events.

        Returns:
            TransferReport with the terminal state and counters.

        Raises:
            OperationAlreadyActive: If an operation is already running.
        """
        handle = self._acquire(OperationKind.TRANSFER)
        try:
            return self._execute(handle, plan, Path(destination_root), on_event)
        finally:
            self._release(handle)

    def validate(
        self,
        plan: TransferPlan,
        destination_root: Path,
        on_event: ProgressCallback | None = None,
    ) -> ValidationReport:
        """Validate a destination against a plan under the same guard as run().

        Raises:
            OperationAlreadyActive: If an operation is already running.
        """
        handle = self._acquire(OperationKind.VALIDATION)
        try:
            report = self._validator.validate(
                plan, Path(destination_root), on_event, operation_id=handle.operation_id
            )
            handle.complete()
            return report
        except Exception as e:
            handle.fail(e)
            raise
        finally:
            self._release(handle)

    def _acquire(self, kind: OperationKind) -> OperationHandle:
        with self._lock:
            if self._handle is not None and self._handle.is_running:
                raise OperationAlreadyActive(
                    f"Operation {self._handle.operation_id} "
                    f"({self._handle.kind.name.lower()}) is already running"
                )
            handle = OperationHandle(kind=kind)
            handle.start()
            self._handle = handle
            return handle

    def _release(self, handle: OperationHandle) -> None:
        with self._lock:
            if self._handle is handle:
                self._handle = None

    def _execute(
        self,
        handle: OperationHandle,
        plan: TransferPlan,
        destination_root: Path,
        on_event: ProgressCallback | None,
    ) -> TransferReport:
        files = plan.files_to_copy
        progress = TransferProgress(
            total_files=len(files),
            total_bytes=plan.total_bytes,
            window=self._config.speed_window,
            clock=self._clock,
        )
        emitter = ProgressEmitter(on_event, self._config.progress_interval, self._clock)
        ids = {"operationId": handle.operation_id}
        errors: list[CopyFailure] = []
        committed_bytes = 0

        logger.info(
            f"Executing transfer {handle.operation_id}: {len(files)} files, "
            f"{format_bytes(plan.total_bytes)} -> {destination_root}"
        )
        progress.current_file = "Preparing..."
        emitter.emit(progress.to_event(EventStatus.STARTING, extra=ids), force=True)

        def report(state: OperationState, error: str | None = None) -> TransferReport:
            return TransferReport(
                operation_id=handle.operation_id,
                state=state,
                files_copied=progress.files_copied,
                bytes_copied=committed_bytes,
                total_files=progress.total_files,
                total_bytes=progress.total_bytes,
                duration=progress.elapsed,
                errors=list(errors),
                error=error,
            )

        try:
            self._ensure_root(destination_root)

            for planned in files:
                if handle.cancel_requested:
                    handle.cancel()
                    progress.bytes_copied = committed_bytes
                    result = report(OperationState.CANCELLED)
                    logger.info(
                        f"Transfer cancelled after {result.files_copied}/{result.total_files} files"
                    )
                    emitter.emit(
                        progress.to_event(EventStatus.CANCELLED, extra=result.event_extra())
                    )
                    return result

                self._check_root(destination_root)
                progress.current_file = planned.relative_path
                try:
                    written = self._copy_file(
                        planned, destination_root, progress, emitter, committed_bytes, ids
                    )
                except CopyError as e:
                    logger.error(str(e))
                    errors.append(CopyFailure(file=planned.relative_path, error=e.reason))
                    progress.bytes_copied = committed_bytes
                    continue

                committed_bytes += written
                progress.files_copied += 1
                progress.bytes_copied = committed_bytes
                progress.add_sample()
                emitter.emit(progress.to_event(EventStatus.COPYING, extra=ids))

        except FatalIOError as e:
            handle.fail(e)
            progress.bytes_copied = committed_bytes
            result = report(OperationState.FAILED, error=str(e))
            logger.error(f"Fatal error during transfer: {e}")
            emitter.emit(progress.to_event(EventStatus.ERROR, extra=result.event_extra()))
            return result

        except Exception as e:
            handle.fail(e)
            progress.bytes_copied = committed_bytes
            emitter.emit(
                progress.to_event(EventStatus.ERROR, extra={**ids, "error": str(e)})
            )
            raise

        # Final flush so consumers always see the last counters
        emitter.emit(progress.to_event(EventStatus.COPYING, extra=ids), force=True)

        handle.complete()
        result = report(OperationState.COMPLETED)
        logger.info(
            f"Transfer completed: {result.files_copied} files, "
            f"{format_bytes(result.bytes_copied)} in {format_duration(result.duration)}, "
            f"{len(result.errors)} errors"
        )
        emitter.emit(progress.to_event(EventStatus.COMPLETED, extra=result.event_extra()))
        return result

    def _ensure_root(self, destination_root: Path) -> None:
        """Create the destination root.

        Raises:
            FatalIOError: If it cannot be created.
        """
        try:
            destination_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FatalIOError(f"Cannot create destination {destination_root}: {e}") from e
        if not os.access(destination_root, os.W_OK):
            raise FatalIOError(f"Destination is not writable: {destination_root}")

    def _check_root(self, destination_root: Path) -> None:
        """Make sure the destination root is still usable before the next file.

        Raises:
            FatalIOError: If the root disappeared or became unwritable.
        """
        if not destination_root.is_dir():
            raise FatalIOError(f"Destination disappeared: {destination_root}")
        if not os.access(destination_root, os.W_OK):
            raise FatalIOError(f"Destination is no longer writable: {destination_root}")

    def _copy_file(
        self,
        planned: PlannedFile,
        destination_root: Path,
        progress: TransferProgress,
        emitter: ProgressEmitter,
        committed_bytes: int,
        ids: dict[str, str],
    ) -> int:
        """Stream one file into place.

        Returns:
            Number of bytes written.

        Raises:
            CopyError: If this file could not be copied.
            FatalIOError: If the failure affects the whole destination.
        """
        try:
            destination = resolve_destination(destination_root, planned.relative_path)
        except (UnsafePathError, OSError) as e:
            raise CopyError(planned.relative_path, str(e)) from e
        tmp_path = destination.with_name(destination.name + TMP_SUFFIX)
        chunk_size = self._config.chunk_size

        try:
            # Only directories below the root are created, never the root itself
            parent = destination_root.resolve()
            for part in destination.parent.relative_to(parent).parts:
                parent = parent / part
                parent.mkdir(exist_ok=True)

            written = 0
            with open(planned.source_path, "rb") as src, open(tmp_path, "wb") as dst:
                source_stat = os.fstat(src.fileno())
                while chunk := src.read(chunk_size):
                    dst.write(chunk)
                    written += len(chunk)
                    progress.bytes_copied = committed_bytes + written
                    progress.add_sample()
                    emitter.emit(
                        progress.to_event(
                            EventStatus.COPYING,
                            extra={**ids, "currentSource": planned.source_id},
                        )
                    )

            # Keep the source mtime so incremental imports see the file as up to date
            os.utime(tmp_path, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns))
            os.replace(tmp_path, destination)

        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            if e.errno in FATAL_ERRNOS or not destination_root.is_dir():
                raise FatalIOError(
                    f"Destination unusable while copying {planned.relative_path}: {e}"
                ) from e
            raise CopyError(planned.relative_path, e.strerror or str(e)) from e

        logger.debug(f"Copied {planned.relative_path} ({format_bytes(written)})")
        return written
