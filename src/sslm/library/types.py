"""Shared types and dataclasses for library operations.

This module provides:
- LibraryError and subclasses: Exception taxonomy of the engine
- FileRecord: One scanned file in one source
- ProgressEvent: Event pushed to consumers during copy/validation
- CopyFailure: A per-file copy error collected by the executor
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sslm.core.formatting import format_duration, format_speed
from sslm.core.types import EventStatus


class LibraryError(Exception):
    """Base exception for engine errors."""


class ScanError(LibraryError):
    """A directory could not be read during a scan."""


class StatError(LibraryError):
    """A directory entry could not be stat'ed during a scan."""


class CopyError(LibraryError):
    """Failed to copy one file. Recovered: the operation continues."""

    def __init__(self, relative_path: str, reason: str) -> None:
        self.relative_path = relative_path
        self.reason = reason
        super().__init__(f"Failed to copy {relative_path}: {reason}")


class FatalIOError(LibraryError):
    """An I/O condition that breaks the whole operation.

    Raised when the destination root cannot be created, disappears, becomes
    read-only or runs out of space in the middle of a run.
    """


class OperationAlreadyActive(LibraryError):
    """An executor already has a running operation."""


class SpaceCheckError(LibraryError):
    """Free space on the destination volume could not be determined."""


@dataclass(frozen=True)
class FileRecord:
    """Metadata about one file in one source.

    Attributes:
        relative_path: Path relative to the source root, "/"-separated.
            This is the identity key across sources.
        absolute_path: Absolute path of the file on disk.
        size_bytes: File size in bytes.
        modified_at: Modification time (epoch seconds, as st_mtime).
        source_id: Identifier of the source the file was found in.
    """

    relative_path: str
    absolute_path: Path
    size_bytes: int
    modified_at: float
    source_id: str


@dataclass
class CopyFailure:
    """A per-file copy failure collected during a transfer."""

    file: str
    error: str

    def to_message(self) -> dict[str, str]:
        return {"file": self.file, "error": self.error}


@dataclass
class ProgressEvent:
    """Progress information pushed to consumers.

    Events are "latest wins": a consumer may drop intermediate ones. Every
    operation ends with exactly one event whose status is terminal.

    Attributes:
        status: Current status (see EventStatus).
        operation: "transfer" or "validation".
        files_copied: Files fully copied (or validated) so far.
        total_files: Files the operation intends to process.
        bytes_copied: Bytes copied so far, including the file in flight.
        total_bytes: Bytes the operation intends to copy.
        current_file: Relative path of the file being processed.
        speed: Bytes per second over the sampling window.
        eta: Seconds remaining, None when unknown.
        extra: Status-specific payload (errors, duration, mismatches...).
    """

    status: EventStatus
    operation: str = "transfer"
    files_copied: int = 0
    total_files: int = 0
    bytes_copied: int = 0
    total_bytes: int = 0
    current_file: str = ""
    speed: float = 0.0
    eta: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        """Check if this event ends the stream."""
        return self.status.is_terminal

    @property
    def bytes_percent(self) -> float:
        """Byte progress percentage."""
        if self.total_bytes == 0:
            return 100.0 if self.is_terminal else 0.0
        return (self.bytes_copied / self.total_bytes) * 100

    def to_message(self) -> dict[str, Any]:
        """Convert to a JSON-compatible message for transport layers."""
        message: dict[str, Any] = {
            "type": self.operation,
            "status": self.status.value,
            "filesCopied": self.files_copied,
            "totalFiles": self.total_files,
            "bytesCopied": self.bytes_copied,
            "totalBytes": self.total_bytes,
            "currentFile": self.current_file,
            "speed": round(self.speed),
            "speedFormatted": format_speed(self.speed),
            "eta": None if self.eta is None else round(self.eta),
            "etaFormatted": format_duration(self.eta),
        }
        message.update(self.extra)
        return message


# Type alias for progress callback
ProgressCallback = Callable[[ProgressEvent], None]

# Type alias for the destination copy decision: (winner, destination path) -> copy?
CopyPolicy = Callable[[FileRecord, Path], bool]
