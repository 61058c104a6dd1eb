"""Progress tracking for transfers.

This module provides:
- TransferProgress: Mutable counters of one operation, with speed and ETA
- ProgressEmitter: Throttles progress events towards a callback

Speed is computed over a sliding time window: the byte delta between the
oldest and the newest sample in the window divided by their time delta.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from sslm.core.types import EventStatus
from sslm.library.types import ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)

# Default seconds of samples kept for speed computation
DEFAULT_SPEED_WINDOW = 5.0

# Default minimum seconds between two emitted progress events
DEFAULT_PROGRESS_INTERVAL = 0.5

Clock = Callable[[], float]


@dataclass
class TransferProgress:
    """Counters of a running operation.

    Attributes:
        total_files: Files the operation intends to process.
        total_bytes: Bytes the operation intends to copy.
        files_copied: Files fully processed.
        bytes_copied: Bytes copied so far (completed files plus in-flight bytes).
        current_file: Relative path being processed.
        window: Seconds of samples kept for speed computation.
        clock: Monotonic time source.
    """

    total_files: int = 0
    total_bytes: int = 0
    files_copied: int = 0
    bytes_copied: int = 0
    current_file: str = ""
    window: float = DEFAULT_SPEED_WINDOW
    clock: Clock = field(default=time.monotonic, repr=False)
    started_at: float = field(init=False)
    _samples: deque[tuple[float, int]] = field(default_factory=deque, init=False, repr=False)

    def __post_init__(self) -> None:
        self.started_at = self.clock()

    def add_sample(self, bytes_copied: int | None = None) -> None:
        """Record (now, bytes_copied) and drop samples outside the window."""
        now = self.clock()
        self._samples.append((now, self.bytes_copied if bytes_copied is None else bytes_copied))
        while self._samples and now - self._samples[0][0] > self.window:
            self._samples.popleft()

    @property
    def speed(self) -> float:
        """Bytes per second over the window, 0 without two distinct samples."""
        if len(self._samples) < 2:
            return 0.0
        oldest_time, oldest_bytes = self._samples[0]
        newest_time, newest_bytes = self._samples[-1]
        elapsed = newest_time - oldest_time
        if elapsed <= 0:
            return 0.0
        return (newest_bytes - oldest_bytes) / elapsed

    @property
    def eta(self) -> float | None:
        """Seconds remaining, None when speed or total bytes is zero."""
        speed = self.speed
        if speed <= 0 or self.total_bytes == 0:
            return None
        return max(self.total_bytes - self.bytes_copied, 0) / speed

    @property
    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def to_event(
        self,
        status: EventStatus,
        operation: str = "transfer",
        extra: dict | None = None,
    ) -> ProgressEvent:
        """Snapshot the counters as an event."""
        return ProgressEvent(
            status=status,
            operation=operation,
            files_copied=self.files_copied,
            total_files=self.total_files,
            bytes_copied=self.bytes_copied,
            total_bytes=self.total_bytes,
            current_file=self.current_file,
            speed=self.speed,
            eta=self.eta,
            extra=dict(extra or {}),
        )


class ProgressEmitter:
    """Pushes events to a callback, throttling intermediate progress.

    Intermediate events closer than ``interval`` seconds to the previous
    emission are dropped. ``force=True`` and terminal events always go
    through. Callback errors are logged and never break the operation.
    """

    def __init__(
        self,
        callback: ProgressCallback | None,
        interval: float = DEFAULT_PROGRESS_INTERVAL,
        clock: Clock = time.monotonic,
    ) -> None:
        self._callback = callback
        self._interval = interval
        self._clock = clock
        self._last_emit: float | None = None
        self._terminal_sent = False

    @property
    def terminal_sent(self) -> bool:
        return self._terminal_sent

    def emit(self, event: ProgressEvent, force: bool = False) -> bool:
        """Emit an event unless throttled.

        Returns:
            True if the event was delivered.
        """
        if self._terminal_sent:
            logger.debug(f"Dropping {event.status.value} event after terminal event")
            return False

        now = self._clock()
        if not (force or event.is_terminal):
            if self._last_emit is not None and now - self._last_emit < self._interval:
                return False

        self._last_emit = now
        if event.is_terminal:
            self._terminal_sent = True

        if self._callback is None:
            return True

        try:
            self._callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
        return True
