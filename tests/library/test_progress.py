"""Tests for progress tracking and event throttling."""

from unittest.mock import MagicMock

from sslm.core.types import EventStatus
from sslm.library.progress import ProgressEmitter, TransferProgress
from sslm.library.types import ProgressEvent


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestTransferProgress:
    """Tests for speed and ETA computation."""

    def test_speed_over_window(self) -> None:
        clock = FakeClock()
        progress = TransferProgress(total_bytes=1000, clock=clock)
        progress.add_sample(0)
        clock.advance(2)
        progress.add_sample(400)

        assert progress.speed == 200.0
        progress.bytes_copied = 400
        assert progress.eta == 3.0

    def test_old_samples_leave_the_window(self) -> None:
        clock = FakeClock()
        progress = TransferProgress(total_bytes=10_000, window=5.0, clock=clock)
        progress.add_sample(0)
        clock.advance(10)
        progress.add_sample(1000)
        clock.advance(1)
        progress.add_sample(1100)

        # Only the last two samples are within 5 s
        assert progress.speed == 100.0

    def test_no_speed_without_two_samples(self) -> None:
        progress = TransferProgress(total_bytes=100, clock=FakeClock())
        assert progress.speed == 0.0
        assert progress.eta is None
        progress.add_sample(10)
        assert progress.speed == 0.0

    def test_eta_none_when_total_is_zero(self) -> None:
        clock = FakeClock()
        progress = TransferProgress(total_bytes=0, clock=clock)
        progress.add_sample(0)
        clock.advance(1)
        progress.add_sample(50)
        assert progress.eta is None

    def test_elapsed(self) -> None:
        clock = FakeClock()
        progress = TransferProgress(clock=clock)
        clock.advance(7.5)
        assert progress.elapsed == 7.5

    def test_to_event(self) -> None:
        progress = TransferProgress(total_files=3, total_bytes=30, clock=FakeClock())
        progress.files_copied = 1
        progress.bytes_copied = 10
        progress.current_file = "x.fit"

        event = progress.to_event(EventStatus.COPYING, extra={"operationId": "op"})

        assert event.status is EventStatus.COPYING
        assert event.files_copied == 1
        assert event.current_file == "x.fit"
        message = event.to_message()
        assert message["type"] == "transfer"
        assert message["status"] == "copying"
        assert message["bytesCopied"] == 10
        assert message["totalBytes"] == 30
        assert message["eta"] is None
        assert message["etaFormatted"] == "0s"
        assert message["operationId"] == "op"


class TestProgressEmitter:
    """Tests for ProgressEmitter throttling."""

    def test_throttles_intermediate_events(self) -> None:
        clock = FakeClock()
        callback = MagicMock()
        emitter = ProgressEmitter(callback, interval=0.5, clock=clock)

        assert emitter.emit(ProgressEvent(EventStatus.COPYING)) is True
        clock.advance(0.1)
        assert emitter.emit(ProgressEvent(EventStatus.COPYING)) is False
        clock.advance(0.5)
        assert emitter.emit(ProgressEvent(EventStatus.COPYING)) is True
        assert callback.call_count == 2

    def test_forced_and_terminal_events_bypass_throttle(self) -> None:
        clock = FakeClock()
        callback = MagicMock()
        emitter = ProgressEmitter(callback, interval=10, clock=clock)

        emitter.emit(ProgressEvent(EventStatus.STARTING))
        assert emitter.emit(ProgressEvent(EventStatus.COPYING), force=True) is True
        assert emitter.emit(ProgressEvent(EventStatus.COMPLETED)) is True
        assert callback.call_count == 3
        assert emitter.terminal_sent

    def test_nothing_after_terminal_event(self) -> None:
        callback = MagicMock()
        emitter = ProgressEmitter(callback, interval=0, clock=FakeClock())

        emitter.emit(ProgressEvent(EventStatus.CANCELLED))
        assert emitter.emit(ProgressEvent(EventStatus.COMPLETED)) is False
        assert emitter.emit(ProgressEvent(EventStatus.COPYING), force=True) is False
        assert callback.call_count == 1

    def test_callback_errors_are_contained(self) -> None:
        callback = MagicMock(side_effect=RuntimeError("consumer gone"))
        emitter = ProgressEmitter(callback, interval=0, clock=FakeClock())
        assert emitter.emit(ProgressEvent(EventStatus.COPYING)) is True

    def test_no_callback(self) -> None:
        emitter = ProgressEmitter(None)
        assert emitter.emit(ProgressEvent(EventStatus.COMPLETED)) is True
