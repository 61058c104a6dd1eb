"""Tests for the operation state machine."""

import pytest

from sslm.library.domain.operations import (
    InvalidTransitionError,
    OperationHandle,
    OperationKind,
    OperationState,
)


class TestOperationHandle:
    """Tests for OperationHandle."""

    def test_initial_state(self) -> None:
        handle = OperationHandle(kind=OperationKind.TRANSFER)
        assert handle.state == OperationState.IDLE
        assert len(handle.operation_id) == 32
        assert handle.cancel_requested is False
        assert handle.is_running is False

    def test_ids_are_unique(self) -> None:
        a = OperationHandle(kind=OperationKind.TRANSFER)
        b = OperationHandle(kind=OperationKind.TRANSFER)
        assert a.operation_id != b.operation_id

    def test_complete_lifecycle(self) -> None:
        handle = OperationHandle(kind=OperationKind.TRANSFER)
        handle.start()
        assert handle.is_running
        handle.complete()
        assert handle.state == OperationState.COMPLETED
        assert handle.is_terminal

    def test_request_cancel_only_sets_flag(self) -> None:
        handle = OperationHandle(kind=OperationKind.TRANSFER)
        handle.start()
        handle.request_cancel()
        assert handle.cancel_requested
        assert handle.state == OperationState.RUNNING
        handle.cancel()
        assert handle.state == OperationState.CANCELLED

    def test_fail_records_error(self) -> None:
        handle = OperationHandle(kind=OperationKind.VALIDATION)
        handle.start()
        handle.fail(OSError("disk gone"))
        assert handle.state == OperationState.FAILED
        assert handle.error == "disk gone"

    def test_cannot_complete_from_idle(self) -> None:
        handle = OperationHandle(kind=OperationKind.TRANSFER)
        with pytest.raises(InvalidTransitionError):
            handle.complete()

    @pytest.mark.parametrize("finish", ["complete", "cancel"])
    def test_terminal_states_are_final(self, finish: str) -> None:
        handle = OperationHandle(kind=OperationKind.TRANSFER)
        handle.start()
        getattr(handle, finish)()
        with pytest.raises(InvalidTransitionError):
            handle.start()
        with pytest.raises(InvalidTransitionError):
            handle.fail("late")
