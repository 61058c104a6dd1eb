"""Operation state machine.

States:
    IDLE -> RUNNING -> COMPLETED
                    -> CANCELLED
                    -> FAILED

All state transitions are validated. Terminal states are final: running
again requires a new handle.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import IntEnum, auto


class OperationKind(IntEnum):
    """Type of operation."""

    TRANSFER = auto()
    VALIDATION = auto()


class OperationState(IntEnum):
    """State of an operation."""

    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()


# Valid state transitions
VALID_TRANSITIONS: dict[OperationState, set[OperationState]] = {
    OperationState.IDLE: {OperationState.RUNNING},
    OperationState.RUNNING: {
        OperationState.COMPLETED,
        OperationState.CANCELLED,
        OperationState.FAILED,
    },
    OperationState.COMPLETED: set(),  # Terminal
    OperationState.CANCELLED: set(),  # Terminal
    OperationState.FAILED: set(),  # Terminal
}


class InvalidTransitionError(Exception):
    """Raised when attempting invalid state transition."""

    pass


@dataclass
class OperationHandle:
    """A tracked operation, owned by the executor that runs it.

    Attributes:
        kind: Transfer or validation.
        operation_id: Unique identifier, echoed in events.
        state: Current state.
        started_at: When the handle was created (epoch seconds).
        error: Error message if failed.
    """

    kind: OperationKind
    operation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: OperationState = OperationState.IDLE
    started_at: float = field(default_factory=time.time)
    error: str | None = None

    # Cancellation flag (checked by the executor between files)
    _cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)

    def transition_to(self, new_state: OperationState) -> None:
        """Transition to a new state with validation."""
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.name} to {new_state.name}"
            )
        self.state = new_state

    def start(self) -> None:
        """Mark operation as running."""
        self.transition_to(OperationState.RUNNING)

    def complete(self) -> None:
        """Mark operation as completed."""
        self.transition_to(OperationState.COMPLETED)

    def cancel(self) -> None:
        """Mark operation as cancelled."""
        self.transition_to(OperationState.CANCELLED)

    def fail(self, error: Exception | str) -> None:
        """Mark operation as failed."""
        self.transition_to(OperationState.FAILED)
        self.error = str(error)

    def request_cancel(self) -> None:
        """Request cancellation.

        Sets the flag only; the state changes when the executor reaches its
        next check point.
        """
        self._cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def is_running(self) -> bool:
        return self.state == OperationState.RUNNING

    @property
    def is_terminal(self) -> bool:
        """Check if operation is in a terminal state."""
        return self.state in (
            OperationState.COMPLETED,
            OperationState.CANCELLED,
            OperationState.FAILED,
        )
