"""Domain modules for library business rules.

This package centralizes the rules of the engine:
- conflicts: Classification and winner selection across sources
- operations: Operation state machine and cancellation flag

Architecture:
    domain/ contains pure business logic without filesystem access.
    Scanning, copying and validation stay in the library modules.
"""

from sslm.library.domain.conflicts import (
    ConflictResolver,
    ConflictStrategy,
    NewestWins,
    Resolution,
    ResolutionSummary,
    format_day,
    is_identical,
)
from sslm.library.domain.operations import (
    InvalidTransitionError,
    OperationHandle,
    OperationKind,
    OperationState,
)

__all__ = [
    # conflicts
    "ConflictResolver",
    "ConflictStrategy",
    "NewestWins",
    "Resolution",
    "ResolutionSummary",
    "format_day",
    "is_identical",
    # operations
    "InvalidTransitionError",
    "OperationHandle",
    "OperationKind",
    "OperationState",
]
