"""Shared types for sslm.

This module defines the enums exchanged between the engine, the plan schema
and the command line.
"""

from __future__ import annotations

from enum import Enum


class SubframeMode(str, Enum):
    """Which files to keep from ``*_sub`` directories.

    ALL keeps everything; FIT_ONLY drops non-``.fit`` files located under
    any directory whose name ends with ``_sub``.
    """

    ALL = "all"
    FIT_ONLY = "fit_only"


class ImportStrategy(str, Enum):
    """How an import decides which files to copy."""

    FULL = "full"
    INCREMENTAL = "incremental"


class Classification(str, Enum):
    """Classification of a relative path across sources."""

    UNIQUE = "unique"
    DUPLICATE_IDENTICAL = "duplicate-identical"
    CONFLICT = "conflict"


class EventStatus(str, Enum):
    """Status carried by a progress event.

    COMPLETED, CANCELLED and ERROR are terminal: exactly one of them ends
    every operation's event stream.
    """

    STARTING = "starting"
    COPYING = "copying"
    VALIDATING = "validating"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.COMPLETED, EventStatus.CANCELLED, EventStatus.ERROR)
