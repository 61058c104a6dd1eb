"""Core module - Shared configuration, enums and formatting."""

from sslm.core.config import EngineConfig
from sslm.core.formatting import format_bytes, format_duration, format_speed
from sslm.core.types import (
    Classification,
    EventStatus,
    ImportStrategy,
    SubframeMode,
)

__all__ = [
    # Config
    "EngineConfig",
    # Formatting
    "format_bytes",
    "format_duration",
    "format_speed",
    # Types
    "Classification",
    "EventStatus",
    "ImportStrategy",
    "SubframeMode",
]
