"""Human-readable formatting of sizes and durations."""

from __future__ import annotations

_UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def format_bytes(num_bytes: float, decimals: int = 1) -> str:
    """Format a byte count with 1024-based units (e.g. "48.8 GB")."""
    if num_bytes < 1:
        return "0 B"

    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1

    text = f"{value:.{max(decimals, 0)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {_UNITS[i]}"


def format_speed(bytes_per_second: float) -> str:
    """Format a transfer speed (e.g. "12.5 MB/s")."""
    return f"{format_bytes(bytes_per_second)}/s"


def format_duration(seconds: float | None) -> str:
    """Format a duration in seconds as "1h 2m", "5m 34s" or "12s"."""
    if not seconds or seconds < 0:
        return "0s"

    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
