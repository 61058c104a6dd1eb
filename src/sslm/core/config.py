"""Engine configuration for sslm.

This module defines the tunables shared by the planner, executor and validator.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

# Environment variable prefix for overrides
ENV_PREFIX = "SSLM_"


@dataclass
class EngineConfig:
    """Tunables for planning, copying and validation.

    Attributes:
        chunk_size: Bytes read per chunk when streaming a file copy.
        progress_interval: Minimum seconds between two progress events.
        speed_window: Seconds of samples kept for speed/ETA computation.
        safety_margin: Multiplier applied to required bytes before the
            free-space comparison (1.1 = 10% extra).
        validation_batch: Emit a validation progress event every N files.
        max_conflict_resolutions: Conflict resolutions kept verbatim in a plan.
        max_duplicate_examples: Duplicate examples kept in a plan.
        max_reported_mismatches: Mismatches carried by the final validation event.
    """

    chunk_size: int = 1024 * 1024
    progress_interval: float = 0.5
    speed_window: float = 5.0
    safety_margin: float = 1.1
    validation_batch: int = 100
    max_conflict_resolutions: int = 50
    max_duplicate_examples: int = 10
    max_reported_mismatches: int = 50

    def __post_init__(self) -> None:
        """Validate values."""
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.progress_interval < 0:
            raise ValueError(
                f"progress_interval must be >= 0, got {self.progress_interval}"
            )
        if self.speed_window <= 0:
            raise ValueError(f"speed_window must be positive, got {self.speed_window}")
        if self.safety_margin < 1.0:
            raise ValueError(f"safety_margin must be >= 1.0, got {self.safety_margin}")
        if self.validation_batch <= 0:
            raise ValueError(
                f"validation_batch must be positive, got {self.validation_batch}"
            )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """Build a config from SSLM_* environment variables.

        Unset variables keep their defaults. For example ``SSLM_CHUNK_SIZE``
        overrides ``chunk_size``.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            A validated EngineConfig.

        Raises:
            ValueError: If a variable cannot be parsed or is out of range.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, int | float] = {}

        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            caster = int if f.type in ("int", int) else float
            try:
                overrides[f.name] = caster(raw)
            except ValueError as e:
                raise ValueError(
                    f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}"
                ) from e

        return cls(**overrides)  # type: ignore[arg-type]
