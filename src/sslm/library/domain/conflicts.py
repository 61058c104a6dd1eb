"""Conflict detection and resolution across sources.

Implements a "Newest Wins" strategy on metadata only:
1. One candidate: it wins (unique)
2. Same size and mtime everywhere: first source wins (duplicate-identical)
3. Otherwise: latest mtime wins, ties go to the earliest source (conflict)

Content is never compared: two different files with the same size and mtime
are treated as duplicates, and a touched mtime on identical content is a
conflict.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from sslm.core.types import Classification
from sslm.library.types import FileRecord

if TYPE_CHECKING:
    from sslm.library.inventory import Inventory

# Resolutions kept verbatim for transport
DEFAULT_MAX_RESOLUTIONS = 50


@dataclass
class Resolution:
    """Outcome of resolving one relative path.

    Attributes:
        relative_path: The path being resolved.
        winner: The record chosen to represent the path.
        classification: unique, duplicate-identical or conflict.
        reason: Human-readable explanation (e.g. "newer (2024-05-01)").
        candidates: All records considered, in source order.
    """

    relative_path: str
    winner: FileRecord
    classification: Classification
    reason: str
    candidates: list[FileRecord] = field(default_factory=list)

    def to_message(self) -> dict[str, Any]:
        """Convert to the transport form kept in plans."""
        return {
            "relativePath": self.relative_path,
            "classification": self.classification.value,
            "winningSource": self.winner.source_id,
            "winningMtime": self.winner.modified_at,
            "reason": self.reason,
            "candidates": [
                {
                    "source": c.source_id,
                    "size": c.size_bytes,
                    "mtime": c.modified_at,
                    "selected": c is self.winner,
                }
                for c in self.candidates
            ],
        }


@dataclass
class ResolutionSummary:
    """Resolutions for a whole inventory.

    Attributes:
        resolutions: One Resolution per relative path, in inventory order.
        duplicate_count: Paths provided by two or more sources (conflicts included).
        conflict_count: Paths classified as conflict (true total).
        retained_conflicts: First conflict resolutions, capped for transport.
    """

    resolutions: list[Resolution] = field(default_factory=list)
    duplicate_count: int = 0
    conflict_count: int = 0
    retained_conflicts: list[Resolution] = field(default_factory=list)


class ConflictStrategy(Protocol):
    """Protocol for choosing a winner among differing candidates."""

    def pick(self, candidates: Sequence[FileRecord]) -> tuple[FileRecord, bool]:
        """Return (winner, decided_by_tie_break)."""
        ...


class NewestWins:
    """Latest modification time wins; ties go to the earliest source."""

    def pick(self, candidates: Sequence[FileRecord]) -> tuple[FileRecord, bool]:
        latest = max(c.modified_at for c in candidates)
        tied = [c for c in candidates if c.modified_at == latest]
        # Candidates are in source order, so the first tied one is the
        # earliest source
        return tied[0], len(tied) > 1


def format_day(timestamp: float) -> str:
    """Format an epoch timestamp as YYYY-MM-DD (UTC)."""
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%Y-%m-%d")


def is_identical(candidates: Sequence[FileRecord]) -> bool:
    """Check if all candidates share the same (size, mtime)."""
    first = candidates[0]
    return all(
        c.size_bytes == first.size_bytes and c.modified_at == first.modified_at
        for c in candidates[1:]
    )


class ConflictResolver:
    """Classifies each inventory entry and picks its winner."""

    def __init__(
        self,
        strategy: ConflictStrategy | None = None,
        max_retained: int = DEFAULT_MAX_RESOLUTIONS,
    ) -> None:
        self._strategy = strategy or NewestWins()
        self._max_retained = max_retained

    def resolve_entry(self, relative_path: str, candidates: Sequence[FileRecord]) -> Resolution:
        """Resolve one relative path.

        Args:
            relative_path: The path being resolved.
            candidates: Its records in source order (never empty).

        Returns:
            The Resolution for this path.
        """
        if not candidates:
            raise ValueError(f"No candidates for {relative_path}")

        candidates = list(candidates)

        if len(candidates) == 1:
            return Resolution(
                relative_path=relative_path,
                winner=candidates[0],
                classification=Classification.UNIQUE,
                reason="unique",
                candidates=candidates,
            )

        if is_identical(candidates):
            return Resolution(
                relative_path=relative_path,
                winner=candidates[0],
                classification=Classification.DUPLICATE_IDENTICAL,
                reason="identical",
                candidates=candidates,
            )

        winner, tie_break = self._strategy.pick(candidates)
        reason = f"newer ({format_day(winner.modified_at)})"
        if tie_break:
            reason += ", tie broken by source order"

        return Resolution(
            relative_path=relative_path,
            winner=winner,
            classification=Classification.CONFLICT,
            reason=reason,
            candidates=candidates,
        )

    def resolve(self, inventory: Inventory) -> ResolutionSummary:
        """Resolve every entry of an inventory."""
        summary = ResolutionSummary()

        for relative_path, candidates in inventory.entries():
            resolution = self.resolve_entry(relative_path, candidates)
            summary.resolutions.append(resolution)

            if len(candidates) > 1:
                summary.duplicate_count += 1

            if resolution.classification is Classification.CONFLICT:
                summary.conflict_count += 1
                if len(summary.retained_conflicts) < self._max_retained:
                    summary.retained_conflicts.append(resolution)

        return summary
