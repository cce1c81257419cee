"""Data models for fix planning and application."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum

from .issue import Issue


class FixPriority(IntEnum):
    """Fix priority classes; lower values are applied first."""

    FORMATTING = 1
    IMPORTS = 2
    SAFE_LINT = 3
    OTHER = 4

    @property
    def group(self) -> str:
        """Group label used to batch fixes of this class."""
        return _GROUP_LABELS[self]


_GROUP_LABELS = {
    FixPriority.FORMATTING: "formatting",
    FixPriority.IMPORTS: "imports",
    FixPriority.SAFE_LINT: "lint-safe",
    FixPriority.OTHER: "other",
}


@dataclass(frozen=True)
class FixCandidate:
    """A fixable issue enriched with ordering metadata."""

    id: str
    issue: Issue
    priority: FixPriority
    start_line: int
    end_line: int
    group: str
    sequential: bool = False  # Must be applied on its own, not batched

    @property
    def analyzer(self) -> str:
        return self.issue.analyzer

    def overlaps(self, other: FixCandidate) -> bool:
        """Inclusive line-range overlap; touching ranges do not overlap."""
        return self.start_line <= other.end_line and other.start_line <= self.end_line


class ConflictResolution(StrEnum):
    """How a conflict between overlapping fixes is resolved."""

    USE_HIGHEST_PRIORITY = "use_highest_priority"
    APPLY_SEQUENTIAL = "apply_sequential"


@dataclass(frozen=True)
class Conflict:
    """Two or more fix candidates whose line ranges overlap."""

    candidates: tuple[FixCandidate, ...]
    affected_lines: tuple[int, int]
    resolution: ConflictResolution
    reason: str


@dataclass(frozen=True)
class FixGroup:
    """Candidates of one priority class scheduled for the same pass."""

    label: str
    priority: FixPriority
    batched: tuple[FixCandidate, ...] = ()
    sequential: tuple[FixCandidate, ...] = ()

    @property
    def candidates(self) -> tuple[FixCandidate, ...]:
        return self.batched + self.sequential


@dataclass(frozen=True)
class FixPlan:
    """Ordered fix groups for one pass plus the candidates deferred to the next."""

    groups: tuple[FixGroup, ...]
    conflicts: tuple[Conflict, ...]
    deferred: tuple[FixCandidate, ...]


@dataclass(frozen=True)
class GroupOutcome:
    """Outcome of one fix-mode invocation."""

    group: str
    success: bool
    fixed_count: int
    content: str  # File content after the invocation (restored content on failure)
    candidate_ids: tuple[str, ...]
    error: str | None = None
    pass_number: int = 1


@dataclass(frozen=True)
class FixApplicationResult:
    """Outcome of a complete fix-apply sequence."""

    success: bool
    fixed_count: int
    content: str
    modified: bool
    error: str | None = None
    outcomes: tuple[GroupOutcome, ...] = ()
    conflicts: tuple[Conflict, ...] = ()
    skipped: tuple[FixCandidate, ...] = ()

    @property
    def partial(self) -> bool:
        """True if some groups landed before a later group failed."""
        return not self.success and any(o.success for o in self.outcomes)

    @property
    def applied_ids(self) -> tuple[str, ...]:
        """Ids of candidates whose group invocation succeeded."""
        return tuple(cid for o in self.outcomes if o.success for cid in o.candidate_ids)

    @classmethod
    def unchanged(cls, content: str) -> FixApplicationResult:
        """Result of a sequence that applied nothing."""
        return cls(success=True, fixed_count=0, content=content, modified=False)
