"""Data models for analyzer findings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Severity(StrEnum):
    """Severity of a single finding."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def parse(cls, value: object) -> Severity:
        """Map a tool-specific severity string onto the three known levels.

        Unknown values map to ERROR so that nothing is silently downgraded.
        """
        normalized = str(value or "").strip().lower()
        if normalized in ("warning", "warn"):
            return cls.WARNING
        if normalized in ("info", "information"):
            return cls.INFO
        return cls.ERROR


def _position(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return 1
    return value


@dataclass(frozen=True)
class Issue:
    """One finding reported by an analyzer."""

    analyzer: str
    file: str
    line: int
    column: int
    severity: Severity
    message: str
    fixed: bool = False
    fixable: bool = False
    rule: str | None = None  # e.g. "lint/correctness/noUnusedImports"
    end_line: int | None = None

    def __post_init__(self) -> None:
        # Positions are 1-based; anything missing or invalid becomes 1,1
        object.__setattr__(self, "line", _position(self.line))
        object.__setattr__(self, "column", _position(self.column))
        if not isinstance(self.severity, Severity):
            object.__setattr__(self, "severity", Severity.parse(self.severity))
        if self.end_line is not None:
            object.__setattr__(self, "end_line", max(self.line, _position(self.end_line)))

    @property
    def last_line(self) -> int:
        """Last line covered by this issue."""
        return self.end_line if self.end_line is not None else self.line

    @property
    def needs_fix(self) -> bool:
        """True if the issue can be fixed and has not been fixed yet."""
        return self.fixable and not self.fixed

    @property
    def position_key(self) -> tuple[int, int]:
        """Sort key for ordering issues by position."""
        return (self.line, self.column)


class AnalysisStatus(StrEnum):
    """Outcome of one analyzer run."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analyzer for one validation call.

    A failed analyzer is represented by ``status=ERROR`` with no issues and
    ``error`` set to the failure message.
    """

    analyzer: str
    status: AnalysisStatus
    issues: tuple[Issue, ...] = ()
    duration: float = 0.0  # seconds
    error: str | None = None

    @property
    def failed(self) -> bool:
        """True if the analyzer itself failed (as opposed to finding errors)."""
        return self.error is not None

    @classmethod
    def from_issues(
        cls,
        analyzer: str,
        issues: list[Issue] | tuple[Issue, ...],
        duration: float,
    ) -> AnalysisResult:
        """Build a result from a completed run, deriving status from severities."""
        ordered = tuple(sorted(issues, key=lambda issue: issue.position_key))
        severities = {issue.severity for issue in ordered}
        if Severity.ERROR in severities:
            status = AnalysisStatus.ERROR
        elif Severity.WARNING in severities:
            status = AnalysisStatus.WARNING
        else:
            status = AnalysisStatus.SUCCESS
        return cls(analyzer=analyzer, status=status, issues=ordered, duration=duration)

    @classmethod
    def failure(cls, analyzer: str, error: str, duration: float) -> AnalysisResult:
        """Build the result of an analyzer that could not run."""
        return cls(
            analyzer=analyzer,
            status=AnalysisStatus.ERROR,
            issues=(),
            duration=duration,
            error=error or "analyzer failed",
        )

