"""Data models for fix verification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .issue import Issue
from .report import AggregatedReport


class VerificationStatus(StrEnum):
    """Verdict of re-validating a fixed file."""

    VERIFIED = "verified"  # Every intended issue resolved, nothing new
    PARTIAL = "partial"  # Some intended issues persist
    REGRESSED = "regressed"  # The fix introduced new issues or damaged the file
    INCONCLUSIVE = "inconclusive"  # Re-validation did not produce a usable report


@dataclass(frozen=True)
class FileIntegrity:
    """Structural sanity of fixed content, independent of any analyzer.

    ``indicators`` names each sign of corruption found, e.g.
    ``content-disappeared`` or ``syntax-errors``; an empty tuple means intact.
    """

    fixed_size: int
    original_size: int | None = None  # None when the pre-fix content is unknown
    indicators: tuple[str, ...] = ()

    @property
    def intact(self) -> bool:
        return not self.indicators


@dataclass(frozen=True)
class VerificationResult:
    """Before/after comparison of a fix sequence."""

    status: VerificationStatus
    resolved_count: int = 0
    persisted_count: int = 0
    regressed_count: int = 0
    resolved: tuple[Issue, ...] = ()
    persisted: tuple[Issue, ...] = ()
    regressed: tuple[Issue, ...] = ()
    intended_resolved: bool = False
    report: AggregatedReport | None = None
    error: str | None = None
    duration: float = 0.0
    integrity: FileIntegrity | None = None

    @property
    def success(self) -> bool:
        """Only a fully verified fix counts as success."""
        return self.status is VerificationStatus.VERIFIED

    @classmethod
    def inconclusive(
        cls, error: str, duration: float = 0.0, integrity: FileIntegrity | None = None
    ) -> VerificationResult:
        return cls(
            status=VerificationStatus.INCONCLUSIVE,
            error=error,
            duration=duration,
            integrity=integrity,
        )
