"""Data models for aggregated validation reports."""

from __future__ import annotations

from dataclasses import dataclass, replace

from .issue import AnalysisResult, Issue, Severity


@dataclass(frozen=True)
class ReportSummary:
    """Counts across all analyzer results of one validation call."""

    total_analyzers: int = 0
    successful_analyzers: int = 0
    failed_analyzers: int = 0
    total_issues: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0

    @classmethod
    def from_results(cls, results: tuple[AnalysisResult, ...]) -> ReportSummary:
        """Summarize a set of analyzer results."""
        issues = [issue for result in results for issue in result.issues]
        return cls(
            total_analyzers=len(results),
            successful_analyzers=sum(1 for r in results if not r.failed),
            failed_analyzers=sum(1 for r in results if r.failed),
            total_issues=len(issues),
            error_count=sum(1 for i in issues if i.severity is Severity.ERROR),
            warning_count=sum(1 for i in issues if i.severity is Severity.WARNING),
            info_count=sum(1 for i in issues if i.severity is Severity.INFO),
        )


@dataclass(frozen=True)
class AggregatedReport:
    """Merged outcome of every enabled analyzer for one file."""

    success: bool
    results: tuple[AnalysisResult, ...]
    summary: ReportSummary
    total_duration: float  # seconds
    parallel_efficiency: float  # sum of analyzer durations / total duration
    cached: bool = False

    @classmethod
    def aggregate(
        cls,
        results: list[AnalysisResult] | tuple[AnalysisResult, ...],
        total_duration: float,
    ) -> AggregatedReport:
        """Build a report from analyzer results.

        The report succeeds only if no analyzer failed and no error-severity
        issue was found. Results are ordered by analyzer name regardless of
        completion order.
        """
        ordered = tuple(sorted(results, key=lambda r: r.analyzer))
        summary = ReportSummary.from_results(ordered)
        analyzer_time = sum(r.duration for r in ordered)
        efficiency = analyzer_time / total_duration if total_duration > 0 else 1.0
        return cls(
            success=summary.failed_analyzers == 0 and summary.error_count == 0,
            results=ordered,
            summary=summary,
            total_duration=total_duration,
            parallel_efficiency=efficiency,
        )

    @classmethod
    def empty(cls, total_duration: float = 0.0) -> AggregatedReport:
        """Report for a call where no analyzer is enabled."""
        return cls(
            success=True,
            results=(),
            summary=ReportSummary(),
            total_duration=total_duration,
            parallel_efficiency=1.0,
        )

    @property
    def issues(self) -> tuple[Issue, ...]:
        """All issues across analyzers, in result order."""
        return tuple(issue for result in self.results for issue in result.issues)

    @property
    def fixable_issues(self) -> tuple[Issue, ...]:
        """Issues that can still be fixed automatically."""
        return tuple(issue for issue in self.issues if issue.needs_fix)

    @property
    def failed_analyzers(self) -> tuple[str, ...]:
        return tuple(r.analyzer for r in self.results if r.failed)

    def as_cached(self) -> AggregatedReport:
        """Return a copy marked as served from the cache."""
        return replace(self, cached=True)


@dataclass(frozen=True)
class CacheEntry:
    """A cached report keyed by its content fingerprint."""

    key: str
    report: AggregatedReport
    inserted_at: float
