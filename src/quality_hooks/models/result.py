"""Final result returned to callers of the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .fix import FixApplicationResult
from .issue import Issue
from .report import AggregatedReport
from .verification import VerificationResult


def _issue_dict(issue: Issue) -> dict[str, Any]:
    return {
        "analyzer": issue.analyzer,
        "file": issue.file,
        "line": issue.line,
        "column": issue.column,
        "severity": str(issue.severity),
        "message": issue.message,
        "rule": issue.rule,
        "fixable": issue.fixable,
        "fixed": issue.fixed,
    }


@dataclass(frozen=True)
class FinalResult:
    """Everything known about one ``validate_and_fix`` call."""

    file: str
    report: AggregatedReport
    fix: FixApplicationResult | None = None
    verification: VerificationResult | None = None
    rolled_back: bool = False
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        """True if the last known state of the file is clean."""
        if self.errors:
            return False
        if self.verification is not None and not self.rolled_back:
            return self.verification.success and (
                self.verification.report is None or self.verification.report.success
            )
        return self.report.success

    def to_dict(self) -> dict[str, Any]:
        """Render as a JSON-serializable dict."""
        data: dict[str, Any] = {
            "file": self.file,
            "success": self.success,
            "report": {
                "success": self.report.success,
                "cached": self.report.cached,
                "total_duration": round(self.report.total_duration, 4),
                "parallel_efficiency": round(self.report.parallel_efficiency, 3),
                "summary": {
                    "total_analyzers": self.report.summary.total_analyzers,
                    "successful_analyzers": self.report.summary.successful_analyzers,
                    "failed_analyzers": self.report.summary.failed_analyzers,
                    "total_issues": self.report.summary.total_issues,
                    "errors": self.report.summary.error_count,
                    "warnings": self.report.summary.warning_count,
                    "info": self.report.summary.info_count,
                },
                "results": [
                    {
                        "analyzer": r.analyzer,
                        "status": str(r.status),
                        "duration": round(r.duration, 4),
                        "error": r.error,
                        "issues": [_issue_dict(i) for i in r.issues],
                    }
                    for r in self.report.results
                ],
            },
            "rolled_back": self.rolled_back,
            "errors": list(self.errors),
        }
        if self.fix is not None:
            data["fix"] = {
                "success": self.fix.success,
                "partial": self.fix.partial,
                "fixed_count": self.fix.fixed_count,
                "modified": self.fix.modified,
                "error": self.fix.error,
                "conflicts": len(self.fix.conflicts),
                "skipped": len(self.fix.skipped),
                "groups": [
                    {
                        "group": o.group,
                        "pass": o.pass_number,
                        "success": o.success,
                        "fixed_count": o.fixed_count,
                        "error": o.error,
                    }
                    for o in self.fix.outcomes
                ],
            }
        if self.verification is not None:
            v = self.verification
            data["verification"] = {
                "status": str(v.status),
                "resolved": v.resolved_count,
                "persisted": v.persisted_count,
                "regressed": v.regressed_count,
                "intended_resolved": v.intended_resolved,
                "error": v.error,
                "regressions": [_issue_dict(i) for i in v.regressed],
                "integrity": list(v.integrity.indicators) if v.integrity else [],
            }
        return data
