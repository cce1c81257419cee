"""Data models and transfer objects."""

from .file import FileInfo
from .fix import (
    Conflict,
    ConflictResolution,
    FixApplicationResult,
    FixCandidate,
    FixGroup,
    FixPlan,
    FixPriority,
    GroupOutcome,
)
from .issue import AnalysisResult, AnalysisStatus, Issue, Severity
from .report import AggregatedReport, CacheEntry, ReportSummary
from .result import FinalResult
from .verification import FileIntegrity, VerificationResult, VerificationStatus

__all__ = [
    # Input
    "FileInfo",
    # Findings
    "Severity",
    "Issue",
    "AnalysisStatus",
    "AnalysisResult",
    # Reports
    "ReportSummary",
    "AggregatedReport",
    "CacheEntry",
    # Fixes
    "FixPriority",
    "FixCandidate",
    "ConflictResolution",
    "Conflict",
    "FixGroup",
    "FixPlan",
    "GroupOutcome",
    "FixApplicationResult",
    # Verification
    "FileIntegrity",
    "VerificationStatus",
    "VerificationResult",
    "FinalResult",
]
