"""Post-fix verification.

A fix tool reporting success is not proof that the intended issues are gone.
The verifier re-validates the fixed content and compares the findings before
and after.
"""

from __future__ import annotations

import json
import re
import time
from collections import Counter
from collections.abc import Iterable
from pathlib import Path

import structlog

from quality_hooks.core.orchestrator import ValidationOrchestrator
from quality_hooks.models.file import FileInfo
from quality_hooks.models.issue import Issue
from quality_hooks.models.report import AggregatedReport
from quality_hooks.models.verification import (
    FileIntegrity,
    VerificationResult,
    VerificationStatus,
)
from quality_hooks.utils.logging import LogEventNames

log = structlog.get_logger()

IssueKey = tuple[str, str | None, str]

DELIMITER_PAIRS = (("(", ")"), ("[", "]"), ("{", "}"))
DELIMITED_SUFFIXES = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs")
MAX_SIZE_RATIO = 10.0
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")


def issue_key(issue: Issue) -> IssueKey:
    """Identity of an issue across a fix; positions shift, so they are ignored."""
    return (issue.analyzer, issue.rule, issue.message)


def diff_issues(
    before: Iterable[Issue], after: Iterable[Issue]
) -> tuple[list[Issue], list[Issue], list[Issue]]:
    """Multiset difference of two issue lists.

    Returns:
        (resolved, persisted, regressed): issues only in ``before``, issues in
        both (as they appear in ``after``) and issues only in ``after``.
    """
    before = [i for i in before if not i.fixed]
    after = [i for i in after if not i.fixed]
    unmatched_before = Counter(issue_key(i) for i in before)

    persisted: list[Issue] = []
    regressed: list[Issue] = []
    for issue in after:
        key = issue_key(issue)
        if unmatched_before[key] > 0:
            unmatched_before[key] -= 1
            persisted.append(issue)
        else:
            regressed.append(issue)

    resolved: list[Issue] = []
    for issue in before:
        key = issue_key(issue)
        if unmatched_before[key] > 0:
            unmatched_before[key] -= 1
            resolved.append(issue)
    return resolved, persisted, regressed


def delimiters_balanced(content: str) -> bool:
    """Whether every bracket kind closes as often as it opens, never early.

    Brackets inside strings and comments are counted too.
    """
    for opening, closing in DELIMITER_PAIRS:
        depth = 0
        for char in content:
            if char == opening:
                depth += 1
            elif char == closing:
                depth -= 1
                if depth < 0:
                    return False
        if depth:
            return False
    return True


def looks_like_text(content: str) -> bool:
    if not content:
        return True
    nulls = content.count("\0")
    controls = len(CONTROL_CHARS.findall(content))
    return nulls < len(content) * 0.01 and controls < len(content) * 0.05


def basic_syntax_ok(file_path: str, content: str) -> bool:
    """Cheap structural check by file type: JSON parses, brackets balance, text is text."""
    suffix = Path(file_path).suffix.lower()
    if suffix == ".json":
        try:
            json.loads(content)
        except ValueError:
            return False
        return True
    if suffix in DELIMITED_SUFFIXES:
        return delimiters_balanced(content)
    return looks_like_text(content)


def _utf8_size(content: str) -> int | None:
    try:
        return len(content.encode("utf-8"))
    except UnicodeEncodeError:
        return None


def check_integrity(
    file_path: str, fixed_content: str, original_content: str | None = None
) -> FileIntegrity:
    """Look for signs that a fix damaged the file.

    Checks that compare against ``original_content`` are skipped when it is
    unknown or blank. A syntax problem the original already had is not reported.
    """
    indicators: list[str] = []
    fixed_size = _utf8_size(fixed_content)
    original_size = None if original_content is None else _utf8_size(original_content)

    if original_content is not None and original_content.strip():
        if not fixed_content.strip():
            indicators.append("content-disappeared")
        if original_size and fixed_size is not None:
            ratio = fixed_size / original_size
            if not 1 / MAX_SIZE_RATIO < ratio < MAX_SIZE_RATIO:
                indicators.append(f"suspicious-size-change-{ratio:.2f}x")

    if not basic_syntax_ok(file_path, fixed_content) and (
        original_content is None or basic_syntax_ok(file_path, original_content)
    ):
        indicators.append("syntax-errors")

    replaced_before = 0 if original_content is None else original_content.count("\ufffd")
    if fixed_size is None or fixed_content.count("\ufffd") > replaced_before:
        indicators.append("encoding-issues")

    return FileIntegrity(
        fixed_size=fixed_size if fixed_size is not None else len(fixed_content),
        original_size=original_size,
        indicators=tuple(indicators),
    )


class FixVerifier:
    """Re-validate fixed content and classify the outcome."""

    def __init__(self, orchestrator: ValidationOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def verify(
        self,
        file_path: str,
        original_report: AggregatedReport,
        fixed_content: str,
        intended: Iterable[Issue] = (),
        original_content: str | None = None,
    ) -> VerificationResult:
        """Compare the original report with a fresh validation of ``fixed_content``.

        Args:
            file_path: Path of the fixed file.
            original_report: Report the fixes were planned from.
            fixed_content: Content after fixing.
            intended: Issues the fixes were meant to resolve; defaults to the
                original report's fixable issues.
            original_content: Content before fixing, for the integrity
                checks that compare sizes and encodings.

        Returns:
            A verification result; never raises.
        """
        started = time.perf_counter()
        intended = list(intended) or list(original_report.fixable_issues)

        integrity = check_integrity(file_path, fixed_content, original_content)
        damage = None
        if not integrity.intact:
            damage = f"file integrity check failed: {', '.join(integrity.indicators)}"
            log.warning(
                LogEventNames.INTEGRITY_FAILED, file=file_path, indicators=integrity.indicators
            )

        try:
            report = await self._orchestrator.validate(FileInfo(file_path, fixed_content))
        except Exception as e:
            log.warning(LogEventNames.VERIFICATION_INCONCLUSIVE, file=file_path, error=str(e))
            if damage:
                return VerificationResult(
                    status=VerificationStatus.REGRESSED,
                    error=f"{damage}; re-validation failed: {e}",
                    duration=time.perf_counter() - started,
                    integrity=integrity,
                )
            return VerificationResult.inconclusive(
                f"re-validation failed: {e}", time.perf_counter() - started, integrity
            )

        # An analyzer that failed before has no baseline to regress from
        no_baseline = set(original_report.failed_analyzers)
        resolved, persisted, regressed = diff_issues(
            original_report.issues,
            (i for i in report.issues if i.analyzer not in no_baseline),
        )
        still_there = Counter(issue_key(i) for i in persisted)
        intended_left = 0
        for issue in intended:
            key = issue_key(issue)
            if still_there[key] > 0:
                still_there[key] -= 1
                intended_left += 1

        if damage:
            status = VerificationStatus.REGRESSED
            error = damage
        elif report.failed_analyzers:
            status = VerificationStatus.INCONCLUSIVE
            error = f"analyzers failed during re-validation: {', '.join(report.failed_analyzers)}"
        elif regressed:
            status = VerificationStatus.REGRESSED
            error = None
        elif intended_left:
            status = VerificationStatus.PARTIAL
            error = None
        else:
            status = VerificationStatus.VERIFIED
            error = None

        result = VerificationResult(
            status=status,
            resolved_count=len(resolved),
            persisted_count=len(persisted),
            regressed_count=len(regressed),
            resolved=tuple(resolved),
            persisted=tuple(persisted),
            regressed=tuple(regressed),
            intended_resolved=intended_left == 0,
            report=report,
            error=error,
            duration=time.perf_counter() - started,
            integrity=integrity,
        )

        if regressed:
            log.warning(
                LogEventNames.VERIFICATION_REGRESSED,
                file=file_path,
                regressed=len(regressed),
                messages=[i.message for i in regressed[:5]],
            )
        log.info(
            LogEventNames.VERIFICATION_COMPLETE,
            file=file_path,
            status=str(status),
            resolved=len(resolved),
            persisted=len(persisted),
            regressed=len(regressed),
        )
        return result
