"""Ordered, rollback-safe application of automatic fixes.

Fixable issues are classified into priority classes, checked for overlapping
line ranges and applied one group at a time through the owning analyzer's fix
mode. Fix application is strictly sequential: every fix can shift line
numbers, so the file is re-read after each invocation and nothing is ever
applied concurrently.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import replace
from itertools import combinations
from pathlib import Path

import structlog

from quality_hooks.interfaces.analyzer import Analyzer
from quality_hooks.models.file import FileInfo, read_text, write_text
from quality_hooks.models.fix import (
    Conflict,
    ConflictResolution,
    FixApplicationResult,
    FixCandidate,
    FixGroup,
    FixPlan,
    FixPriority,
    GroupOutcome,
)
from quality_hooks.models.issue import Issue
from quality_hooks.models.report import AggregatedReport
from quality_hooks.utils.logging import LogEventNames

log = structlog.get_logger()

FORMATTING_KEYWORDS = ("format", "style", "indent", "spacing")
IMPORT_KEYWORDS = ("import",)
SAFE_LINT_KEYWORDS = ("semicolon", "quotes", "trailing-comma", "trailing comma")
IMPORT_RULES = ("organizeimports", "nounusedimports")


# =============================================================================
# Classification
# =============================================================================


def classify_priority(issue: Issue) -> FixPriority:
    """Assign a fix priority class from the issue's rule, then its message."""
    rule = (issue.rule or "").lower()
    if rule == "format" or rule.startswith("format/"):
        return FixPriority.FORMATTING
    if any(name in rule for name in IMPORT_RULES):
        return FixPriority.IMPORTS

    message = issue.message.lower()
    if any(keyword in message for keyword in FORMATTING_KEYWORDS):
        return FixPriority.FORMATTING
    if any(keyword in message for keyword in IMPORT_KEYWORDS):
        return FixPriority.IMPORTS
    if any(keyword in message for keyword in SAFE_LINT_KEYWORDS):
        return FixPriority.SAFE_LINT
    return FixPriority.OTHER


def fix_line_range(issue: Issue) -> tuple[int, int]:
    """Inclusive line range touched by fixing ``issue``."""
    return issue.line, issue.last_line


def fix_group(priority: FixPriority) -> str:
    return priority.group


def build_candidates(issues: Iterable[Issue]) -> list[FixCandidate]:
    """Wrap every fixable, not yet fixed issue in a candidate."""
    candidates = []
    for index, issue in enumerate(i for i in issues if i.needs_fix):
        priority = classify_priority(issue)
        start, end = fix_line_range(issue)
        candidates.append(
            FixCandidate(
                id=f"{issue.analyzer}:{issue.line}:{issue.column}:{index}",
                issue=issue,
                priority=priority,
                start_line=start,
                end_line=end,
                group=fix_group(priority),
            )
        )
    return candidates


# =============================================================================
# Conflicts and planning
# =============================================================================


def detect_conflicts(candidates: Sequence[FixCandidate]) -> list[Conflict]:
    """Find every pair of candidates in the same file whose ranges overlap."""
    conflicts = []
    for a, b in combinations(candidates, 2):
        if a.issue.file != b.issue.file or not a.overlaps(b):
            continue
        if a.priority == b.priority:
            resolution = ConflictResolution.APPLY_SEQUENTIAL
            reason = f"equal {a.group} priority on overlapping lines"
        else:
            resolution = ConflictResolution.USE_HIGHEST_PRIORITY
            reason = f"{min(a, b, key=lambda c: c.priority).group} fix takes precedence"
        conflicts.append(
            Conflict(
                candidates=(a, b),
                affected_lines=(min(a.start_line, b.start_line), max(a.end_line, b.end_line)),
                resolution=resolution,
                reason=f"{reason}: {a.start_line}-{a.end_line}, {b.start_line}-{b.end_line}",
            )
        )
    return conflicts


def plan_fixes(candidates: Sequence[FixCandidate]) -> FixPlan:
    """Order candidates into priority groups for one pass.

    When two overlapping candidates have different priorities the
    lower-priority one is deferred to the next pass; when priorities tie both
    stay in this pass but are applied one at a time instead of batched.
    """
    conflicts = detect_conflicts(candidates)
    deferred_ids: set[str] = set()
    sequential_ids: set[str] = set()

    for conflict in conflicts:
        a, b = conflict.candidates
        if conflict.resolution is ConflictResolution.APPLY_SEQUENTIAL:
            sequential_ids.update((a.id, b.id))
        else:
            deferred_ids.add(max(a, b, key=lambda c: c.priority).id)
        log.info(
            LogEventNames.FIX_CONFLICT,
            candidates=[a.id, b.id],
            lines=conflict.affected_lines,
            resolution=str(conflict.resolution),
        )

    groups = []
    for priority in FixPriority:
        members = sorted(
            (c for c in candidates if c.priority is priority and c.id not in deferred_ids),
            key=lambda c: (c.start_line, c.id),
        )
        if not members:
            continue
        groups.append(
            FixGroup(
                label=priority.group,
                priority=priority,
                batched=tuple(c for c in members if c.id not in sequential_ids),
                sequential=tuple(
                    replace(c, sequential=True) for c in members if c.id in sequential_ids
                ),
            )
        )

    return FixPlan(
        groups=tuple(groups),
        conflicts=tuple(conflicts),
        deferred=tuple(c for c in candidates if c.id in deferred_ids),
    )


def _issue_key(issue: Issue) -> tuple[str | None, str]:
    return (issue.rule, issue.message)


def count_fixed(candidates: Iterable[FixCandidate], remaining: Iterable[Issue]) -> list[str]:
    """Ids of candidates no longer present among ``remaining`` issues."""
    left = Counter(_issue_key(issue) for issue in remaining if not issue.fixed)
    fixed = []
    for candidate in candidates:
        key = _issue_key(candidate.issue)
        if left[key] > 0:
            left[key] -= 1
        else:
            fixed.append(candidate.id)
    return fixed


# =============================================================================
# Application
# =============================================================================


class _InvocationFailed(Exception):
    def __init__(self, outcome: GroupOutcome) -> None:
        super().__init__(outcome.error)
        self.outcome = outcome


class FixSequencer:
    """Apply fixable issues from a report to a file, one group at a time.

    Example:
        sequencer = FixSequencer([biome], max_attempts=3)
        result = await sequencer.apply(report, FileInfo("src/app.ts"))
        if result.partial:
            ...  # earlier groups landed, a later one failed and was rolled back
    """

    def __init__(
        self,
        analyzers: Sequence[Analyzer],
        *,
        enabled: bool = True,
        unsafe_fixes: bool = False,
        max_attempts: int = 3,
    ) -> None:
        self._analyzers = {analyzer.name: analyzer for analyzer in analyzers}
        self._enabled = enabled
        self._unsafe = unsafe_fixes
        self._max_attempts = max(1, max_attempts)

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def apply(self, report: AggregatedReport, file: FileInfo) -> FixApplicationResult:
        """Apply the report's fixable issues to ``file`` on disk.

        Returns the input content untouched when autofix is disabled or there
        is nothing to fix.
        """
        candidates = [c for c in build_candidates(report.issues) if self._can_fix(c)]
        if not self._enabled or not candidates:
            content = file.content
            if content is None:
                content = await asyncio.to_thread(file.read_content)
            return FixApplicationResult.unchanged(content)

        path = Path(file.path)
        original = await asyncio.to_thread(read_text, path)
        content = original
        outcomes: list[GroupOutcome] = []
        conflicts: list[Conflict] = []
        fixed_ids: set[str] = set()
        remaining: dict[str, list[Issue]] = {}
        pending = candidates

        for pass_number in range(1, self._max_attempts + 1):
            if pass_number > 1:
                pending = self._still_present(pending, remaining, fixed_ids)
            if not pending:
                break

            plan = plan_fixes(pending)
            conflicts.extend(plan.conflicts)
            try:
                for group in plan.groups:
                    for analyzer_name, batch in self._invocations(group):
                        outcome, content = await self._invoke(
                            path, content, analyzer_name, group.label, batch, pass_number, remaining
                        )
                        newly_fixed = self._newly_fixed(
                            pending, analyzer_name, remaining[analyzer_name], fixed_ids
                        )
                        fixed_ids.update(newly_fixed)
                        outcomes.append(replace(outcome, fixed_count=len(newly_fixed)))
                        log.info(
                            LogEventNames.FIX_GROUP_APPLIED,
                            group=group.label,
                            analyzer=analyzer_name,
                            pass_number=pass_number,
                            candidates=len(batch),
                            fixed=len(newly_fixed),
                        )
            except _InvocationFailed as failed:
                outcomes.append(failed.outcome)
                return FixApplicationResult(
                    success=False,
                    fixed_count=len(fixed_ids),
                    content=failed.outcome.content,
                    modified=failed.outcome.content != original,
                    error=failed.outcome.error,
                    outcomes=tuple(outcomes),
                    conflicts=tuple(conflicts),
                    skipped=plan.deferred,
                )
            pending = list(plan.deferred)

        skipped = tuple(self._still_present(pending, remaining, fixed_ids))
        if skipped:
            log.info("fix_candidates_skipped", count=len(skipped), passes=self._max_attempts)

        return FixApplicationResult(
            success=True,
            fixed_count=len(fixed_ids),
            content=content,
            modified=content != original,
            outcomes=tuple(outcomes),
            conflicts=tuple(conflicts),
            skipped=skipped,
        )

    def _can_fix(self, candidate: FixCandidate) -> bool:
        analyzer = self._analyzers.get(candidate.analyzer)
        if analyzer is None or not analyzer.supports_fixes:
            log.debug("fix_candidate_unroutable", candidate=candidate.id)
            return False
        return True

    @staticmethod
    def _invocations(group: FixGroup) -> list[tuple[str, tuple[FixCandidate, ...]]]:
        """One invocation per analyzer for the batch, then one per sequential candidate."""
        batches: dict[str, list[FixCandidate]] = {}
        for candidate in group.batched:
            batches.setdefault(candidate.analyzer, []).append(candidate)
        invocations = [(name, tuple(batch)) for name, batch in batches.items()]
        invocations.extend((c.analyzer, (c,)) for c in group.sequential)
        return invocations

    @staticmethod
    def _newly_fixed(
        pending: Iterable[FixCandidate],
        analyzer_name: str,
        still_reported: Iterable[Issue],
        fixed_ids: set[str],
    ) -> list[str]:
        """Ids of this pass's candidates that the latest invocation resolved."""
        own = [c for c in pending if c.analyzer == analyzer_name and c.id not in fixed_ids]
        return count_fixed(own, still_reported)

    @staticmethod
    def _still_present(
        candidates: Iterable[FixCandidate],
        remaining: dict[str, list[Issue]],
        fixed_ids: set[str],
    ) -> list[FixCandidate]:
        """Drop resolved candidates and move the rest to post-fix positions.

        Each surviving candidate is paired, in line order, with a still
        reported issue of the same rule and message, and takes that issue's
        line range. Candidates of analyzers that have not run a fix keep their
        original range.
        """
        pools: dict[tuple[str, tuple[str | None, str]], list[Issue]] = {}
        for name, issues in remaining.items():
            for issue in sorted(issues, key=lambda i: (i.line, i.column)):
                if not issue.fixed:
                    pools.setdefault((name, _issue_key(issue)), []).append(issue)

        present = []
        for candidate in sorted(candidates, key=lambda c: (c.start_line, c.id)):
            if candidate.id in fixed_ids:
                continue
            if candidate.analyzer not in remaining:
                present.append(candidate)
                continue
            pool = pools.get((candidate.analyzer, _issue_key(candidate.issue)))
            if not pool:
                fixed_ids.add(candidate.id)
                continue
            issue = pool.pop(0)
            start, end = fix_line_range(issue)
            present.append(replace(candidate, issue=issue, start_line=start, end_line=end))
        return present

    async def _invoke(
        self,
        path: Path,
        snapshot: str,
        analyzer_name: str,
        group: str,
        batch: tuple[FixCandidate, ...],
        pass_number: int,
        remaining: dict[str, list[Issue]],
    ) -> tuple[GroupOutcome, str]:
        analyzer = self._analyzers[analyzer_name]
        ids = tuple(c.id for c in batch)
        try:
            still_reported = await analyzer.apply_fixes(str(path), unsafe=self._unsafe, group=group)
            content = await asyncio.to_thread(read_text, path)
        except Exception as e:
            error = f"{analyzer_name} {group} fix failed: {e}"
            log.warning(
                LogEventNames.FIX_GROUP_FAILED,
                group=group,
                analyzer=analyzer_name,
                pass_number=pass_number,
                error=str(e),
            )
            error = await self._restore(path, snapshot, error)
            raise _InvocationFailed(
                GroupOutcome(
                    group=group,
                    success=False,
                    fixed_count=0,
                    content=snapshot,
                    candidate_ids=ids,
                    error=error,
                    pass_number=pass_number,
                )
            ) from e

        remaining[analyzer_name] = list(still_reported)
        outcome = GroupOutcome(
            group=group,
            success=True,
            fixed_count=0,
            content=content,
            candidate_ids=ids,
            pass_number=pass_number,
        )
        return outcome, content

    @staticmethod
    async def _restore(path: Path, snapshot: str, error: str) -> str:
        try:
            await asyncio.to_thread(write_text, path, snapshot)
        except OSError as e:
            log.exception("fix_rollback_failed", file=str(path))
            return f"{error}; rollback failed: {e}"
        log.info(LogEventNames.FIX_ROLLED_BACK, file=str(path))
        return error
