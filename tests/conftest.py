"""Shared test fixtures for quality-hooks."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from quality_hooks.models.file import FileInfo, read_text, write_text
from quality_hooks.models.issue import Issue, Severity

# Marker token -> (rule, message, severity, fixable)
MARKERS: dict[str, tuple[str, str, Severity, bool]] = {
    "@fmt": ("format", "File content differs from formatting output", Severity.WARNING, True),
    "@import": (
        "lint/correctness/noUnusedImports",
        "This import is unused.",
        Severity.WARNING,
        True,
    ),
    "@semi": ("lint/style/useSemicolon", "Missing semicolon.", Severity.WARNING, True),
    "@any": ("lint/suspicious/noExplicitAny", "Unexpected any.", Severity.WARNING, True),
    "@bug": (
        "lint/correctness/noUndeclaredVariables",
        "Variable is undeclared.",
        Severity.ERROR,
        False,
    ),
}


def make_issue(**overrides: object) -> Issue:
    """Build an Issue with sensible defaults."""
    fields: dict[str, object] = {
        "analyzer": "fake",
        "file": "src/app.ts",
        "line": 1,
        "column": 1,
        "severity": Severity.WARNING,
        "message": "Something is off.",
    }
    fields.update(overrides)
    return Issue(**fields)  # type: ignore[arg-type]


def marker_detector(name: str) -> Callable[[str, str], list[Issue]]:
    """Report one issue per marker token found on each line."""

    def detect(path: str, content: str) -> list[Issue]:
        issues = []
        for number, text in enumerate(content.splitlines(), start=1):
            for token, (rule, message, severity, fixable) in MARKERS.items():
                if token in text:
                    issues.append(
                        Issue(
                            analyzer=name,
                            file=path,
                            line=number,
                            column=text.index(token) + 1,
                            severity=severity,
                            message=message,
                            fixable=fixable,
                            rule=rule,
                        )
                    )
        return issues

    return detect


def remove(token: str) -> Callable[[str], str]:
    return lambda content: content.replace(token, "")


def swap(token: str, replacement: str) -> Callable[[str], str]:
    return lambda content: content.replace(token, replacement)


class FakeAnalyzer:
    """In-memory analyzer driven by marker tokens.

    ``fixes`` maps a fix group label to a content transform applied to the
    file on disk; ``fail_groups`` maps a group label to the exception raised
    after the file has been overwritten with garbage.
    """

    def __init__(
        self,
        name: str = "fake",
        *,
        fixes: dict[str, Callable[[str], str]] | None = None,
        fail_groups: dict[str, Exception] | None = None,
        supports_fixes: bool = True,
        delay: float = 0.0,
        error: Exception | None = None,
        detect: Callable[[str, str], list[Issue]] | None = None,
    ) -> None:
        self.name = name
        self.supports_fixes = supports_fixes
        self.fixes = fixes or {}
        self.fail_groups = fail_groups or {}
        self.delay = delay
        self.error = error
        self.detect = detect or marker_detector(name)
        self.analyze_calls = 0
        self.fix_calls: list[str | None] = []

    async def analyze(self, file: FileInfo) -> list[Issue]:
        self.analyze_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.detect(file.path, file.read_content())

    async def apply_fixes(
        self,
        path: str,
        *,
        unsafe: bool = False,
        group: str | None = None,
    ) -> list[Issue]:
        self.fix_calls.append(group)
        if group in self.fail_groups:
            write_text(path, "<<garbage>>")
            raise self.fail_groups[group]
        content = read_text(path)
        transform = self.fixes.get(group or "")
        if transform is not None:
            content = transform(content)
            write_text(path, content)
        return self.detect(path, content)


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], str]:
    """Write a file under tmp_path and return its path as a string."""

    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        write_text(path, content)
        return str(path)

    return _write


@pytest.fixture
def two_issue_source() -> str:
    """Ten-line file with a formatting issue on line 3 and an unused import on line 10."""
    lines = [f"const line{n} = {n};" for n in range(1, 11)]
    lines[2] += " @fmt"
    lines[9] = "import { unused } from './x'; @import"
    return "\n".join(lines) + "\n"
