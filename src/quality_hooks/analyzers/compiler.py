"""Host compiler diagnostics analyzer.

Diagnostics are modelled the way compiler APIs usually expose them: a file
name, a 0-based character offset, a numeric category and a message that may
be a chain of nested sub-messages. Any :class:`DiagnosticsProvider` with that
shape can be plugged in; the default provider compiles Python source with
CPython's own ``compile()`` and reports syntax errors and compile-time
warnings.

The analyzer runs in-process on a worker thread and never supports fixes.
"""

from __future__ import annotations

import asyncio
import warnings
from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

import structlog

from ..models.file import FileInfo
from ..models.issue import Issue, Severity
from ..utils.async_helpers import FixNotSupportedError

log = structlog.get_logger()

ANALYZER_NAME = "compiler"
DEFAULT_EXTENSIONS = (".py", ".pyi")


class DiagnosticCategory(IntEnum):
    WARNING = 0
    ERROR = 1
    SUGGESTION = 2
    MESSAGE = 3


_SEVERITIES = {
    DiagnosticCategory.WARNING: Severity.WARNING,
    DiagnosticCategory.ERROR: Severity.ERROR,
    DiagnosticCategory.SUGGESTION: Severity.INFO,
    DiagnosticCategory.MESSAGE: Severity.INFO,
}


@dataclass(frozen=True)
class MessageChain:
    """A diagnostic message with nested follow-up messages."""

    text: str
    next: tuple[MessageChain, ...] = ()


@dataclass(frozen=True)
class CompilerDiagnostic:
    file_name: str
    start: int | None  # 0-based character offset into the source
    category: int
    message: str | MessageChain


class DiagnosticsProvider(Protocol):
    """Source of compiler diagnostics for one file."""

    def diagnostics(self, file_name: str, source: str) -> list[CompilerDiagnostic]: ...


def severity_for(category: int) -> Severity:
    """Map a diagnostic category to a severity; unknown categories are errors."""
    try:
        return _SEVERITIES[DiagnosticCategory(category)]
    except ValueError:
        return Severity.ERROR


def flatten_message(message: str | MessageChain) -> str:
    """Flatten a message chain depth-first, joining parts with single spaces."""
    if isinstance(message, str):
        return message

    def walk(node: MessageChain) -> Iterable[str]:
        yield node.text
        for child in node.next:
            yield from walk(child)

    return " ".join(part for part in walk(message) if part)


def offset_to_position(source: str, offset: int | None) -> tuple[int, int]:
    """Convert a 0-based character offset into a 1-based (line, column)."""
    if offset is None or offset < 0:
        return 1, 1
    offset = min(offset, len(source))
    before = source[:offset]
    line = before.count("\n") + 1
    column = offset - (before.rfind("\n") + 1) + 1
    return line, column


def position_to_offset(source: str, line: int | None, column: int | None) -> int | None:
    """Convert a 1-based (line, column) into a 0-based character offset."""
    if not line or line < 1:
        return None
    lines = source.splitlines(keepends=True)
    offset = sum(len(text) for text in lines[: line - 1])
    return offset + max((column or 1) - 1, 0)


def to_issue(diagnostic: CompilerDiagnostic, source: str, file_path: str) -> Issue:
    line, column = offset_to_position(source, diagnostic.start)
    return Issue(
        analyzer=ANALYZER_NAME,
        file=file_path,
        line=line,
        column=column,
        severity=severity_for(diagnostic.category),
        message=flatten_message(diagnostic.message) or "Unknown diagnostic",
        fixed=False,
        fixable=False,
    )


class PythonCompilerDiagnostics:
    """Diagnostics from compiling Python source with ``compile()``."""

    def diagnostics(self, file_name: str, source: str) -> list[CompilerDiagnostic]:
        found: list[CompilerDiagnostic] = []
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                compile(source, file_name, "exec", dont_inherit=True)
            except SyntaxError as e:
                found.append(self._from_syntax_error(file_name, source, e))
            except ValueError as e:
                found.append(CompilerDiagnostic(file_name, 0, DiagnosticCategory.ERROR, str(e)))

        for warning in caught:
            if not issubclass(warning.category, (SyntaxWarning, DeprecationWarning)):
                continue
            found.append(
                CompilerDiagnostic(
                    file_name=file_name,
                    start=position_to_offset(source, warning.lineno, None),
                    category=DiagnosticCategory.WARNING,
                    message=str(warning.message),
                )
            )
        return found

    @staticmethod
    def _from_syntax_error(file_name: str, source: str, error: SyntaxError) -> CompilerDiagnostic:
        message: str | MessageChain = error.msg
        near = (error.text or "").strip()
        if near:
            message = MessageChain(error.msg, (MessageChain(f"near: {near}"),))
        return CompilerDiagnostic(
            file_name=file_name,
            start=position_to_offset(source, error.lineno, error.offset),
            category=DiagnosticCategory.ERROR,
            message=message,
        )


class CompilerAnalyzer:
    """Analyzer reporting host compiler diagnostics."""

    name = ANALYZER_NAME
    supports_fixes = False

    def __init__(
        self,
        provider: DiagnosticsProvider | None = None,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self._provider = provider or PythonCompilerDiagnostics()
        self._extensions = frozenset(ext.lower() for ext in extensions)

    def handles(self, path: str) -> bool:
        return FileInfo(path).suffix in self._extensions

    async def analyze(self, file: FileInfo) -> list[Issue]:
        if not self.handles(file.path):
            return []
        source = await asyncio.to_thread(file.read_content)
        diagnostics = await asyncio.to_thread(self._provider.diagnostics, file.path, source)
        issues = [to_issue(d, source, file.path) for d in diagnostics]
        log.debug("compiler_diagnostics_collected", file=file.path, count=len(issues))
        return issues

    async def apply_fixes(
        self,
        path: str,
        *,
        unsafe: bool = False,
        group: str | None = None,
    ) -> list[Issue]:
        raise FixNotSupportedError("compiler diagnostics cannot be fixed automatically", self.name)
