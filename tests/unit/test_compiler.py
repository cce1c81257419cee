"""Tests for the compiler diagnostics analyzer."""

from pathlib import Path

import pytest

from quality_hooks.analyzers.compiler import (
    CompilerAnalyzer,
    CompilerDiagnostic,
    DiagnosticCategory,
    MessageChain,
    PythonCompilerDiagnostics,
    flatten_message,
    offset_to_position,
    position_to_offset,
    severity_for,
)
from quality_hooks.models.file import FileInfo
from quality_hooks.models.issue import Severity
from quality_hooks.utils.async_helpers import FixNotSupportedError


class FixedProvider:
    """Provider returning a fixed list of diagnostics."""

    def __init__(self, diagnostics: list[CompilerDiagnostic]) -> None:
        self._diagnostics = diagnostics

    def diagnostics(self, file_name: str, source: str) -> list[CompilerDiagnostic]:
        return self._diagnostics


class TestMessageFlattening:
    """Test message chain flattening."""

    def test_plain_string(self) -> None:
        assert flatten_message("Cannot find name 'x'.") == "Cannot find name 'x'."

    def test_chain_is_depth_first(self) -> None:
        """Test nested messages are joined depth-first with spaces."""
        chain = MessageChain(
            "Type 'A' is not assignable to type 'B'.",
            (
                MessageChain("Property 'x' is missing.", (MessageChain("See declaration."),)),
                MessageChain("Consider a cast."),
            ),
        )
        assert flatten_message(chain) == (
            "Type 'A' is not assignable to type 'B'. Property 'x' is missing. "
            "See declaration. Consider a cast."
        )


class TestPositions:
    """Test offset and position conversion."""

    SOURCE = "first\nsecond\nthird"

    @pytest.mark.parametrize(
        ("offset", "expected"),
        [(0, (1, 1)), (3, (1, 4)), (6, (2, 1)), (9, (2, 4)), (13, (3, 1))],
    )
    def test_offset_to_position(self, offset: int, expected: tuple[int, int]) -> None:
        assert offset_to_position(self.SOURCE, offset) == expected

    def test_missing_offset(self) -> None:
        """Test diagnostics without an offset are placed at 1,1."""
        assert offset_to_position(self.SOURCE, None) == (1, 1)
        assert offset_to_position(self.SOURCE, -1) == (1, 1)

    def test_offset_past_end_is_clamped(self) -> None:
        assert offset_to_position(self.SOURCE, 500) == (3, 6)

    def test_position_to_offset(self) -> None:
        assert position_to_offset(self.SOURCE, 2, 4) == 9
        assert position_to_offset(self.SOURCE, 3, None) == 13
        assert position_to_offset(self.SOURCE, None, 4) is None


class TestSeverityMapping:
    """Test category to severity mapping."""

    @pytest.mark.parametrize(
        ("category", "expected"),
        [
            (DiagnosticCategory.ERROR, Severity.ERROR),
            (DiagnosticCategory.WARNING, Severity.WARNING),
            (DiagnosticCategory.SUGGESTION, Severity.INFO),
            (DiagnosticCategory.MESSAGE, Severity.INFO),
            (42, Severity.ERROR),
        ],
    )
    def test_severity_for(self, category: int, expected: Severity) -> None:
        assert severity_for(category) is expected


class TestPythonCompilerDiagnostics:
    """Test diagnostics from CPython's compile()."""

    def test_valid_source(self) -> None:
        """Test valid code has no diagnostics."""
        assert PythonCompilerDiagnostics().diagnostics("ok.py", "x = 1\n") == []

    def test_syntax_error(self) -> None:
        """Test a syntax error is one error diagnostic with context."""
        source = "x = 1\ndef broken(:\n    pass\n"
        found = PythonCompilerDiagnostics().diagnostics("bad.py", source)

        assert len(found) == 1
        diagnostic = found[0]
        assert diagnostic.category == DiagnosticCategory.ERROR
        assert offset_to_position(source, diagnostic.start)[0] == 2
        assert "near: def broken(:" in flatten_message(diagnostic.message)

    def test_compile_warning(self) -> None:
        """Test an invalid escape sequence is reported as a warning."""
        source = 'x = 1\npattern = "\\d+"\n'
        found = PythonCompilerDiagnostics().diagnostics("warn.py", source)

        assert found
        assert all(d.category == DiagnosticCategory.WARNING for d in found)
        assert offset_to_position(source, found[0].start)[0] == 2

    def test_null_bytes(self) -> None:
        """Test source the compiler refuses outright is still an error."""
        found = PythonCompilerDiagnostics().diagnostics("nul.py", "x = 1\x00\n")
        assert len(found) == 1
        assert found[0].category == DiagnosticCategory.ERROR


class TestCompilerAnalyzer:
    """Test the analyzer wrapper."""

    async def test_reports_syntax_error(self, tmp_path: Path) -> None:
        """Test issues carry analyzer, file and 1-based position."""
        path = tmp_path / "bad.py"
        path.write_text("x = 1\ndef broken(:\n    pass\n")

        issues = await CompilerAnalyzer().analyze(FileInfo(str(path)))

        assert len(issues) == 1
        issue = issues[0]
        assert issue.analyzer == "compiler"
        assert issue.file == str(path)
        assert issue.line == 2
        assert issue.severity is Severity.ERROR
        assert issue.fixable is False

    async def test_uses_supplied_content(self) -> None:
        """Test in-memory content is analyzed without touching disk."""
        issues = await CompilerAnalyzer().analyze(FileInfo("missing.py", "def f(:\n"))
        assert len(issues) == 1

    async def test_skips_other_extensions(self) -> None:
        """Test files outside the configured extensions are ignored."""
        assert await CompilerAnalyzer().analyze(FileInfo("app.ts", "def f(:\n")) == []

    async def test_custom_provider(self) -> None:
        """Test any provider with the diagnostics shape can be plugged in."""
        provider = FixedProvider(
            [
                CompilerDiagnostic(
                    "app.ts",
                    8,
                    DiagnosticCategory.ERROR,
                    MessageChain("Type error.", (MessageChain("Details."),)),
                ),
                CompilerDiagnostic("app.ts", None, DiagnosticCategory.SUGGESTION, "Hint."),
            ]
        )
        analyzer = CompilerAnalyzer(provider, extensions=[".TS"])

        issues = await analyzer.analyze(FileInfo("app.ts", "let a;\nlet b: number = 'x';\n"))

        assert [(i.line, i.column) for i in issues] == [(2, 2), (1, 1)]
        assert issues[0].message == "Type error. Details."
        assert issues[1].severity is Severity.INFO

    async def test_fixes_not_supported(self) -> None:
        """Test fix mode is refused."""
        analyzer = CompilerAnalyzer()
        assert analyzer.supports_fixes is False
        with pytest.raises(FixNotSupportedError):
            await analyzer.apply_fixes("bad.py")
