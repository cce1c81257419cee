"""Abstract interface for analyzer integrations."""

from typing import Protocol

from ..models.file import FileInfo
from ..models.issue import Issue


class Analyzer(Protocol):
    """Abstract interface for analyzer integrations.

    This protocol defines the contract that all analyzers (Biome, host
    compiler diagnostics, etc.) must implement. The orchestrator only ever
    talks to analyzers through this interface.
    """

    @property
    def name(self) -> str:
        """Stable analyzer name used in reports and cache results."""
        ...

    @property
    def supports_fixes(self) -> bool:
        """Whether the analyzer has a write/apply mode."""
        ...

    async def analyze(self, file: FileInfo) -> list[Issue]:
        """
        Analyze one file.

        Args:
            file: File to analyze. ``file.content`` takes precedence over
                the file on disk when the analyzer can consume it.

        Returns:
            Issues found, in any order

        Raises:
            AnalyzerError: If the analyzer could not produce a result
            ToolNotFoundError: If the analyzer executable is missing
        """
        ...

    async def apply_fixes(
        self,
        path: str,
        *,
        unsafe: bool = False,
        group: str | None = None,
    ) -> list[Issue]:
        """
        Run the analyzer's fix mode against the file on disk.

        The file is rewritten in place by the analyzer. Callers snapshot the
        content beforehand and restore it if this raises.

        Args:
            path: Path of the file to fix
            unsafe: Also apply fixes the analyzer marks as unsafe
            group: Fix group label being applied (for logging)

        Returns:
            Issues the analyzer still reports after fixing

        Raises:
            FixNotSupportedError: If the analyzer has no fix mode
            AnalyzerError: If the fix run failed
        """
        ...
