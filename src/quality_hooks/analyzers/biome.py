"""Biome analyzer.

Runs the Biome CLI as a subprocess through the version-specific adapter
selected by the :class:`VersionResolver`. Biome exits non-zero whenever it
reports findings, so a non-zero exit is only treated as a failure when stdout
does not carry a JSON report.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

from ..models.file import FileInfo
from ..models.issue import Issue
from ..utils.async_helpers import AnalyzerExecutionError, AnalyzerTimeoutError
from ..utils.safe_subprocess import (
    CommandError,
    CommandResult,
    CommandTimeoutError,
    SafeToolRunner,
    ToolNotFoundError,
)
from .biome_adapters import (
    ANALYZER_NAME,
    BiomeAdapter,
    InvocationOptions,
    adapter_for_version,
    has_report,
)
from .version_resolver import DEFAULT_COMMAND, VersionResolver

log = structlog.get_logger()

SUPPORTED_EXTENSIONS = frozenset(
    {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".mts", ".cts", ".json", ".jsonc"}
)


class BiomeAnalyzer:
    """Formatter and linter backed by the Biome CLI."""

    name = ANALYZER_NAME
    supports_fixes = True

    def __init__(
        self,
        resolver: VersionResolver,
        *,
        command: Sequence[str] = DEFAULT_COMMAND,
        config_path: str | Path | None = None,
        timeout: float = 30.0,
        cwd: Path | None = None,
        runner: SafeToolRunner | None = None,
        extensions: frozenset[str] = SUPPORTED_EXTENSIONS,
    ) -> None:
        self._resolver = resolver
        self._config_path = str(config_path) if config_path else None
        self._timeout = timeout
        self._runner = runner or SafeToolRunner(command, default_timeout=timeout, cwd=cwd)
        self._extensions = extensions
        self._adapter: BiomeAdapter | None = None

    async def adapter(self) -> BiomeAdapter:
        """Return the adapter for the installed Biome version."""
        if self._adapter is None:
            resolved = await self._resolver.resolve()
            self._adapter = adapter_for_version(resolved.info)
        return self._adapter

    def handles(self, path: str) -> bool:
        return Path(path).suffix.lower() in self._extensions

    async def analyze(self, file: FileInfo) -> list[Issue]:
        """Run ``biome check`` against the file on disk."""
        if not self.handles(file.path):
            log.debug("biome_skipped_unsupported_file", file=file.path)
            return []

        adapter = await self.adapter()
        args = adapter.build_invocation(
            file.path, InvocationOptions(auto_fix=False, config_path=self._config_path)
        )
        result = await self._run(args)
        return adapter.parse_output(result.stdout, file.path)

    async def apply_fixes(
        self,
        path: str,
        *,
        unsafe: bool = False,
        group: str | None = None,
    ) -> list[Issue]:
        """Run Biome in write/apply mode; return the issues it still reports."""
        adapter = await self.adapter()
        args = adapter.build_invocation(
            path,
            InvocationOptions(auto_fix=True, config_path=self._config_path, unsafe_fixes=unsafe),
        )
        log.debug(
            "biome_fix_started",
            file=path,
            group=group,
            flag=adapter.fix_flag(unsafe),
            biome_version=str(adapter.version),
        )
        result = await self._run(args)
        return [issue for issue in adapter.parse_output(result.stdout, path) if not issue.fixed]

    async def _run(self, args: list[str]) -> CommandResult:
        try:
            result = await self._runner.run(args, timeout=self._timeout)
        except ToolNotFoundError:
            raise
        except CommandTimeoutError as e:
            raise AnalyzerTimeoutError(str(e), analyzer=self.name) from e
        except CommandError as e:
            raise AnalyzerExecutionError(str(e), analyzer=self.name) from e

        if result.success or has_report(result):
            return result

        detail = result.stderr.strip() or result.stdout.strip()
        raise AnalyzerExecutionError(
            f"biome exited with status {result.return_code}: {detail}"
            if detail
            else f"biome exited with status {result.return_code}",
            analyzer=self.name,
        )
