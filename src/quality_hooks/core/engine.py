"""Public entry point: validate a file, fix what can be fixed, verify the fix.

Control flow for one call:

    validate -> [autofix enabled and fixable issues] apply fixes -> verify

The engine is the only caller-facing component; it never raises and always
returns a :class:`FinalResult`.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import structlog

from quality_hooks.analyzers.biome import BiomeAnalyzer
from quality_hooks.analyzers.compiler import CompilerAnalyzer
from quality_hooks.analyzers.version_resolver import ResolvedVersion, VersionResolver
from quality_hooks.config.schema import HookConfig
from quality_hooks.core.orchestrator import ValidationCache, ValidationOrchestrator
from quality_hooks.core.sequencer import FixSequencer, build_candidates
from quality_hooks.core.verifier import FixVerifier
from quality_hooks.interfaces.analyzer import Analyzer
from quality_hooks.models.file import FileInfo, read_text, write_text
from quality_hooks.models.fix import FixApplicationResult
from quality_hooks.models.issue import Issue
from quality_hooks.models.report import AggregatedReport
from quality_hooks.models.result import FinalResult
from quality_hooks.models.verification import VerificationStatus
from quality_hooks.utils.logging import LogEventNames, log_context

log = structlog.get_logger()


class QualityHookEngine:
    """Validate-and-fix pipeline for single files.

    Example:
        engine = create_engine(load_config(find_config(root)), root)
        result = await engine.validate_and_fix(FileInfo("src/app.ts"))
        print(result.to_dict())
    """

    def __init__(
        self,
        orchestrator: ValidationOrchestrator,
        sequencer: FixSequencer,
        verifier: FixVerifier,
        *,
        resolver: VersionResolver | None = None,
        rollback_on_regression: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            orchestrator: Runs analyzers and caches reports
            sequencer: Applies fixable issues
            verifier: Re-validates fixed content
            resolver: Tool version resolver, used for reporting only
            rollback_on_regression: Restore the original content when a fix
                introduces new issues
        """
        self._orchestrator = orchestrator
        self._sequencer = sequencer
        self._verifier = verifier
        self._resolver = resolver
        self._rollback_on_regression = rollback_on_regression

    @property
    def orchestrator(self) -> ValidationOrchestrator:
        return self._orchestrator

    async def tool_version(self) -> ResolvedVersion | None:
        """Resolve the Biome version, if a resolver is configured."""
        if self._resolver is None:
            return None
        return await self._resolver.resolve()

    async def validate_and_fix(self, file: FileInfo | str) -> FinalResult:
        """Validate ``file`` and, when enabled, fix and verify it.

        Never raises: unexpected errors are logged and recorded in
        ``FinalResult.errors``.
        """
        if isinstance(file, str):
            file = FileInfo(file)

        with log_context(file=file.path):
            return await self._run(file)

    async def _run(self, file: FileInfo) -> FinalResult:
        try:
            report = await self._orchestrator.validate(file)
        except Exception as e:
            log.exception("validation_failed", error=str(e))
            return FinalResult(
                file=file.path,
                report=replace(AggregatedReport.empty(), success=False),
                errors=(f"validation failed: {e}",),
            )

        if not self._sequencer.enabled or not report.fixable_issues:
            return FinalResult(file=file.path, report=report)

        try:
            original = await asyncio.to_thread(read_text, file.path)
            fix = await self._sequencer.apply(report, file)
        except Exception as e:
            log.exception("fix_application_failed", error=str(e))
            return FinalResult(
                file=file.path, report=report, errors=(f"fix application failed: {e}",)
            )

        if not any(outcome.success for outcome in fix.outcomes):
            return FinalResult(file=file.path, report=report, fix=fix)

        verification = await self._verifier.verify(
            file.path,
            report,
            fix.content,
            intended=self._intended(report, fix),
            original_content=original,
        )

        rolled_back = False
        errors: tuple[str, ...] = ()
        if verification.status is VerificationStatus.REGRESSED and self._rollback_on_regression:
            try:
                await asyncio.to_thread(write_text, file.path, original)
            except OSError as e:
                log.exception("fix_rollback_failed", error=str(e))
                errors = (f"rollback after regression failed: {e}",)
            else:
                rolled_back = True
                log.warning(
                    LogEventNames.FIX_ROLLED_BACK,
                    reason="regression",
                    regressed=verification.regressed_count,
                )

        return FinalResult(
            file=file.path,
            report=report,
            fix=fix,
            verification=verification,
            rolled_back=rolled_back,
            errors=errors,
        )

    @staticmethod
    def _intended(report: AggregatedReport, fix: FixApplicationResult) -> list[Issue]:
        applied = set(fix.applied_ids)
        return [c.issue for c in build_candidates(report.issues) if c.id in applied]


def create_engine(
    config: HookConfig,
    project_root: Path | None = None,
    *,
    cache: ValidationCache | None = None,
) -> QualityHookEngine:
    """Factory function to create an engine with all dependencies.

    Args:
        config: Application configuration
        project_root: Directory holding the project manifest; defaults to
            the current directory
        cache: Shared report cache; a new one is created if omitted

    Returns:
        Configured QualityHookEngine instance
    """
    root = project_root or Path.cwd()
    biome_config = config.validators.biome

    resolver = VersionResolver(
        root,
        package_name=biome_config.package_name,
        command=biome_config.command,
        override=biome_config.version,
    )

    analyzers: list[Analyzer] = []
    if biome_config.enabled:
        analyzers.append(
            BiomeAnalyzer(
                resolver,
                command=biome_config.command,
                config_path=biome_config.config_path,
                timeout=config.timeout,
                cwd=root,
            )
        )
    if config.validators.compiler.enabled:
        analyzers.append(CompilerAnalyzer(extensions=config.validators.compiler.extensions))

    orchestrator = ValidationOrchestrator(
        analyzers,
        timeout=config.timeout,
        cache=(
            cache
            if cache is not None
            else ValidationCache(config.cache.ttl_seconds, config.cache.max_entries)
        ),
        config_json=config.fingerprint_json(),
    )
    sequencer = FixSequencer(
        analyzers,
        enabled=config.autofix.enabled,
        unsafe_fixes=config.autofix.unsafe_fixes,
        max_attempts=config.autofix.max_attempts,
    )

    return QualityHookEngine(
        orchestrator,
        sequencer,
        FixVerifier(orchestrator),
        resolver=resolver if biome_config.enabled else None,
        rollback_on_regression=config.autofix.rollback_on_regression,
    )
