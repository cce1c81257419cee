"""Version-specific Biome invocation and output parsing.

Biome 1.x and 2.x share a JSON reporter format but disagree on the fix
flags: 1.x uses ``--apply`` / ``--apply-unsafe`` while 2.x uses
``--write`` / ``--write --unsafe`` and additionally accepts ``--no-colors``.
Each major version gets its own adapter; the factory picks one from a
version tag or a detected version.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from ..models.issue import Issue, Severity
from ..utils.logging import LogEventNames
from ..utils.safe_subprocess import CommandResult

if TYPE_CHECKING:
    from .version_resolver import VersionInfo

log = structlog.get_logger()

ANALYZER_NAME = "biome"


class BiomeMajor(StrEnum):
    """Supported Biome major version tags."""

    V1 = "1.x"
    V2 = "2.x"


@dataclass(frozen=True)
class InvocationOptions:
    """Options for building a Biome command line."""

    auto_fix: bool = False
    config_path: str | None = None
    unsafe_fixes: bool = False


class BiomeAdapter(Protocol):
    """Command construction and output parsing for one Biome major version."""

    @property
    def version(self) -> BiomeMajor: ...

    def build_invocation(self, file: str, options: InvocationOptions | None = None) -> list[str]:
        """Return the arguments to append to the Biome command prefix."""
        ...

    def parse_output(self, raw: str, file_path: str) -> list[Issue]:
        """Parse JSON reporter output. Never raises."""
        ...

    def fix_flag(self, unsafe: bool = False) -> str:
        """Return the fix flag(s) for this version as a single string."""
        ...


def _message_text(value: Any) -> str:
    # Biome renders markup messages as a list of {"content": ...} parts
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = [
            str(part.get("content", "")) if isinstance(part, dict) else str(part)
            for part in value
        ]
        return "".join(parts).strip()
    return str(value) if value else ""


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_diagnostic(diagnostic: Any, file_path: str) -> Issue | None:
    if not isinstance(diagnostic, dict):
        return None

    location = _mapping(diagnostic.get("location"))
    span = _mapping(location.get("span"))
    start = _mapping(span.get("start"))
    end = _mapping(span.get("end"))

    message = _message_text(diagnostic.get("description")) or _message_text(
        diagnostic.get("message")
    )
    tags = diagnostic.get("tags")
    fixable = isinstance(tags, list) and "fixable" in tags
    category = diagnostic.get("category")

    return Issue(
        analyzer=ANALYZER_NAME,
        file=file_path,
        line=start.get("line", 1),
        column=start.get("column", 1),
        severity=Severity.parse(diagnostic.get("severity")),
        message=message or "Unknown issue",
        fixed=fixable and diagnostic.get("fixed") is True,
        fixable=fixable,
        rule=category if isinstance(category, str) and category else None,
        end_line=end.get("line") if isinstance(end.get("line"), int) else None,
    )


def parse_reporter_output(raw: str, file_path: str) -> list[Issue]:
    """Parse Biome's ``--reporter=json`` output into issues.

    Malformed JSON or an unexpected document shape yields an empty list;
    individual malformed diagnostics are skipped. Issues are sorted by
    position.
    """
    if not raw or not raw.strip():
        return []

    try:
        document = json.loads(raw)
    except ValueError as e:
        log.warning(LogEventNames.OUTPUT_PARSE_FAILED, analyzer=ANALYZER_NAME, error=str(e))
        return []

    diagnostics = document.get("diagnostics") if isinstance(document, dict) else None
    if not isinstance(diagnostics, list):
        log.warning(
            LogEventNames.OUTPUT_PARSE_FAILED,
            analyzer=ANALYZER_NAME,
            error="missing diagnostics array",
        )
        return []

    issues: list[Issue] = []
    for diagnostic in diagnostics:
        try:
            issue = _parse_diagnostic(diagnostic, file_path)
        except (TypeError, ValueError, AttributeError) as e:
            log.debug("biome_diagnostic_skipped", error=str(e))
            continue
        if issue is not None:
            issues.append(issue)

    return sorted(issues, key=lambda issue: issue.position_key)


def has_report(result: CommandResult) -> bool:
    """True if the command printed a JSON document carrying a ``diagnostics`` array.

    Biome exits non-zero whenever it reports errors, so the exit status alone
    does not tell a failed run from a report.
    """
    try:
        document = result.json()
    except ValueError:
        return False
    return isinstance(document, dict) and isinstance(document.get("diagnostics"), list)


class BiomeV1Adapter:
    """Adapter for Biome 1.x (``--apply`` / ``--apply-unsafe``)."""

    version = BiomeMajor.V1

    def build_invocation(self, file: str, options: InvocationOptions | None = None) -> list[str]:
        options = options or InvocationOptions()
        args = ["check", file]
        if options.auto_fix:
            args.append(self.fix_flag(options.unsafe_fixes))
        args.append("--reporter=json")
        if options.config_path:
            args.extend(["--config-path", options.config_path])
        return args

    def fix_flag(self, unsafe: bool = False) -> str:
        return "--apply-unsafe" if unsafe else "--apply"

    def parse_output(self, raw: str, file_path: str) -> list[Issue]:
        return parse_reporter_output(raw, file_path)


class BiomeV2Adapter:
    """Adapter for Biome 2.x (``--write [--unsafe]``, ``--no-colors``)."""

    version = BiomeMajor.V2

    def build_invocation(self, file: str, options: InvocationOptions | None = None) -> list[str]:
        options = options or InvocationOptions()
        args = ["check", file]
        if options.auto_fix:
            args.append("--write")
            if options.unsafe_fixes:
                args.append("--unsafe")
        args.append("--reporter=json")
        args.append("--no-colors")
        if options.config_path:
            args.extend(["--config-path", options.config_path])
        return args

    def fix_flag(self, unsafe: bool = False) -> str:
        return "--write --unsafe" if unsafe else "--write"

    def parse_output(self, raw: str, file_path: str) -> list[Issue]:
        return parse_reporter_output(raw, file_path)


_ADAPTERS: dict[BiomeMajor, type[BiomeV1Adapter] | type[BiomeV2Adapter]] = {
    BiomeMajor.V1: BiomeV1Adapter,
    BiomeMajor.V2: BiomeV2Adapter,
}


def create_adapter(version: BiomeMajor | str) -> BiomeAdapter:
    """Create the adapter for a version tag.

    Raises:
        ValueError: If the tag is not a supported Biome major version.
    """
    try:
        tag = BiomeMajor(version)
    except ValueError:
        raise ValueError(
            f"Unsupported Biome version: {version!r}. "
            f"Supported versions: {', '.join(m.value for m in BiomeMajor)}"
        ) from None
    return _ADAPTERS[tag]()


def adapter_for_version(info: VersionInfo) -> BiomeAdapter:
    """Select the adapter for a detected version; 2.x and later use the v2 adapter."""
    return create_adapter(BiomeMajor.V2 if info.major >= 2 else BiomeMajor.V1)
