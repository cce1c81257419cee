"""Biome version detection.

The installed Biome major version decides which fix flags are valid, so it is
resolved before the first invocation. Three sources are tried in order:

1. The project manifest (``package.json``), ``dependencies`` then
   ``devDependencies``.
2. The tool's own ``--version`` output.
3. A default of the newest supported major version.

Every stage tolerates missing files, unparsable strings and subprocess
failures; resolution itself never fails.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import structlog

from ..utils.async_helpers import create_retry
from ..utils.logging import LogEventNames
from ..utils.safe_subprocess import CommandError, CommandTimeoutError, SafeToolRunner
from .biome_adapters import BiomeMajor

log = structlog.get_logger()

DEFAULT_PACKAGE = "@biomejs/biome"
DEFAULT_COMMAND = ("npx", DEFAULT_PACKAGE)
FALLBACK_COMMANDS: tuple[tuple[str, ...], ...] = (("biome",),)

_VERSION_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")
_RANGE_PREFIX_RE = re.compile(r"^[\s\^~>=<]+")


@dataclass(frozen=True)
class VersionInfo:
    """A parsed semantic version."""

    version: str
    major: int
    minor: int = 0
    patch: int = 0

    @property
    def tag(self) -> BiomeMajor:
        return BiomeMajor.V2 if self.major >= 2 else BiomeMajor.V1


class VersionSource(StrEnum):
    """Where a resolved version came from."""

    MANIFEST = "manifest"
    CLI = "cli"
    CONFIG = "config"
    DEFAULT = "default"


DEFAULT_VERSION = VersionInfo(version="2.0.0", major=2)


@dataclass(frozen=True)
class ResolvedVersion:
    info: VersionInfo
    source: VersionSource


def parse_version(text: str | None) -> VersionInfo | None:
    """Parse a version out of a manifest range or CLI output.

    Accepts range prefixes (``^1.8.3``, ``>=2.0``), a leading ``v`` and
    surrounding text (``"Version: 2.1.0"``). Missing minor and patch parts
    default to 0.

    Returns:
        The parsed version, or None if no version number is present.
    """
    if not text:
        return None
    cleaned = _RANGE_PREFIX_RE.sub("", text.strip())
    match = _VERSION_RE.search(cleaned)
    if match is None:
        return None
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return VersionInfo(version=match.group(0), major=major, minor=minor, patch=patch)


class VersionResolver:
    """Resolve and cache the Biome version for one project.

    Example:
        resolver = VersionResolver(Path("."))
        resolved = await resolver.resolve()
        adapter = adapter_for_version(resolved.info)
    """

    def __init__(
        self,
        project_root: Path,
        *,
        package_name: str = DEFAULT_PACKAGE,
        command: Sequence[str] = DEFAULT_COMMAND,
        fallback_commands: Sequence[Sequence[str]] = FALLBACK_COMMANDS,
        override: str = "auto",
        detect_timeout: float = 5.0,
        detect_attempts: int = 2,
        runner_factory: Callable[[Sequence[str]], SafeToolRunner] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            project_root: Directory holding the project manifest.
            package_name: Manifest dependency key for the tool.
            command: Command prefix used for the ``--version`` lookup.
            fallback_commands: Prefixes tried when ``command`` fails.
            override: ``"1.x"`` or ``"2.x"`` skips detection; ``"auto"`` detects.
            detect_timeout: Timeout for each ``--version`` call in seconds.
            detect_attempts: Attempts per command when the lookup times out.
            runner_factory: Builds a runner from a command prefix.
        """
        self._project_root = Path(project_root)
        self._package_name = package_name
        self._commands = [list(command), *(list(c) for c in fallback_commands)]
        self._override = override
        self._detect_timeout = detect_timeout
        self._detect_attempts = max(1, detect_attempts)
        self._runner_factory = runner_factory or (
            lambda cmd: SafeToolRunner(cmd, default_timeout=detect_timeout, cwd=self._project_root)
        )
        self._resolved: ResolvedVersion | None = None
        self._lock = asyncio.Lock()

    @property
    def resolved(self) -> ResolvedVersion | None:
        """The cached resolution, if any."""
        return self._resolved

    def clear(self) -> None:
        """Forget the cached resolution."""
        self._resolved = None

    async def resolve(self) -> ResolvedVersion:
        """Resolve the tool version, probing only on the first call."""
        if self._resolved is not None:
            return self._resolved

        async with self._lock:
            if self._resolved is None:
                self._resolved = await self._detect()
                log.info(
                    LogEventNames.VERSION_RESOLVED,
                    version=self._resolved.info.version,
                    source=str(self._resolved.source),
                )
        return self._resolved

    async def _detect(self) -> ResolvedVersion:
        if self._override != "auto":
            try:
                tag = BiomeMajor(self._override)
            except ValueError:
                log.warning("invalid_version_override", override=self._override)
            else:
                major = 1 if tag is BiomeMajor.V1 else 2
                info = VersionInfo(version=f"{major}.0.0", major=major)
                return ResolvedVersion(info, VersionSource.CONFIG)

        info = await asyncio.to_thread(self._from_manifest)
        if info is not None:
            return ResolvedVersion(info, VersionSource.MANIFEST)

        info = await self._from_cli()
        if info is not None:
            return ResolvedVersion(info, VersionSource.CLI)

        return ResolvedVersion(DEFAULT_VERSION, VersionSource.DEFAULT)

    def _from_manifest(self) -> VersionInfo | None:
        manifest = self._project_root / "package.json"
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            log.debug(LogEventNames.VERSION_DETECTION_FAILED, stage="manifest", error=str(e))
            return None

        if not isinstance(data, dict):
            return None
        for section in ("dependencies", "devDependencies"):
            deps = data.get(section)
            if not isinstance(deps, dict):
                continue
            spec = deps.get(self._package_name)
            if isinstance(spec, str):
                info = parse_version(spec)
                if info is not None:
                    return info
                log.debug(
                    LogEventNames.VERSION_DETECTION_FAILED,
                    stage="manifest",
                    error=f"unparsable version {spec!r}",
                )
        return None

    async def _from_cli(self) -> VersionInfo | None:
        retrying = create_retry(
            max_attempts=self._detect_attempts,
            min_wait=0.1,
            max_wait=1.0,
            retry_on=(CommandTimeoutError,),
        )
        for command in self._commands:
            runner = self._runner_factory(command)
            try:
                result = await retrying(runner.run)(["--version"], timeout=self._detect_timeout)
            except CommandError as e:
                log.debug(
                    LogEventNames.VERSION_DETECTION_FAILED,
                    stage="cli",
                    command=command,
                    error=str(e),
                )
                continue

            if not result.success:
                log.debug(
                    LogEventNames.VERSION_DETECTION_FAILED,
                    stage="cli",
                    command=command,
                    return_code=result.return_code,
                )
                continue

            info = parse_version(result.stdout)
            if info is not None:
                return info
        return None
