"""Safe subprocess wrapper for external analyzer CLIs.

This module provides a secure wrapper around command-line analyzers that:
- Never uses shell=True
- Resolves the executable lazily so a missing tool fails the call, not startup
- Enforces timeouts on all operations
- Runs the blocking subprocess call in a worker thread
"""

from __future__ import annotations

import asyncio
import json
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from quality_hooks.utils.async_helpers import QualityHooksError

log = structlog.get_logger()


class CommandError(QualityHooksError):
    """Base exception for subprocess errors."""


class ToolNotFoundError(CommandError):
    """Raised when the tool executable cannot be found."""


class CommandTimeoutError(CommandError):
    """Raised when a command times out."""


@dataclass
class CommandResult:
    """Result of a tool command execution."""

    stdout: str
    stderr: str
    return_code: int
    command: list[str]

    @property
    def success(self) -> bool:
        """Return True if the command succeeded."""
        return self.return_code == 0

    def json(self) -> Any:
        """Parse stdout as JSON.

        Raises:
            ValueError: If stdout is not valid JSON.
        """
        return json.loads(self.stdout)


class SafeToolRunner:
    """Safe wrapper for running an external analyzer CLI.

    The runner is built from a command prefix such as ``["npx", "@biomejs/biome"]``
    or ``["biome"]``; arguments are appended per call.

    Example:
        runner = SafeToolRunner(["npx", "@biomejs/biome"])
        result = await runner.run(["check", "src/app.ts", "--reporter=json"])
        data = result.json()
    """

    # Default timeout for commands (seconds)
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        command: Sequence[str],
        default_timeout: float = DEFAULT_TIMEOUT,
        cwd: Path | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            command: Command prefix; the first element is the executable.
            default_timeout: Default timeout for commands in seconds.
            cwd: Working directory for the subprocess.

        Raises:
            ValueError: If the command prefix is empty.
        """
        if not command:
            raise ValueError("Command prefix must not be empty")

        self._command = list(command)
        self._default_timeout = default_timeout
        self._cwd = cwd
        self._resolved: str | None = None

    @property
    def command(self) -> list[str]:
        """Return the command prefix."""
        return list(self._command)

    def _find_executable(self) -> str:
        """Resolve the executable in PATH.

        Raises:
            ToolNotFoundError: If the executable is not installed.
        """
        if self._resolved is None:
            found = shutil.which(self._command[0])
            if not found:
                raise ToolNotFoundError(f"{self._command[0]} not found in PATH")
            self._resolved = found
        return self._resolved

    async def run(
        self,
        args: Sequence[str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run the tool with the given arguments.

        A non-zero exit status is returned to the caller, not raised: analyzers
        use non-zero exits to report findings.

        Args:
            args: Arguments appended to the command prefix.
            timeout: Timeout in seconds (uses default if None).

        Returns:
            CommandResult with stdout, stderr, and return code.

        Raises:
            ToolNotFoundError: If the executable is missing.
            CommandTimeoutError: If the command times out.
            CommandError: If the process cannot be spawned.
        """
        cmd = [self._find_executable(), *self._command[1:], *args]
        effective_timeout = timeout or self._default_timeout

        log.debug("executing_tool_command", command=cmd, timeout=effective_timeout)

        def run_sync() -> subprocess.CompletedProcess[str]:
            return subprocess.run(  # noqa: S603
                cmd,
                capture_output=True,
                text=True,
                timeout=effective_timeout,
                cwd=self._cwd,
                shell=False,
            )

        try:
            proc = await asyncio.wait_for(
                asyncio.to_thread(run_sync),
                timeout=effective_timeout + 5,  # Extra buffer for thread overhead
            )
        except subprocess.TimeoutExpired as e:
            msg = f"Command timed out after {effective_timeout}s: {cmd}"
            log.error("command_timeout", command=cmd, timeout=effective_timeout)
            raise CommandTimeoutError(msg) from e
        except TimeoutError as e:
            msg = f"Command timed out after {effective_timeout}s: {cmd}"
            log.error("command_timeout", command=cmd, timeout=effective_timeout)
            raise CommandTimeoutError(msg) from e
        except OSError as e:
            log.error("command_spawn_failed", command=cmd, error=str(e))
            raise CommandError(f"Failed to run {cmd[0]}: {e}") from e

        return CommandResult(
            stdout=proc.stdout,
            stderr=proc.stderr,
            return_code=proc.returncode,
            command=cmd,
        )
