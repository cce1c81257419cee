"""Tests for safe subprocess wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from quality_hooks.utils.safe_subprocess import (
    CommandError,
    CommandResult,
    CommandTimeoutError,
    SafeToolRunner,
    ToolNotFoundError,
)


def completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.stdout = stdout
    proc.stderr = stderr
    proc.returncode = returncode
    return proc


class TestCommandResult:
    """Test CommandResult dataclass."""

    def test_success_true(self) -> None:
        """Test success property when return code is 0."""
        result = CommandResult(stdout="output", stderr="", return_code=0, command=["biome"])
        assert result.success is True

    def test_success_false(self) -> None:
        """Test success property when return code is non-zero."""
        result = CommandResult(stdout="", stderr="error", return_code=1, command=["biome"])
        assert result.success is False

    def test_json_parsing(self) -> None:
        """Test JSON parsing of stdout."""
        result = CommandResult(
            stdout='{"diagnostics": []}',
            stderr="",
            return_code=1,
            command=["biome", "check"],
        )
        assert result.json() == {"diagnostics": []}

    def test_json_parsing_invalid(self) -> None:
        """Test JSON parsing with invalid JSON."""
        result = CommandResult(stdout="not json", stderr="", return_code=0, command=["biome"])
        with pytest.raises(ValueError):
            result.json()


class TestSafeToolRunnerInit:
    """Test SafeToolRunner initialization."""

    def test_empty_command_rejected(self) -> None:
        """Test that an empty command prefix is rejected."""
        with pytest.raises(ValueError, match="must not be empty"):
            SafeToolRunner([])

    def test_command_is_copied(self) -> None:
        """Test the command prefix cannot be mutated from outside."""
        command = ["npx", "@biomejs/biome"]
        runner = SafeToolRunner(command)
        command.append("--evil")
        assert runner.command == ["npx", "@biomejs/biome"]

    async def test_missing_executable(self) -> None:
        """Test that a missing tool fails the call, not construction."""
        with patch("shutil.which", return_value=None):
            runner = SafeToolRunner(["biome"])
            with pytest.raises(ToolNotFoundError, match="biome not found"):
                await runner.run(["--version"])


class TestSafeToolRunnerRun:
    """Test command execution."""

    @pytest.fixture
    def runner(self, tmp_path: Path) -> SafeToolRunner:
        """Create a runner with a mocked executable path."""
        return SafeToolRunner(["npx", "@biomejs/biome"], default_timeout=10.0, cwd=tmp_path)

    async def test_builds_command(self, runner: SafeToolRunner) -> None:
        """Test the resolved executable, prefix and arguments are combined."""
        with (
            patch("shutil.which", return_value="/usr/bin/npx"),
            patch("asyncio.to_thread", new_callable=AsyncMock) as mock_thread,
        ):
            mock_thread.return_value = completed(stdout="Version: 2.1.0")

            result = await runner.run(["--version"])

        assert result.command == ["/usr/bin/npx", "@biomejs/biome", "--version"]
        assert result.stdout == "Version: 2.1.0"
        assert result.success is True
        mock_thread.assert_called_once()

    async def test_nonzero_exit_is_returned(self, runner: SafeToolRunner) -> None:
        """Test that a non-zero exit is returned, not raised."""
        with (
            patch("shutil.which", return_value="/usr/bin/npx"),
            patch("asyncio.to_thread", new_callable=AsyncMock) as mock_thread,
        ):
            mock_thread.return_value = completed(stdout='{"diagnostics": []}', returncode=1)

            result = await runner.run(["check", "a.ts"])

        assert result.return_code == 1
        assert result.json() == {"diagnostics": []}

    async def test_timeout(self, runner: SafeToolRunner) -> None:
        """Test that subprocess timeouts raise CommandTimeoutError."""
        with (
            patch("shutil.which", return_value="/usr/bin/npx"),
            patch("asyncio.to_thread", new_callable=AsyncMock) as mock_thread,
        ):
            mock_thread.side_effect = subprocess.TimeoutExpired(cmd=["npx"], timeout=1)

            with pytest.raises(CommandTimeoutError, match="timed out after 1"):
                await runner.run(["check", "a.ts"], timeout=1)

    async def test_spawn_failure(self, runner: SafeToolRunner) -> None:
        """Test that OS errors while spawning raise CommandError."""
        with (
            patch("shutil.which", return_value="/usr/bin/npx"),
            patch("asyncio.to_thread", new_callable=AsyncMock) as mock_thread,
        ):
            mock_thread.side_effect = PermissionError("denied")

            with pytest.raises(CommandError, match="Failed to run"):
                await runner.run(["check", "a.ts"])

    async def test_executable_resolved_once(self, runner: SafeToolRunner) -> None:
        """Test the PATH lookup is cached."""
        with (
            patch("shutil.which", return_value="/usr/bin/npx") as mock_which,
            patch("asyncio.to_thread", new_callable=AsyncMock) as mock_thread,
        ):
            mock_thread.return_value = completed()

            await runner.run(["--version"])
            await runner.run(["--version"])

        mock_which.assert_called_once()

    async def test_real_process(self, tmp_path: Path) -> None:
        """Test a real subprocess round trip without a shell."""
        runner = SafeToolRunner(["echo"], cwd=tmp_path)
        result = await runner.run(["hello; rm -rf /"])
        assert result.success is True
        assert result.stdout.strip() == "hello; rm -rf /"
