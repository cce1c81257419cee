"""Tests for the logging configuration module."""

import json
import logging
from pathlib import Path

import structlog

from quality_hooks.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    add_context_processor,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_context,
    unbind_context,
)


class TestAddContextProcessor:
    """Tests for the add_context_processor function."""

    def test_adds_service_and_version(self) -> None:
        """Test that service name and version are added."""
        event = {"event": "test"}
        event_dict = add_context_processor(None, "info", event)  # type: ignore[arg-type]
        assert event_dict["service"] == "quality-hooks"
        assert "version" in event_dict
        assert event_dict["event"] == "test"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_with_console_format(self) -> None:
        """Test configuration with console format."""
        configure_logging(level=LogLevel.DEBUG, log_format=LogFormat.CONSOLE)
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_with_string_values(self) -> None:
        """Test configuration with string values."""
        configure_logging(level="warning", log_format="JSON")
        assert logging.getLogger().level == logging.WARNING

    def test_logs_go_to_stderr(self, capsys) -> None:
        """Test that stdout stays clean for the hook's JSON result."""
        configure_logging(level=LogLevel.INFO, log_format=LogFormat.JSON)
        structlog.get_logger("stderr-test").info("stderr_check", answer=42)

        captured = capsys.readouterr()
        assert captured.out == ""
        line = captured.err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "stderr_check"
        assert entry["answer"] == 42
        assert entry["service"] == "quality-hooks"

    def test_configure_with_file_logging(self, tmp_path: Path) -> None:
        """Test configuration with file logging."""
        log_file = tmp_path / "logs" / "hooks.log"
        configure_logging(
            level=LogLevel.INFO,
            log_format=LogFormat.JSON,
            file_path=log_file,
            file_enabled=True,
        )
        structlog.get_logger("file-test").info("written_to_file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "written_to_file" in log_file.read_text()

    def test_file_is_json_with_console_stderr(self, tmp_path: Path, capsys) -> None:
        """Test the log file is JSON even when stderr renders for humans."""
        log_file = tmp_path / "hooks.log"
        configure_logging(log_format=LogFormat.CONSOLE, file_path=log_file, file_enabled=True)
        structlog.get_logger("mixed-test").info("mixed_output", count=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "mixed_output"
        assert entry["count"] == 3
        assert "mixed_output" in capsys.readouterr().err

    def test_unwritable_log_file(self, tmp_path: Path, capsys) -> None:
        """Test a bad log path falls back to stderr only."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        configure_logging(file_path=blocker / "hooks.log", file_enabled=True)

        assert len(logging.getLogger().handlers) == 1
        assert "log_file_unavailable" in capsys.readouterr().err

    def test_file_path_ignored_when_disabled(self, tmp_path: Path) -> None:
        log_file = tmp_path / "hooks.log"
        configure_logging(file_path=log_file, file_enabled=False)
        assert not log_file.exists()


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_returns_bound_logger(self) -> None:
        """Test that get_logger returns a structlog logger."""
        configure_logging()  # Ensure logging is configured
        log = get_logger("test")
        assert log is not None


class TestContextFunctions:
    """Tests for context binding functions."""

    def test_bind_and_clear_context(self) -> None:
        """Test binding and clearing context."""
        bind_context(file="src/app.ts", analyzer="biome")
        assert structlog.contextvars.get_contextvars()["file"] == "src/app.ts"
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_unbind_context(self) -> None:
        """Test unbinding specific context keys."""
        bind_context(key1="value1", key2="value2")
        unbind_context("key1")
        assert structlog.contextvars.get_contextvars() == {"key2": "value2"}
        clear_context()

    def test_log_context_scopes_binding(self) -> None:
        """Test log_context removes its keys on exit."""
        bind_context(request="r1")
        with log_context(file="src/app.ts"):
            assert structlog.contextvars.get_contextvars() == {
                "request": "r1",
                "file": "src/app.ts",
            }
        assert structlog.contextvars.get_contextvars() == {"request": "r1"}
        clear_context()


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_levels(self) -> None:
        """Test that all expected log levels exist."""
        assert LogLevel.DEBUG.value == "DEBUG"
        assert LogLevel.INFO.value == "INFO"
        assert LogLevel.WARNING.value == "WARNING"
        assert LogLevel.ERROR.value == "ERROR"
        assert LogLevel.CRITICAL.value == "CRITICAL"


class TestLogFormat:
    """Tests for LogFormat enum."""

    def test_log_formats(self) -> None:
        """Test that all expected formats exist."""
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"


class TestLogEventNames:
    """Tests for the event name constants."""

    def test_names_are_unique(self) -> None:
        names = [v for k, v in vars(LogEventNames).items() if k.isupper()]
        assert len(names) == len(set(names))
