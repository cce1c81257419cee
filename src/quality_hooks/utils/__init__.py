"""Utility functions and helpers.

This module provides various utilities for quality-hooks:
- safe_subprocess: Safe subprocess execution for analyzer CLIs
- async_helpers: Error hierarchy, async retry and timeouts
- logging: Structured logging to stderr
- patterns: Include/exclude glob matching
"""

from quality_hooks.utils.async_helpers import (
    AnalyzerError,
    AnalyzerExecutionError,
    AnalyzerTimeoutError,
    FixNotSupportedError,
    QualityHooksError,
    create_retry,
    with_timeout,
)
from quality_hooks.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_context,
    unbind_context,
)
from quality_hooks.utils.patterns import PatternMatcher
from quality_hooks.utils.safe_subprocess import (
    CommandError,
    CommandResult,
    CommandTimeoutError,
    SafeToolRunner,
    ToolNotFoundError,
)

__all__ = [
    # Errors
    "AnalyzerError",
    "AnalyzerExecutionError",
    "AnalyzerTimeoutError",
    "CommandError",
    "CommandTimeoutError",
    "FixNotSupportedError",
    "QualityHooksError",
    "ToolNotFoundError",
    # Async
    "create_retry",
    "with_timeout",
    # Logging
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "log_context",
    "unbind_context",
    # Subprocess
    "CommandResult",
    "SafeToolRunner",
    # Patterns
    "PatternMatcher",
]
