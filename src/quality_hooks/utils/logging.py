"""Structured logging for quality-hooks.

structlog is routed through the standard library so that every handler can
pick its own renderer:

- stderr gets JSON or console output, depending on configuration
- the optional log file always gets JSON, one event per line

Nothing is ever written to stdout; hook mode owns stdout for its JSON result.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path
from typing import Any, cast

import structlog
from structlog.typing import Processor, WrappedLogger

from quality_hooks._version import __version__

SERVICE_NAME = "quality-hooks"


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Stamp every event with the service name and package version."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


# Run for structlog events and for plain stdlib records alike.
_PRE_CHAIN: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    add_context_processor,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def _renderer(log_format: LogFormat, stream: Any = None) -> list[Processor]:
    if log_format == LogFormat.JSON:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    colors = bool(stream is not None and stream.isatty())
    return [
        structlog.dev.ConsoleRenderer(
            colors=colors, exception_formatter=structlog.dev.plain_traceback
        )
    ]


def _handler(
    handler: logging.Handler, log_format: LogFormat, stream: Any = None
) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_PRE_CHAIN,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(log_format, stream),
            ],
        )
    )
    return handler


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.CONSOLE,
    file_path: Path | str | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structlog and the root logger.

    Safe to call repeatedly; each call replaces the previous handlers.

    Args:
        level: Minimum level for both stderr and the log file
        log_format: Renderer for stderr (the file is always JSON)
        file_path: Log file location, parents are created as needed
        file_enabled: Whether ``file_path`` is used at all
    """
    level = LogLevel(level.upper()) if isinstance(level, str) else level
    log_format = LogFormat(log_format.lower()) if isinstance(log_format, str) else log_format
    numeric_level = logging.getLevelName(level.value)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_PRE_CHAIN,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers = [_handler(logging.StreamHandler(sys.stderr), log_format, sys.stderr)]
    file_error: OSError | None = None
    if file_enabled and file_path:
        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(_handler(logging.FileHandler(path, encoding="utf-8"), LogFormat.JSON))
        except OSError as e:
            file_error = e

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    if file_error is not None:
        structlog.get_logger(__name__).warning(
            "log_file_unavailable", path=str(file_path), error=str(file_error)
        )


def get_logger(name: str | None = None) -> WrappedLogger:
    """Return a structlog logger, optionally named."""
    return cast(WrappedLogger, structlog.get_logger(name))


def bind_context(**kwargs: Any) -> None:
    """Attach ``kwargs`` to every following event in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind ``kwargs`` for the duration of a ``with`` block.

    Example:
        with log_context(file="src/app.ts"):
            log.info("validation_started")  # includes file=src/app.ts
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


class LogEventNames:
    """Event names shared by more than one module."""

    # Validation
    VALIDATION_STARTED = "validation_started"
    VALIDATION_COMPLETE = "validation_complete"
    ANALYZER_FAILED = "analyzer_failed"
    ANALYZER_TIMEOUT = "analyzer_timeout"
    OUTPUT_PARSE_FAILED = "analyzer_output_parse_failed"

    # Cache
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    CACHE_EXPIRED = "cache_expired"
    CACHE_EVICTED = "cache_evicted"

    # Version detection
    VERSION_RESOLVED = "tool_version_resolved"
    VERSION_DETECTION_FAILED = "tool_version_detection_failed"

    # Fix application
    FIX_CONFLICT = "fix_conflict_detected"
    FIX_GROUP_APPLIED = "fix_group_applied"
    FIX_GROUP_FAILED = "fix_group_failed"
    FIX_ROLLED_BACK = "fix_rolled_back"

    # Verification
    VERIFICATION_COMPLETE = "fix_verification_complete"
    VERIFICATION_REGRESSED = "fix_verification_regressed"
    VERIFICATION_INCONCLUSIVE = "fix_verification_inconclusive"
    INTEGRITY_FAILED = "fix_integrity_failed"
