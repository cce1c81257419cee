"""Concurrent validation across analyzers with result caching.

Each call to :meth:`ValidationOrchestrator.validate` runs every enabled
analyzer against one file concurrently, converts any analyzer failure into a
failed result and merges everything into one :class:`AggregatedReport`.
Reports are cached by a fingerprint of the file path, file content and the
active configuration.
"""

from __future__ import annotations

import asyncio
import hashlib
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

import structlog
from cachetools import FIFOCache

from quality_hooks.interfaces.analyzer import Analyzer
from quality_hooks.models.file import FileInfo
from quality_hooks.models.issue import AnalysisResult
from quality_hooks.models.report import AggregatedReport, CacheEntry
from quality_hooks.utils.async_helpers import TimeoutError, with_timeout
from quality_hooks.utils.logging import LogEventNames

log = structlog.get_logger()

DEFAULT_TTL = 300.0
DEFAULT_MAX_ENTRIES = 1000


def fingerprint(path: str, content: str, config_json: str) -> str:
    """SHA-256 over path, content and configuration."""
    digest = hashlib.sha256()
    for part in (path, content, config_json):
        digest.update(part.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


class ValidationCache:
    """Bounded, time-limited report cache.

    Entries older than ``ttl`` seconds are treated as absent. When full, the
    oldest inserted entry is evicted first. Access is guarded by a lock so one
    cache can be shared between orchestrators.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: FIFOCache[str, CacheEntry] = FIFOCache(maxsize=max_entries)
        self._lock = threading.Lock()

    def get(self, key: str) -> AggregatedReport | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.inserted_at > self._ttl:
                del self._entries[key]
                log.debug(LogEventNames.CACHE_EXPIRED, key=key[:12])
                return None
            return entry.report

    def put(self, key: str, report: AggregatedReport) -> None:
        with self._lock:
            # Re-inserting must move the key to the back of the eviction order
            self._entries.pop(key, None)
            if len(self._entries) >= self._max_entries:
                evicted, _ = self._entries.popitem()
                log.debug(LogEventNames.CACHE_EVICTED, key=evicted[:12])
            self._entries[key] = CacheEntry(key=key, report=report, inserted_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        return {"size": len(self), "max_size": self._max_entries, "ttl": self._ttl}


class ValidationOrchestrator:
    """Run analyzers concurrently and aggregate their findings.

    Example:
        orchestrator = ValidationOrchestrator([biome, compiler], timeout=5.0)
        report = await orchestrator.validate(FileInfo("src/app.ts"))
    """

    def __init__(
        self,
        analyzers: Sequence[Analyzer],
        *,
        timeout: float = 5.0,
        cache: ValidationCache | None = None,
        config_json: str = "",
    ) -> None:
        """Initialize the orchestrator.

        Args:
            analyzers: Enabled analyzers.
            timeout: Per-analyzer timeout in seconds.
            cache: Report cache; a private one is created if omitted.
            config_json: Serialized configuration, part of the cache key.
        """
        self._analyzers = list(analyzers)
        self._timeout = timeout
        self._cache = cache if cache is not None else ValidationCache()
        self._config_json = config_json
        self._in_flight: dict[str, asyncio.Future[AggregatedReport]] = {}

    @property
    def enabled_analyzers(self) -> list[str]:
        return [analyzer.name for analyzer in self._analyzers]

    @property
    def cache(self) -> ValidationCache:
        return self._cache

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()

    async def validate(self, file: FileInfo) -> AggregatedReport:
        """Validate one file.

        Never raises for analyzer problems: each failing analyzer yields a
        failed result and the report's ``success`` is False. A file that
        cannot be read or decoded fails every analyzer the same way and is
        not cached.
        """
        content = file.content
        if content is None:
            try:
                content = await asyncio.to_thread(file.read_content)
            except (OSError, UnicodeDecodeError) as e:
                log.warning("file_unreadable", file=file.path, error=str(e))
                return self._unreadable(file.path, e)
        key = fingerprint(file.path, content, self._config_json)

        cached = self._cache.get(key)
        if cached is not None:
            log.debug(LogEventNames.CACHE_HIT, file=file.path)
            return cached.as_cached()

        pending = self._in_flight.get(key)
        if pending is not None:
            log.debug("validation_joined_in_flight", file=file.path)
            report = await asyncio.shield(pending)
            return report.as_cached()

        log.debug(LogEventNames.CACHE_MISS, file=file.path)
        future: asyncio.Future[AggregatedReport] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            report = await self._run_all(file.with_content(content))
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure is not reported at shutdown
            future.exception()
            raise
        else:
            self._cache.put(key, report)
            future.set_result(report)
            return report
        finally:
            self._in_flight.pop(key, None)

    def _unreadable(self, path: str, error: Exception) -> AggregatedReport:
        message = f"cannot read {path}: {error}"
        report = AggregatedReport.aggregate(
            [AnalysisResult.failure(name, message, 0.0) for name in self.enabled_analyzers],
            0.0,
        )
        return replace(report, success=False)

    async def _run_all(self, file: FileInfo) -> AggregatedReport:
        log.info(
            LogEventNames.VALIDATION_STARTED,
            file=file.path,
            analyzers=self.enabled_analyzers,
        )
        started = time.perf_counter()

        if not self._analyzers:
            return AggregatedReport.empty(total_duration=time.perf_counter() - started)

        results = await asyncio.gather(*(self._run_one(a, file) for a in self._analyzers))
        report = AggregatedReport.aggregate(results, time.perf_counter() - started)

        log.info(
            LogEventNames.VALIDATION_COMPLETE,
            file=file.path,
            success=report.success,
            issues=report.summary.total_issues,
            failed_analyzers=list(report.failed_analyzers),
            duration=round(report.total_duration, 3),
        )
        return report

    async def _run_one(self, analyzer: Analyzer, file: FileInfo) -> AnalysisResult:
        started = time.perf_counter()
        try:
            issues = await with_timeout(
                analyzer.analyze(file),
                self._timeout,
                error_message=f"{analyzer.name} timed out after {self._timeout}s",
            )
        except TimeoutError as e:
            log.warning(
                LogEventNames.ANALYZER_TIMEOUT, analyzer=analyzer.name, timeout=self._timeout
            )
            return AnalysisResult.failure(analyzer.name, str(e), time.perf_counter() - started)
        except Exception as e:
            log.warning(
                LogEventNames.ANALYZER_FAILED,
                analyzer=analyzer.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return AnalysisResult.failure(
                analyzer.name, str(e) or type(e).__name__, time.perf_counter() - started
            )
        return AnalysisResult.from_issues(analyzer.name, issues, time.perf_counter() - started)
