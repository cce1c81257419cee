"""Include/exclude glob matching for hook file paths.

Patterns use the usual glob syntax with ``**`` for any number of directories
and ``{a,b}`` brace alternatives, e.g. ``**/*.{ts,tsx}``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path, PurePosixPath

import structlog

log = structlog.get_logger()

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into separate patterns."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate one brace-free glob pattern into an anchored regex."""
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(parts) + "$")


def matches(path: str, patterns: Iterable[str]) -> bool:
    """True if ``path`` (POSIX form) matches any of ``patterns``."""
    return any(
        glob_to_regex(expanded).match(path)
        for pattern in patterns
        for expanded in expand_braces(pattern)
    )


class PatternMatcher:
    """Decide whether a file should be validated.

    A file is validated when it matches an include pattern and no exclude
    pattern. Paths under ``root`` are matched relative to it.

    Example:
        matcher = PatternMatcher(["**/*.{ts,tsx}"], ["node_modules/**"])
        matcher.should_validate("src/app.ts")  # True
    """

    def __init__(
        self,
        include: Iterable[str],
        exclude: Iterable[str] = (),
        root: Path | None = None,
    ) -> None:
        self._include = list(include)
        self._exclude = list(exclude)
        self._root = root

    def _normalize(self, path: str) -> str:
        candidate = Path(path)
        if self._root is not None and candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self._root.resolve())
            except ValueError:
                pass
        return PurePosixPath(*candidate.parts).as_posix()

    def should_validate(self, path: str) -> bool:
        normalized = self._normalize(path)
        if not matches(normalized, self._include):
            log.debug("file_not_included", file=normalized)
            return False
        if matches(normalized, self._exclude):
            log.debug("file_excluded", file=normalized)
            return False
        return True
