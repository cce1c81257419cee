"""File input model."""

from __future__ import annotations

import contextlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path


def read_text(path: str | Path) -> str:
    """Read a file without newline translation."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_text(path: str | Path, text: str) -> None:
    """Write a file without newline translation, atomically.

    The text goes to a temporary file in the same directory which then
    replaces ``path``, so a failed write leaves the old content in place.
    The replacement keeps the original file's permission bits.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        with contextlib.suppress(FileNotFoundError):
            os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


@dataclass(frozen=True)
class FileInfo:
    """A file to validate.

    When ``content`` is omitted it is read from disk on demand, so callers
    that already hold the text in memory can skip the extra read.
    """

    path: str
    content: str | None = None

    def read_content(self) -> str:
        """Return the supplied content, or read it from disk."""
        if self.content is not None:
            return self.content
        return read_text(self.path)

    def with_content(self, content: str) -> FileInfo:
        return FileInfo(path=self.path, content=content)

    @property
    def suffix(self) -> str:
        return Path(self.path).suffix.lower()
