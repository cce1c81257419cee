"""Package version, read from installed metadata."""

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION = "quality-hooks"

try:
    __version__ = version(DISTRIBUTION)
except PackageNotFoundError:
    # Running from a source checkout that was never installed
    __version__ = "0.0.0+unknown"

__all__ = ["__version__"]
