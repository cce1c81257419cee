"""Protocol definitions for pluggable analyzers."""

from .analyzer import Analyzer

__all__ = ["Analyzer"]
