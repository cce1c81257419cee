"""Analyzer implementations."""

from .biome import BiomeAnalyzer
from .biome_adapters import (
    BiomeAdapter,
    BiomeMajor,
    BiomeV1Adapter,
    BiomeV2Adapter,
    InvocationOptions,
    adapter_for_version,
    create_adapter,
    parse_reporter_output,
)
from .compiler import (
    CompilerAnalyzer,
    CompilerDiagnostic,
    DiagnosticCategory,
    DiagnosticsProvider,
    MessageChain,
    PythonCompilerDiagnostics,
)
from .version_resolver import (
    ResolvedVersion,
    VersionInfo,
    VersionResolver,
    VersionSource,
    parse_version,
)

__all__ = [
    # Biome
    "BiomeAnalyzer",
    "BiomeAdapter",
    "BiomeMajor",
    "BiomeV1Adapter",
    "BiomeV2Adapter",
    "InvocationOptions",
    "adapter_for_version",
    "create_adapter",
    "parse_reporter_output",
    # Compiler diagnostics
    "CompilerAnalyzer",
    "CompilerDiagnostic",
    "DiagnosticCategory",
    "DiagnosticsProvider",
    "MessageChain",
    "PythonCompilerDiagnostics",
    # Version detection
    "VersionInfo",
    "VersionResolver",
    "VersionSource",
    "ResolvedVersion",
    "parse_version",
]
