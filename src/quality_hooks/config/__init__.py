"""Configuration loading and validation."""

from .loader import find_config, load_config, substitute_env_vars
from .schema import (
    AutofixConfig,
    BiomeConfig,
    CacheConfig,
    CompilerConfig,
    FileLoggingConfig,
    HookConfig,
    LoggingConfig,
    ValidatorsConfig,
)

__all__ = [
    # Loader
    "load_config",
    "find_config",
    "substitute_env_vars",
    # Root config
    "HookConfig",
    # Top-level configs
    "ValidatorsConfig",
    "AutofixConfig",
    "CacheConfig",
    "LoggingConfig",
    "FileLoggingConfig",
    # Analyzer-specific configs
    "BiomeConfig",
    "CompilerConfig",
]
