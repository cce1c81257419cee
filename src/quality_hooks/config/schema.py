"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BiomeConfig(BaseModel):
    """Biome-specific configuration."""

    enabled: bool = True
    version: Literal["auto", "1.x", "2.x"] = "auto"
    config_path: Path | None = None
    command: list[str] = ["npx", "@biomejs/biome"]
    package_name: str = "@biomejs/biome"

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: list[str]) -> list[str]:
        """Validate the Biome command prefix."""
        if not v or not all(part.strip() for part in v):
            raise ValueError("Biome command must be a non-empty list of arguments")
        return v


class CompilerConfig(BaseModel):
    """Host compiler diagnostics configuration."""

    enabled: bool = True
    extensions: list[str] = [".py", ".pyi"]

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case extensions and ensure the leading dot."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class ValidatorsConfig(BaseModel):
    """Per-analyzer configuration."""

    biome: BiomeConfig = BiomeConfig()
    compiler: CompilerConfig = CompilerConfig()


class AutofixConfig(BaseModel):
    """Automatic fix configuration."""

    enabled: bool = True
    max_attempts: int = Field(3, ge=1, le=10, description="Maximum fix passes per file")
    unsafe_fixes: bool = False
    rollback_on_regression: bool = False


class CacheConfig(BaseModel):
    """Validation result cache configuration."""

    ttl_seconds: float = Field(300.0, gt=0, le=86400)
    max_entries: int = Field(1000, ge=1, le=100_000)


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path(".quality-hooks/hooks.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"
    file: FileLoggingConfig = FileLoggingConfig()


class HookConfig(BaseSettings):
    """Root configuration for quality-hooks."""

    enabled: bool = True
    include: list[str] = ["**/*.{js,jsx,ts,tsx,mjs,cjs,json,jsonc,py}"]
    exclude: list[str] = ["node_modules/**", "dist/**", "build/**", ".venv/**"]
    timeout: float = Field(5.0, ge=0.1, le=120.0, description="Per-analyzer timeout in seconds")
    validators: ValidatorsConfig = ValidatorsConfig()
    autofix: AutofixConfig = AutofixConfig()
    cache: CacheConfig = CacheConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="QUALITY_HOOKS_",
        env_nested_delimiter="__",
    )

    def fingerprint_json(self) -> str:
        """Stable JSON rendering used as part of the validation cache key."""
        return self.model_dump_json(exclude={"logging"})
