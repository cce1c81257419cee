"""Tests for configuration loading and validation."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from quality_hooks.config.loader import find_config, load_config, substitute_env_vars
from quality_hooks.config.schema import (
    AutofixConfig,
    BiomeConfig,
    CacheConfig,
    CompilerConfig,
    HookConfig,
)


class TestSubstituteEnvVars:
    """Test environment variable substitution."""

    def test_substitute_single_var(self):
        """Test substituting a single environment variable."""
        os.environ["TEST_VAR"] = "test_value"
        result = substitute_env_vars("Value is ${TEST_VAR}")
        assert result == "Value is test_value"
        del os.environ["TEST_VAR"]

    def test_substitute_multiple_vars(self, monkeypatch):
        """Test substituting multiple environment variables."""
        monkeypatch.setenv("VAR1", "value1")
        monkeypatch.setenv("VAR2", "value2")
        result = substitute_env_vars("${VAR1} and ${VAR2}")
        assert result == "value1 and value2"

    def test_missing_env_var_raises(self):
        """Test that missing environment variables raise ValueError."""
        with pytest.raises(ValueError, match="Environment variable MISSING not found"):
            substitute_env_vars("Value is ${MISSING}")

    def test_no_substitution_needed(self):
        """Test text without environment variables passes through unchanged."""
        result = substitute_env_vars("plain text without vars")
        assert result == "plain text without vars"


class TestBiomeConfig:
    """Test BiomeConfig validation."""

    def test_defaults(self):
        """Test the default Biome configuration."""
        config = BiomeConfig()
        assert config.enabled is True
        assert config.version == "auto"
        assert config.command == ["npx", "@biomejs/biome"]
        assert config.config_path is None

    def test_invalid_version(self):
        """Test that unsupported version tags are rejected."""
        with pytest.raises(ValidationError):
            BiomeConfig(version="3.x")

    @pytest.mark.parametrize("command", [[], ["", "biome"]])
    def test_invalid_command(self, command):
        """Test that empty command prefixes are rejected."""
        with pytest.raises(ValidationError, match="non-empty"):
            BiomeConfig(command=command)


class TestCompilerConfig:
    """Test CompilerConfig validation."""

    def test_extensions_normalized(self):
        """Test extensions are lower-cased and dotted."""
        config = CompilerConfig(extensions=["PY", ".Pyi"])
        assert config.extensions == [".py", ".pyi"]


class TestAutofixConfig:
    """Test AutofixConfig validation."""

    def test_defaults(self):
        config = AutofixConfig()
        assert config.enabled is True
        assert config.max_attempts == 3
        assert config.unsafe_fixes is False
        assert config.rollback_on_regression is False

    @pytest.mark.parametrize("attempts", [0, 11])
    def test_max_attempts_bounds(self, attempts):
        with pytest.raises(ValidationError):
            AutofixConfig(max_attempts=attempts)


class TestCacheConfig:
    """Test CacheConfig validation."""

    def test_defaults(self):
        config = CacheConfig()
        assert config.ttl_seconds == 300
        assert config.max_entries == 1000

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheConfig(ttl_seconds=0)


class TestHookConfig:
    """Test the root configuration."""

    def test_defaults(self):
        config = HookConfig()
        assert config.enabled is True
        assert config.timeout == 5.0
        assert config.logging.level == "INFO"
        assert "node_modules/**" in config.exclude

    def test_timeout_bounds(self):
        with pytest.raises(ValidationError):
            HookConfig(timeout=0)

    def test_environment_override(self, monkeypatch):
        """Test QUALITY_HOOKS_* variables override defaults."""
        monkeypatch.setenv("QUALITY_HOOKS_TIMEOUT", "12")
        monkeypatch.setenv("QUALITY_HOOKS_AUTOFIX__ENABLED", "false")

        config = HookConfig()

        assert config.timeout == 12.0
        assert config.autofix.enabled is False

    def test_fingerprint_ignores_logging(self):
        """Test logging settings do not invalidate cached reports."""
        quiet = HookConfig.model_validate({"logging": {"level": "ERROR"}})
        assert quiet.fingerprint_json() == HookConfig().fingerprint_json()

    def test_fingerprint_tracks_validators(self):
        changed = HookConfig.model_validate({"validators": {"biome": {"version": "1.x"}}})
        assert changed.fingerprint_json() != HookConfig().fingerprint_json()


class TestLoadConfig:
    """Test loading YAML configuration files."""

    def test_load_valid_config(self, tmp_path: Path):
        """Test loading a valid configuration file."""
        path = tmp_path / "quality-hooks.yaml"
        path.write_text(
            """
timeout: 10
validators:
  biome:
    version: "2.x"
    config_path: biome.json
  compiler:
    enabled: false
autofix:
  unsafe_fixes: true
  rollback_on_regression: true
"""
        )

        config = load_config(path)

        assert config.timeout == 10.0
        assert config.validators.biome.version == "2.x"
        assert config.validators.biome.config_path == Path("biome.json")
        assert config.validators.compiler.enabled is False
        assert config.autofix.unsafe_fixes is True
        assert config.autofix.rollback_on_regression is True

    def test_env_substitution(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("BIOME_BIN", "/opt/biome/bin/biome")
        path = tmp_path / "quality-hooks.yaml"
        path.write_text("validators:\n  biome:\n    command: ['${BIOME_BIN}']\n")

        config = load_config(path)

        assert config.validators.biome.command == ["/opt/biome/bin/biome"]

    def test_no_path_returns_defaults(self):
        assert load_config(None).timeout == HookConfig().timeout

    def test_empty_file_returns_defaults(self, tmp_path: Path):
        path = tmp_path / "quality-hooks.yaml"
        path.write_text("")
        assert load_config(path).enabled is True

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_raises(self, tmp_path: Path):
        path = tmp_path / "quality-hooks.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(path)

    def test_invalid_values_raise(self, tmp_path: Path):
        path = tmp_path / "quality-hooks.yaml"
        path.write_text("autofix:\n  max_attempts: 50\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestFindConfig:
    """Test locating the configuration file."""

    def test_finds_plain_name(self, tmp_path: Path):
        (tmp_path / "quality-hooks.yaml").write_text("enabled: true\n")
        assert find_config(tmp_path) == tmp_path / "quality-hooks.yaml"

    def test_finds_dotfile(self, tmp_path: Path):
        (tmp_path / ".quality-hooks.yaml").write_text("enabled: true\n")
        assert find_config(tmp_path) == tmp_path / ".quality-hooks.yaml"

    def test_none_when_absent(self, tmp_path: Path):
        assert find_config(tmp_path) is None
