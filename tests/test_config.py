"""Tests for configuration loading."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from qualitarr.clients.trash import DEFAULT_TRASH_URL
from qualitarr.config import Config, ConfigurationError


def write_config(home: Path, text: str) -> Path:
    config_dir = home / ".config" / "qualitarr"
    config_dir.mkdir(parents=True)
    config_file = config_dir / "config.toml"
    config_file.write_text(text)
    return config_file


class TestDefaults:
    """Tests for defaults without a config file or environment."""

    def test_defaults(self, tmp_path: Path) -> None:
        """Should fall back to defaults under the home directory."""
        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {}, clear=True),
        ):
            config = Config.load()

        assert config.store.path == tmp_path / ".config" / "qualitarr" / "store.json"
        assert config.trash.base_url == DEFAULT_TRASH_URL
        assert config.trash.timeout == 30.0
        assert config.trash.batch_size == 25
        assert config.evaluation.enforce_size_limits is False
        assert config.logging.level == "info"

    def test_settings_from_evaluation_config(self, tmp_path: Path) -> None:
        """Evaluation config should convert into engine settings."""
        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {"QUALITARR_ENFORCE_SIZE_LIMITS": "yes"}, clear=True),
        ):
            config = Config.load()

        assert config.evaluation.to_settings().enforce_size_limits is True


class TestConfigFromFile:
    """Tests for loading config from TOML file."""

    def test_load_from_toml_file(self, tmp_path: Path) -> None:
        """Should load every section from TOML."""
        write_config(
            tmp_path,
            """
[store]
path = "/data/qualitarr.json"

[trash]
base_url = "http://mirror.local/json"
timeout = 10
cache_ttl = 60
max_retries = 5
batch_size = 50

[evaluation]
enforce_size_limits = true

[logging]
level = "debug"
""",
        )

        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {}, clear=True),
        ):
            config = Config.load()

        assert config.store.path == Path("/data/qualitarr.json")
        assert config.trash.base_url == "http://mirror.local/json"
        assert config.trash.timeout == 10.0
        assert config.trash.cache_ttl == 60
        assert config.trash.max_retries == 5
        assert config.trash.batch_size == 50
        assert config.evaluation.enforce_size_limits is True
        assert config.logging.level == "debug"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Should raise ConfigurationError for unparseable TOML."""
        write_config(tmp_path, "[trash\nbase_url = ")

        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {}, clear=True),
            pytest.raises(ConfigurationError, match="Invalid config file"),
        ):
            Config.load()

    def test_invalid_number(self, tmp_path: Path) -> None:
        """Should reject non-positive and non-numeric values."""
        write_config(tmp_path, "[trash]\nbatch_size = 0\n")

        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {}, clear=True),
            pytest.raises(ConfigurationError, match="trash.batch_size"),
        ):
            Config.load()

    def test_invalid_bool(self, tmp_path: Path) -> None:
        """Should reject unrecognized booleans."""
        write_config(tmp_path, '[evaluation]\nenforce_size_limits = "maybe"\n')

        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {}, clear=True),
            pytest.raises(ConfigurationError, match="Invalid boolean"),
        ):
            Config.load()

    def test_section_must_be_table(self, tmp_path: Path) -> None:
        """A section given as a scalar should be rejected."""
        write_config(tmp_path, 'trash = "nope"\n')

        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {}, clear=True),
            pytest.raises(ConfigurationError, match=r"\[trash\] must be a table"),
        ):
            Config.load()


class TestConfigFromEnv:
    """Tests for environment variable overrides."""

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        """Environment variables should take precedence over the file."""
        write_config(
            tmp_path,
            """
[trash]
base_url = "http://file.local"
timeout = 10
batch_size = 50

[logging]
level = "warning"
""",
        )
        env = {
            "QUALITARR_STORE_PATH": str(tmp_path / "env-store.json"),
            "QUALITARR_TRASH_URL": "http://env.local",
            "QUALITARR_TIMEOUT": "5.5",
            "QUALITARR_LOG_LEVEL": "error",
        }

        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, env, clear=True),
        ):
            config = Config.load()

        assert config.store.path == tmp_path / "env-store.json"
        assert config.trash.base_url == "http://env.local"
        assert config.trash.timeout == 5.5
        # Not overridden, kept from the file
        assert config.trash.batch_size == 50
        assert config.logging.level == "error"

    def test_invalid_env_timeout(self, tmp_path: Path) -> None:
        """A non-numeric timeout should raise ConfigurationError."""
        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {"QUALITARR_TIMEOUT": "soon"}, clear=True),
            pytest.raises(ConfigurationError, match="QUALITARR_TIMEOUT"),
        ):
            Config.load()

    @pytest.mark.parametrize(("value", "expected"), [("1", True), ("off", False), ("TRUE", True)])
    def test_env_bool(self, tmp_path: Path, value: str, expected: bool) -> None:
        """Boolean env values should accept common spellings."""
        with (
            patch.object(Path, "home", return_value=tmp_path),
            patch.dict(os.environ, {"QUALITARR_ENFORCE_SIZE_LIMITS": value}, clear=True),
        ):
            config = Config.load()

        assert config.evaluation.enforce_size_limits is expected
