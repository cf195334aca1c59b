"""Configuration loading for qualitarr."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from qualitarr.clients.trash import DEFAULT_TRASH_URL
from qualitarr.decision import EvaluationSettings
from qualitarr.importer import DEFAULT_BATCH_SIZE

DEFAULT_TIMEOUT = 30.0
DEFAULT_CACHE_TTL = 300
DEFAULT_MAX_RETRIES = 3
DEFAULT_LOG_LEVEL = "info"

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""


def config_dir() -> Path:
    """Directory holding the config file and the default store."""
    return Path.home() / ".config" / "qualitarr"


def _default_store_path() -> Path:
    return config_dir() / "store.json"


@dataclass
class StoreConfig:
    """Where the configuration store lives."""

    path: Path = field(default_factory=_default_store_path)


@dataclass
class TrashConfig:
    """TRaSH Guides catalog access."""

    base_url: str = DEFAULT_TRASH_URL
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: int = DEFAULT_CACHE_TTL
    max_retries: int = DEFAULT_MAX_RETRIES
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass
class EvaluationConfig:
    """Evaluation policy applied to every decision."""

    enforce_size_limits: bool = False

    def to_settings(self) -> EvaluationSettings:
        """Build the immutable settings object handed to the engine."""
        return EvaluationSettings(enforce_size_limits=self.enforce_size_limits)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL


# --- Helper functions for parsing values ---


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}")


def _parse_number(value: Any, name: str, kind: type[int] | type[float]) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return number


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{name}] must be a table")
    return section


# --- Helper functions for parsing config sections ---


def _parse_store_from_dict(data: dict[str, Any]) -> StoreConfig:
    """Parse StoreConfig from a config dictionary."""
    store_data = _section(data, "store")
    if "path" not in store_data:
        return StoreConfig()
    return StoreConfig(path=Path(store_data["path"]).expanduser())


def _parse_store_from_env(base: StoreConfig) -> StoreConfig:
    """Parse StoreConfig from environment variables."""
    store_path = os.environ.get("QUALITARR_STORE_PATH")
    if not store_path:
        return base
    return StoreConfig(path=Path(store_path).expanduser())


def _parse_trash_from_dict(data: dict[str, Any]) -> TrashConfig:
    """Parse TrashConfig from a config dictionary.

    Args:
        data: The full config dictionary

    Returns:
        TrashConfig instance
    """
    trash_data = _section(data, "trash")
    defaults = TrashConfig()
    return TrashConfig(
        base_url=str(trash_data.get("base_url", defaults.base_url)),
        timeout=_parse_number(trash_data.get("timeout", defaults.timeout), "trash.timeout", float),
        cache_ttl=_parse_number(
            trash_data.get("cache_ttl", defaults.cache_ttl), "trash.cache_ttl", int
        ),
        max_retries=_parse_number(
            trash_data.get("max_retries", defaults.max_retries), "trash.max_retries", int
        ),
        batch_size=_parse_number(
            trash_data.get("batch_size", defaults.batch_size), "trash.batch_size", int
        ),
    )


def _parse_trash_from_env(base: TrashConfig) -> TrashConfig:
    """Parse TrashConfig from environment variables.

    Args:
        base: Base TrashConfig to use for defaults

    Returns:
        TrashConfig instance with environment overrides
    """
    base_url = os.environ.get("QUALITARR_TRASH_URL")
    timeout_str = os.environ.get("QUALITARR_TIMEOUT")
    batch_str = os.environ.get("QUALITARR_BATCH_SIZE")

    if not any([base_url, timeout_str, batch_str]):
        return base

    return TrashConfig(
        base_url=base_url or base.base_url,
        timeout=(
            _parse_number(timeout_str, "QUALITARR_TIMEOUT", float) if timeout_str else base.timeout
        ),
        cache_ttl=base.cache_ttl,
        max_retries=base.max_retries,
        batch_size=(
            _parse_number(batch_str, "QUALITARR_BATCH_SIZE", int) if batch_str else base.batch_size
        ),
    )


def _parse_evaluation_from_dict(data: dict[str, Any]) -> EvaluationConfig:
    """Parse EvaluationConfig from a config dictionary."""
    evaluation_data = _section(data, "evaluation")
    if "enforce_size_limits" not in evaluation_data:
        return EvaluationConfig()
    return EvaluationConfig(
        enforce_size_limits=_parse_bool(
            evaluation_data["enforce_size_limits"], "evaluation.enforce_size_limits"
        )
    )


def _parse_evaluation_from_env(base: EvaluationConfig) -> EvaluationConfig:
    """Parse EvaluationConfig from environment variables."""
    enforce = os.environ.get("QUALITARR_ENFORCE_SIZE_LIMITS")
    if enforce is None:
        return base
    return EvaluationConfig(
        enforce_size_limits=_parse_bool(enforce, "QUALITARR_ENFORCE_SIZE_LIMITS")
    )


def _parse_logging_from_dict(data: dict[str, Any]) -> LoggingConfig:
    """Parse LoggingConfig from a config dictionary."""
    logging_data = _section(data, "logging")
    return LoggingConfig(level=str(logging_data.get("level", DEFAULT_LOG_LEVEL)))


def _parse_logging_from_env(base: LoggingConfig) -> LoggingConfig:
    """Parse LoggingConfig from environment variables."""
    level = os.environ.get("QUALITARR_LOG_LEVEL")
    if not level:
        return base
    return LoggingConfig(level=level)


@dataclass
class Config:
    """Application configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    trash: TrashConfig = field(default_factory=TrashConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls) -> Self:
        """Load configuration from environment and config file.

        Configuration precedence (highest to lowest):
        1. Environment variables
        2. Config file (~/.config/qualitarr/config.toml)
        3. Defaults

        Environment variables:
        - QUALITARR_STORE_PATH
        - QUALITARR_TRASH_URL
        - QUALITARR_TIMEOUT (request timeout in seconds)
        - QUALITARR_BATCH_SIZE (imported formats per committed batch)
        - QUALITARR_ENFORCE_SIZE_LIMITS
        - QUALITARR_LOG_LEVEL

        Returns:
            Config instance with loaded values

        Raises:
            ConfigurationError: If the config file or a value is invalid
        """
        config = cls()

        config_file = config_dir() / "config.toml"
        if config_file.exists():
            config = cls._load_from_file(config_file)

        return cls._load_from_env(config)

    @classmethod
    def _load_from_file(cls, path: Path) -> Self:
        """Load configuration from TOML file.

        Raises:
            ConfigurationError: If file cannot be parsed
        """
        data = _load_toml_file(path)
        return cls(
            store=_parse_store_from_dict(data),
            trash=_parse_trash_from_dict(data),
            evaluation=_parse_evaluation_from_dict(data),
            logging=_parse_logging_from_dict(data),
        )

    @classmethod
    def _load_from_env(cls, base: Self) -> Self:
        """Override configuration with environment variables."""
        return cls(
            store=_parse_store_from_env(base.store),
            trash=_parse_trash_from_env(base.trash),
            evaluation=_parse_evaluation_from_env(base.evaluation),
            logging=_parse_logging_from_env(base.logging),
        )


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file.

    Raises:
        ConfigurationError: If file cannot be parsed
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config file: {e}") from e
