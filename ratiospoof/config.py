"""Configuration management for ratiospoof.

Provides centralized configuration with TOML support, validation and
hierarchical loading from defaults → config file → environment → CLI.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import toml

from ratiospoof.exceptions import ConfigurationError
from ratiospoof.logging_config import get_logger, setup_logging
from ratiospoof.models import Config

CONFIG_FILENAME = "ratiospoof.toml"

# Mapping of environment variables to config paths
ENV_MAPPINGS: dict[str, str] = {
    "RATIOSPOOF_TRACKER_TIMEOUT": "tracker.timeout",
    "RATIOSPOOF_TRACKER_MAX_RETRIES": "tracker.max_retries",
    "RATIOSPOOF_RETRY_BASE_DELAY": "tracker.retry_base_delay",
    "RATIOSPOOF_RETRY_MAX_DELAY": "tracker.retry_max_delay",
    "RATIOSPOOF_NUMWANT": "session.numwant",
    "RATIOSPOOF_HISTORY_SIZE": "session.history_size",
    "RATIOSPOOF_DEFAULT_PORT": "session.default_port",
    "RATIOSPOOF_DEFAULT_CLIENT": "session.default_client",
    "RATIOSPOOF_DISPLAY_ENABLED": "display.enabled",
    "RATIOSPOOF_DISPLAY_REFRESH": "display.refresh_interval",
    "RATIOSPOOF_LOG_LEVEL": "observability.log_level",
    "RATIOSPOOF_LOG_FILE": "observability.log_file",
    "RATIOSPOOF_STRUCTURED_LOGGING": "observability.structured_logging",
}

# Paths whose values are always kept as strings
_STRING_PATHS = frozenset(
    {
        "session.default_client",
        "observability.log_level",
        "observability.log_file",
    }
)

# Global configuration instance
_config_manager: ConfigManager | None = None


def _parse_env_value(raw: str, path: str) -> bool | int | float | str:
    if path in _STRING_PATHS:
        return raw.upper() if path == "observability.log_level" else raw
    low = raw.lower()
    if low in {"true", "yes", "on"}:
        return True
    if low in {"false", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None, *, setup_log: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for ratiospoof.toml
            setup_log: Configure logging from the loaded observability section

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        if setup_log:
            self._setup_logging()

    def _find_config_file(self, config_file: str | Path | None) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILENAME,
            Path.home() / ".config" / "ratiospoof" / CONFIG_FILENAME,
            Path.home() / f".{CONFIG_FILENAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                get_logger(__name__).warning(
                    "Failed to load config file %s: %s", self.config_file, e
                )

        env_config = self._get_env_config()
        config_data = self._merge_config(config_data, env_config)

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}
        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))
        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def apply_overrides(self, overrides: dict[str, Any]) -> Config:
        """Apply dotted-path overrides (CLI flags) and revalidate.

        ``None`` values are skipped so unset CLI options keep the loaded value.
        """
        data = self.config.model_dump(mode="json")
        for path, value in overrides.items():
            if value is not None:
                _set_nested(data, path, value)
        try:
            self.config = Config(**data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e
        self._setup_logging()
        return self.config

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager


def reset_config() -> None:
    """Forget the global configuration (for tests)."""
    global _config_manager
    _config_manager = None
