"""Configuration management for connwatch."""

import json
import platform
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from connwatch.core import constants
from connwatch.core.errors import ConfigError


class Config:
    """Manages connwatch configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default path.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    @staticmethod
    def _get_default_config_path() -> Path:
        """Get default configuration path based on platform."""
        system = platform.system()
        home = Path.home()

        if system == "Windows":
            config_dir = home / "AppData" / "Roaming" / constants.APP_NAME
        elif system == "Darwin":
            config_dir = home / "Library" / "Application Support" / constants.APP_NAME
        else:  # Linux and others
            config_dir = home / ".config" / constants.APP_NAME

        return config_dir / "config.json"

    def _load_config(self) -> None:
        """Load configuration from file, falling back to defaults."""
        self.config_data = self._get_default_config()
        if not self.config_path.exists() or self.config_path.stat().st_size == 0:
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"[Config] Error loading {self.config_path}: {e}. Using default configuration.")
            return

        if isinstance(data, dict):
            self._merge(self.config_data, data)

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "log_level": constants.DEFAULT_LOG_LEVEL,
            "log_file": constants.LOG_FILE,
            "notifier": {
                "backend": constants.DEFAULT_BACKEND,
                "poll_interval": constants.DEFAULT_POLL_INTERVAL,
                "ignored_interfaces": list(constants.TUN_INTERFACE_KEYWORDS),
            },
            "stream": {
                "buffer_size": constants.DEFAULT_BUFFER_SIZE,
            },
        }

    @staticmethod
    def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                Config._merge(base[key], value)
            else:
                base[key] = value

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config_data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'notifier.backend')
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config_data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        data = self.config_data
        for k in keys[:-1]:
            if not isinstance(data.get(k), dict):
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    def get_backend(self) -> str:
        backend = self.get("notifier.backend", constants.DEFAULT_BACKEND)
        if not isinstance(backend, str) or not backend:
            raise ConfigError(f"notifier.backend must be a name, got {backend!r}")
        return backend.lower()

    def get_poll_interval(self) -> float:
        value = self.get("notifier.poll_interval", constants.DEFAULT_POLL_INTERVAL)
        try:
            interval = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"notifier.poll_interval must be a number, got {value!r}")
        if interval <= 0:
            raise ConfigError(f"notifier.poll_interval must be positive, got {interval}")
        return interval

    def get_ignored_interfaces(self) -> List[str]:
        value = self.get("notifier.ignored_interfaces", [])
        if not isinstance(value, list):
            raise ConfigError(f"notifier.ignored_interfaces must be a list, got {value!r}")
        return [str(v) for v in value]

    def get_buffer_size(self) -> int:
        value = self.get("stream.buffer_size", constants.DEFAULT_BUFFER_SIZE)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"stream.buffer_size must be a positive integer, got {value!r}")
        return value

    def import_config(self, config_file: Path, file_format: str = "json") -> bool:
        """Import configuration from file.

        Args:
            config_file: Path to configuration file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"[Config] Error importing config: {e}")
            return False

        if not isinstance(data, dict):
            logger.error(f"[Config] Imported config must be a mapping, got {type(data).__name__}")
            return False

        self._merge(self.config_data, data)
        self.save()
        return True

    def export_config(self, output_file: Path, file_format: str = "json") -> bool:
        """Export configuration to file.

        Args:
            output_file: Path to output file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    yaml.dump(self.config_data, f, default_flow_style=False)
                else:
                    json.dump(self.config_data, f, indent=2)
            return True
        except OSError as e:
            logger.error(f"[Config] Error exporting config: {e}")
        return False
