"""
Configuration Service Module

Manages the client configuration: server address, feature toggles and the
tuning knobs of the playback, library, artwork and connection services.
"""

from typing import Any, Dict, Optional
from pathlib import Path
import os
import sys
import yaml
import threading
import logging

from models.server_config import AppSettings, ServerConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """
    Configuration Service

    Reads and saves a YAML file on top of built-in defaults. Constructed once
    by AppContainerFactory and injected into the services that need it.

    Usage Example:
        config = ConfigService()

        page_size = config.get("library.page_size", 50)

        config.set_server_config(ServerConfig("192.168.1.10"))
        config.save()
    """

    def __init__(self, config_path: Optional[str] = None):
        # Custom path: used for both loading and saving (supports test isolation)
        if config_path:
            self._config_path = Path(config_path)
        else:
            self._config_path = self._get_user_config_path()

        self._config: Dict[str, Any] = {}
        self._lock = threading.Lock()

        self._load()

    @property
    def path(self) -> Path:
        return self._config_path

    @staticmethod
    def _get_user_config_path() -> Path:
        """Get user configuration file path (platform-specific)"""
        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        return base / "music-assistant-player" / "config.yaml"

    def _load(self) -> None:
        """Load built-in defaults, then merge the YAML file over them"""
        config = self._get_default_config()

        if self._config_path.exists():
            try:
                with open(self._config_path, 'r', encoding='utf-8') as f:
                    user_config = yaml.safe_load(f) or {}
                if isinstance(user_config, dict):
                    self._deep_merge(config, user_config)
                else:
                    logger.warning("Ignoring configuration file without a mapping: %s", self._config_path)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load configuration: %s", e)

        with self._lock:
            self._config = config

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Deep merge dictionaries, override overwrites base"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration"""
        return {
            'server': {
                'host': '',
                'port': 8095,
            },
            'features': {
                'local_player_enabled': False,
                'local_player_name': '',
            },
            'playback': {
                'volume_debounce_ms': 300,
                'seek_debounce_ms': 500,
                'confirmation_timeout_ms': 5000,
                'seek_tolerance_seconds': 2.0,
            },
            'library': {
                'page_size': 50,
                'default_category': 'artists',
            },
            'artwork': {
                'max_entries': 50,
                'max_bytes': 100 * 1024 * 1024,
                'sample_stride': 10,
                'fetch_timeout_seconds': 10.0,
                'loader_workers': 2,
            },
            'connection': {
                'max_reconnect_attempts': 5,
                'reconnect_delay_seconds': 2.0,
            },
            'logging': {
                'level': 'INFO',
                'file': '',
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Supports dot-separated nested keys, e.g., "playback.seek_debounce_ms".

        Args:
            key: Configuration key
            default: Default value

        Returns:
            Configuration value or the default value.
        """
        with self._lock:
            keys = key.split('.')
            value = self._config

            try:
                for k in keys:
                    value = value[k]
                return value
            except (KeyError, TypeError):
                return default

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key (dot-separated)
            value: Configuration value
        """
        with self._lock:
            keys = key.split('.')
            config = self._config

            # Navigate to the parent node
            for k in keys[:-1]:
                if k not in config or not isinstance(config[k], dict):
                    config[k] = {}
                config = config[k]

            config[keys[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get all configurations."""
        with self._lock:
            return self._config.copy()

    # ===== Typed accessors =====

    def get_server_config(self) -> Optional[ServerConfig]:
        """Configured server, or None when no host is set"""
        return ServerConfig.from_dict(self.get("server", {}) or {})

    def set_server_config(self, server: ServerConfig) -> None:
        """Validate and store the server address

        Raises:
            InvalidConfigurationError: host or port is invalid
        """
        server.validate()
        self.set("server.host", server.host)
        self.set("server.port", server.port)

    def get_app_settings(self) -> AppSettings:
        return AppSettings.from_dict(self.get("features", {}) or {})

    def set_app_settings(self, settings: AppSettings) -> None:
        for key, value in settings.to_dict().items():
            self.set(f"features.{key}", value)

    def save(self) -> bool:
        """
        Save configuration to the configuration file.

        Returns:
            bool: True if saving was successful.
        """
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with self._lock:
                with open(self._config_path, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, allow_unicode=True, default_flow_style=False)
            logger.debug("Configuration saved to: %s", self._config_path)
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to save configuration: %s", e)
            return False

    def reload(self) -> bool:
        """
        Reload configuration

        Returns:
            bool: Whether loading was successful
        """
        try:
            self._load()
            return True
        except Exception as e:
            logger.error("Failed to reload configuration: %s", e)
            return False

    def reset(self) -> None:
        """Reset to default configuration."""
        with self._lock:
            self._config = self._get_default_config()
