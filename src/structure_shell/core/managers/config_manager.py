# src/structure_shell/core/managers/config_manager.py
import json
import logging
from typing import Any, Dict, Optional

from structure_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    A singleton class to manage the application's configuration.
    It loads the shipped settings.json, merges the user settings file over it
    and allows for in-memory modifications that can be saved to that file.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'fetcher.time_out'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration, cast to the type
        of the value it replaces where possible.
        e.g., 'analysis.landmarks', 'false'
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if isinstance(original_value, dict):
            logger.error("Cannot overwrite section '%s' with a single value.", key_path)
            return False
        if original_value is not None:
            value = self._cast(key_path, value, type(original_value))

        d[keys[-1]] = value
        logger.info("Configuration updated: %s = %s", key_path, value)
        return True

    @staticmethod
    def _cast(key_path: str, value: Any, target: type) -> Any:
        # bool("false") is True, so booleans are parsed explicitly
        if target is bool and isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            logger.warning("Could not cast '%s' for '%s' to bool. Storing as string.", value, key_path)
            return value
        try:
            return target(value)
        except (ValueError, TypeError):
            logger.warning(
                "Could not cast new value for '%s' to type %s. Storing as string.",
                key_path, target.__name__
            )
            return value

    def save_nested(self, key_path: str) -> bool:
        """
        Writes the current value of a key to the user settings file so it
        survives this process. Only saved keys are written, not the defaults.
        """
        value = self.get_nested(key_path)
        if value is None:
            logger.error("Cannot save unknown config key '%s'.", key_path)
            return False

        user_path = PathUtils.get_user_settings_file()
        overrides = self._read_json(user_path) or {}
        d = overrides
        keys = key_path.split('.')
        for key in keys[:-1]:
            if not isinstance(d.get(key), dict):
                d[key] = {}
            d = d[key]
        d[keys[-1]] = value

        try:
            user_path.parent.mkdir(parents=True, exist_ok=True)
            with open(user_path, "w", encoding="utf-8") as f:
                json.dump(overrides, f, indent=2)
        except OSError as e:
            logger.error("Failed to write %s: %s", user_path, e)
            return False
        logger.info("Saved %s to %s", key_path, user_path)
        return True

    def clear_saved(self) -> None:
        """Removes the user settings file and reloads the shipped defaults."""
        user_path = PathUtils.get_user_settings_file()
        try:
            user_path.unlink()
            logger.info("Removed user settings at %s", user_path)
        except FileNotFoundError:
            pass
        self.reset()

    def reset(self):
        """
        Resets the in-memory configuration from the shipped settings.json,
        with the user settings file (if any) merged over it.
        """
        config_path = PathUtils.get_settings_file()
        if not config_path.exists():
            logger.warning("settings.json not found at %s. Using empty config.", config_path)
        self._config = self._read_json(config_path) or {}

        overrides = self._read_json(PathUtils.get_user_settings_file())
        if overrides:
            self._merge(self._config, overrides)
        logger.debug("Configuration has been (re)loaded from settings.json.")

    @staticmethod
    def _read_json(path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load %s: %s", path, e, exc_info=True)
            return None
        if not isinstance(data, dict):
            logger.error("Ignoring %s: top level is not an object.", path)
            return None
        return data

    @classmethod
    def _merge(cls, base: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                cls._merge(base[key], value)
            else:
                base[key] = value


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()
