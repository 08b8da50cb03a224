"""
Configuration manager for PDF Toolbox.

Provides QSettings-backed configuration with typed defaults taken from
DEFAULT_CONFIG and runtime defaults that depend on system paths.
"""

import logging
from typing import Any

from PySide6.QtCore import QSettings

from .config import DEFAULT_CONFIG, get_default_output_dir, setup_qsettings

logger = logging.getLogger(__name__)

_TRUE_STRINGS = ("true", "1", "yes", "on")

# Value constraints for keys that only accept a closed set
_CHOICES: dict[str, tuple[str, ...]] = {
    "page_size": ("a4", "letter", "legal"),
    "orientation": ("portrait", "landscape"),
    "log_level": ("DEBUG", "INFO", "WARNING", "ERROR"),
}


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in _TRUE_STRINGS
    return bool(value)


class ConfigManager:
    """
    QSettings-backed configuration manager.

    Values read back from QSettings are coerced to the type of their default,
    and values outside a key's allowed choices fall back to the default.
    """

    def __init__(self, settings: QSettings | None = None) -> None:
        setup_qsettings()
        self._settings = settings if settings is not None else QSettings()

        self._runtime_defaults = DEFAULT_CONFIG.copy()
        if not self._runtime_defaults["output_dir"]:
            self._runtime_defaults["output_dir"] = get_default_output_dir()

    def get(self, key: str, default: Any | None = None) -> Any:
        """
        Get a configuration value with fallback to defaults.

        Args:
            key: Configuration key
            default: Override default value (if None, uses DEFAULT_CONFIG)

        Returns:
            Stored value coerced to the default's type, or the default
        """
        fallback = default if default is not None else self._runtime_defaults.get(key)
        value = self._settings.value(key, fallback)

        if fallback is None:
            return value

        try:
            expected_type = type(fallback)
            if expected_type is bool:
                value = _to_bool(value)
            elif expected_type in (int, float, str):
                value = expected_type(value)
            elif not isinstance(value, expected_type):
                logger.warning(f"Config key '{key}' has unexpected type, using default")
                value = fallback
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to coerce config key '{key}': {e}, using default")
            return fallback

        choices = _CHOICES.get(key)
        if choices and value not in choices:
            logger.warning(f"Config key '{key}' has invalid value {value!r}, using default")
            return fallback

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value and persist it immediately.

        Args:
            key: Configuration key
            value: Value to store
        """
        self._settings.setValue(key, value)
        self._settings.sync()

    def load_all(self) -> dict[str, Any]:
        """
        Load all configuration values merged with defaults.

        Returns:
            Dictionary with every known key
        """
        return {key: self.get(key) for key in self._runtime_defaults}

    def reset_to_defaults(self) -> None:
        """Clear all stored settings."""
        self._settings.clear()
        self._settings.sync()
        logger.info("Configuration reset to defaults")

    def import_config(self, config: dict[str, Any]) -> None:
        """
        Import configuration from a dictionary, skipping unknown keys.

        Args:
            config: Dictionary containing configuration values
        """
        for key, value in config.items():
            if key not in self._runtime_defaults:
                logger.warning(f"Unknown config key '{key}', skipping")
                continue
            expected_type = type(self._runtime_defaults[key])
            try:
                if expected_type is bool:
                    value = _to_bool(value)
                elif expected_type in (int, float, str) and not isinstance(value, expected_type):
                    value = expected_type(value)
                self.set(key, value)
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to import config key '{key}': {e}, skipping")

    def get_last_tool(self) -> str:
        """Slug of the tool that was open when the window last closed."""
        return str(self.get("last_tool"))

    def set_last_tool(self, slug: str) -> None:
        self.set("last_tool", slug)

    def get_last_open_dir(self) -> str:
        """Directory of the last browse dialog, or the output directory."""
        return self.get("last_open_dir") or self.get("output_dir")

    def set_last_open_dir(self, directory: str) -> None:
        self.set("last_open_dir", directory)

    def has_key(self, key: str) -> bool:
        """
        Check if a configuration key exists in storage.

        Args:
            key: Configuration key to check

        Returns:
            True if the key exists in storage, False otherwise
        """
        return self._settings.contains(key)

    def remove_key(self, key: str) -> None:
        self._settings.remove(key)
        self._settings.sync()
