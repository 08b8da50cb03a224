"""
Compression presets.

Three presets are built in. Users can save their own compression settings
under a name; those are stored as one JSON file each, validated against
PRESET_JSON_SCHEMA and written atomically.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

import jsonschema

from .config import PRESET_JSON_SCHEMA, SCHEMA_VERSION, ensure_app_directories, get_presets_dir, sanitize_preset_name
from .errors import ConfigError, ErrorCode
from .models import CompressionMethod, CompressionSettings

logger = logging.getLogger(__name__)

HIGH_QUALITY = "High Quality"
BALANCED = "Balanced"
SMALL_SIZE = "Small Size"

BUILTIN_PRESETS: dict[str, CompressionSettings] = {
    HIGH_QUALITY: CompressionSettings(image_quality=90, image_scale=1.0, compression_method=CompressionMethod.LOSSLESS),
    BALANCED: CompressionSettings(image_quality=70, image_scale=0.75, compression_method=CompressionMethod.BALANCED),
    SMALL_SIZE: CompressionSettings(image_quality=50, image_scale=0.5, compression_method=CompressionMethod.AGGRESSIVE),
}

DEFAULT_PRESET = BALANCED


class PresetError(ConfigError):
    """A preset could not be found, saved or read."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.CONFIG_INVALID, technical_message: str | None = None):
        super().__init__(code=code, user_message=message, technical_message=technical_message)


def builtin_preset(name: str) -> CompressionSettings:
    """
    A copy of a built-in preset's settings.

    Raises:
        PresetError: If there is no built-in preset with that name
    """
    try:
        settings = BUILTIN_PRESETS[name]
    except KeyError as e:
        raise PresetError(f"Preset '{name}' not found") from e
    return CompressionSettings(**vars(settings))


class PresetManager:
    """
    Manager for user compression presets with JSON storage and validation.

    Built-in presets are read-only and always listed first.
    """

    def __init__(self, presets_dir: Path | None = None) -> None:
        if presets_dir is None:
            ensure_app_directories()
            presets_dir = get_presets_dir()
        self._presets_dir = Path(presets_dir)
        self._presets_dir.mkdir(parents=True, exist_ok=True)
        self._preset_cache: list[str] | None = None

        logger.debug(f"PresetManager initialized with directory: {self._presets_dir}")

    def _preset_path(self, name: str) -> Path:
        return self._presets_dir / f"{sanitize_preset_name(name)}.json"

    def save_preset(
        self, name: str, settings: CompressionSettings, description: str = "", overwrite: bool = False
    ) -> None:
        """
        Save compression settings as a named preset.

        Args:
            name: Human-readable preset name
            settings: Settings to store
            description: Optional description
            overwrite: Whether to replace an existing preset

        Raises:
            PresetError: If the name is empty or built in, the preset exists
                and overwrite is False, the data is invalid, or the write fails
        """
        name = (name or "").strip()
        if not name:
            raise PresetError("Preset name cannot be empty")
        if name in BUILTIN_PRESETS:
            raise PresetError(f"'{name}' is a built-in preset and cannot be replaced")

        preset_path = self._preset_path(name)
        if preset_path.exists() and not overwrite:
            raise PresetError(f"Preset '{name}' already exists")

        preset_data = {
            "schema_version": SCHEMA_VERSION,
            "name": name,
            "created_at": datetime.now().isoformat(),
            "settings": settings.to_dict(),
        }
        if description:
            preset_data["description"] = description

        try:
            jsonschema.validate(preset_data, PRESET_JSON_SCHEMA)
        except jsonschema.ValidationError as e:
            raise PresetError(f"Preset validation failed: {e.message}") from e

        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w", suffix=".json", dir=self._presets_dir, delete=False, encoding="utf-8"
            ) as temp_file:
                json.dump(preset_data, temp_file, ensure_ascii=False, indent=2, sort_keys=True)
                temp_path = temp_file.name
            os.replace(temp_path, preset_path)
        except OSError as e:
            if temp_path:
                Path(temp_path).unlink(missing_ok=True)
            raise PresetError(f"Failed to save preset '{name}'", ErrorCode.OS_ERROR, str(e)) from e

        logger.info(f"Saved preset '{name}' to {preset_path}")
        self._preset_cache = None

    def load_preset(self, name: str) -> CompressionSettings:
        """
        Load a preset by name, built-in or user.

        Raises:
            PresetError: If the preset doesn't exist or is corrupted
        """
        if name in BUILTIN_PRESETS:
            return builtin_preset(name)

        preset_path = self._preset_path(name)
        if not preset_path.exists():
            raise PresetError(f"Preset '{name}' not found")

        try:
            with open(preset_path, encoding="utf-8") as f:
                preset_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PresetError(f"Failed to load preset '{name}'", ErrorCode.CONFIG_PARSE_ERROR, str(e)) from e

        if preset_data.get("schema_version") != SCHEMA_VERSION:
            logger.warning(
                f"Preset '{name}' has schema version {preset_data.get('schema_version')}, expected {SCHEMA_VERSION}"
            )

        try:
            jsonschema.validate(preset_data, PRESET_JSON_SCHEMA)
        except jsonschema.ValidationError as e:
            raise PresetError(f"Preset '{name}' is corrupted: {e.message}", ErrorCode.CONFIG_INVALID) from e

        return CompressionSettings.from_dict(preset_data["settings"])

    def delete_preset(self, name: str) -> None:
        """
        Delete a user preset.

        Raises:
            PresetError: If the preset is built in, missing, or cannot be removed
        """
        if name in BUILTIN_PRESETS:
            raise PresetError(f"'{name}' is a built-in preset and cannot be deleted")

        preset_path = self._preset_path(name)
        if not preset_path.exists():
            raise PresetError(f"Preset '{name}' not found")

        try:
            preset_path.unlink()
        except OSError as e:
            raise PresetError(f"Failed to delete preset '{name}'", ErrorCode.OS_ERROR, str(e)) from e

        logger.info(f"Deleted preset '{name}'")
        self._preset_cache = None

    def list_user_presets(self) -> list[str]:
        """Names of user presets, sorted."""
        if self._preset_cache is not None:
            return self._preset_cache.copy()

        presets = []
        for preset_file in self._presets_dir.glob("*.json"):
            try:
                with open(preset_file, encoding="utf-8") as f:
                    preset_name = json.load(f).get("name")
            except (json.JSONDecodeError, OSError, AttributeError) as e:
                logger.warning(f"Failed to read preset file {preset_file}: {e}")
                continue
            if preset_name:
                presets.append(preset_name)
            else:
                logger.warning(f"Preset file {preset_file} missing name field")

        presets.sort()
        self._preset_cache = presets
        return presets.copy()

    def list_presets(self) -> list[str]:
        """Built-in presets in their fixed order, then user presets."""
        return [*BUILTIN_PRESETS, *self.list_user_presets()]

    def preset_exists(self, name: str) -> bool:
        return name in BUILTIN_PRESETS or self._preset_path(name).exists()

    def clear_cache(self) -> None:
        self._preset_cache = None
