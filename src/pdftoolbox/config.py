"""
Configuration management for PDF Toolbox.

This module provides application identifiers, configuration defaults,
per-tool constants and the JSON schemas used for persisted data.
"""

from pathlib import Path
from typing import Any

from PySide6.QtCore import QCoreApplication, QStandardPaths

# Application identifiers for QSettings
APP_ORGANIZATION = "PDFToolbox"
APP_NAME = "Desktop"

# JSON Schema version for preset compatibility
SCHEMA_VERSION = "1.0.0"

# Size ceilings
MB = 1024 * 1024
IMAGE_SIZE_LIMIT = 10 * MB
DOCUMENT_SIZE_LIMIT = 50 * MB

# Rendering scales
PREVIEW_SCALE = 1.0
OUTPUT_SCALE = 2.0
PREVIEW_JPEG_QUALITY = 95

HISTORY_FILE_NAME = "compression_history.json"
HISTORY_LIMIT = 10

# Default configuration with all supported keys and JSON-serializable types
DEFAULT_CONFIG: dict[str, Any] = {
    # General settings
    "output_dir": "",  # Will be set to Documents directory at runtime
    "last_open_dir": "",
    "last_tool": "jpg-to-pdf",
    # Rendering settings
    "preview_scale": PREVIEW_SCALE,
    "output_scale": OUTPUT_SCALE,
    # JPG to PDF page settings
    "page_size": "a4",  # Options: "a4", "letter", "legal"
    "orientation": "portrait",  # Options: "portrait", "landscape"
    "margin_mm": 0,
    "fit_to_page": True,
    # Compression settings
    "default_preset": "Balanced",
    # Debug settings
    "log_level": "INFO",  # Options: "DEBUG", "INFO", "WARNING", "ERROR"
}

COMPRESSION_SETTINGS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["image_quality", "image_scale", "compression_method"],
    "properties": {
        "image_quality": {"type": "integer", "minimum": 10, "maximum": 100},
        "image_scale": {"type": "number", "exclusiveMinimum": 0, "maximum": 1},
        "compression_method": {"type": "string", "enum": ["lossless", "balanced", "aggressive"]},
        "title": {"type": "string"},
        "author": {"type": "string"},
    },
}

# JSON Schema for preset validation (draft-07)
PRESET_JSON_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "PDF Toolbox Compression Preset",
    "description": "User-defined compression preset",
    "type": "object",
    "required": ["schema_version", "name", "settings"],
    "additionalProperties": False,
    "properties": {
        "schema_version": {"type": "string", "const": SCHEMA_VERSION},
        "name": {"type": "string", "minLength": 1, "maxLength": 100},
        "description": {"type": "string", "maxLength": 500},
        "created_at": {"type": "string", "format": "date-time"},
        "settings": COMPRESSION_SETTINGS_SCHEMA,
    },
}

HISTORY_RECORD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["fileName", "originalSize", "compressedSize", "date", "compressionRatio"],
    "properties": {
        "fileName": {"type": "string"},
        "originalSize": {"type": "integer", "minimum": 0},
        "compressedSize": {"type": "integer", "minimum": 0},
        "date": {"type": "string", "format": "date-time"},
        "compressionRatio": {"type": "string", "pattern": r"^-?\d+\.\d$"},
    },
}

HISTORY_JSON_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "PDF Toolbox Compression History",
    "type": "array",
    "items": HISTORY_RECORD_SCHEMA,
}


def get_app_config_dir() -> Path:
    """
    Get the application configuration directory using QStandardPaths.

    Returns:
        Path to the writable configuration directory for this application
    """
    config_location = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.ConfigLocation)
    return Path(config_location) / APP_ORGANIZATION / APP_NAME


def get_app_data_dir() -> Path:
    """Get the writable data directory (history, logs, staged shares)."""
    data_location = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.AppDataLocation)
    if not data_location:
        return get_app_config_dir()
    return Path(data_location)


def get_presets_dir() -> Path:
    """
    Get the directory where presets are stored.

    Returns:
        Path to the presets directory
    """
    return get_app_config_dir() / "presets"


def get_history_path() -> Path:
    """Get the compression history file path."""
    return get_app_data_dir() / HISTORY_FILE_NAME


def get_share_dir() -> Path:
    """Get the directory where shared copies are staged."""
    return get_app_data_dir() / "shared"


def sanitize_preset_name(name: str) -> str:
    """
    Sanitize a preset name to create a safe filename.

    Converts to lowercase, replaces spaces and special characters with hyphens,
    and removes any characters that aren't alphanumeric, hyphens, or underscores.

    Args:
        name: The human-readable preset name

    Returns:
        A sanitized filename-safe string
    """
    sanitized = name.lower().replace(" ", "-")
    sanitized = "".join(c for c in sanitized if c.isalnum() or c in "-_")

    while "--" in sanitized:
        sanitized = sanitized.replace("--", "-")

    sanitized = sanitized.strip("-")

    if not sanitized:
        sanitized = "preset"

    return sanitized


def get_default_output_dir() -> str:
    """
    Get the default output directory for downloads.

    Returns:
        Path to the user's Downloads directory, then Documents, then the
        current working directory as fallback
    """
    for location in (
        QStandardPaths.StandardLocation.DownloadLocation,
        QStandardPaths.StandardLocation.DocumentsLocation,
    ):
        candidate = QStandardPaths.writableLocation(location)
        if candidate and Path(candidate).exists():
            return candidate
    return str(Path.cwd())


def ensure_app_directories() -> None:
    """
    Ensure that application directories exist.

    Creates the configuration, presets and data directories if they don't exist.
    """
    get_app_config_dir().mkdir(parents=True, exist_ok=True)
    get_presets_dir().mkdir(parents=True, exist_ok=True)
    get_app_data_dir().mkdir(parents=True, exist_ok=True)


def setup_qsettings() -> None:
    """
    Configure QSettings with application identifiers.

    This should be called early in application startup to ensure
    QSettings uses the correct organization and application names.
    """
    QCoreApplication.setOrganizationName(APP_ORGANIZATION)
    QCoreApplication.setApplicationName(APP_NAME)
