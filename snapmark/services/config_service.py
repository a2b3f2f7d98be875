"""
Configuration service for SnapMark.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/snapmark/config.json following
the XDG Base Directory Specification.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from snapmark.editor.annotations import (
    Color,
    LabelStyle,
    StrokeSettings,
    StrokeStyle,
)
from snapmark.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "snapmark"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_ENABLED_ACTIONS: List[str] = [
    "rectangle",
    "ellipse",
    "polyline",
    "arrow",
    "annotate",
    "highlighter",
    "sequence",
    "undo",
    "redo",
    "cancel",
    "save",
    "copy",
]

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    # Pen used by strokes, arrows, shapes and polylines
    "stroke_width": 4.0,
    "stroke_style": "solid",
    "stroke_color": "#FF0000FF",
    "highlighter_color": "#FFFF0064",
    # Sequence markers
    "marker_radius": 16.0,
    "marker_label_style": "number",
    # Toolbar actions, in display order
    "enabled_actions": list(DEFAULT_ENABLED_ACTIONS),
    "history_limit": 50,
    # Screenshot save location - uses ~/Pictures/SnapMark as default
    "default_save_folder": str(Path.home() / "Pictures" / "SnapMark"),
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/snapmark/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = self._deep_copy_defaults()

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Persist any default keys missing from the file
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = self._deep_copy_defaults()
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_copy_defaults(self) -> Dict[str, Any]:
        """Create a deep copy of default config."""
        import copy
        return copy.deepcopy(DEFAULT_CONFIG)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def _invalid(self, key: str, value: Any) -> Any:
        """Log an unusable value and return the key's default."""
        default = DEFAULT_CONFIG[key]
        self._logger.warning(
            f"Invalid value {value!r} for '{key}'. Using default {default!r}."
        )
        return default

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Args:
            key: The configuration key to set.
            value: The value to set.

        Note:
            Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Stroke Settings ──────────────────────────────────────────────────

    @property
    def stroke_width(self) -> float:
        """Get the default pen width in logical pixels."""
        value = self.get("stroke_width", DEFAULT_CONFIG["stroke_width"])
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            return self._invalid("stroke_width", value)
        return float(value)

    @property
    def stroke_style(self) -> StrokeStyle:
        """Get the default line pattern."""
        value = self.get("stroke_style", DEFAULT_CONFIG["stroke_style"])
        try:
            return StrokeStyle[str(value).upper()]
        except KeyError:
            return StrokeStyle[self._invalid("stroke_style", value).upper()]

    @property
    def stroke_color(self) -> Color:
        """Get the default pen color."""
        return self._color("stroke_color")

    @property
    def highlighter_color(self) -> Color:
        """Get the highlighter fill color."""
        return self._color("highlighter_color")

    def _color(self, key: str) -> Color:
        value = self.get(key, DEFAULT_CONFIG[key])
        try:
            return Color.from_hex(str(value))
        except ValueError:
            return Color.from_hex(self._invalid(key, value))

    def stroke_settings(self) -> StrokeSettings:
        """Build the default StrokeSettings from configuration."""
        return StrokeSettings(
            width=self.stroke_width,
            style=self.stroke_style,
            color=self.stroke_color,
        )

    # ─── Marker Settings ──────────────────────────────────────────────────

    @property
    def marker_radius(self) -> float:
        """Get the sequence marker radius in logical pixels."""
        value = self.get("marker_radius", DEFAULT_CONFIG["marker_radius"])
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            return self._invalid("marker_radius", value)
        return float(value)

    @property
    def marker_label_style(self) -> LabelStyle:
        """Get the sequence marker label style."""
        value = self.get("marker_label_style", DEFAULT_CONFIG["marker_label_style"])
        try:
            return LabelStyle[str(value).upper()]
        except KeyError:
            return LabelStyle[self._invalid("marker_label_style", value).upper()]

    # ─── Session Settings ─────────────────────────────────────────────────

    @property
    def enabled_actions(self) -> List[str]:
        """Get the toolbar action ids, in display order."""
        value = self.get("enabled_actions", DEFAULT_CONFIG["enabled_actions"])
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return list(self._invalid("enabled_actions", value))
        return list(value)

    @property
    def history_limit(self) -> int:
        """Get the maximum number of undo steps."""
        value = self.get("history_limit", DEFAULT_CONFIG["history_limit"])
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return self._invalid("history_limit", value)
        return value

    # ─── Screenshot Settings ──────────────────────────────────────────────

    @property
    def default_save_folder(self) -> str:
        """Get the default save folder for screenshots."""
        return self.get("default_save_folder", DEFAULT_CONFIG["default_save_folder"])
