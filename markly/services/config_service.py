"""
Configuration service for Markly.

This module handles loading, saving, and managing editor settings.
Configuration is stored as JSON in ~/.config/markly/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from markly.services.logging_service import get_logger

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "markly"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    # Drawing surface; the background image is scaled to this size
    "canvas": {
        "width": 800,
        "height": 600,
        "background_color": "#ffffff",
    },
    # Style applied to newly drawn shapes
    "style": {
        "stroke_color": "#ff0000",
        "line_width": 2,
    },
    "text": {
        "font_size": 20,
        "font_family": "Arial",
    },
    # Number of undo snapshots kept (oldest evicted first)
    "history_limit": 20,
    # Side length of the transformer's corner handles, in pixels
    "handle_size": 10,
    # Block size of the pixelation brush pattern
    "mosaic_pixel_size": 10,
    # Level name for console and file logs (DEBUG, INFO, WARNING, ...)
    "log_level": "INFO",
}


class ConfigService:
    """
    Service for managing editor configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/markly/config.json
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
        self._config = copy.deepcopy(DEFAULT_CONFIG)

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
                # Save back to ensure any new default keys are persisted
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

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

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._config.get(name)
        if isinstance(section, dict):
            return section
        return DEFAULT_CONFIG[name]

    def _number(self, value: Any, default: Any, cast: Callable[[Any], Any], key: str) -> Any:
        """Cast a numeric setting, falling back to the default when it won't cast."""
        try:
            return cast(value)
        except (TypeError, ValueError):
            self._logger.warning(
                f"Invalid value '{value}' for '{key}', using default {default}"
            )
            return cast(default)

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

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Canvas Settings ──────────────────────────────────────────────────

    @property
    def canvas_size(self) -> Tuple[int, int]:
        """Get the (width, height) of the drawing surface."""
        canvas = self._section("canvas")
        defaults = DEFAULT_CONFIG["canvas"]
        width = canvas.get("width", defaults["width"])
        height = canvas.get("height", defaults["height"])
        return (
            self._number(width, defaults["width"], int, "canvas.width"),
            self._number(height, defaults["height"], int, "canvas.height"),
        )

    @property
    def background_color(self) -> str:
        return self._section("canvas").get(
            "background_color", DEFAULT_CONFIG["canvas"]["background_color"]
        )

    # ─── Style Settings ───────────────────────────────────────────────────

    @property
    def stroke_color(self) -> str:
        return self._section("style").get(
            "stroke_color", DEFAULT_CONFIG["style"]["stroke_color"]
        )

    @property
    def line_width(self) -> float:
        default = DEFAULT_CONFIG["style"]["line_width"]
        value = self._section("style").get("line_width", default)
        return self._number(value, default, float, "style.line_width")

    @property
    def font_size(self) -> int:
        default = DEFAULT_CONFIG["text"]["font_size"]
        value = self._section("text").get("font_size", default)
        return self._number(value, default, int, "text.font_size")

    @property
    def font_family(self) -> str:
        return self._section("text").get(
            "font_family", DEFAULT_CONFIG["text"]["font_family"]
        )

    # ─── Editor Settings ──────────────────────────────────────────────────

    @property
    def history_limit(self) -> int:
        default = DEFAULT_CONFIG["history_limit"]
        return self._number(self.get("history_limit", default), default, int, "history_limit")

    @property
    def handle_size(self) -> float:
        default = DEFAULT_CONFIG["handle_size"]
        return self._number(self.get("handle_size", default), default, float, "handle_size")

    @property
    def mosaic_pixel_size(self) -> int:
        default = DEFAULT_CONFIG["mosaic_pixel_size"]
        return self._number(
            self.get("mosaic_pixel_size", default), default, int, "mosaic_pixel_size"
        )

    @property
    def log_level(self) -> str:
        return str(self.get("log_level", DEFAULT_CONFIG["log_level"]))
