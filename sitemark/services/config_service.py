"""
Configuration service for SiteMark.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/sitemark/config.json following
the XDG Base Directory Specification.

The server URL and auth token normally come from the session that signed
the user in. SITEMARK_SERVER_URL and SITEMARK_TOKEN override whatever is
stored in the file.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from sitemark.editor.annotations import DEFAULT_COLOR, PALETTE
from sitemark.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "sitemark"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

ENV_SERVER_URL = "SITEMARK_SERVER_URL"
ENV_TOKEN = "SITEMARK_TOKEN"

TRADE_CATEGORIES: List[str] = [
    "Electrical",
    "Plumbing",
    "HVAC",
    "Flooring",
    "Walls",
    "Ceiling",
    "Windows",
    "Doors",
    "Cabinetry",
    "Countertops",
]

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "server_url": "http://localhost:3000",
    "auth_token": "",
    # Seconds before an upload request is abandoned
    "upload_timeout": 60,
    "default_color": DEFAULT_COLOR,
    # Marker/circle stay selected for repeated placement
    "auto_deselect_single_tap": False,
    # Arrow/measurement return to "no tool" after the second tap
    "auto_deselect_two_point": True,
    "trade_categories": TRADE_CATEGORIES,
    "default_project_id": "",
    # Folder the photo picker opens in
    "photo_folder": str(Path.home() / "Pictures"),
}


def _matches_default(value: Any, default: Any) -> bool:
    """True if `value` has the same JSON type as `default` (ints and floats mix)."""
    if isinstance(default, bool) or isinstance(value, bool):
        return isinstance(value, bool) and isinstance(default, bool)
    if isinstance(default, (int, float)):
        return isinstance(value, (int, float))
    if isinstance(default, list):
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, type(default))


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
                        ~/.config/sitemark/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def path(self) -> Path:
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
                self._drop_invalid()
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Save back so new default keys are persisted
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
            self._logger.warning(f"Could not read config file: {e}. Using defaults.")

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _drop_invalid(self) -> None:
        """Reset keys whose stored value has the wrong type for their default."""
        for key, default in DEFAULT_CONFIG.items():
            value = self._config.get(key)
            if not _matches_default(value, default):
                self._logger.warning(
                    f"Config key '{key}' has invalid value {value!r}; using default"
                )
                self._config[key] = copy.deepcopy(default)

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

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
        # The token is a credential
        shown = "***" if key == "auth_token" else value
        self._logger.debug(f"Config key '{key}' set to '{shown}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Server Settings ──────────────────────────────────────────────────

    @property
    def server_url(self) -> str:
        """Base URL of the photo API, without trailing slash."""
        url = os.environ.get(ENV_SERVER_URL) or self.get(
            "server_url", DEFAULT_CONFIG["server_url"]
        )
        return url.rstrip("/")

    @property
    def auth_token(self) -> str:
        """Bearer token for the photo API."""
        return os.environ.get(ENV_TOKEN) or self.get("auth_token", "")

    @property
    def upload_timeout(self) -> float:
        return float(self.get("upload_timeout", DEFAULT_CONFIG["upload_timeout"]))

    @property
    def default_project_id(self) -> str:
        return str(self.get("default_project_id", ""))

    # ─── Editor Settings ──────────────────────────────────────────────────

    @property
    def default_color(self) -> str:
        """Initial annotation color; falls back to the first palette entry."""
        color = self.get("default_color", DEFAULT_COLOR)
        if color not in PALETTE:
            self._logger.warning(f"default_color {color!r} not in palette, using {DEFAULT_COLOR}")
            return DEFAULT_COLOR
        return color

    @property
    def auto_deselect_single_tap(self) -> bool:
        return bool(self.get("auto_deselect_single_tap", False))

    @property
    def auto_deselect_two_point(self) -> bool:
        return bool(self.get("auto_deselect_two_point", True))

    @property
    def trade_categories(self) -> List[str]:
        return list(self.get("trade_categories", TRADE_CATEGORIES))

    @property
    def photo_folder(self) -> str:
        return self.get("photo_folder", DEFAULT_CONFIG["photo_folder"])
