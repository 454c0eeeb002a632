"""Configuration management for Inkline."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "inkline"
DEFAULTS_PATH = Path(__file__).resolve().parent.parent / "settings" / "defaults.yaml"
USER_SETTINGS_PATH = CONFIG_DIR / "settings.yaml"


class ConfigManager:
    """Loads default and user configuration and provides helpers to query values."""

    def __init__(self, user_settings_path: Path | None = None) -> None:
        self.user_settings_path = Path(user_settings_path or USER_SETTINGS_PATH)
        self.defaults = self._load_yaml(DEFAULTS_PATH)
        if self.user_settings_path.exists():
            self.user_settings = self._load_yaml(self.user_settings_path)
        else:
            self.user_settings = {}
        self.settings = self._deep_merge(self.defaults, self.user_settings)

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any | None = None) -> Any:
        return self.settings.get(key, default)

    def lookup(self, dotted: str, default: Any | None = None) -> Any:
        """Resolve a dotted key such as ``intellisense.min_chars``."""

        node: Any = self.settings
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = dict(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
