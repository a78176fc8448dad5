"""JSON-backed settings store for folder locations."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from xcsweep.utils import default_developer_folder, xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "xcsweep"
_SETTINGS_FILE = "settings.json"

DEVELOPER_FOLDER_KEY = "folders.developer"
DERIVED_DATA_KEY = "folders.derived_data"
ARCHIVES_KEY = "folders.archives"

KNOWN_KEYS = (DEVELOPER_FOLDER_KEY, DERIVED_DATA_KEY, ARCHIVES_KEY)


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("folders.derived_data")  # reads data["folders"]["derived_data"]
        settings.set("folders.archives", "/Volumes/Build/Archives")  # writes + saves
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _parent(self, key: str, create: bool = False) -> tuple[dict[str, Any] | None, str]:
        """Resolve the section holding the last part of *key*."""
        *sections, name = key.split(".")
        node: Any = self._data
        for section in sections:
            child = node.get(section)
            if not isinstance(child, dict):
                if not create:
                    return None, name
                child = node[section] = {}
            node = child
        return node, name

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        section, name = self._parent(key)
        if section is None:
            return default
        return section.get(name, default)

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        section, name = self._parent(key, create=True)
        section[name] = value
        self._save()

    def unset(self, key: str) -> bool:
        """Remove a value by dot-notation key. Returns whether it existed."""
        section, name = self._parent(key)
        if section is None or name not in section:
            return False
        del section[name]
        self._save()
        return True

    def get_path(self, key: str) -> Path | None:
        """Get a value as an expanded path, or None when unset."""
        value = self.get(key)
        if not value:
            return None
        return Path(value).expanduser()

    @property
    def developer_folder(self) -> Path:
        return self.get_path(DEVELOPER_FOLDER_KEY) or default_developer_folder()

    @property
    def custom_derived_data(self) -> Path | None:
        return self.get_path(DERIVED_DATA_KEY)

    @property
    def custom_archives(self) -> Path | None:
        return self.get_path(ARCHIVES_KEY)

    def _load(self) -> None:
        """Read the settings file. A missing, unreadable or malformed file means no settings."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            log.warning("Ignoring settings in %s: not a JSON object", self._path)

    def _save(self) -> None:
        """Write all settings back to the file, creating its folder if needed."""
        text = json.dumps(self._data, indent=2, ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)
