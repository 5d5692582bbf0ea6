"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.constants import (
    DEFAULT_ARCHIVE_FOLDER,
    DEFAULT_DAYS_FOLDER,
    DEFAULT_FAVORITES_FOLDER,
    DEFAULT_META_FOLDER,
)
from core.models import FolderStructure, ProjectSettings


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node


def project_settings_from(settings: JsonSettings | None) -> ProjectSettings:
    """Default `ProjectSettings` for new projects, from `folder_structure.*` and `auto_day`."""
    if settings is None:
        return ProjectSettings()
    return ProjectSettings(
        auto_day=bool(settings.get("auto_day", True)),
        folder_structure=FolderStructure(
            days_folder=str(settings.get("folder_structure.days_folder") or DEFAULT_DAYS_FOLDER),
            archive_folder=str(
                settings.get("folder_structure.archive_folder") or DEFAULT_ARCHIVE_FOLDER
            ),
            favorites_folder=str(
                settings.get("folder_structure.favorites_folder") or DEFAULT_FAVORITES_FOLDER
            ),
            meta_folder=str(settings.get("folder_structure.meta_folder") or DEFAULT_META_FOLDER),
        ),
    )
