"""Folder credentials per project, kept in a single JSON file."""

from __future__ import annotations

import json
import os
from pathlib import Path

from loguru import logger


class JsonHandleStore:
    """`HandleStore` mapping project ids to folder paths."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(os.path.expandvars(str(path))).expanduser()

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as ex:
            logger.error("Failed to read handle store {}: {}", self._path, ex)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v}

    def _write(self, handles: dict[str, str]) -> None:
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(handles, f, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except OSError as ex:
            logger.error("Failed to write handle store {}: {}", self._path, ex)
            raise

    def get_handle(self, project_id: str) -> str | None:
        return self._read().get(project_id)

    def save_handle(self, project_id: str, handle: str) -> None:
        handles = self._read()
        handles[project_id] = handle
        self._write(handles)

    def remove_handle(self, project_id: str) -> None:
        handles = self._read()
        if handles.pop(project_id, None) is not None:
            self._write(handles)
