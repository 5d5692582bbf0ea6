"""JSON file persistence for serialized project state.

One file per project id under the storage directory. Reads never raise on
corrupt content; writes log and re-raise so the caller knows nothing was
saved.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

STATE_SUFFIX = ".state.json"


class JsonStateStore:
    """`StateStore` writing `<storage_dir>/<project_id>.state.json`."""

    def __init__(self, storage_dir: str | Path) -> None:
        self._dir = Path(os.path.expandvars(str(storage_dir))).expanduser()

    def _path_for(self, project_id: str) -> Path:
        return self._dir / f"{project_id}{STATE_SUFFIX}"

    def load_state(self, project_id: str) -> dict[str, Any] | None:
        path = self._path_for(project_id)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as ex:
            logger.error("Failed to read project state {}: {}", path, ex)
            return None
        if not isinstance(data, dict):
            logger.error("Ignoring project state {}: expected an object", path)
            return None
        return data

    def save_state(self, project_id: str, data: dict[str, Any]) -> None:
        """Write atomically via a temp file in the same directory."""
        path = self._path_for(project_id)
        tmp = path.with_suffix(".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as ex:
            logger.error("Failed to save project state {}: {}", path, ex)
            raise

    def remove_state(self, project_id: str) -> None:
        path = self._path_for(project_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as ex:
            logger.error("Failed to remove project state {}: {}", path, ex)
            raise

    def list_projects(self) -> list[str]:
        """Ids of every stored project, sorted."""
        if not self._dir.exists():
            return []
        return sorted(p.name[: -len(STATE_SUFFIX)] for p in self._dir.glob(f"*{STATE_SUFFIX}"))
