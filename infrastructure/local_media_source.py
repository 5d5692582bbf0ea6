"""Media listing over a local directory tree."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from core.constants import SUPPORTED_EXTENSIONS, SYSTEM_FILE_NAMES
from core.models import MediaFile


class LocalMediaSource:
    """`MediaSource` backed by a directory on the local filesystem.

    The handle is the directory path. Traversal is depth-first with entries
    sorted by name, so an unchanged folder always lists in the same order.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def name(self) -> str:
        return self._root.name or str(self._root)

    def request_permission(self) -> bool:
        """Raise `OSError` if the root is gone; otherwise report read access."""
        if not self._root.is_dir():
            raise FileNotFoundError(f"Project folder not found: {self._root}")
        return os.access(self._root, os.R_OK | os.X_OK)

    def list_media_files(self) -> list[MediaFile]:
        files: list[MediaFile] = []
        self._collect(self._root, "", files)
        logger.debug("Listed {} media files under {}", len(files), self._root)
        return files

    def _collect(self, directory: Path, prefix: str, out: list[MediaFile]) -> None:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            if entry.name.startswith("."):
                continue
            rel = f"{prefix}{entry.name}"
            # Directory symlinks are not followed to avoid cycles
            if entry.is_dir(follow_symlinks=False):
                self._collect(Path(entry.path), f"{rel}/", out)
                continue
            if not entry.is_file() or entry.name.lower() in SYSTEM_FILE_NAMES:
                continue
            ext = entry.name.rsplit(".", 1)[-1].lower() if "." in entry.name else ""
            if ext not in SUPPORTED_EXTENSIONS:
                continue
            try:
                st = entry.stat()
            except OSError as ex:
                logger.debug("stat failed for {}: {}", entry.path, ex)
                continue
            out.append(
                MediaFile(
                    path=rel,
                    name=entry.name,
                    last_modified=int(st.st_mtime * 1000),
                    size=int(st.st_size),
                    absolute_path=entry.path,
                )
            )
