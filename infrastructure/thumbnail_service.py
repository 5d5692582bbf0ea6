"""Thumbnail generation with an in-memory LRU cache.

Thumbnails are JPEG bytes produced with Pillow (HEIC via pillow-heif). The
cache is owned by the service instance and keyed by the photo's relative
`file_path`; nothing in `core` reads or writes it.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import io
from pathlib import Path

from PIL import Image, ImageOps
from loguru import logger
from pillow_heif import register_heif_opener

register_heif_opener()

DEFAULT_MEM_CACHE = 512
DEFAULT_THUMBNAIL_SIZE = 400


@dataclass
class _MemCacheItem:
    key: str
    data: bytes
    side: int


class _LRUCache:
    def __init__(self, capacity: int) -> None:
        self._cap = max(1, int(capacity or 1))
        self._data: OrderedDict[str, _MemCacheItem] = OrderedDict()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str) -> _MemCacheItem | None:
        """Return cached item for key, moving it to the MRU position."""
        item = self._data.get(key)
        if not item:
            return None
        self._data.move_to_end(key)
        return item

    def put(self, key: str, data: bytes, side: int) -> None:
        """Insert or update `key`, evicting LRU entries when over capacity."""
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = _MemCacheItem(key, data, side)
        while len(self._data) > self._cap:
            evicted, _ = self._data.popitem(last=False)
            logger.debug("Evicted thumbnail {}", evicted)

    def pop(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


def render_thumbnail(source: str | Path, side: int) -> bytes | None:
    """Decode `source`, honor EXIF orientation and return JPEG bytes.

    Returns None when the file cannot be decoded (videos, corrupt images).
    """
    try:
        with Image.open(source) as im:
            try:
                im = ImageOps.exif_transpose(im)
            except (OSError, ValueError, AttributeError):
                pass
            if side and side > 0:
                im.thumbnail((side, side), Image.Resampling.LANCZOS)
            if im.mode not in ("RGB", "L"):
                im = im.convert("RGB")
            buf = io.BytesIO()
            im.save(buf, "JPEG", quality=85)
            return buf.getvalue()
    except (OSError, ValueError) as ex:
        logger.debug("Pillow load failed for {}: {}", source, ex)
        return None


class ThumbnailService:
    """Session-local thumbnail provider."""

    def __init__(self, settings: object | None = None) -> None:
        """Read `thumbnail_mem_cache` and `thumbnail_size` from `settings`."""
        self._mem_cap = DEFAULT_MEM_CACHE
        self._side = DEFAULT_THUMBNAIL_SIZE
        if settings is not None:
            try:
                self._mem_cap = int(settings.get("thumbnail_mem_cache", DEFAULT_MEM_CACHE) or DEFAULT_MEM_CACHE)
            except (ValueError, TypeError):
                self._mem_cap = DEFAULT_MEM_CACHE
            try:
                self._side = int(settings.get("thumbnail_size", DEFAULT_THUMBNAIL_SIZE) or DEFAULT_THUMBNAIL_SIZE)
            except (ValueError, TypeError):
                self._side = DEFAULT_THUMBNAIL_SIZE
        self._cache = _LRUCache(self._mem_cap)

    @property
    def capacity(self) -> int:
        return self._mem_cap

    def __len__(self) -> int:
        return len(self._cache)

    def is_cached(self, file_path: str) -> bool:
        return file_path in self._cache

    def get_thumbnail(self, file_path: str, source: str | Path, side: int | None = None) -> bytes | None:
        """Thumbnail for the photo at `file_path`, read from `source` on a miss.

        A cached entry rendered at a different size is regenerated.
        """
        side = side or self._side
        item = self._cache.get(file_path)
        if item is not None and item.side == side:
            return item.data

        data = render_thumbnail(source, side)
        if data is None:
            return None
        self._cache.put(file_path, data, side)
        return data

    def invalidate(self, file_path: str) -> None:
        self._cache.pop(file_path)

    def clear(self) -> None:
        self._cache.clear()
