"""Utilities for EXIF date extraction and image metadata.

Best-effort: nothing here raises on unreadable files; callers should expect
`None` when data is not available.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from PIL import Image
from loguru import logger

from core.constants import VIDEO_EXTENSIONS
from core.models import MediaFile, PhotoMetadata

# EXIF tags
_TAG_MAKE = 271
_TAG_MODEL = 272
_TAG_DATETIME = 306
_TAG_DATETIME_ORIGINAL = 36867
_EXIF_IFD = 0x8769


def _parse_exif_datetime(value: Any) -> datetime | None:
    val_str = str(value).strip()
    try:
        # Common EXIF format: "YYYY:MM:DD HH:MM:SS"
        if len(val_str) >= 19 and val_str[4] == ":" and val_str[7] == ":":
            return datetime.strptime(val_str[:19], "%Y:%m:%d %H:%M:%S")
        return datetime.fromisoformat(val_str.replace("/", "-"))
    except ValueError:
        return None


def exif_datetime_original(exif: Any) -> datetime | None:
    """EXIF DateTimeOriginal from the Exif IFD, falling back to top-level tags."""
    if not exif:
        return None
    try:
        sub_ifd = exif.get_ifd(_EXIF_IFD)
    except (KeyError, ValueError, TypeError):
        sub_ifd = {}
    val = sub_ifd.get(_TAG_DATETIME_ORIGINAL) or exif.get(_TAG_DATETIME_ORIGINAL) or exif.get(_TAG_DATETIME)
    if not val:
        return None
    return _parse_exif_datetime(val)


def _camera_name(exif: Any) -> str | None:
    make = str(exif.get(_TAG_MAKE) or "").strip().strip("\x00")
    model = str(exif.get(_TAG_MODEL) or "").strip().strip("\x00")
    if model and make and model.lower().startswith(make.lower()):
        return model
    return " ".join(part for part in (make, model) if part) or None


def read_image_metadata(media: MediaFile) -> PhotoMetadata | None:
    """Camera, pixel size and capture time for a scanned file.

    None for videos or unreadable files.
    """
    if not media.absolute_path:
        return None
    if media.name.rsplit(".", 1)[-1].lower() in VIDEO_EXTENSIONS:
        return None
    try:
        with Image.open(media.absolute_path) as im:
            width, height = im.size
            exif = im.getexif()
            taken = exif_datetime_original(exif)
            return PhotoMetadata(
                camera=_camera_name(exif),
                width=width,
                height=height,
                taken_at=int(taken.timestamp() * 1000) if taken is not None else None,
            )
    except (OSError, ValueError, OverflowError) as ex:
        logger.debug("Metadata read failed for {}: {}", media.path, ex)
        return None
