"""Edits applied to a photo collection.

Every function returns a new list; photos that are not targeted are passed
through unchanged, so callers can persist the result as-is.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from loguru import logger

from core.buckets import ARCHIVE_BUCKET, is_story_bucket
from core.models import Photo, SubfolderOverride

MAX_RATING = 5


def _id_set(photo_ids: str | Iterable[str]) -> set[str]:
    if isinstance(photo_ids, str):
        return {photo_ids}
    return set(photo_ids)


def sequenced_name(day: int, bucket: str, sequence: int, original_name: str) -> str:
    """Export name such as ``D02_B_007__IMG_1234.jpg``."""
    return f"D{day:02d}_{bucket}_{sequence:03d}__{original_name}"


def assign_bucket(
    photos: list[Photo],
    photo_ids: str | Iterable[str],
    bucket: str | None,
    day: int | None = None,
    selected_day: int | None = None,
) -> list[Photo]:
    """Assign `bucket` (and a day) to the given photos.

    Story buckets get the next sequence number within their day+bucket and a
    sequenced name. The archive bucket archives the photo and keeps its
    original name. An empty bucket clears the assignment.

    Args:
        photos: Current photo collection.
        photo_ids: One id or several ids to update.
        bucket: Bucket key, or None/"" to unassign.
        day: Explicit day; otherwise the photo's day, then `selected_day`,
            then the day of month of the capture time.
        selected_day: Day currently selected in the UI.
    """
    if bucket and bucket != ARCHIVE_BUCKET and not is_story_bucket(bucket):
        logger.warning("Ignoring assignment to unknown bucket {}", bucket)
        return list(photos)

    ids = _id_set(photo_ids)
    counters: dict[tuple[int, str], int] = {}
    result: list[Photo] = []

    for photo in photos:
        if photo.id not in ids:
            result.append(photo)
            continue

        if not bucket:
            result.append(
                replace(
                    photo,
                    bucket=None,
                    sequence=None,
                    archived=False,
                    current_name=photo.original_name,
                )
            )
            continue

        target_day = (
            day
            or photo.day
            or selected_day
            or datetime.fromtimestamp(photo.timestamp / 1000).day
        )
        if bucket == ARCHIVE_BUCKET:
            result.append(
                replace(
                    photo,
                    bucket=ARCHIVE_BUCKET,
                    day=target_day,
                    sequence=None,
                    archived=True,
                    current_name=photo.original_name,
                )
            )
            continue

        key = (target_day, bucket)
        if key not in counters:
            counters[key] = sum(1 for p in photos if p.day == target_day and p.bucket == bucket)
        counters[key] += 1
        sequence = counters[key]
        result.append(
            replace(
                photo,
                bucket=bucket,
                day=target_day,
                sequence=sequence,
                archived=False,
                current_name=sequenced_name(target_day, bucket, sequence, photo.original_name),
            )
        )
    return result


def remove_day_assignment(photos: list[Photo], photo_ids: str | Iterable[str]) -> list[Photo]:
    ids = _id_set(photo_ids)
    return [replace(p, day=None) if p.id in ids else p for p in photos]


def toggle_favorite(photos: list[Photo], photo_ids: str | Iterable[str]) -> list[Photo]:
    ids = _id_set(photo_ids)
    return [replace(p, favorite=not p.favorite) if p.id in ids else p for p in photos]


def set_rating(photos: list[Photo], photo_ids: str | Iterable[str], rating: int) -> list[Photo]:
    """Set a 0-5 star rating; out-of-range values are clamped."""
    ids = _id_set(photo_ids)
    rating = max(0, min(MAX_RATING, int(rating)))
    return [replace(p, rating=rating) if p.id in ids else p for p in photos]


def set_subfolder_override(
    photos: list[Photo], photo_ids: str | Iterable[str], override: SubfolderOverride
) -> list[Photo]:
    ids = _id_set(photo_ids)
    return [replace(p, subfolder_override=override) if p.id in ids else p for p in photos]
