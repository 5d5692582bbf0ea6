"""Canonical photo ordering shared by every view.

One comparator defines a strict total order (timestamp, path, name, id), so
grids, the fullscreen viewer, the filmstrip and keyboard navigation always
agree on what "next" and "previous" mean. Results are rebuilt on each call
and never mutate the input.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Literal

from core.buckets import ARCHIVE_BUCKET, STORY_BUCKETS
from core.constants import DAY_ROOT_LABEL, VIDEO_EXTENSIONS
from core.models import Photo

GroupBy = Literal["subfolder", "bucket", "day"]
Direction = Literal["next", "prev"]

NO_BUCKET_LABEL = "No Bucket"
NO_DAY_LABEL = "No Day"

_BUCKET_ORDER: tuple[str, ...] = (*STORY_BUCKETS, ARCHIVE_BUCKET)


@dataclass
class OrderingGroup:
    """A labelled run of photos starting at `start_index` in the flat order."""

    label: str
    photos: list[Photo]
    start_index: int


@dataclass
class OrderingResult:
    """Resolved display order plus an id -> position lookup."""

    photos: list[Photo]
    index_map: dict[str, int] = field(default_factory=dict)
    groups: list[OrderingGroup] | None = None


def photo_sort_key(photo: Photo) -> tuple[int, str, str, str]:
    """Key for the base order: timestamp, path (or name), name, id."""
    return (
        photo.timestamp,
        photo.file_path or photo.original_name or "",
        photo.original_name or "",
        photo.id,
    )


def is_video_photo(photo: Photo) -> bool:
    """True when the mime type or extension marks `photo` as a video."""
    if photo.mime_type:
        return photo.mime_type.lower().startswith("video/")
    name = photo.file_path or photo.original_name
    return PurePosixPath(name).suffix.lower().lstrip(".") in VIDEO_EXTENSIONS


def _split_videos(photos: list[Photo], is_video: Callable[[Photo], bool] | None) -> list[Photo]:
    if is_video is None:
        return photos
    stills = [p for p in photos if not is_video(p)]
    videos = [p for p in photos if is_video(p)]
    return stills + videos


def _build_index_map(photos: list[Photo]) -> dict[str, int]:
    return {photo.id: index for index, photo in enumerate(photos)}


def _assemble(
    labelled: Iterable[tuple[str, list[Photo]]], is_video: Callable[[Photo], bool] | None
) -> OrderingResult:
    ordered: list[Photo] = []
    groups: list[OrderingGroup] = []
    for label, members in labelled:
        members = _split_videos(members, is_video)
        groups.append(OrderingGroup(label=label, photos=members, start_index=len(ordered)))
        ordered.extend(members)
    return OrderingResult(photos=ordered, index_map=_build_index_map(ordered), groups=groups)


def _group_by_subfolder(
    sorted_photos: list[Photo],
    selected_day: int,
    get_subfolder_group: Callable[[Photo, int | None], str],
    is_video: Callable[[Photo], bool] | None,
) -> OrderingResult:
    buckets: dict[str, list[Photo]] = {}
    for photo in sorted_photos:
        buckets.setdefault(get_subfolder_group(photo, selected_day), []).append(photo)
    labels = sorted(buckets, key=lambda label: (label != DAY_ROOT_LABEL, label))
    return _assemble(((label, buckets[label]) for label in labels), is_video)


def _group_by_bucket(
    sorted_photos: list[Photo], is_video: Callable[[Photo], bool] | None
) -> OrderingResult:
    buckets: dict[str | None, list[Photo]] = {}
    for photo in sorted_photos:
        buckets.setdefault(photo.bucket or None, []).append(photo)

    # Unknown letters (e.g. from older state) sort after the archive bucket
    extra = sorted(k for k in buckets if k is not None and k not in _BUCKET_ORDER)
    order: list[str | None] = [*_BUCKET_ORDER, *extra, None]
    return _assemble(
        ((key or NO_BUCKET_LABEL, buckets[key]) for key in order if key in buckets), is_video
    )


def _group_by_day(
    sorted_photos: list[Photo], is_video: Callable[[Photo], bool] | None
) -> OrderingResult:
    days: dict[int | None, list[Photo]] = {}
    for photo in sorted_photos:
        days.setdefault(photo.day, []).append(photo)
    order = sorted(days, key=lambda d: (d is None, d or 0))
    return _assemble(
        ((f"Day {day:02d}" if day is not None else NO_DAY_LABEL, days[day]) for day in order),
        is_video,
    )


def sort_photos(
    photos: Iterable[Photo],
    group_by: GroupBy | None = None,
    separate_videos: bool = False,
    selected_day: int | None = None,
    get_subfolder_group: Callable[[Photo, int | None], str] | None = None,
    is_video: Callable[[Photo], bool] | None = None,
) -> OrderingResult:
    """Order `photos` with optional grouping and stills-before-videos.

    Args:
        photos: Photos to order; the input is not modified.
        group_by: "subfolder" (needs `selected_day` and `get_subfolder_group`),
            "bucket", "day", or None for a flat list.
        separate_videos: Emit stills before videos inside each group.
        selected_day: Day whose subfolders are being grouped.
        get_subfolder_group: Maps (photo, day) to a subfolder label.
        is_video: Video predicate; defaults to `is_video_photo`.
    """
    sorted_photos = sorted(photos, key=photo_sort_key)
    video_check = (is_video or is_video_photo) if separate_videos else None

    if group_by == "subfolder" and selected_day is not None and get_subfolder_group is not None:
        return _group_by_subfolder(sorted_photos, selected_day, get_subfolder_group, video_check)
    if group_by == "bucket":
        return _group_by_bucket(sorted_photos, video_check)
    if group_by == "day":
        return _group_by_day(sorted_photos, video_check)

    ordered = _split_videos(sorted_photos, video_check)
    return OrderingResult(photos=ordered, index_map=_build_index_map(ordered))


def get_photo_index(photo_id: str, index_map: dict[str, int]) -> int:
    """Position of `photo_id`, or -1 when it is not part of the order."""
    return index_map.get(photo_id, -1)


def navigate_photos(
    current_id: str,
    direction: Direction,
    result: OrderingResult,
    predicate: Callable[[Photo], bool] | None = None,
) -> Photo | None:
    """Step from `current_id` towards `direction`.

    With a predicate, keeps stepping until a matching photo is found. Returns
    None at either end of the sequence (no wraparound), for an unknown id,
    or for an unknown direction.
    """
    index = get_photo_index(current_id, result.index_map)
    if index == -1:
        return None
    if direction == "next":
        step = 1
    elif direction == "prev":
        step = -1
    else:
        return None

    index += step
    while 0 <= index < len(result.photos):
        candidate = result.photos[index]
        if predicate is None or predicate(candidate):
            return candidate
        index += step
    return None
