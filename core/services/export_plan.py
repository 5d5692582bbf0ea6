"""Decide which photos an export has to touch and where they go.

The shell script generator consumes `plan_moves`; only photos the user
actually changed are included so that already-organized files stay put.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath

from core.buckets import get_bucket_label
from core.models import Photo, ProjectSettings
from core.services.folder_model import day_label, normalize_path
from core.services.reconciler import is_in_archive_folder


@dataclass(frozen=True)
class MoveOperation:
    """One file relocation, paths relative to the project root."""

    photo_id: str
    source: str
    destination: str


def bucket_folder(day: int, bucket: str, settings: ProjectSettings, day_labels: Mapping[int, str]) -> str:
    """``<days_folder>/<day label>/<bucket>_<label>``."""
    days_folder = settings.folder_structure.days_folder
    return f"{days_folder}/{day_label(day, day_labels)}/{bucket}_{get_bucket_label(bucket)}"


def target_path_for(
    photo: Photo, settings: ProjectSettings, day_labels: Mapping[int, str]
) -> str | None:
    """Where `photo` belongs after export, or None when it has no target."""
    if photo.archived:
        return f"{settings.folder_structure.archive_folder}/{photo.current_name}"
    if photo.bucket and photo.day is not None:
        return f"{bucket_folder(photo.day, photo.bucket, settings, day_labels)}/{photo.current_name}"
    return None


def should_move(photo: Photo, settings: ProjectSettings, day_labels: Mapping[int, str]) -> bool:
    """True when exporting has to rename or relocate `photo`.

    That is: it was renamed, its bucket or day was set by the user rather
    than detected, it was archived but is not inside an archive folder yet,
    or it is not at its target path.
    """
    current_path = normalize_path(photo.file_path or photo.original_name)

    renamed = photo.original_name != photo.current_name
    user_bucket = (
        not photo.archived
        and photo.bucket is not None
        and (not photo.is_pre_organized or photo.bucket != photo.detected_bucket)
    )
    user_day = photo.day is not None and photo.day != photo.detected_day
    pending_archive = photo.archived and not is_in_archive_folder(
        current_path, settings.folder_structure.archive_folder
    )
    if renamed or user_bucket or user_day or pending_archive:
        return True

    target = target_path_for(photo, settings, day_labels)
    return target is not None and current_path != target and not current_path.endswith(f"/{target}")


def plan_moves(
    photos: Iterable[Photo], settings: ProjectSettings, day_labels: Mapping[int, str]
) -> list[MoveOperation]:
    """Minimal set of moves for an export, in input order.

    Photos without a bucket are only renamed in place.
    """
    operations: list[MoveOperation] = []
    for photo in photos:
        if not should_move(photo, settings, day_labels):
            continue
        source = normalize_path(photo.file_path or photo.original_name)
        destination = target_path_for(photo, settings, day_labels)
        if destination is None:
            parent = PurePosixPath(source).parent
            destination = str(parent / photo.current_name) if str(parent) != "." else photo.current_name
        if destination == source:
            continue
        operations.append(MoveOperation(photo_id=photo.id, source=source, destination=destination))
    return operations
