"""Day/subfolder grouping and view filtering over a project's photos."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from typing import Literal

from core.constants import DAY_ROOT_LABEL, ROOT_FOLDER_LABEL
from core.models import ForceDayRoot, ForceSubfolder, Photo, ProjectSettings
from core.services.folder_detection import detect_day_number_from_folder_name, split_folder_segments
from core.services.sort_service import sort_photos

View = Literal["days", "folders", "root", "favorites", "archive", "review", "all"]


def normalize_path(value: str) -> str:
    """Collapse separators to "/" and drop empty segments."""
    return "/".join(s for s in value.replace("\\", "/").split("/") if s)


def default_day_label(day: int) -> str:
    return f"Day {day:02d}"


def day_label(day: int, day_labels: Mapping[int, str]) -> str:
    """User label for `day`, falling back to "Day NN"."""
    return day_labels.get(day) or default_day_label(day)


def get_derived_subfolder_group(photo: Photo, day: int | None, days_folder: str | None) -> str:
    """Subfolder directly below the photo's day folder, or the day root.

    The day folder is located under `days_folder` when present, otherwise
    as the first segment whose detected day equals `day`.
    """
    if day is None:
        return DAY_ROOT_LABEL

    segments = split_folder_segments(normalize_path(photo.file_path or photo.original_name))
    day_index = -1

    if days_folder:
        wanted = normalize_path(days_folder).lower()
        days_index = next((i for i, s in enumerate(segments) if s.lower() == wanted), -1)
        if days_index != -1 and days_index + 1 < len(segments):
            if detect_day_number_from_folder_name(segments[days_index + 1]) == day:
                day_index = days_index + 1

    if day_index == -1:
        for i, segment in enumerate(segments):
            if days_folder and segment.lower() == days_folder.lower():
                continue
            if detect_day_number_from_folder_name(segment) == day:
                day_index = i
                break

    if day_index != -1 and day_index + 1 < len(segments):
        return segments[day_index + 1]
    return DAY_ROOT_LABEL


def get_subfolder_group(photo: Photo, day: int | None, days_folder: str | None) -> str:
    """Like `get_derived_subfolder_group`, honoring the photo's override."""
    override = photo.subfolder_override
    if isinstance(override, ForceSubfolder):
        return override.label
    if isinstance(override, ForceDayRoot):
        return DAY_ROOT_LABEL
    return get_derived_subfolder_group(photo, day, days_folder)


def make_subfolder_grouper(settings: ProjectSettings) -> Callable[[Photo, int | None], str]:
    """Bind the days-folder role so the ordering engine stays config-agnostic."""
    days_folder = settings.folder_structure.days_folder

    def _group(photo: Photo, day: int | None) -> str:
        return get_subfolder_group(photo, day, days_folder)

    return _group


def apply_day_containers(photos: Iterable[Photo], containers: Iterable[str]) -> list[Photo]:
    """Assign days to photos inside folders the user marked as day folders.

    Pre-organized photos that already carry a day are left alone.
    """
    container_days: dict[str, int] = {}
    for container in containers:
        detected = detect_day_number_from_folder_name(container)
        if detected is not None:
            container_days[normalize_path(container)] = detected

    if not container_days:
        return list(photos)

    result: list[Photo] = []
    for photo in photos:
        if not photo.file_path or (photo.is_pre_organized and photo.day is not None):
            result.append(photo)
            continue
        path = normalize_path(photo.file_path)
        top = path.split("/")[0]
        assigned = container_days.get(top)
        if assigned is None:
            for key, mapped in container_days.items():
                if path == key or path.startswith(f"{key}/"):
                    assigned = mapped
                    break
        result.append(replace(photo, day=assigned) if assigned is not None else photo)
    return result


def apply_suggested_days(photos: Iterable[Photo], suggested: Mapping[int, Iterable[str]]) -> list[Photo]:
    """Fill in time-clustered days for photos that have no day yet."""
    day_by_id: dict[str, int] = {}
    for day, ids in suggested.items():
        for photo_id in ids:
            day_by_id[photo_id] = int(day)
    return [
        replace(p, day=day_by_id[p.id]) if p.day is None and p.id in day_by_id else p for p in photos
    ]


def group_days(photos: Iterable[Photo]) -> list[tuple[int, list[Photo]]]:
    """Photos with a day, grouped and ordered by day number."""
    days: dict[int, list[Photo]] = {}
    for photo in photos:
        if photo.day:
            days.setdefault(photo.day, []).append(photo)
    return sorted(days.items())


def top_level_folder(photo: Photo) -> str:
    parts = normalize_path(photo.file_path or photo.original_name).split("/")
    return parts[0] if len(parts) > 1 else ROOT_FOLDER_LABEL


def root_groups(photos: Iterable[Photo], day_containers: Iterable[str] = ()) -> list[tuple[str, list[Photo]]]:
    """Non-archived photos by top-level folder; marked containers always listed."""
    groups: dict[str, list[Photo]] = {}
    for photo in photos:
        if photo.archived:
            continue
        groups.setdefault(top_level_folder(photo), []).append(photo)
    for container in day_containers:
        groups.setdefault(normalize_path(container).split("/")[0], [])
    return sorted(groups.items())


def is_assigned(photo: Photo) -> bool:
    return bool(photo.bucket) or (photo.is_pre_organized and bool(photo.detected_bucket))


def _in_root_folder(photo: Photo, selected: str) -> bool:
    path = normalize_path(photo.file_path or photo.original_name)
    selected = normalize_path(selected)
    if "/" in selected:
        return path == selected or path.startswith(f"{selected}/")
    return top_level_folder(photo) == selected


def filter_photos_for_view(
    photos: Iterable[Photo],
    view: View,
    selected_day: int | None = None,
    selected_root_folder: str | None = None,
    hide_assigned: bool = False,
) -> list[Photo]:
    """Photos visible in `view`, in canonical order.

    `hide_assigned` drops photos that already have a bucket and archived ones.
    """

    def visible(photo: Photo) -> bool:
        return not hide_assigned or (not is_assigned(photo) and not photo.archived)

    def on_selected_day(photo: Photo) -> bool:
        return not photo.archived and photo.day == selected_day

    selected: list[Photo]
    if view == "days":
        if selected_day is not None:
            selected = [p for p in photos if on_selected_day(p)]
        else:
            selected = [p for p in photos if p.day is not None and not p.archived]
    elif view == "folders":
        if selected_root_folder is not None:
            selected = [
                p for p in photos if not p.archived and _in_root_folder(p, selected_root_folder)
            ]
        elif selected_day is not None:
            selected = [p for p in photos if on_selected_day(p)]
        else:
            selected = []
    elif view == "root":
        if selected_root_folder is not None:
            wanted = normalize_path(selected_root_folder)
            selected = [p for p in photos if not p.archived and top_level_folder(p) == wanted]
        else:
            selected = []
    elif view == "favorites":
        selected = [p for p in photos if p.favorite and not p.archived]
    elif view == "archive":
        selected = [p for p in photos if p.archived]
    elif view == "review":
        selected = [p for p in photos if p.bucket and not p.archived]
    else:
        selected = list(photos)

    return sort_photos(p for p in selected if visible(p)).photos
