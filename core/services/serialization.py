"""Conversion between `ProjectState` and its persisted mapping.

Photos are stored as an `edits` list keyed by `file_path`; thumbnails and
session ids are never written. Output is deterministic so that saving an
unchanged state twice yields identical bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from core.models import (
    DERIVE_SUBFOLDER,
    FORCE_DAY_ROOT,
    CachedEdit,
    FolderStructure,
    ForceDayRoot,
    ForceSubfolder,
    Photo,
    ProjectSettings,
    ProjectState,
    SubfolderOverride,
)

# Fields restored from cache onto a fresh scan. Everything else is re-derived.
EDITABLE_FIELDS: tuple[str, ...] = (
    "day",
    "bucket",
    "sequence",
    "favorite",
    "rating",
    "archived",
    "current_name",
    "subfolder_override",
)


@dataclass
class StoredState:
    """Decoded persisted project, before it is merged with a fresh scan."""

    project_name: str | None = None
    root_path: str | None = None
    settings: ProjectSettings | None = None
    day_labels: dict[int, str] = field(default_factory=dict)
    day_containers: list[str] = field(default_factory=list)
    last_modified: int | None = None
    edits: list[CachedEdit] = field(default_factory=list)


def encode_subfolder_override(value: SubfolderOverride) -> tuple[bool, str | None]:
    """Return (present, value); an absent key means "derive"."""
    if isinstance(value, ForceSubfolder):
        return True, value.label
    if isinstance(value, ForceDayRoot):
        return True, None
    return False, None


def decode_subfolder_override(present: bool, value: Any) -> SubfolderOverride:
    if not present:
        return DERIVE_SUBFOLDER
    if value is None:
        return FORCE_DAY_ROOT
    return ForceSubfolder(str(value))


def serialize_settings(settings: ProjectSettings) -> dict[str, Any]:
    fs = settings.folder_structure
    return {
        "auto_day": settings.auto_day,
        "folder_structure": {
            "days_folder": fs.days_folder,
            "archive_folder": fs.archive_folder,
            "favorites_folder": fs.favorites_folder,
            "meta_folder": fs.meta_folder,
        },
    }


def parse_settings(raw: Any, defaults: ProjectSettings | None = None) -> ProjectSettings:
    """Decode settings, filling missing folder roles from `defaults`."""
    defaults = defaults or ProjectSettings()
    if not isinstance(raw, dict):
        return defaults
    fs_raw = raw.get("folder_structure")
    fs_raw = fs_raw if isinstance(fs_raw, dict) else {}
    base = defaults.folder_structure
    return ProjectSettings(
        auto_day=bool(raw.get("auto_day", defaults.auto_day)),
        folder_structure=FolderStructure(
            days_folder=str(fs_raw.get("days_folder") or base.days_folder),
            archive_folder=str(fs_raw.get("archive_folder") or base.archive_folder),
            favorites_folder=str(fs_raw.get("favorites_folder") or base.favorites_folder),
            meta_folder=str(fs_raw.get("meta_folder") or base.meta_folder),
        ),
    )


def serialize_photo(photo: Photo) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "file_path": photo.file_path,
        "day": photo.day,
        "bucket": photo.bucket,
        "sequence": photo.sequence,
        "favorite": photo.favorite,
        "rating": photo.rating,
        "archived": photo.archived,
        "current_name": photo.current_name,
        "source_folder": photo.source_folder,
        "folder_hierarchy": list(photo.folder_hierarchy),
        "detected_day": photo.detected_day,
        "detected_bucket": photo.detected_bucket,
        "is_pre_organized": photo.is_pre_organized,
        "organization_confidence": photo.organization_confidence.label,
    }
    present, value = encode_subfolder_override(photo.subfolder_override)
    if present:
        entry["subfolder_override"] = value
    return entry


def serialize_state(state: ProjectState) -> dict[str, Any]:
    """Mapping suitable for JSON storage. Thumbnails are not included."""
    return {
        "project_name": state.project_name,
        "root_path": state.root_path,
        "settings": serialize_settings(state.settings),
        "day_labels": {str(day): label for day, label in sorted(state.day_labels.items())},
        "day_containers": list(state.day_containers),
        "last_modified": state.last_modified,
        "edits": [serialize_photo(p) for p in state.photos],
    }


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _decode_edit(entry: dict[str, Any]) -> CachedEdit:
    fields: dict[str, Any] = {}
    if "day" in entry:
        fields["day"] = _optional_int(entry["day"])
    if "bucket" in entry:
        fields["bucket"] = str(entry["bucket"]).upper() if entry["bucket"] else None
    if "sequence" in entry:
        fields["sequence"] = _optional_int(entry["sequence"])
    if "favorite" in entry:
        fields["favorite"] = bool(entry["favorite"])
    if "rating" in entry:
        fields["rating"] = _optional_int(entry["rating"]) or 0
    if "archived" in entry:
        fields["archived"] = bool(entry["archived"])
    if entry.get("current_name"):
        fields["current_name"] = str(entry["current_name"])
    fields["subfolder_override"] = decode_subfolder_override(
        "subfolder_override" in entry, entry.get("subfolder_override")
    )
    return CachedEdit(file_path=str(entry["file_path"]), fields=fields)


def parse_cached_edits(raw_edits: Any) -> list[CachedEdit]:
    """Decode the stored `edits` list; entries without a file path are ignored."""
    if not isinstance(raw_edits, list):
        return []
    edits: list[CachedEdit] = []
    for entry in raw_edits:
        if not isinstance(entry, dict) or not entry.get("file_path"):
            logger.debug("Ignoring cached edit without file_path: {}", entry)
            continue
        edits.append(_decode_edit(entry))
    return edits


def parse_day_labels(raw: Any) -> dict[int, str]:
    labels: dict[int, str] = {}
    if not isinstance(raw, dict):
        return labels
    for key, value in raw.items():
        day = _optional_int(key)
        if day is not None and value is not None:
            labels[day] = str(value)
    return labels


def parse_stored_state(
    raw: dict[str, Any] | None, default_settings: ProjectSettings | None = None
) -> StoredState:
    """Decode a persisted mapping; a missing mapping yields an empty state."""
    if not raw:
        return StoredState(settings=default_settings)
    containers = raw.get("day_containers")
    return StoredState(
        project_name=raw.get("project_name") or None,
        root_path=raw.get("root_path") or None,
        settings=parse_settings(raw.get("settings"), default_settings),
        day_labels=parse_day_labels(raw.get("day_labels")),
        day_containers=[str(c) for c in containers] if isinstance(containers, list) else [],
        last_modified=_optional_int(raw.get("last_modified")),
        edits=parse_cached_edits(raw.get("edits")),
    )
