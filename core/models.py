"""Core domain models for photos, projects and detection results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union

from core.constants import (
    DEFAULT_ARCHIVE_FOLDER,
    DEFAULT_DAYS_FOLDER,
    DEFAULT_FAVORITES_FOLDER,
    DEFAULT_META_FOLDER,
    ROOT_FOLDER_LABEL,
)


class Confidence(IntEnum):
    """Ordinal confidence of a detection: NONE < LOW < MEDIUM < HIGH."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        """Lowercase name used in persisted state ("high", "none", ...)."""
        return self.name.lower()

    def downgraded(self) -> Confidence:
        """One tier lower for unconfirmed structure: HIGH -> MEDIUM, else LOW."""
        return Confidence.MEDIUM if self is Confidence.HIGH else Confidence.LOW


# Subfolder override: three explicit states instead of undefined/null/string


@dataclass(frozen=True)
class DeriveSubfolder:
    """Derive the subfolder group from the photo's path."""


@dataclass(frozen=True)
class ForceDayRoot:
    """Always place the photo at the day root."""


@dataclass(frozen=True)
class ForceSubfolder:
    """Always place the photo in the subfolder named `label`."""

    label: str


SubfolderOverride = Union[DeriveSubfolder, ForceDayRoot, ForceSubfolder]

DERIVE_SUBFOLDER = DeriveSubfolder()
FORCE_DAY_ROOT = ForceDayRoot()


@dataclass(frozen=True)
class PhotoMetadata:
    """Optional image properties read during a scan. Never persisted.

    `taken_at` is the EXIF capture time in epoch ms; when present it replaces
    the file modification time as the photo timestamp.
    """

    camera: str | None = None
    width: int | None = None
    height: int | None = None
    taken_at: int | None = None


@dataclass
class Photo:
    """A single media file under management.

    `file_path` is the durable cross-session key; `id` only lives as long as
    the in-memory session. `detected_*` fields record what the folder
    detector inferred so user edits to `day`/`bucket` can be told apart.
    """

    id: str
    file_path: str
    original_name: str
    current_name: str
    timestamp: int
    day: int | None = None
    bucket: str | None = None
    sequence: int | None = None
    favorite: bool = False
    rating: int = 0
    archived: bool = False
    mime_type: str = ""
    size: int = 0
    source_folder: str = ROOT_FOLDER_LABEL
    folder_hierarchy: list[str] = field(default_factory=list)
    detected_day: int | None = None
    detected_bucket: str | None = None
    is_pre_organized: bool = False
    organization_confidence: Confidence = Confidence.NONE
    subfolder_override: SubfolderOverride = DERIVE_SUBFOLDER
    # Session-local, regenerated on every load
    thumbnail: str | None = None
    metadata: PhotoMetadata | None = None


@dataclass
class FolderStructure:
    """Folder role names inside a project root."""

    days_folder: str = DEFAULT_DAYS_FOLDER
    archive_folder: str = DEFAULT_ARCHIVE_FOLDER
    favorites_folder: str = DEFAULT_FAVORITES_FOLDER
    meta_folder: str = DEFAULT_META_FOLDER


@dataclass
class ProjectSettings:
    auto_day: bool = True
    folder_structure: FolderStructure = field(default_factory=FolderStructure)


@dataclass
class ProjectState:
    """The persisted unit of a project."""

    project_name: str
    root_path: str
    photos: list[Photo] = field(default_factory=list)
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    day_labels: dict[int, str] = field(default_factory=dict)
    day_containers: list[str] = field(default_factory=list)
    last_modified: int | None = None


@dataclass(frozen=True)
class MediaFile:
    """One entry returned by a media source listing.

    Attributes:
        path: Relative path from the project root, "/"-separated.
        name: File name as found on disk.
        last_modified: Modification instant in integer milliseconds.
        size: Size in bytes.
        absolute_path: Location used to read bytes, when the source is local.
    """

    path: str
    name: str
    last_modified: int
    size: int
    absolute_path: str | None = None

    @property
    def fingerprint(self) -> tuple[str, int, int]:
        """(lowercased name, timestamp, size) identifying one physical file."""
        return (self.name.lower(), self.last_modified, self.size)


@dataclass
class CachedEdit:
    """User edits persisted for one file path.

    `fields` holds only the editable values that were actually present in the
    stored entry, already decoded to `Photo` attribute names.
    """

    file_path: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DayDetection:
    day: int
    pattern: str
    confidence: Confidence


@dataclass(frozen=True)
class BucketDetection:
    bucket: str
    pattern: str
    confidence: Confidence


@dataclass(frozen=True)
class PathAnalysis:
    """Day/bucket inference for one relative file path."""

    detected_day: int | None
    detected_bucket: str | None
    is_pre_organized: bool
    confidence: Confidence
    path_segments: tuple[str, ...] = ()


@dataclass
class BucketInfo:
    """A bucket subfolder found inside a candidate day folder."""

    bucket_letter: str
    folder_name: str
    photo_count: int
    confidence: Confidence
    pattern_matched: str


@dataclass
class FolderMapping:
    """Onboarding suggestion for one top-level folder. Not part of ProjectState."""

    folder: str
    folder_path: str
    detected_day: int | None
    confidence: Confidence
    pattern_matched: str
    suggested_name: str
    photo_count: int = 0
    manual: bool = False
    detected_buckets: list[BucketInfo] | None = None
