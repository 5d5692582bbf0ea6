"""Merge a fresh filesystem scan with persisted user edits.

The scan is ground truth for which files exist and for everything derived
from them (identity, size, detection provenance). The persisted state is
ground truth for user intent (day, bucket, favorite, rename, ...). Files that
sit inside an archive folder are always archived, whatever the cache says.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
import mimetypes
from pathlib import PurePosixPath
import re
from typing import Optional
import uuid

from loguru import logger

from core.buckets import ARCHIVE_BUCKET
from core.constants import ROOT_FOLDER_LABEL, SUPPORTED_EXTENSIONS, SYSTEM_FILE_NAMES
from core.errors import (
    AccessDeniedError,
    FolderUnavailableError,
    HandleExpiredError,
    HandleMissingError,
)
from core.models import (
    CachedEdit,
    Confidence,
    MediaFile,
    Photo,
    PhotoMetadata,
    ProjectSettings,
    ProjectState,
)
from core.services.folder_detection import analyze_path_structure, split_folder_segments
from core.services.folder_model import apply_day_containers
from core.services.interfaces import HandleStore, MediaSource, StateStore
from core.services.serialization import EDITABLE_FIELDS, StoredState, parse_stored_state

MetadataReader = Callable[[MediaFile], Optional[PhotoMetadata]]

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def new_photo_id() -> str:
    """Opaque id, unique within a session."""
    return uuid.uuid4().hex


def should_skip_file(name: str) -> bool:
    """Hidden files, AppleDouble files and OS thumbnail databases."""
    return name.startswith(".") or name.lower() in SYSTEM_FILE_NAMES


def is_supported_file(name: str) -> bool:
    return PurePosixPath(name).suffix.lower().lstrip(".") in SUPPORTED_EXTENSIONS


def _guess_mime_type(name: str) -> str:
    ext = PurePosixPath(name).suffix.lower()
    if ext == ".heic":
        return "image/heic"
    mime, _ = mimetypes.guess_type(name)
    return mime or ""


def dedupe_media_files(files: Iterable[MediaFile]) -> list[MediaFile]:
    """Drop repeated fingerprints, keeping the first path encountered.

    A file reachable through two folders (a copy or a resolved symlink) must
    map to exactly one photo; enumeration order decides which path wins.
    """
    seen: dict[tuple[str, int, int], str] = {}
    unique: list[MediaFile] = []
    for media in files:
        if should_skip_file(media.name) or not is_supported_file(media.name):
            continue
        fingerprint = media.fingerprint
        if fingerprint in seen:
            logger.debug("Skipping duplicate file {} (same as {})", media.path, seen[fingerprint])
            continue
        seen[fingerprint] = media.path
        unique.append(media)
    return unique


def build_photo(
    media: MediaFile,
    settings: ProjectSettings,
    photo_id: str,
    metadata: PhotoMetadata | None = None,
) -> Photo:
    """Fresh photo record for one scanned file, seeded from path detection."""
    analysis = analyze_path_structure(media.path, settings.folder_structure.days_folder)
    folders = split_folder_segments(media.path)

    day: int | None = None
    bucket: str | None = None
    if analysis.confidence >= Confidence.MEDIUM:
        if analysis.is_pre_organized:
            day = analysis.detected_day
            bucket = analysis.detected_bucket
        elif settings.auto_day:
            day = analysis.detected_day

    timestamp = media.last_modified
    if metadata is not None and metadata.taken_at is not None:
        timestamp = metadata.taken_at

    return Photo(
        id=photo_id,
        file_path=media.path,
        original_name=media.name,
        current_name=media.name,
        timestamp=timestamp,
        day=day,
        bucket=bucket,
        archived=bucket == ARCHIVE_BUCKET,
        mime_type=_guess_mime_type(media.name),
        size=media.size,
        source_folder=folders[-1] if folders else ROOT_FOLDER_LABEL,
        folder_hierarchy=folders,
        detected_day=analysis.detected_day,
        detected_bucket=analysis.detected_bucket,
        is_pre_organized=analysis.is_pre_organized,
        organization_confidence=analysis.confidence,
        metadata=metadata,
    )


def scan_photos(
    files: Iterable[MediaFile],
    settings: ProjectSettings,
    id_factory: Callable[[], str] = new_photo_id,
    metadata_reader: MetadataReader | None = None,
) -> list[Photo]:
    """Deduplicate `files` and turn each survivor into a `Photo`.

    Output is ordered by (timestamp, file path).
    """
    photos = [
        build_photo(
            media,
            settings,
            id_factory(),
            metadata_reader(media) if metadata_reader is not None else None,
        )
        for media in dedupe_media_files(files)
    ]
    photos.sort(key=lambda p: (p.timestamp, p.file_path))
    return photos


def apply_cached_edits(photos: Iterable[Photo], edits: Iterable[CachedEdit]) -> list[Photo]:
    """Overlay cached editable fields onto fresh photos by `file_path`.

    Cache entries whose path is no longer present are dropped silently.
    """
    by_path: dict[str, CachedEdit] = {}
    for edit in edits:
        by_path[edit.file_path] = edit

    merged: list[Photo] = []
    matched = 0
    for photo in photos:
        edit = by_path.get(photo.file_path)
        if edit is None:
            merged.append(photo)
            continue
        matched += 1
        updated = replace(photo, **{k: v for k, v in edit.fields.items() if k in EDITABLE_FIELDS})
        if updated.archived and updated.bucket != ARCHIVE_BUCKET:
            updated = replace(updated, bucket=ARCHIVE_BUCKET)
        merged.append(updated)

    stale = len(by_path) - matched
    if stale > 0:
        logger.debug("Dropped {} cached edits for files no longer on disk", stale)
    return merged


def is_archive_folder_segment(segment: str, archive_folder: str) -> bool:
    """Exact match with the configured archive folder, or any "archive" token."""
    normalized = segment.lower()
    if archive_folder and normalized == archive_folder.lower():
        return True
    return "archive" in _NON_ALNUM_RE.sub("", normalized)


def is_in_archive_folder(file_path: str, archive_folder: str) -> bool:
    return any(
        is_archive_folder_segment(segment, archive_folder)
        for segment in split_folder_segments(file_path)
    )


def apply_archive_folder(photos: Iterable[Photo], archive_folder: str) -> list[Photo]:
    """Force photos located under an archive folder into the archive bucket."""
    if not archive_folder:
        return list(photos)
    result: list[Photo] = []
    for photo in photos:
        if photo.file_path and is_in_archive_folder(photo.file_path, archive_folder):
            if not photo.archived or photo.bucket != ARCHIVE_BUCKET:
                photo = replace(photo, archived=True, bucket=ARCHIVE_BUCKET)
        result.append(photo)
    return result


def merge_scan(
    files: Iterable[MediaFile],
    stored: StoredState,
    settings: ProjectSettings,
    id_factory: Callable[[], str] = new_photo_id,
    metadata_reader: MetadataReader | None = None,
) -> list[Photo]:
    """Scan, seed days from day containers, overlay cached edits, then
    re-apply the archive-folder rule.

    Containers only seed photos without a cached day, so a day the user
    changed or cleared survives a re-open.
    """
    fresh = scan_photos(files, settings, id_factory=id_factory, metadata_reader=metadata_reader)
    fresh = apply_day_containers(fresh, stored.day_containers)
    merged = apply_cached_edits(fresh, stored.edits)
    return apply_archive_folder(merged, settings.folder_structure.archive_folder)


class StateReconciler:
    """Produce the canonical `ProjectState` for a stored project.

    Nothing is persisted here; a failure leaves stored state untouched.
    Callers must not reconcile the same project concurrently.
    """

    def __init__(
        self,
        handle_store: HandleStore,
        state_store: StateStore,
        source_factory: Callable[[str], MediaSource],
        default_settings: ProjectSettings | None = None,
        id_factory: Callable[[], str] = new_photo_id,
        metadata_reader: MetadataReader | None = None,
    ) -> None:
        self._handles = handle_store
        self._states = state_store
        self._source_factory = source_factory
        self._default_settings = default_settings or ProjectSettings()
        self._id_factory = id_factory
        self._metadata_reader = metadata_reader

    def open_source(self, project_id: str) -> MediaSource:
        """Resolve the stored handle and confirm read access.

        Raises:
            HandleMissingError: No handle is stored for `project_id`.
            HandleExpiredError: The handle is unusable; it is removed.
            AccessDeniedError: Read access was not granted.
            FolderUnavailableError: The folder no longer exists; the handle is kept.
        """
        handle = self._handles.get_handle(project_id)
        if not handle:
            raise HandleMissingError(
                project_id, "Project folder access not available. Please reselect the folder."
            )

        source = self._source_factory(handle)
        try:
            granted = source.request_permission()
        except (FileNotFoundError, NotADirectoryError) as ex:
            logger.warning("Project folder for {} is missing: {}", project_id, ex)
            raise FolderUnavailableError(
                project_id, "Project folder was not found. It may have been moved or deleted."
            ) from ex
        except OSError as ex:
            logger.warning("Permission request failed for {}, removing stale handle: {}", project_id, ex)
            self._handles.remove_handle(project_id)
            raise HandleExpiredError(
                project_id,
                "Project folder access has expired. Please reselect the folder.",
            ) from ex
        if not granted:
            raise AccessDeniedError(
                project_id, "Folder access was not granted. Please allow access to continue."
            )
        return source

    def list_files(self, project_id: str, source: MediaSource) -> list[MediaFile]:
        """Materialized listing of `source`: supported media only, deduplicated.

        Raises:
            AccessDeniedError: Reading was refused mid-scan.
            FolderUnavailableError: The folder is gone or holds no media.
        """
        try:
            files = dedupe_media_files(source.list_media_files())
        except PermissionError as ex:
            raise AccessDeniedError(
                project_id, "Folder access was not granted. Please allow access to continue."
            ) from ex
        except OSError as ex:
            raise FolderUnavailableError(
                project_id, f"Project folder could not be read: {ex}. It may have been moved or deleted."
            ) from ex
        if not files:
            raise FolderUnavailableError(
                project_id,
                "Project folder access is no longer available. Please reselect the folder.",
            )
        return files

    def reconcile(self, project_id: str) -> ProjectState:
        """Re-scan the project folder and merge it with the stored edits."""
        source = self.open_source(project_id)
        stored = parse_stored_state(self._states.load_state(project_id), self._default_settings)
        settings = stored.settings or self._default_settings

        files = self.list_files(project_id, source)
        photos = merge_scan(
            files,
            stored,
            settings,
            id_factory=self._id_factory,
            metadata_reader=self._metadata_reader,
        )
        logger.info(
            "Reconciled project {}: {} files scanned, {} photos, {} cached edits",
            project_id,
            len(files),
            len(photos),
            len(stored.edits),
        )
        return ProjectState(
            project_name=stored.project_name or source.name,
            root_path=stored.root_path or source.name,
            photos=photos,
            settings=settings,
            day_labels=dict(stored.day_labels),
            day_containers=list(stored.day_containers),
            last_modified=stored.last_modified,
        )
