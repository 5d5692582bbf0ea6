"""Project lifecycle: create, open, persist and delete projects.

`ProjectService` owns the collaborators; `ProjectSession` wraps one opened
project and persists the full state after every mutation.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
import time
import uuid

from loguru import logger

from core.errors import AccessDeniedError, FolderUnavailableError
from core.models import Photo, ProjectSettings, ProjectState
from core.services.export_plan import MoveOperation, plan_moves
from core.services.folder_detection import cluster_photos_by_time
from core.services.folder_model import apply_day_containers, apply_suggested_days
from core.services.interfaces import HandleStore, MediaSource, StateStore
from core.services.reconciler import (
    MetadataReader,
    StateReconciler,
    apply_archive_folder,
    new_photo_id,
    scan_photos,
)
from core.services.serialization import serialize_state

HISTORY_LIMIT = 30


def current_time_ms() -> int:
    return int(time.time() * 1000)


def new_project_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class InitResult:
    """Outcome of creating a project.

    `suggested_days` maps a day number to photo ids clustered by capture
    time; it is a suggestion only and is not applied to the photos.
    """

    project_id: str
    state: ProjectState
    suggested_days: dict[int, list[str]] = field(default_factory=dict)


class ProjectService:
    """Create, open, save and delete projects."""

    def __init__(
        self,
        handle_store: HandleStore,
        state_store: StateStore,
        source_factory: Callable[[str], MediaSource],
        default_settings: ProjectSettings | None = None,
        metadata_reader: MetadataReader | None = None,
        clock: Callable[[], int] = current_time_ms,
        id_factory: Callable[[], str] = new_photo_id,
    ) -> None:
        self._handles = handle_store
        self._states = state_store
        self._source_factory = source_factory
        self._default_settings = default_settings or ProjectSettings()
        self._metadata_reader = metadata_reader
        self._clock = clock
        self._id_factory = id_factory
        self._reconciler = StateReconciler(
            handle_store,
            state_store,
            source_factory,
            default_settings=self._default_settings,
            id_factory=id_factory,
            metadata_reader=metadata_reader,
        )

    def init_project(
        self,
        handle: str,
        project_name: str | None = None,
        root_label: str | None = None,
        day_containers: Iterable[str] = (),
        project_id: str | None = None,
    ) -> InitResult:
        """Scan the folder behind `handle` and persist a new project.

        Raises:
            AccessDeniedError: Read access could not be obtained.
            FolderUnavailableError: The folder is missing or holds no supported media.
        """
        project_id = project_id or new_project_id()
        source = self._source_factory(handle)
        try:
            granted = source.request_permission()
        except (FileNotFoundError, NotADirectoryError) as ex:
            raise FolderUnavailableError(project_id, f"Folder not found: {handle}") from ex
        except OSError as ex:
            logger.warning("Permission request failed for {}: {}", handle, ex)
            raise AccessDeniedError(project_id, "Unable to request folder access. Please try again.") from ex
        if not granted:
            raise AccessDeniedError(
                project_id, "Folder access was not granted. Please allow access to create the project."
            )

        settings = self._default_settings
        files = self._reconciler.list_files(project_id, source)
        photos = scan_photos(
            files, settings, id_factory=self._id_factory, metadata_reader=self._metadata_reader
        )
        photos = apply_archive_folder(photos, settings.folder_structure.archive_folder)
        containers = [c for c in day_containers if c]
        photos = apply_day_containers(photos, containers)
        suggested_days = cluster_photos_by_time(photos)

        state = ProjectState(
            project_name=(project_name or "").strip() or source.name,
            root_path=root_label or source.name,
            photos=photos,
            settings=settings,
            day_containers=containers,
            last_modified=self._clock(),
        )
        self._handles.save_handle(project_id, handle)
        self.save_state(project_id, state)
        logger.info(
            "Created project {} ({}) with {} photos, {} suggested days",
            project_id,
            state.project_name,
            len(photos),
            len(suggested_days),
        )
        return InitResult(project_id=project_id, state=state, suggested_days=suggested_days)

    def open_project(self, project_id: str) -> ProjectState:
        """Reconcile the stored project with its folder. Nothing is written."""
        return self._reconciler.reconcile(project_id)

    def open_session(self, project_id: str) -> ProjectSession:
        return ProjectSession(self, project_id, self.open_project(project_id))

    def save_state(self, project_id: str, state: ProjectState) -> None:
        self._states.save_state(project_id, serialize_state(state))

    def delete_project(self, project_id: str) -> None:
        """Remove both the stored state and the folder credential."""
        self._states.remove_state(project_id)
        self._handles.remove_handle(project_id)
        logger.info("Deleted project {}", project_id)

    def now(self) -> int:
        return self._clock()


class ProjectSession:
    """One opened project with undo/redo over photo edits.

    Every change is persisted immediately.
    """

    def __init__(self, service: ProjectService, project_id: str, state: ProjectState) -> None:
        self._service = service
        self.project_id = project_id
        self.state = state
        self._undo: list[list[Photo]] = []
        self._redo: list[list[Photo]] = []

    @property
    def photos(self) -> list[Photo]:
        return self.state.photos

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def persist(self) -> None:
        self.state.last_modified = self._service.now()
        self._service.save_state(self.project_id, self.state)

    def commit(self, photos: list[Photo]) -> None:
        """Replace the photo collection, record history and persist."""
        self._undo.append(self.state.photos)
        del self._undo[:-HISTORY_LIMIT]
        self._redo.clear()
        self.state.photos = photos
        self.persist()

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.state.photos)
        self.state.photos = self._undo.pop()
        self.persist()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.state.photos)
        self.state.photos = self._redo.pop()
        self.persist()
        return True

    def accept_suggested_days(self, suggested: Mapping[int, Iterable[str]]) -> None:
        self.commit(apply_suggested_days(self.state.photos, suggested))

    def set_day_label(self, day: int, label: str | None) -> None:
        """Rename a day; an empty label restores the default name."""
        if label and label.strip():
            self.state.day_labels[day] = label.strip()
        else:
            self.state.day_labels.pop(day, None)
        self.persist()

    def plan_export(self) -> list[MoveOperation]:
        return plan_moves(self.state.photos, self.state.settings, self.state.day_labels)

    def reload(self) -> None:
        """Re-scan from disk and drop history; on failure the current state is kept."""
        self.state = self._service.open_project(self.project_id)
        self._undo.clear()
        self._redo.clear()
