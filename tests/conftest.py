"""
Pytest configuration and fixtures for the organizer tests
"""

import itertools

import pytest

from core.models import MediaFile, Photo, ProjectSettings


class FakeMediaSource:
    """In-memory media source; `files` is returned in the given order."""

    def __init__(self, name, files, permission=True):
        self._name = name
        self.files = list(files)
        self.permission = permission
        self.list_error = None

    @property
    def name(self):
        return self._name

    def request_permission(self):
        if isinstance(self.permission, Exception):
            raise self.permission
        return self.permission

    def list_media_files(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.files)


class InMemoryStateStore:
    def __init__(self):
        self.states = {}
        self.saves = 0

    def load_state(self, project_id):
        return self.states.get(project_id)

    def save_state(self, project_id, data):
        self.saves += 1
        self.states[project_id] = data

    def remove_state(self, project_id):
        self.states.pop(project_id, None)


class InMemoryHandleStore:
    def __init__(self, handles=None):
        self.handles = dict(handles or {})

    def get_handle(self, project_id):
        return self.handles.get(project_id)

    def save_handle(self, project_id, handle):
        self.handles[project_id] = handle

    def remove_handle(self, project_id):
        self.handles.pop(project_id, None)


def media(path, last_modified=1000, size=100):
    """MediaFile for a relative path."""
    return MediaFile(path=path, name=path.rsplit("/", 1)[-1], last_modified=last_modified, size=size)


@pytest.fixture
def make_photo():
    """Factory for Photo records with sensible defaults."""
    counter = itertools.count(1)

    def _make(file_path=None, timestamp=1000, **kwargs):
        n = next(counter)
        file_path = file_path if file_path is not None else f"IMG_{n:04d}.jpg"
        name = file_path.rsplit("/", 1)[-1]
        kwargs.setdefault("id", f"p{n}")
        kwargs.setdefault("original_name", name)
        kwargs.setdefault("current_name", kwargs["original_name"])
        return Photo(file_path=file_path, timestamp=timestamp, **kwargs)

    return _make


@pytest.fixture
def id_factory():
    """Deterministic photo ids: id1, id2, ..."""
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def settings():
    return ProjectSettings()


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def handle_store():
    return InMemoryHandleStore()


@pytest.fixture
def sources():
    """Registry of fake sources keyed by handle, plus a factory over it."""
    registry = {}

    def factory(handle):
        return registry[handle]

    return registry, factory


@pytest.fixture
def make_media():
    return media


@pytest.fixture
def make_source(sources):
    """Register a FakeMediaSource under `handle` and return it."""
    registry, _ = sources

    def _make(handle, files, permission=True, name=None):
        source = FakeMediaSource(name or handle.rsplit("/", 1)[-1], files, permission=permission)
        registry[handle] = source
        return source

    return _make
