"""Collaborator interfaces consumed by the reconciler and project lifecycle.

The core only depends on these protocols; concrete adapters live under
`infrastructure/` and tests provide in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Protocol

from core.models import MediaFile


class MediaSource(Protocol):
    """Read access to one project folder."""

    @property
    def name(self) -> str:
        """Display name of the folder (last path component)."""
        raise NotImplementedError

    def request_permission(self) -> bool:
        """Return True when the folder may be read.

        Implementations raise `OSError` when the handle itself is unusable
        (stale, revoked); returning False means access was refused.
        """
        raise NotImplementedError

    def list_media_files(self) -> list[MediaFile]:
        """Return every supported media file below the root.

        Hidden entries and unsupported extensions are skipped. The order must
        be deterministic for an unchanged folder.
        """
        raise NotImplementedError


class StateStore(Protocol):
    """Key-value store for serialized project state."""

    def load_state(self, project_id: str) -> dict[str, Any] | None:
        """Return the stored state mapping, or None if nothing is stored."""
        raise NotImplementedError

    def save_state(self, project_id: str, data: dict[str, Any]) -> None:
        raise NotImplementedError

    def remove_state(self, project_id: str) -> None:
        raise NotImplementedError


class HandleStore(Protocol):
    """Store of folder access credentials keyed by project id."""

    def get_handle(self, project_id: str) -> str | None:
        raise NotImplementedError

    def save_handle(self, project_id: str, handle: str) -> None:
        raise NotImplementedError

    def remove_handle(self, project_id: str) -> None:
        raise NotImplementedError
