"""Typed failures raised while opening or reconciling a project.

Detection and ordering never raise; these are the only hard failures in the
core. `can_regrant` tells the caller whether asking the user to pick the
folder again can fix the problem.
"""

from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for failures that abort a reconciliation."""

    can_regrant: bool = False

    def __init__(self, project_id: str, message: str) -> None:
        super().__init__(message)
        self.project_id = project_id
        self.message = message


class HandleMissingError(ReconciliationError):
    """No folder access credential is stored for the project."""

    can_regrant = True


class HandleExpiredError(ReconciliationError):
    """The stored credential could not be used and has been discarded."""

    can_regrant = True


class AccessDeniedError(ReconciliationError):
    """The user (or OS) did not grant read access to the folder."""

    can_regrant = True


class FolderUnavailableError(ReconciliationError):
    """The scan found no media: the folder was moved, deleted or emptied."""
