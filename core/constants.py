"""
Domain constants shared by the detector, reconciler and ordering engine.

Folder-role defaults here are only used when neither the persisted project
nor `settings.json` provides a value.
"""

from __future__ import annotations

# Media accepted by the scanner (lowercase, without dot)
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {"jpg", "jpeg", "png", "heic", "webp", "mp4", "mov", "webm", "avi", "mkv"}
)
VIDEO_EXTENSIONS: frozenset[str] = frozenset({"mp4", "mov", "webm", "avi", "mkv"})

# OS clutter that is never media even when the extension would match
SYSTEM_FILE_NAMES: frozenset[str] = frozenset({"thumbs.db", "desktop.ini"})

DEFAULT_DAYS_FOLDER: str = "01_DAYS"
DEFAULT_ARCHIVE_FOLDER: str = "98_ARCHIVE"
DEFAULT_FAVORITES_FOLDER: str = "FAV"
DEFAULT_META_FOLDER: str = "_meta"

# Segment names always recognized as the days container
DAYS_FOLDER_ALIASES: frozenset[str] = frozenset({"01_days", "days"})

DAY_ROOT_LABEL: str = "Day Root"
ROOT_FOLDER_LABEL: str = "(root)"

# Gap between consecutive shots that starts a new suggested day
DAY_GAP_MS: int = 6 * 60 * 60 * 1000

MAX_DAY: int = 31
