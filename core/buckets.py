"""MECE bucket definitions.

Single source of truth for the story categories. The detector builds its
category regex from `BUCKET_LABELS`, so adding or renaming a bucket here is
picked up by folder detection automatically.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BucketDef:
    """A story bucket: letter key, display label and a short description."""

    key: str
    label: str
    description: str


MECE_BUCKETS: tuple[BucketDef, ...] = (
    BucketDef("A", "Establishing", "Wide shots, landscapes"),
    BucketDef("B", "People", "Portraits, groups"),
    BucketDef("C", "Culture/Detail", "Local life, close-ups"),
    BucketDef("D", "Action/Moment", "Events, activities"),
    BucketDef("E", "Transition", "Travel, movement"),
    BucketDef("M", "Mood/Food", "Food, mood"),
    BucketDef("X", "Archive", "Unwanted shots"),
)

ARCHIVE_BUCKET: str = "X"

MECE_BUCKET_KEYS: frozenset[str] = frozenset(b.key for b in MECE_BUCKETS)

# Story buckets in canonical order, archive excluded
STORY_BUCKETS: tuple[str, ...] = tuple(b.key for b in MECE_BUCKETS if b.key != ARCHIVE_BUCKET)

# Folder-safe labels used for export paths and folder naming
BUCKET_LABELS: dict[str, str] = {b.key: b.label.replace("/", "-") for b in MECE_BUCKETS}

# Legacy numeric bucket folders "01".."06"
NUMERIC_TO_BUCKET: dict[str, str] = {f"{i + 1:02d}": key for i, key in enumerate(STORY_BUCKETS)}


def get_bucket_label(key: str) -> str:
    """Folder-safe label for `key`, or the key itself when unknown."""
    return BUCKET_LABELS.get(key, key)


def is_story_bucket(key: str | None) -> bool:
    return key is not None and key in STORY_BUCKETS
