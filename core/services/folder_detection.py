"""Folder-name heuristics for day and bucket detection.

Every function here is pure and never raises on odd input: a folder that
matches nothing simply yields `None` / `Confidence.NONE`. Patterns are tried
in a fixed priority order and the first match wins.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date
import re

from loguru import logger

from core.buckets import BUCKET_LABELS, MECE_BUCKET_KEYS, NUMERIC_TO_BUCKET
from core.constants import DAY_GAP_MS, DAYS_FOLDER_ALIASES, DEFAULT_DAYS_FOLDER, MAX_DAY
from core.models import (
    BucketDetection,
    BucketInfo,
    Confidence,
    DayDetection,
    FolderMapping,
    MediaFile,
    PathAnalysis,
    Photo,
)

# "Day 1", "D01", "day_2", "Day-3", "D1 Iceland"
DAY_PREFIX_PATTERN = re.compile(r"^(?:day|d)[\s_-]?(\d{1,2})(?:\D|$)", re.IGNORECASE)
# "2024-03-15" / "2024_03_15" anywhere in the name
ISO_DATE_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
ISO_DATE_PATTERN_UNDERSCORES = re.compile(r"(\d{4})_(\d{2})_(\d{2})")
# "1 Iceland", "02_Reykjavik", "3-Hiking" (could also be a numeric bucket)
NUMERIC_PREFIX_PATTERN = re.compile(r"^(\d{1,2})[\s_-]")

# Hyphen, en dash, em dash, minus sign, underscore or whitespace. Desktop OSes
# autocorrect "-" into dashes when folders are renamed by hand.
HYPHEN_PATTERN = r"[\s_\-–—−]"

_BUCKET_LETTERS = "".join(sorted(MECE_BUCKET_KEYS))

_SKIP_FOLDER_PATTERNS = (
    re.compile(r"^\."),
    re.compile(r"^unsorted$", re.IGNORECASE),
    re.compile(r"^inbox$", re.IGNORECASE),
    re.compile(r"^miscellaneous$", re.IGNORECASE),
    re.compile(r"^metadata$", re.IGNORECASE),
    re.compile(r"^_meta$", re.IGNORECASE),
)

_PATH_SPLIT_RE = re.compile(r"[\\/]")


def _category_alternatives(labels: Iterable[str]) -> list[str]:
    """Regex alternatives for every bucket label and its component words.

    Compound labels such as "Mood-Food" also accept the reversed order and
    any dash variant between the words.
    """
    compound: list[str] = []
    single: list[str] = []
    for label in labels:
        parts = [re.escape(p.strip()) for p in label.split("-") if p.strip()]
        if len(parts) > 1:
            joiner = f"{HYPHEN_PATTERN}?"
            compound.append(joiner.join(parts))
            compound.append(joiner.join(reversed(parts)))
        for part in parts:
            if part not in single:
                single.append(part)
    # Compounds first so "Culture-Detail" is not cut short at "Culture"
    return compound + single


def _build_bucket_standard_pattern() -> re.Pattern[str]:
    alternatives = "|".join(_category_alternatives(BUCKET_LABELS.values()))
    return re.compile(
        rf"^([{_BUCKET_LETTERS}])(?:{HYPHEN_PATTERN}+)(?:{alternatives})$", re.IGNORECASE
    )


BUCKET_STANDARD_PATTERN = _build_bucket_standard_pattern()
BUCKET_LETTER_PATTERN = re.compile(rf"^([{_BUCKET_LETTERS}])$", re.IGNORECASE)
BUCKET_CUSTOM_PATTERN = re.compile(
    rf"^([{_BUCKET_LETTERS}])(?:{HYPHEN_PATTERN}+)(.+)$", re.IGNORECASE
)
BUCKET_NUMERIC_PATTERN = re.compile(r"^(0[1-6])$")


def _parse_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def calculate_day_from_date(date_str: str, trip_start: date | str | None = None) -> int | None:
    """1-indexed trip day of `date_str` relative to `trip_start`.

    Without a trip start the date is its own anchor, so the result is 1.
    Returns None for unparseable dates or dates before the trip start.
    """
    found = _parse_date(date_str)
    if found is None:
        return None
    if trip_start is None:
        start = found
    else:
        start = _parse_date(trip_start)
        if start is None:
            return None
    day = (found - start).days + 1
    return day if day >= 1 else None


def extract_day_from_folder_name(
    folder_name: str, trip_start: date | str | None = None
) -> DayDetection | None:
    """Detect a day number in a single folder name."""
    match = DAY_PREFIX_PATTERN.match(folder_name)
    if match:
        day = int(match.group(1))
        if 1 <= day <= MAX_DAY:
            return DayDetection(day=day, pattern="day_prefix", confidence=Confidence.HIGH)

    for pattern in (ISO_DATE_PATTERN, ISO_DATE_PATTERN_UNDERSCORES):
        match = pattern.search(folder_name)
        if not match:
            continue
        date_str = f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
        day = calculate_day_from_date(date_str, trip_start)
        if day is not None:
            if trip_start is not None:
                return DayDetection(day=day, pattern="iso_date", confidence=Confidence.HIGH)
            return DayDetection(
                day=day, pattern="iso_date_unanchored", confidence=Confidence.MEDIUM
            )

    match = NUMERIC_PREFIX_PATTERN.match(folder_name)
    if match:
        day = int(match.group(1))
        if 1 <= day <= MAX_DAY:
            return DayDetection(day=day, pattern="numeric_prefix", confidence=Confidence.MEDIUM)

    return None


def detect_day_number_from_folder_name(
    folder_name: str, trip_start: date | str | None = None
) -> int | None:
    detection = extract_day_from_folder_name(folder_name, trip_start)
    return detection.day if detection else None


def detect_bucket_from_folder_name(folder_name: str) -> BucketDetection | None:
    """Detect a MECE bucket letter in a single folder name."""
    match = BUCKET_STANDARD_PATTERN.match(folder_name)
    if match:
        return BucketDetection(
            bucket=match.group(1).upper(), pattern="standard", confidence=Confidence.HIGH
        )

    match = BUCKET_LETTER_PATTERN.match(folder_name)
    if match:
        return BucketDetection(
            bucket=match.group(1).upper(), pattern="letter", confidence=Confidence.HIGH
        )

    match = BUCKET_CUSTOM_PATTERN.match(folder_name)
    if match:
        return BucketDetection(
            bucket=match.group(1).upper(), pattern="custom", confidence=Confidence.MEDIUM
        )

    match = BUCKET_NUMERIC_PATTERN.match(folder_name)
    if match and match.group(1) in NUMERIC_TO_BUCKET:
        return BucketDetection(
            bucket=NUMERIC_TO_BUCKET[match.group(1)], pattern="numeric", confidence=Confidence.LOW
        )

    return None


def should_skip_folder(folder_name: str) -> bool:
    """True for hidden, inbox-like and metadata folders."""
    return any(p.search(folder_name) for p in _SKIP_FOLDER_PATTERNS)


def split_folder_segments(file_path: str) -> list[str]:
    """Containing folder segments of a relative file path."""
    segments = [s for s in _PATH_SPLIT_RE.split(file_path) if s]
    return segments[:-1]


def _is_days_folder(segment: str, days_folder: str) -> bool:
    lower = segment.lower()
    return lower == days_folder.lower() or lower in DAYS_FOLDER_ALIASES


def analyze_path_structure(file_path: str, days_folder: str | None = None) -> PathAnalysis:
    """Infer day and bucket from the folders containing `file_path`.

    The canonical ingested layout is ``<days_folder>/<day>/<bucket>/file``.
    Outside that layout the first day-like segment is used and its confidence
    is lowered one tier because the surrounding structure is unconfirmed.
    """
    days_folder = days_folder or DEFAULT_DAYS_FOLDER
    segments = split_folder_segments(file_path)

    detected_day: int | None = None
    detected_bucket: str | None = None
    day_confidence = Confidence.NONE
    bucket_confidence = Confidence.NONE

    days_index = next(
        (i for i, seg in enumerate(segments) if _is_days_folder(seg, days_folder)), -1
    )

    if days_index != -1 and days_index < len(segments) - 1:
        day_detection = extract_day_from_folder_name(segments[days_index + 1])
        if day_detection:
            detected_day = day_detection.day
            day_confidence = day_detection.confidence
            if days_index + 2 < len(segments):
                bucket_detection = detect_bucket_from_folder_name(segments[days_index + 2])
                if bucket_detection:
                    detected_bucket = bucket_detection.bucket
                    bucket_confidence = bucket_detection.confidence
    else:
        for i, segment in enumerate(segments):
            if should_skip_folder(segment) or _is_days_folder(segment, days_folder):
                continue
            day_detection = extract_day_from_folder_name(segment)
            if not day_detection:
                continue
            detected_day = day_detection.day
            day_confidence = day_detection.confidence.downgraded()
            if i + 1 < len(segments):
                bucket_detection = detect_bucket_from_folder_name(segments[i + 1])
                if bucket_detection:
                    detected_bucket = bucket_detection.bucket
                    bucket_confidence = bucket_detection.confidence
            break

    is_pre_organized = detected_day is not None and detected_bucket is not None
    if is_pre_organized:
        if day_confidence is Confidence.HIGH and bucket_confidence is Confidence.HIGH:
            confidence = Confidence.HIGH
        elif day_confidence > Confidence.NONE and bucket_confidence > Confidence.NONE:
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.LOW
    elif detected_day is not None:
        confidence = day_confidence
    else:
        confidence = Confidence.NONE

    return PathAnalysis(
        detected_day=detected_day,
        detected_bucket=detected_bucket,
        is_pre_organized=is_pre_organized,
        confidence=confidence,
        path_segments=tuple(segments),
    )


def suggest_folder_name(day: int | None) -> str:
    """Normalized folder name for a detected day ("Day 03" or "Unsorted")."""
    if day is None:
        return "Unsorted"
    return f"Day {day:02d}"


def detect_buckets(subfolders: Mapping[str, int]) -> list[BucketInfo]:
    """Bucket subfolders among `subfolders` (name -> media count), by letter."""
    buckets: list[BucketInfo] = []
    for name, count in subfolders.items():
        detection = detect_bucket_from_folder_name(name)
        if detection is None:
            if name[:1].upper() in MECE_BUCKET_KEYS:
                logger.debug("No bucket pattern matched folder {}", name)
            continue
        buckets.append(
            BucketInfo(
                bucket_letter=detection.bucket,
                folder_name=name,
                photo_count=count,
                confidence=detection.confidence,
                pattern_matched=detection.pattern,
            )
        )
    buckets.sort(key=lambda b: b.bucket_letter)
    return buckets


def detect_folder_structure(
    folders: Iterable[str],
    photo_counts: Mapping[str, int] | None = None,
    project_name: str = "",
    trip_start: date | str | None = None,
) -> list[FolderMapping]:
    """Build onboarding mappings for top-level `folders`.

    Skipped folders and the folder named like the project are left out.
    Result is sorted by detected day, undetected folders last by name.
    """
    photo_counts = photo_counts or {}
    mappings: list[FolderMapping] = []

    for folder in folders:
        if should_skip_folder(folder):
            continue
        if project_name and folder.lower() == project_name.lower():
            continue

        count = int(photo_counts.get(folder, 0))
        extraction = extract_day_from_folder_name(folder, trip_start)
        if extraction:
            mappings.append(
                FolderMapping(
                    folder=folder,
                    folder_path=folder,
                    detected_day=extraction.day,
                    confidence=extraction.confidence,
                    pattern_matched=extraction.pattern,
                    suggested_name=suggest_folder_name(extraction.day),
                    photo_count=count,
                )
            )
        else:
            mappings.append(
                FolderMapping(
                    folder=folder,
                    folder_path=folder,
                    detected_day=None,
                    confidence=Confidence.NONE,
                    pattern_matched="none",
                    suggested_name=suggest_folder_name(None),
                    photo_count=count,
                )
            )

    mappings.sort(key=_mapping_sort_key)
    return mappings


def _mapping_sort_key(mapping: FolderMapping) -> tuple[int, int, str]:
    if mapping.detected_day is None:
        return (1, 0, mapping.folder)
    return (0, mapping.detected_day, "")


def build_folder_mappings(
    files: Iterable[MediaFile],
    project_name: str = "",
    trip_start: date | str | None = None,
) -> list[FolderMapping]:
    """Onboarding mappings computed straight from a scan.

    Counts media per top-level folder and attaches the bucket subfolders
    found directly below each one.
    """
    top_counts: Counter[str] = Counter()
    sub_counts: dict[str, Counter[str]] = {}
    for media in files:
        segments = split_folder_segments(media.path)
        if not segments:
            continue
        top = segments[0]
        top_counts[top] += 1
        if len(segments) > 1:
            sub_counts.setdefault(top, Counter())[segments[1]] += 1

    mappings = detect_folder_structure(
        top_counts.keys(), top_counts, project_name=project_name, trip_start=trip_start
    )
    for mapping in mappings:
        subfolders = sub_counts.get(mapping.folder)
        if subfolders:
            buckets = detect_buckets(dict(sorted(subfolders.items())))
            mapping.detected_buckets = buckets or None
    return mappings


def generate_dry_run_summary(mappings: Iterable[FolderMapping]) -> str:
    """Human-readable preview of the folders and moves a mapping implies."""
    mappings = list(mappings)
    detected = [m for m in mappings if m.detected_day is not None]
    moved = sum(m.photo_count for m in detected)
    skipped = sum(m.photo_count for m in mappings if m.detected_day is None)

    lines = [f"Create {len(detected)} folders:"]
    lines.extend(f"  - {m.suggested_name}/" for m in detected)
    lines.append("")
    lines.append(f"Move {moved} photos:")
    lines.extend(f'  - {m.photo_count} from "{m.folder}" -> "{m.suggested_name}/"' for m in detected)
    if skipped > 0:
        lines.append("")
        lines.append(f"Skip {skipped} photos in undetected folders")
    return "\n".join(lines) + "\n"


def cluster_photos_by_time(photos: Iterable[Photo], gap_ms: int = DAY_GAP_MS) -> dict[int, list[str]]:
    """Suggest days by splitting the timeline wherever shots are `gap_ms` apart.

    Returns day number -> photo ids in chronological order.
    """
    ordered = sorted(photos, key=lambda p: p.timestamp)
    days: dict[int, list[str]] = {}
    if not ordered:
        return days

    current_day = 1
    last_time = ordered[0].timestamp
    days[current_day] = []
    for photo in ordered:
        if photo.timestamp - last_time > gap_ms:
            current_day += 1
            days[current_day] = []
        days[current_day].append(photo.id)
        last_time = photo.timestamp
    return days
