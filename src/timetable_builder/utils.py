"""Utility functions for timetable building."""

import re
from collections.abc import Iterable

import pandas as pd

from .constants import LIST_SEPARATOR

# "3L+1T+2P" style weekly hours; any component may be missing
LECTURE_PATTERN = re.compile(r"(\d+)\s*L", re.IGNORECASE)
TUTORIAL_PATTERN = re.compile(r"(\d+)\s*T", re.IGNORECASE)
PRACTICAL_PATTERN = re.compile(r"(\d+)\s*P", re.IGNORECASE)

# Separator between day and interval in a slot label ("Monday, 09:00 - 10:00")
SLOT_LABEL_SEPARATOR = ", "


def parse_hours_string(value: str) -> tuple[int, int, int]:
    """Parse a weekly hours string into lecture/tutorial/practical counts.

    Examples:
        "3L+1T+2P" -> (3, 1, 2)
        "3L+1T"    -> (3, 1, 0)
        ""         -> (0, 0, 0)

    Args:
        value: Weekly hours string

    Returns:
        Tuple of (lecture, tutorial, practical) hours
    """
    if not value:
        return (0, 0, 0)

    counts = []
    for pattern in (LECTURE_PATTERN, TUTORIAL_PATTERN, PRACTICAL_PATTERN):
        match = pattern.search(value)
        counts.append(int(match.group(1)) if match else 0)
    return (counts[0], counts[1], counts[2])


def normalize_tag(tag: str) -> str:
    """Normalize a topic/expertise tag for matching (case and whitespace)."""
    return " ".join(str(tag).split()).lower()


def normalize_tags(tags: Iterable[str]) -> set[str]:
    """Normalize a collection of tags, dropping empty ones."""
    return {normalize_tag(tag) for tag in tags if str(tag).strip()}


def split_list(value) -> list[str]:
    """Split a list-valued cell from a tabular catalog file.

    Accepts lists as-is, splits strings on the list separator, and maps
    empty/NaN cells to an empty list.
    """
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return []
    return [part.strip() for part in str(value).split(LIST_SEPARATOR) if part.strip()]


def format_slot_label(day: str, interval: str) -> str:
    """Format a slot label like "Monday, 09:00 - 10:00"."""
    return f"{day}{SLOT_LABEL_SEPARATOR}{interval}"


def parse_slot_label(label: str) -> tuple[str, str]:
    """Split a slot label back into (day, interval).

    Raises:
        ValueError: If the label has no day/interval separator
    """
    day, separator, interval = label.partition(SLOT_LABEL_SEPARATOR)
    if not separator:
        raise ValueError(f"Invalid slot label: '{label}'")
    return day.strip(), interval.strip()


def compact_interval(interval: str) -> str:
    """Compact an interval label for narrow tables ("09:00 - 10:00" -> "09:00-10:00")."""
    parts = interval.split(" - ")
    if len(parts) != 2:
        return interval
    return f"{parts[0][:5]}-{parts[1][:5]}"


def abbreviate_day(day: str) -> str:
    """Abbreviate a day name to three letters."""
    return day[:3]
