"""Entity catalog: courses, faculty and rooms supplied from outside the engine."""

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from .constants import (
    CATALOG_CALENDAR,
    CATALOG_COURSES,
    CATALOG_FACULTY,
    CATALOG_ROOMS,
    CATALOG_SUFFIXES,
    DEFAULT_DAYS,
    DEFAULT_INTERVALS,
)
from .exceptions import (
    CatalogError,
    InvalidSlotError,
    UnknownCourseError,
    UnknownFacultyError,
    UnknownRoomError,
)
from .grid import Grid
from .models import Course, Faculty, Room, TimeSlot

logger = logging.getLogger(__name__)


class Catalog:
    """Read-only lookups over the course, faculty and room records.

    The catalog also carries the calendar (ordered day names and interval
    labels) that every grid built from it uses.
    """

    def __init__(
        self,
        courses: Iterable[Course] = (),
        faculty: Iterable[Faculty] = (),
        rooms: Iterable[Room] = (),
        days: Sequence[str] = DEFAULT_DAYS,
        intervals: Sequence[str] = DEFAULT_INTERVALS,
    ) -> None:
        self.days: tuple[str, ...] = tuple(days)
        self.intervals: tuple[str, ...] = tuple(intervals)
        self._courses = _index("course", courses)
        self._faculty = _index("faculty", faculty)
        self._rooms = _index("room", rooms)

    @property
    def courses(self) -> list[Course]:
        """Courses in catalog order."""
        return list(self._courses.values())

    @property
    def faculty(self) -> list[Faculty]:
        """Faculty roster in catalog order."""
        return list(self._faculty.values())

    @property
    def rooms(self) -> list[Room]:
        """Rooms in catalog order."""
        return list(self._rooms.values())

    def course(self, course_id: str) -> Course:
        """Get a course by identifier.

        Raises:
            UnknownCourseError: If the course is not in the catalog
        """
        try:
            return self._courses[course_id]
        except KeyError:
            raise UnknownCourseError(course_id) from None

    def faculty_member(self, faculty_id: str) -> Faculty:
        """Get a faculty member by identifier.

        Raises:
            UnknownFacultyError: If the faculty member is not in the roster
        """
        try:
            return self._faculty[faculty_id]
        except KeyError:
            raise UnknownFacultyError(faculty_id) from None

    def room(self, room_id: str) -> Room:
        """Get a room by identifier.

        Raises:
            UnknownRoomError: If the room is not in the catalog
        """
        try:
            return self._rooms[room_id]
        except KeyError:
            raise UnknownRoomError(room_id) from None

    def has_course(self, course_id: str) -> bool:
        return course_id in self._courses

    def has_faculty(self, faculty_id: str) -> bool:
        return faculty_id in self._faculty

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def check_slot(self, day: str, interval: str) -> None:
        """Raise InvalidSlotError if (day, interval) is not in the calendar."""
        if day not in self.days or interval not in self.intervals:
            raise InvalidSlotError(day, interval)

    def slots(self) -> list[TimeSlot]:
        """All calendar slots, day-major."""
        return [TimeSlot(day, interval) for day in self.days for interval in self.intervals]

    def room_ids(self) -> list[str]:
        return list(self._rooms.keys())

    def empty_grid(self) -> Grid:
        """Create an empty grid over this catalog's calendar."""
        return Grid.empty(self.days, self.intervals)

    def __repr__(self) -> str:
        return (
            f"Catalog(courses={len(self._courses)}, faculty={len(self._faculty)}, "
            f"rooms={len(self._rooms)})"
        )


def filter_courses(
    courses: Iterable[Course],
    semester: str | None = None,
    department: str | None = None,
    faculty_id: str | None = None,
) -> list[Course]:
    """Filter courses by semester, department and/or assigned faculty."""
    result = []
    for course in courses:
        if semester and course.semester != semester:
            continue
        if department and course.department != department:
            continue
        if faculty_id and course.faculty_id != faculty_id:
            continue
        result.append(course)
    return result


def _index(kind: str, records: Iterable) -> dict[str, Any]:
    index: dict[str, Any] = {}
    for record in records:
        if record.id in index:
            raise CatalogError(f"duplicate {kind} identifier '{record.id}'")
        index[record.id] = record
    return index


class CatalogLoader:
    """Loads a catalog from a directory of CSV, Excel or JSON files.

    Expected files (first suffix found wins, ``.csv`` > ``.xlsx`` > ``.json``):
    - courses.*: id, name, department, semester, hours ("3L+1T+0P"), tags,
      core, enrollment, faculty_id, room_id
    - faculty.*: id, name, department, expertise, preferred_courses, max_hours
    - rooms.*: id, capacity, type, facilities
    - calendar.json (optional): {"days": [...], "intervals": [...]}

    List-valued columns in tabular files are separated by ";".
    """

    def __init__(self, catalog_dir: Path | str) -> None:
        self.catalog_dir = Path(catalog_dir)

    def load(self) -> Catalog:
        """Load all catalog files.

        Raises:
            CatalogError: If the directory or a required file is missing or
                          a record is malformed
        """
        if not self.catalog_dir.is_dir():
            raise CatalogError(f"catalog directory not found: {self.catalog_dir}")

        courses = self._load_entities(CATALOG_COURSES, Course.from_dict)
        faculty = self._load_entities(CATALOG_FACULTY, Faculty.from_dict)
        rooms = self._load_entities(CATALOG_ROOMS, Room.from_dict)
        days, intervals = self._load_calendar()

        logger.info(
            f"Loaded catalog from {self.catalog_dir}: {len(courses)} courses, "
            f"{len(faculty)} faculty, {len(rooms)} rooms"
        )
        return Catalog(courses, faculty, rooms, days, intervals)

    def _get_path(self, name: str) -> Path | None:
        """Get path to a catalog file if one exists with a supported suffix."""
        for suffix in CATALOG_SUFFIXES:
            path = self.catalog_dir / f"{name}{suffix}"
            if path.exists():
                return path
        return None

    def _load_entities(self, name: str, factory) -> list:
        path = self._get_path(name)
        if path is None:
            raise CatalogError(
                f"missing {name} file (expected {name}.csv, {name}.xlsx or {name}.json)",
                file_name=str(self.catalog_dir),
            )

        entities = []
        for row_number, record in enumerate(self._read_records(path), start=1):
            if not str(record.get("id", "") or "").strip():
                raise CatalogError("record has no 'id'", file_name=path.name, row=row_number)
            try:
                entities.append(factory(record))
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(str(e), file_name=path.name, row=row_number) from e
        return entities

    def _read_records(self, path: Path) -> list[dict[str, Any]]:
        """Read a catalog file into a list of plain dict records."""
        try:
            if path.suffix == ".json":
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, list):
                    raise CatalogError("expected a JSON list of records", file_name=path.name)
                return data
            if path.suffix == ".xlsx":
                df = pd.read_excel(path, dtype=str, engine="openpyxl")
            else:
                df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except (OSError, ValueError) as e:
            raise CatalogError(str(e), file_name=path.name) from e

        df = df.fillna("")
        df.columns = [str(column).strip() for column in df.columns]
        return df.to_dict(orient="records")

    def _load_calendar(self) -> tuple[list[str], list[str]]:
        path = self.catalog_dir / CATALOG_CALENDAR
        if not path.exists():
            return list(DEFAULT_DAYS), list(DEFAULT_INTERVALS)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CatalogError(str(e), file_name=path.name) from e

        days = data.get("days") or list(DEFAULT_DAYS)
        intervals = data.get("intervals") or list(DEFAULT_INTERVALS)
        if len(set(days)) != len(days) or len(set(intervals)) != len(intervals):
            raise CatalogError("calendar days and intervals must be unique", file_name=path.name)
        return list(days), list(intervals)
