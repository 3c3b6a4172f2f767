"""Data models for the timetable builder."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Self

from .constants import DEFAULT_MAX_HOURS
from .utils import format_slot_label, parse_hours_string, split_list


class LoadStatus(str, Enum):
    """Teaching load status of a faculty member."""

    AVAILABLE = "available"
    NEARLY_FULL = "nearly_full"
    OVERLOADED = "overloaded"


class ConflictKind(str, Enum):
    """Kind of scheduling conflict."""

    ROOM = "room"
    FACULTY = "faculty"
    OVERLAP = "overlap"


class Severity(str, Enum):
    """Conflict severity."""

    CRITICAL = "critical"
    MINOR = "minor"


@dataclass(frozen=True)
class WeeklyHours:
    """Weekly contact hours of a course.

    Attributes:
        lecture: Lecture hours per week
        tutorial: Tutorial hours per week
        practical: Practical/lab hours per week
    """

    lecture: int = 0
    tutorial: int = 0
    practical: int = 0

    @property
    def total(self) -> int:
        """Total weekly contact hours."""
        return self.lecture + self.tutorial + self.practical

    @classmethod
    def parse(cls, value: "str | dict | WeeklyHours | None") -> Self:
        """Build from a "3L+1T+2P" string or a mapping with the three counts."""
        if isinstance(value, WeeklyHours):
            return cls(value.lecture, value.tutorial, value.practical)
        if isinstance(value, dict):
            return cls(
                lecture=int(value.get("lecture", 0) or 0),
                tutorial=int(value.get("tutorial", 0) or 0),
                practical=int(value.get("practical", 0) or 0),
            )
        lecture, tutorial, practical = parse_hours_string(str(value or ""))
        return cls(lecture=lecture, tutorial=tutorial, practical=practical)

    def __str__(self) -> str:
        return f"{self.lecture}L+{self.tutorial}T+{self.practical}P"


@dataclass
class Course:
    """A course to be placed on the timetable.

    Attributes:
        id: Unique course code (e.g. "CS101")
        name: Display name
        department: Owning department
        semester: Semester/term tag; courses sharing it belong to one cohort
        hours: Weekly contact hours
        tags: Topic tags matched against faculty expertise
        core: True if the course is mandatory for its cohort
        enrollment: Expected number of students (0 if unknown)
        faculty_id: Assigned faculty member, if any
        room_id: Preferred/assigned room, if any
    """

    id: str
    name: str
    department: str = ""
    semester: str = ""
    hours: WeeklyHours = field(default_factory=WeeklyHours)
    tags: list[str] = field(default_factory=list)
    core: bool = False
    enrollment: int = 0
    faculty_id: str | None = None
    room_id: str | None = None

    @property
    def weekly_hours(self) -> int:
        """Total weekly contact hours."""
        return self.hours.total

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a Course from a catalog record."""
        return cls(
            id=str(data["id"]).strip(),
            name=str(data.get("name", "") or data["id"]).strip(),
            department=str(data.get("department", "") or "").strip(),
            semester=str(data.get("semester", "") or "").strip(),
            hours=WeeklyHours.parse(data.get("hours", data.get("weekly_hours"))),
            tags=split_list(data.get("tags")),
            core=_as_bool(data.get("core", False)),
            enrollment=_as_int(data.get("enrollment", 0)),
            faculty_id=_as_optional_str(data.get("faculty_id")),
            room_id=_as_optional_str(data.get("room_id")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert course to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "department": self.department,
            "semester": self.semester,
            "hours": str(self.hours),
            "tags": self.tags,
            "core": self.core,
            "enrollment": self.enrollment,
            "faculty_id": self.faculty_id,
            "room_id": self.room_id,
        }


@dataclass
class Faculty:
    """A faculty member who can teach courses.

    ``committed_hours`` and ``status`` are derived values: the Load Tracker
    recomputes them from a grid, and the Auto-Assigner updates them on its
    running copy of the roster.
    """

    id: str
    name: str
    department: str = ""
    expertise: list[str] = field(default_factory=list)
    preferred_courses: list[str] = field(default_factory=list)
    max_hours: int = DEFAULT_MAX_HOURS
    committed_hours: int = 0
    status: LoadStatus = LoadStatus.AVAILABLE

    @property
    def load_ratio(self) -> float:
        """Committed hours as a fraction of maximum hours (unclamped)."""
        if self.max_hours <= 0:
            return float("inf") if self.committed_hours > 0 else 0.0
        return self.committed_hours / self.max_hours

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a Faculty from a catalog record."""
        max_hours = _as_int(data.get("max_hours", DEFAULT_MAX_HOURS))
        return cls(
            id=str(data["id"]).strip(),
            name=str(data.get("name", "") or data["id"]).strip(),
            department=str(data.get("department", "") or "").strip(),
            expertise=split_list(data.get("expertise")),
            preferred_courses=split_list(data.get("preferred_courses")),
            max_hours=max_hours if max_hours > 0 else DEFAULT_MAX_HOURS,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert faculty member to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "department": self.department,
            "expertise": self.expertise,
            "preferred_courses": self.preferred_courses,
            "max_hours": self.max_hours,
            "committed_hours": self.committed_hours,
            "status": self.status.value,
        }


@dataclass
class Room:
    """A physical room."""

    id: str
    capacity: int = 0
    type: str = ""
    facilities: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a Room from a catalog record."""
        return cls(
            id=str(data["id"]).strip(),
            capacity=_as_int(data.get("capacity", 0)),
            type=str(data.get("type", "") or "").strip(),
            facilities=split_list(data.get("facilities")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert room to dictionary."""
        return {
            "id": self.id,
            "capacity": self.capacity,
            "type": self.type,
            "facilities": self.facilities,
        }


@dataclass(frozen=True)
class TimeSlot:
    """A (day, interval) cell coordinate."""

    day: str
    interval: str

    @property
    def label(self) -> str:
        """Display label, e.g. "Monday, 09:00 - 10:00"."""
        return format_slot_label(self.day, self.interval)

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Assignment:
    """A course bound to one grid cell with its faculty member and room.

    The faculty identifier is copied from the course at placement time.
    """

    course_id: str
    faculty_id: str
    room_id: str

    def with_room(self, room_id: str) -> "Assignment":
        return replace(self, room_id=room_id)

    def with_faculty(self, faculty_id: str) -> "Assignment":
        return replace(self, faculty_id=faculty_id)

    def to_dict(self) -> dict[str, str]:
        """Convert to the grid cell representation."""
        return {
            "courseId": self.course_id,
            "facultyId": self.faculty_id,
            "roomId": self.room_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create an Assignment from its grid cell representation."""
        return cls(
            course_id=str(data["courseId"]),
            faculty_id=str(data["facultyId"]),
            room_id=str(data["roomId"]),
        )


@dataclass(frozen=True)
class Conflict:
    """A rule violation between two assignments at one (day, interval).

    ``first`` is the assignment that held the cell, ``second`` the one placed
    on top of it. Conflicts are derived records; marking one resolved does not
    change the grid.
    """

    id: str
    kind: ConflictKind
    day: str
    interval: str
    first: Assignment
    second: Assignment
    severity: Severity
    message: str = ""
    resolved: bool = False
    resolved_at: datetime | None = None

    @property
    def course_id1(self) -> str:
        return self.first.course_id

    @property
    def course_id2(self) -> str:
        return self.second.course_id

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.day, self.interval)

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL

    def mark_resolved(self, when: datetime | None = None) -> "Conflict":
        """Return a copy marked resolved at ``when`` (default: now)."""
        return replace(self, resolved=True, resolved_at=when or datetime.now())

    def to_dict(self) -> dict[str, Any]:
        """Convert conflict to dictionary."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "day": self.day,
            "interval": self.interval,
            "courseId1": self.course_id1,
            "courseId2": self.course_id2,
            "severity": self.severity.value,
            "resolved": self.resolved,
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
            "message": self.message,
            "first": self.first.to_dict(),
            "second": self.second.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a Conflict from its dictionary representation."""
        resolved_at = data.get("resolvedAt")
        return cls(
            id=data["id"],
            kind=ConflictKind(data["kind"]),
            day=data["day"],
            interval=data["interval"],
            first=Assignment.from_dict(data["first"]),
            second=Assignment.from_dict(data["second"]),
            severity=Severity(data["severity"]),
            message=data.get("message", ""),
            resolved=bool(data.get("resolved", False)),
            resolved_at=datetime.fromisoformat(resolved_at) if resolved_at else None,
        )


@dataclass
class FacultyLoad:
    """Committed teaching load of one faculty member."""

    faculty_id: str
    committed_hours: int
    max_hours: int
    ratio: float
    status: LoadStatus
    course_ids: list[str] = field(default_factory=list)

    @property
    def percentage(self) -> float:
        """Load percentage clamped to [0, 100] for display."""
        return max(0.0, min(100.0, self.ratio * 100))

    def to_dict(self) -> dict[str, Any]:
        return {
            "faculty_id": self.faculty_id,
            "committed_hours": self.committed_hours,
            "max_hours": self.max_hours,
            "percentage": self.percentage,
            "status": self.status.value,
            "course_ids": self.course_ids,
        }


@dataclass
class AssignmentResult:
    """Result of an auto-assign batch.

    Attributes:
        courses: Course list with faculty assignments applied
        roster: Faculty roster with running committed hours and status
        assigned: (course_id, faculty_id) pairs chosen in this batch
        unassigned: Courses for which no faculty member qualified
        placed: Courses placed on the grid in this batch, with their slot
        unplaced: Courses with a faculty member but no free cell/room
        completed: False if the batch was stopped before the last course
    """

    courses: list[Course] = field(default_factory=list)
    roster: list[Faculty] = field(default_factory=list)
    assigned: list[tuple[str, str]] = field(default_factory=list)
    unassigned: list[str] = field(default_factory=list)
    placed: list[tuple[str, TimeSlot]] = field(default_factory=list)
    unplaced: list[str] = field(default_factory=list)
    completed: bool = True

    @property
    def total_assigned(self) -> int:
        return len(self.assigned)


@dataclass
class ResolutionResult:
    """Result of an auto-resolve batch.

    Attributes:
        grid: Grid after all repairs (a new grid; the input is untouched)
        conflicts: Full conflict set with repaired conflicts marked resolved
        resolved: Identifiers of conflicts repaired in this batch
        unresolved: Conflicts for which no alternative room/slot existed
        displaced: Assignments that lost their cell and were not reinstated
        completed: False if the batch was stopped before the last conflict
    """

    grid: Any
    conflicts: list[Conflict] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    unresolved: list[Conflict] = field(default_factory=list)
    displaced: list[Assignment] = field(default_factory=list)
    completed: bool = True


@dataclass
class ConflictSummary:
    """Counts over a conflict set."""

    total: int = 0
    critical: int = 0
    minor: int = 0
    unresolved: int = 0
    resolved_today: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "critical": self.critical,
            "minor": self.minor,
            "unresolved": self.unresolved,
            "resolved_today": self.resolved_today,
            "by_kind": self.by_kind,
        }


def _as_int(value) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    return bool(value) if value == value else False  # NaN -> False


def _as_optional_str(value) -> str | None:
    if value is None or value != value:  # None or NaN
        return None
    text = str(value).strip()
    return text or None
