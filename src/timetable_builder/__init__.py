"""Timetable Builder - course timetabling with conflict detection and repair.

This module places academic courses into a weekly day x interval grid with
rooms and faculty members, detects room, faculty and cohort-overlap
conflicts, tracks faculty teaching loads, and offers greedy auto-assignment
and auto-resolution with undo/redo over independent timetables.

Example usage:
    from timetable_builder import CatalogLoader, TimetableEditor

    catalog = CatalogLoader("data/catalog").load()
    editor = TimetableEditor(catalog)

    editor.place("Monday", "09:00 - 10:00", "CS101", "A101", "F1")
    editor.auto_assign()
    result = editor.auto_resolve()

    print(f"Resolved: {len(result.resolved)}")
    for faculty_id, load in editor.loads().items():
        print(f"{faculty_id} | {load.committed_hours}h | {load.status.value}")

    # Save through a backend
    from timetable_builder.persistence import JSONFileBackend
    editor.backend = JSONFileBackend("output")
    editor.save()
"""

from .catalog import Catalog, CatalogLoader, filter_courses
from .conflicts import classify_severity, detect
from .coordinator import InstanceCoordinator
from .editor import TimetableEditor
from .events import Event, EventBus, EventType
from .exceptions import (
    CatalogError,
    ConflictBlockedError,
    InvalidSlotError,
    LastInstanceError,
    MissingFacultyError,
    PersistenceError,
    TimetableError,
    UnknownConflictError,
    UnknownCourseError,
    UnknownFacultyError,
    UnknownInstanceError,
    UnknownRoomError,
    ValidationError,
)
from .grid import Grid
from .models import (
    Assignment,
    AssignmentResult,
    Conflict,
    ConflictKind,
    Course,
    Faculty,
    FacultyLoad,
    LoadStatus,
    ResolutionResult,
    Room,
    Severity,
    TimeSlot,
    WeeklyHours,
)
from .persistence import JSONFileBackend, PersistenceBackend
from .workload import compute_loads

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "TimetableEditor",
    "InstanceCoordinator",
    # Catalog
    "Catalog",
    "CatalogLoader",
    "filter_courses",
    # Engine
    "Grid",
    "detect",
    "classify_severity",
    "compute_loads",
    # Models
    "Assignment",
    "AssignmentResult",
    "Conflict",
    "ConflictKind",
    "Course",
    "Faculty",
    "FacultyLoad",
    "LoadStatus",
    "ResolutionResult",
    "Room",
    "Severity",
    "TimeSlot",
    "WeeklyHours",
    # Events and persistence
    "Event",
    "EventBus",
    "EventType",
    "JSONFileBackend",
    "PersistenceBackend",
    # Exceptions
    "TimetableError",
    "ValidationError",
    "UnknownCourseError",
    "UnknownFacultyError",
    "UnknownRoomError",
    "InvalidSlotError",
    "MissingFacultyError",
    "ConflictBlockedError",
    "UnknownConflictError",
    "UnknownInstanceError",
    "LastInstanceError",
    "PersistenceError",
    "CatalogError",
]
