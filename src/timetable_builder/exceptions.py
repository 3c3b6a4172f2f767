"""Custom exceptions for the timetable builder."""


class TimetableError(Exception):
    """Base exception for timetable errors."""

    pass


class ValidationError(TimetableError):
    """A day, interval, course, room or faculty reference is not valid.

    Raised before any mutation, so the grid is left unchanged.
    """

    pass


class UnknownCourseError(ValidationError):
    """Course identifier not present in the catalog."""

    def __init__(self, course_id: str):
        self.course_id = course_id
        super().__init__(f"Unknown course '{course_id}'")


class UnknownFacultyError(ValidationError):
    """Faculty identifier not present in the roster."""

    def __init__(self, faculty_id: str):
        self.faculty_id = faculty_id
        super().__init__(f"Unknown faculty member '{faculty_id}'")


class UnknownRoomError(ValidationError):
    """Room identifier not present in the catalog."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Unknown room '{room_id}'")


class InvalidSlotError(ValidationError):
    """Day or interval is not part of the configured calendar."""

    def __init__(self, day: str, interval: str):
        self.day = day
        self.interval = interval
        super().__init__(f"Invalid time slot: '{day}', '{interval}'")


class MissingFacultyError(ValidationError):
    """Course has no faculty assigned and none was given for the placement."""

    def __init__(self, course_id: str):
        self.course_id = course_id
        super().__init__(
            f"Course '{course_id}' has no faculty assigned. "
            "Pass a faculty identifier or run auto-assign first."
        )


class ConflictBlockedError(TimetableError):
    """Publishing is blocked by unresolved critical conflicts."""

    def __init__(self, conflicts: list):
        self.conflicts = list(conflicts)
        ids = ", ".join(c.id for c in self.conflicts)
        super().__init__(
            f"Cannot publish: {len(self.conflicts)} unresolved critical "
            f"conflict(s) remain ({ids}). Resolve them and retry."
        )


class UnknownConflictError(TimetableError):
    """Conflict identifier not present in the instance's conflict set."""

    def __init__(self, conflict_id: str):
        self.conflict_id = conflict_id
        super().__init__(f"Unknown conflict '{conflict_id}'")


class UnknownInstanceError(TimetableError):
    """Timetable instance identifier does not exist."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"Unknown timetable instance '{instance_id}'")


class LastInstanceError(TimetableError):
    """Attempt to close the only remaining timetable instance."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(
            f"Cannot close '{instance_id}': at least one timetable must remain open"
        )


class PersistenceError(TimetableError):
    """The persistence collaborator is missing or reported a failure."""

    def __init__(self, operation: str, message: str | None = None):
        self.operation = operation
        detail = f": {message}" if message else ""
        super().__init__(f"Could not {operation} timetable{detail}")


class CatalogError(TimetableError):
    """Catalog file could not be read or contains malformed records."""

    def __init__(self, message: str, file_name: str | None = None, row: int | None = None):
        self.file_name = file_name
        self.row = row
        location = ""
        if file_name:
            location += f" in '{file_name}'"
        if row is not None:
            location += f" at row {row}"
        super().__init__(f"Invalid catalog data{location}: {message}")
