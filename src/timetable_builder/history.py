"""Undo/redo history of timetable snapshots."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .grid import Grid
from .models import Conflict, Course

# course id -> (faculty id, room id)
CourseAssignments = dict[str, tuple[str | None, str | None]]


def course_assignments(courses: Mapping[str, Course]) -> CourseAssignments:
    """Faculty and room recorded on each working course."""
    return {cid: (c.faculty_id, c.room_id) for cid, c in courses.items()}


@dataclass(frozen=True)
class Snapshot:
    """State of one timetable at a point in its history.

    Attributes:
        grid: The grid
        conflicts: Conflict set that goes with the grid
        courses: Faculty and room assigned to each working course
    """

    grid: Grid
    conflicts: tuple[Conflict, ...] = ()
    courses: CourseAssignments = field(default_factory=dict)


class History:
    """Append-only list of snapshots with a current-position pointer.

    Pushing after an undo discards the redo tail. Undo and redo at the ends
    of the history leave the pointer where it is.
    """

    def __init__(
        self,
        initial: Grid,
        conflicts: Iterable[Conflict] = (),
        courses: CourseAssignments | None = None,
    ) -> None:
        self._snapshots: list[Snapshot] = [_snapshot(initial, conflicts, courses)]
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshots[self._index]

    @property
    def current(self) -> Grid:
        """Grid at the current position (an independent copy)."""
        return self.snapshot.grid.copy()

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def push(
        self,
        grid: Grid,
        conflicts: Iterable[Conflict] = (),
        courses: CourseAssignments | None = None,
    ) -> None:
        """Record a snapshot after a mutation, dropping any redo entries."""
        del self._snapshots[self._index + 1 :]
        self._snapshots.append(_snapshot(grid, conflicts, courses))
        self._index = len(self._snapshots) - 1

    def amend(self, conflicts: Iterable[Conflict]) -> None:
        """Replace the conflict set of the current snapshot.

        Used for acknowledgements, which change conflicts but not the grid.
        """
        current = self.snapshot
        self._snapshots[self._index] = Snapshot(current.grid, tuple(conflicts), current.courses)

    def undo(self) -> Grid:
        """Step back one snapshot; no-op at the first snapshot."""
        if self.can_undo:
            self._index -= 1
        return self.current

    def redo(self) -> Grid:
        """Step forward one snapshot; no-op at the last snapshot."""
        if self.can_redo:
            self._index += 1
        return self.current

    def __len__(self) -> int:
        return len(self._snapshots)


def _snapshot(
    grid: Grid,
    conflicts: Iterable[Conflict],
    courses: CourseAssignments | None,
) -> Snapshot:
    return Snapshot(grid.copy(), tuple(conflicts), dict(courses or {}))
