"""Timetable grid store.

A grid maps every (day, interval) pair of the calendar to an assignment or
``None``. Grids are never modified in place: every store operation returns a
new grid, so a grid held by the history or by another caller never changes
underneath it.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, Self

from .constants import DEFAULT_DAYS, DEFAULT_INTERVALS
from .exceptions import InvalidSlotError
from .models import Assignment, Conflict, TimeSlot

logger = logging.getLogger(__name__)

Cells = dict[str, dict[str, Assignment | None]]


class Grid:
    """One weekly timetable: day -> interval -> assignment or None."""

    def __init__(
        self,
        days: Sequence[str] = DEFAULT_DAYS,
        intervals: Sequence[str] = DEFAULT_INTERVALS,
        cells: Cells | None = None,
    ) -> None:
        if not days or not intervals:
            raise ValueError("A grid needs at least one day and one interval")
        self.days: tuple[str, ...] = tuple(days)
        self.intervals: tuple[str, ...] = tuple(intervals)
        cells = cells or {}
        for day, row in cells.items():
            for interval in row:
                if day not in self.days or interval not in self.intervals:
                    raise InvalidSlotError(day, interval)
        # Every cell is always present, possibly None
        self._cells: Cells = {
            day: {
                interval: cells.get(day, {}).get(interval) for interval in self.intervals
            }
            for day in self.days
        }

    @classmethod
    def empty(
        cls,
        days: Sequence[str] = DEFAULT_DAYS,
        intervals: Sequence[str] = DEFAULT_INTERVALS,
    ) -> Self:
        """Create a grid with every cell empty."""
        return cls(days, intervals)

    def has_slot(self, day: str, interval: str) -> bool:
        """Check whether (day, interval) is part of this grid's calendar."""
        return day in self._cells and interval in self._cells[day]

    def check_slot(self, day: str, interval: str) -> None:
        """Raise InvalidSlotError if (day, interval) is not in the calendar."""
        if not self.has_slot(day, interval):
            raise InvalidSlotError(day, interval)

    def get(self, day: str, interval: str) -> Assignment | None:
        """Get the assignment at a cell (None if empty)."""
        self.check_slot(day, interval)
        return self._cells[day][interval]

    def is_empty(self, day: str, interval: str) -> bool:
        return self.get(day, interval) is None

    def slots(self) -> list[TimeSlot]:
        """All cell coordinates, day-major in calendar order."""
        return [TimeSlot(day, interval) for day in self.days for interval in self.intervals]

    def cells(self) -> Iterator[tuple[TimeSlot, Assignment | None]]:
        """Iterate over every cell in calendar order."""
        for day in self.days:
            for interval in self.intervals:
                yield TimeSlot(day, interval), self._cells[day][interval]

    def occupied(self) -> list[tuple[TimeSlot, Assignment]]:
        """All non-empty cells in calendar order."""
        return [(slot, a) for slot, a in self.cells() if a is not None]

    def empty_slots(self) -> list[TimeSlot]:
        """All empty cells in calendar order."""
        return [slot for slot, a in self.cells() if a is None]

    def find_course(self, course_id: str) -> list[TimeSlot]:
        """Slots holding the given course."""
        return [slot for slot, a in self.occupied() if a.course_id == course_id]

    def with_cell(self, day: str, interval: str, assignment: Assignment | None) -> "Grid":
        """Return a new grid with one cell replaced."""
        self.check_slot(day, interval)
        cells = dict(self._cells)
        row = dict(cells[day])
        row[interval] = assignment
        cells[day] = row
        return self._from_cells(cells)

    def copy(self) -> "Grid":
        """Return an independent copy of this grid."""
        return self._from_cells({day: dict(row) for day, row in self._cells.items()})

    def _from_cells(self, cells: Cells) -> "Grid":
        grid = object.__new__(Grid)
        grid.days = self.days
        grid.intervals = self.intervals
        grid._cells = cells
        return grid

    def __len__(self) -> int:
        return len(self.days) * len(self.intervals)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return (
            self.days == other.days
            and self.intervals == other.intervals
            and self._cells == other._cells
        )

    def __repr__(self) -> str:
        return (
            f"Grid(days={len(self.days)}, intervals={len(self.intervals)}, "
            f"occupied={len(self.occupied())})"
        )

    def to_dict(self) -> dict[str, dict[str, dict[str, str] | None]]:
        """Convert to the serializable shape: day -> interval -> cell or None."""
        return {
            day: {
                interval: (a.to_dict() if a is not None else None)
                for interval, a in row.items()
            }
            for day, row in self._cells.items()
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        days: Sequence[str] | None = None,
        intervals: Sequence[str] | None = None,
    ) -> Self:
        """Create a grid from its serializable shape.

        Args:
            data: Mapping day -> interval -> assignment dict or None
            days: Calendar days (default: keys of ``data`` in order)
            intervals: Calendar intervals (default: keys of the first day)
        """
        if days is None:
            days = list(data.keys())
        if intervals is None:
            first = next(iter(data.values()), {}) if data else {}
            intervals = list(first.keys())
        cells: Cells = {}
        for day, row in data.items():
            cells[day] = {
                interval: (Assignment.from_dict(value) if value else None)
                for interval, value in (row or {}).items()
            }
        return cls(days or DEFAULT_DAYS, intervals or DEFAULT_INTERVALS, cells)


def create_assignment(
    grid: Grid,
    day: str,
    interval: str,
    assignment: Assignment,
    source: TimeSlot | None = None,
) -> Grid:
    """Place (or overwrite) an assignment at a cell.

    If ``source`` is given the assignment is being moved: the source cell is
    cleared in the same step.

    Args:
        grid: Grid to transform
        day: Target day
        interval: Target interval
        assignment: Assignment to place
        source: Cell the assignment is moved from, if any

    Returns:
        New grid with the placement applied
    """
    grid.check_slot(day, interval)
    if source is not None:
        grid.check_slot(source.day, source.interval)
        if (source.day, source.interval) != (day, interval):
            grid = grid.with_cell(source.day, source.interval, None)
    previous = grid.get(day, interval)
    if previous is not None and previous != assignment:
        logger.debug(
            f"Overwriting {previous.course_id} with {assignment.course_id} "
            f"at {day} {interval}"
        )
    return grid.with_cell(day, interval, assignment)


def move_assignment(grid: Grid, source: TimeSlot, target: TimeSlot) -> Grid:
    """Move the assignment at ``source`` to ``target``.

    Moving from an empty cell is a no-op.
    """
    assignment = grid.get(source.day, source.interval)
    if assignment is None:
        grid.check_slot(target.day, target.interval)
        return grid
    return create_assignment(grid, target.day, target.interval, assignment, source=source)


def remove_assignment(
    grid: Grid,
    day: str,
    interval: str,
    conflicts: Iterable[Conflict] = (),
) -> tuple[Grid, list[Conflict]]:
    """Empty a cell and drop the conflicts recorded at that cell.

    Removing an empty cell is a no-op.

    Returns:
        Tuple of (new grid, remaining conflicts)
    """
    if grid.get(day, interval) is None:
        return grid, list(conflicts)
    remaining = [c for c in conflicts if (c.day, c.interval) != (day, interval)]
    return grid.with_cell(day, interval, None), remaining


def reset_grid(grid: Grid | None = None) -> Grid:
    """Return an empty grid with the same calendar as ``grid``."""
    if grid is None:
        return Grid.empty()
    return Grid.empty(grid.days, grid.intervals)
