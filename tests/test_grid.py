"""Tests for the grid store."""

import pytest

from timetable_builder.constants import DEFAULT_DAYS, DEFAULT_INTERVALS
from timetable_builder.exceptions import InvalidSlotError
from timetable_builder.grid import (
    Grid,
    create_assignment,
    move_assignment,
    remove_assignment,
    reset_grid,
)
from timetable_builder.models import (
    Assignment,
    Conflict,
    ConflictKind,
    Severity,
    TimeSlot,
)

MON = "Monday"
TUE = "Tuesday"
NINE = "09:00 - 10:00"
TEN = "10:00 - 11:00"


@pytest.fixture
def cs101():
    return Assignment("CS101", "F1", "A101")


def _conflict(day, interval, first, second):
    return Conflict(
        id=f"room:{day}:{interval}:{first.course_id}:{second.course_id}",
        kind=ConflictKind.ROOM,
        day=day,
        interval=interval,
        first=first,
        second=second,
        severity=Severity.CRITICAL,
    )


class TestGrid:
    """Tests for Grid class."""

    def test_every_cell_defined(self):
        grid = Grid.empty()
        assert len(grid) == len(DEFAULT_DAYS) * len(DEFAULT_INTERVALS)
        cells = list(grid.cells())
        assert len(cells) == len(grid)
        assert all(assignment is None for _, assignment in cells)

    def test_every_cell_defined_after_sparse_construction(self, cs101):
        grid = Grid(["Monday", "Tuesday"], [NINE, TEN], {MON: {NINE: cs101}})
        assert len(list(grid.cells())) == 4
        assert grid.get(TUE, TEN) is None

    def test_unknown_cell_in_construction(self, cs101):
        with pytest.raises(InvalidSlotError):
            Grid([MON], [NINE], {"Sunday": {NINE: cs101}})

    def test_unknown_slot(self):
        grid = Grid.empty()
        with pytest.raises(InvalidSlotError):
            grid.get("Sunday", NINE)
        with pytest.raises(InvalidSlotError):
            grid.get(MON, "07:00 - 08:00")

    def test_slots_are_day_major(self):
        grid = Grid([MON, TUE], [NINE, TEN])
        assert grid.slots() == [
            TimeSlot(MON, NINE),
            TimeSlot(MON, TEN),
            TimeSlot(TUE, NINE),
            TimeSlot(TUE, TEN),
        ]

    def test_with_cell_does_not_modify_original(self, cs101):
        grid = Grid.empty()
        updated = grid.with_cell(MON, NINE, cs101)
        assert grid.get(MON, NINE) is None
        assert updated.get(MON, NINE) == cs101

    def test_find_course(self, cs101):
        grid = Grid.empty().with_cell(MON, NINE, cs101).with_cell(TUE, TEN, cs101)
        assert grid.find_course("CS101") == [TimeSlot(MON, NINE), TimeSlot(TUE, TEN)]
        assert grid.find_course("CS999") == []

    def test_serializable_shape(self, cs101):
        grid = Grid([MON], [NINE, TEN]).with_cell(MON, NINE, cs101)
        assert grid.to_dict() == {
            MON: {NINE: {"courseId": "CS101", "facultyId": "F1", "roomId": "A101"}, TEN: None}
        }

    def test_from_dict(self, cs101):
        grid = Grid([MON], [NINE, TEN]).with_cell(MON, NINE, cs101)
        assert Grid.from_dict(grid.to_dict()) == grid


class TestCreateAssignment:
    """Tests for create_assignment function."""

    def test_place(self, cs101):
        grid = create_assignment(Grid.empty(), MON, NINE, cs101)
        assert grid.get(MON, NINE) == cs101

    def test_overwrite(self, cs101):
        other = Assignment("CS201", "F4", "B201")
        grid = create_assignment(Grid.empty(), MON, NINE, cs101)
        grid = create_assignment(grid, MON, NINE, other)
        assert grid.get(MON, NINE) == other
        assert len(grid.occupied()) == 1

    def test_move_clears_source(self, cs101):
        grid = create_assignment(Grid.empty(), MON, NINE, cs101)
        grid = create_assignment(grid, TUE, TEN, cs101, source=TimeSlot(MON, NINE))
        assert grid.get(MON, NINE) is None
        assert grid.get(TUE, TEN) == cs101

    def test_invalid_slot(self, cs101):
        with pytest.raises(InvalidSlotError):
            create_assignment(Grid.empty(), "Sunday", NINE, cs101)

    def test_remove_then_place_equals_place(self, cs101):
        grid = create_assignment(Grid.empty(), MON, NINE, Assignment("CS201", "F4", "B201"))
        placed = create_assignment(grid, MON, NINE, cs101)
        cleared, _ = remove_assignment(grid, MON, NINE)
        assert create_assignment(cleared, MON, NINE, cs101) == placed


class TestMoveAssignment:
    """Tests for move_assignment function."""

    def test_move(self, cs101):
        grid = create_assignment(Grid.empty(), MON, NINE, cs101)
        moved = move_assignment(grid, TimeSlot(MON, NINE), TimeSlot(TUE, NINE))
        assert moved.find_course("CS101") == [TimeSlot(TUE, NINE)]

    def test_move_from_empty_cell_is_noop(self):
        grid = Grid.empty()
        assert move_assignment(grid, TimeSlot(MON, NINE), TimeSlot(TUE, NINE)) == grid


class TestRemoveAssignment:
    """Tests for remove_assignment function."""

    def test_remove_drops_conflicts_at_cell(self, cs101):
        other = Assignment("CS201", "F4", "A101")
        grid = create_assignment(Grid.empty(), MON, NINE, other)
        here = _conflict(MON, NINE, cs101, other)
        elsewhere = _conflict(TUE, TEN, cs101, other)

        grid, remaining = remove_assignment(grid, MON, NINE, [here, elsewhere])
        assert grid.get(MON, NINE) is None
        assert remaining == [elsewhere]

    def test_remove_empty_cell_is_noop(self, cs101):
        grid = Grid.empty()
        conflict = _conflict(MON, NINE, cs101, cs101)
        updated, remaining = remove_assignment(grid, MON, NINE, [conflict])
        assert updated == grid
        assert remaining == [conflict]

    def test_remove_invalid_slot(self):
        with pytest.raises(InvalidSlotError):
            remove_assignment(Grid.empty(), MON, "late")


class TestResetGrid:
    """Tests for reset_grid function."""

    def test_reset_keeps_calendar(self, cs101):
        grid = Grid([MON], [NINE, TEN]).with_cell(MON, NINE, cs101)
        reset = reset_grid(grid)
        assert reset.days == (MON,)
        assert reset.intervals == (NINE, TEN)
        assert reset.occupied() == []

    def test_reset_default(self):
        assert reset_grid() == Grid.empty()
