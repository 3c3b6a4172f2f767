"""Tests for undo/redo history."""

import pytest

from timetable_builder.grid import Grid
from timetable_builder.history import History
from timetable_builder.models import Assignment, Conflict, ConflictKind, Severity

MON = "Monday"
NINE = "09:00 - 10:00"


@pytest.fixture
def grids():
    empty = Grid.empty()
    one = empty.with_cell(MON, NINE, Assignment("CS101", "F1", "A101"))
    two = one.with_cell(MON, NINE, Assignment("CS201", "F4", "B201"))
    return empty, one, two


class TestHistory:
    """Tests for History class."""

    def test_seeded_with_initial(self, grids):
        history = History(grids[0])
        assert len(history) == 1
        assert history.index == 0
        assert history.current == grids[0]

    def test_undo_after_push(self, grids):
        empty, one, _ = grids
        history = History(empty)
        history.push(one)
        assert history.undo() == empty

    def test_redo_after_undo(self, grids):
        empty, one, _ = grids
        history = History(empty)
        history.push(one)
        history.undo()
        assert history.redo() == one

    def test_undo_at_start_is_noop(self, grids):
        """Scenario E: undo at index 0 leaves the grid unchanged."""
        history = History(grids[0])
        assert history.undo() == grids[0]
        assert history.index == 0
        assert not history.can_undo

    def test_redo_at_end_is_noop(self, grids):
        empty, one, _ = grids
        history = History(empty)
        history.push(one)
        assert history.redo() == one
        assert history.index == 1
        assert not history.can_redo

    def test_push_truncates_redo_tail(self, grids):
        empty, one, two = grids
        history = History(empty)
        history.push(one)
        history.push(two)
        history.undo()
        history.undo()
        history.push(two)

        assert len(history) == 2
        assert not history.can_redo
        assert history.undo() == empty


@pytest.fixture
def clash(grids):
    _, one, two = grids
    return Conflict(
        id=f"room:{MON}:{NINE}:CS101:CS201",
        kind=ConflictKind.ROOM,
        day=MON,
        interval=NINE,
        first=one.get(MON, NINE),
        second=two.get(MON, NINE),
        severity=Severity.CRITICAL,
    )


class TestSnapshots:
    """Tests for the state recorded alongside each grid."""

    def test_snapshot_holds_conflicts_and_courses(self, grids, clash):
        empty, _, two = grids
        history = History(empty, courses={"CS201": (None, None)})
        history.push(two, [clash], {"CS201": ("F4", "B201")})

        assert history.snapshot.conflicts == (clash,)
        assert history.snapshot.courses == {"CS201": ("F4", "B201")}
        history.undo()
        assert history.snapshot.conflicts == ()
        assert history.snapshot.courses == {"CS201": (None, None)}

    def test_amend_replaces_current_conflicts_only(self, grids, clash):
        empty, _, two = grids
        history = History(empty)
        history.push(two, [clash])
        history.amend([clash.mark_resolved()])

        assert history.snapshot.grid == two
        assert history.snapshot.conflicts[0].resolved is True
        history.undo()
        assert history.snapshot.conflicts == ()
