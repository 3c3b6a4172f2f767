"""Tests for the TimetableEditor command interface."""

import itertools

import pytest

from timetable_builder.editor import TimetableEditor
from timetable_builder.events import EventType
from timetable_builder.exceptions import (
    ConflictBlockedError,
    InvalidSlotError,
    MissingFacultyError,
    PersistenceError,
    UnknownConflictError,
    UnknownCourseError,
    UnknownFacultyError,
    UnknownRoomError,
)
from timetable_builder.models import Assignment, ConflictKind, TimeSlot
from timetable_builder.persistence import PersistenceBackend

MON = "Monday"
TUE = "Tuesday"
NINE = "09:00 - 10:00"
TEN = "10:00 - 11:00"


class RecordingBackend(PersistenceBackend):
    """Backend that records payloads and returns a configurable result."""

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.saved = []
        self.published = []

    def save(self, payload):
        if self.error:
            raise self.error
        self.saved.append(payload)
        return self.result

    def publish(self, payload):
        if self.error:
            raise self.error
        self.published.append(payload)
        return self.result


@pytest.fixture
def room_clash(editor):
    """Scenario B through the editor: CS101 then CS201 in A101 on Monday 09:00."""
    editor.place(MON, NINE, "CS101", "A101", "F1")
    editor.place(MON, NINE, "CS201", "A101", "F4")
    return editor


class TestPlace:
    """Tests for place, move and remove."""

    def test_place(self, editor):
        assert editor.place(MON, NINE, "CS101", "A101", "F1") == []
        assert editor.grid.get(MON, NINE) == Assignment("CS101", "F1", "A101")

    def test_place_records_faculty_and_room_on_course(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        course = editor.active.courses["CS101"]
        assert course.faculty_id == "F1"
        assert course.room_id == "A101"

    def test_faculty_defaults_to_course_faculty(self, editor):
        editor.active.courses["CS101"].faculty_id = "F4"
        editor.place(MON, NINE, "CS101", "A101")
        assert editor.grid.get(MON, NINE).faculty_id == "F4"

    def test_missing_faculty(self, editor):
        with pytest.raises(MissingFacultyError):
            editor.place(MON, NINE, "CS101", "A101")

    @pytest.mark.parametrize(
        "args,error",
        [
            (("Sunday", NINE, "CS101", "A101", "F1"), InvalidSlotError),
            ((MON, "07:00 - 08:00", "CS101", "A101", "F1"), InvalidSlotError),
            ((MON, NINE, "XX999", "A101", "F1"), UnknownCourseError),
            ((MON, NINE, "CS101", "Z999", "F1"), UnknownRoomError),
            ((MON, NINE, "CS101", "A101", "F99"), UnknownFacultyError),
        ],
    )
    def test_validation_leaves_grid_unchanged(self, editor, args, error):
        editor.place(TUE, TEN, "CS102", "B201", "F2")
        before = editor.grid
        history_length = len(editor.active.history)

        with pytest.raises(error):
            editor.place(*args)
        assert editor.grid == before
        assert len(editor.active.history) == history_length

    def test_scenario_b(self, room_clash):
        conflicts = room_clash.conflicts
        assert len(conflicts) == 1
        assert conflicts[0].kind == ConflictKind.ROOM
        assert conflicts[0].resolved is False
        assert room_clash.grid.get(MON, NINE).course_id == "CS201"

    def test_check_does_not_place(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        preview = editor.check(MON, NINE, "CS201", "A101", "F4")
        assert [c.kind for c in preview] == [ConflictKind.ROOM]
        assert editor.grid.get(MON, NINE).course_id == "CS101"
        assert editor.conflicts == []

    def test_overwriting_again_drops_stale_conflict(self, room_clash):
        room_clash.place(MON, NINE, "AI301", "C301", "F3")
        assert room_clash.conflicts == []

    def test_move(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        assert editor.move(MON, NINE, TUE, TEN) == []
        assert editor.grid.get(MON, NINE) is None
        assert editor.grid.get(TUE, TEN).course_id == "CS101"

    def test_move_from_empty_cell(self, editor):
        assert editor.move(MON, NINE, TUE, TEN) == []
        assert len(editor.active.history) == 1

    def test_move_drops_conflicts_of_moved_assignment(self, room_clash):
        room_clash.move(MON, NINE, TUE, TEN)
        assert room_clash.conflicts == []

    def test_remove(self, room_clash):
        removed = room_clash.remove(MON, NINE)
        assert removed.course_id == "CS201"
        assert room_clash.grid.get(MON, NINE) is None
        assert room_clash.conflicts == []

    def test_remove_empty_cell_is_noop(self, editor):
        assert editor.remove(MON, NINE) is None
        assert len(editor.active.history) == 1

    def test_reset(self, room_clash):
        room_clash.reset()
        assert room_clash.grid.occupied() == []
        assert room_clash.conflicts == []
        room_clash.undo()
        assert room_clash.grid.get(MON, NINE).course_id == "CS201"


class TestHistory:
    """Tests for undo/redo through the editor."""

    def test_undo_redo(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        placed = editor.grid

        assert editor.undo().occupied() == []
        assert editor.redo() == placed

    def test_undo_at_start(self, editor):
        """Scenario E."""
        before = editor.grid
        assert editor.undo() == before

    def test_undo_drops_conflicts_of_undone_placement(self, room_clash):
        room_clash.undo()
        assert room_clash.grid.get(MON, NINE).course_id == "CS101"
        assert room_clash.conflicts == []

    def test_redo_restores_conflicts(self, room_clash):
        recorded = room_clash.conflicts
        room_clash.undo()
        room_clash.redo()

        assert room_clash.grid.get(MON, NINE).course_id == "CS201"
        assert room_clash.conflicts == recorded
        assert room_clash.conflicts[0].first.course_id == "CS101"

    def test_redo_keeps_publish_blocked(self, catalog):
        editor = TimetableEditor(catalog, backend=RecordingBackend())
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(MON, NINE, "CS201", "A101", "F4")
        editor.undo()
        editor.redo()

        with pytest.raises(ConflictBlockedError):
            editor.publish()
        assert editor.backend.published == []

    def test_acknowledgement_survives_undo_redo(self, room_clash):
        conflict_id = room_clash.conflicts[0].id
        room_clash.mark_conflict_resolved(conflict_id)
        room_clash.undo()
        room_clash.redo()
        assert room_clash.conflicts[0].resolved is True

    def test_undo_restores_course_assignments(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.undo()
        course = editor.active.courses["CS101"]
        assert course.faculty_id is None
        assert course.room_id is None

        editor.redo()
        assert editor.active.courses["CS101"].faculty_id == "F1"
        assert editor.active.courses["CS101"].room_id == "A101"


class TestBatchOperations:
    """Tests for auto_assign and auto_resolve."""

    def test_auto_assign(self, editor):
        result = editor.auto_assign()

        assert result.assigned == [
            ("CS101", "F1"),
            ("CS102", "F2"),
            ("CS201", "F4"),
            ("AI301", "F3"),
        ]
        assert result.unassigned == ["PH101"]
        assert len(result.placed) == 4
        assert editor.active.courses["CS101"].faculty_id == "F1"

    def test_auto_assign_loads_consistent(self, editor):
        result = editor.auto_assign()
        loads = editor.loads()
        hours = {c.id: c.weekly_hours for c in editor.courses}
        for course_id, faculty_id in result.assigned:
            assert course_id in loads[faculty_id].course_ids
        for faculty_id, load in loads.items():
            assert load.committed_hours == sum(hours[c] for c in load.course_ids)

    def test_auto_assign_seeds_loads_from_grid(self, editor):
        # F1 already teaches CS201 (6h), so F4 gets CS101
        editor.place(MON, NINE, "CS201", "B201", "F1")
        result = editor.auto_assign(place=False)
        assert ("CS101", "F4") in result.assigned
        assert editor.grid.find_course("CS101") == []

    def test_auto_assign_is_one_history_entry(self, editor):
        editor.auto_assign()
        assert len(editor.active.history) == 2
        editor.undo()
        assert editor.grid.occupied() == []

    def test_undo_after_auto_assign_restores_courses(self, editor):
        first = editor.auto_assign()
        editor.undo()

        assert all(course.faculty_id is None for course in editor.courses)
        assert all(load.committed_hours == 0 for load in editor.loads().values())

        again = editor.auto_assign()
        assert again.assigned == first.assigned

    def test_stopped_auto_assign_applies_nothing(self, editor):
        result = editor.auto_assign(should_stop=lambda: True)

        assert result.completed is False
        assert all(course.faculty_id is None for course in editor.courses)
        assert len(editor.active.history) == 1

    def test_auto_assign_stopped_during_placement(self, editor):
        calls = itertools.count()
        # Five pending courses are checked before assignment, then placement begins
        result = editor.auto_assign(should_stop=lambda: next(calls) >= 6)

        assert result.completed is False
        assert len(result.placed) == 1
        assert editor.grid.occupied() == []
        assert all(course.faculty_id is None for course in editor.courses)
        assert len(editor.active.history) == 1

    def test_stopped_auto_resolve_applies_nothing(self, room_clash):
        room_clash.place(TUE, TEN, "AI301", "B201", "F3")
        room_clash.place(TUE, TEN, "PH101", "B201", "F1")
        assert len(room_clash.conflicts) == 2

        grid = room_clash.grid
        conflicts = room_clash.conflicts
        history_length = len(room_clash.active.history)
        answers = iter([False, True])

        result = room_clash.auto_resolve(should_stop=lambda: next(answers))

        assert result.completed is False
        assert len(result.resolved) == 1
        assert room_clash.grid == grid
        assert room_clash.conflicts == conflicts
        assert len(room_clash.active.history) == history_length

    def test_auto_resolve_announces_displaced(self, room_clash):
        removed = []
        room_clash.events.subscribe(removed.append, EventType.ASSIGNMENT_REMOVED)
        room_clash.auto_resolve()

        assert len(removed) == 1
        assert removed[0].payload["courseId"] == "CS101"
        assert removed[0].payload["displaced"] is True
        assert (removed[0].payload["day"], removed[0].payload["interval"]) == (MON, NINE)

    def test_auto_resolve_scenario_c(self, room_clash):
        result = room_clash.auto_resolve()

        assert len(result.resolved) == 1
        assert room_clash.grid.get(MON, NINE) == Assignment("CS201", "F4", "B201")
        assert room_clash.conflicts[0].resolved is True
        assert room_clash.conflicts[0].resolved_at is not None
        assert room_clash.active.courses["CS201"].room_id == "B201"
        assert result.displaced == [Assignment("CS101", "F1", "A101")]

    def test_auto_resolve_reports_unresolved(self, room_clash):
        result = room_clash.auto_resolve(rooms=[room_clash.catalog.room("A101")])
        assert [c.id for c in result.unresolved] == [room_clash.conflicts[0].id]
        assert room_clash.conflicts[0].resolved is False

    def test_auto_resolve_with_nothing_to_do(self, editor):
        result = editor.auto_resolve()
        assert result.resolved == []
        assert len(editor.active.history) == 1


class TestConflictCommands:
    """Tests for acknowledging and manually repairing conflicts."""

    def test_mark_conflict_resolved(self, room_clash):
        conflict_id = room_clash.conflicts[0].id
        before = room_clash.grid

        resolved = room_clash.mark_conflict_resolved(conflict_id)
        assert resolved.resolved is True
        assert room_clash.grid == before

    def test_mark_unknown_conflict(self, editor):
        with pytest.raises(UnknownConflictError):
            editor.mark_conflict_resolved("room:Monday:09:00 - 10:00:X:Y")

    def test_mark_all_resolved(self, room_clash):
        assert room_clash.mark_all_resolved() == 1
        assert room_clash.summary().unresolved == 0

    def test_change_room(self, room_clash):
        conflict_id = room_clash.conflicts[0].id
        resolved = room_clash.change_room(conflict_id, "C301")
        assert resolved.resolved is True
        assert room_clash.grid.get(MON, NINE).room_id == "C301"

    def test_change_room_unknown_room(self, room_clash):
        with pytest.raises(UnknownRoomError):
            room_clash.change_room(room_clash.conflicts[0].id, "Z999")
        assert room_clash.conflicts[0].resolved is False

    def test_swap_time(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(MON, NINE, "CS201", "B201", "F1")
        conflict_id = editor.conflicts[0].id

        resolved = editor.swap_time(conflict_id, TUE, NINE)
        assert resolved.resolved is True
        assert editor.grid.get(TUE, NINE).course_id == "CS201"
        assert editor.grid.get(MON, NINE).course_id == "CS101"

    def test_reassign_faculty(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(MON, NINE, "CS201", "B201", "F1")
        conflict_id = editor.conflicts[0].id

        editor.reassign_faculty(conflict_id, "F4")
        assert editor.grid.get(MON, NINE).faculty_id == "F4"
        assert editor.active.courses["CS201"].faculty_id == "F4"
        assert editor.conflicts[0].resolved is True


class TestViews:
    """Tests for derived views."""

    def test_scenario_a_loads(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        assert editor.loads()["F1"].committed_hours == 4

    def test_faculty_timetable(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(TUE, NINE, "CS102", "A101", "F2")
        view = editor.faculty_timetable("F1")
        assert [slot for slot, _ in view.occupied()] == [TimeSlot(MON, NINE)]

    def test_free_rooms(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        assert [r.id for r in editor.free_rooms(MON, NINE)] == ["B201", "C301"]
        assert [r.id for r in editor.free_rooms(TUE, NINE)] == ["A101", "B201", "C301"]

    def test_room_occupancy(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(TUE, TEN, "CS102", "A101", "F2")
        assert [slot for slot, _ in editor.room_occupancy("A101")] == [
            TimeSlot(MON, NINE),
            TimeSlot(TUE, TEN),
        ]


class TestPersistence:
    """Tests for save and publish."""

    def test_save_without_backend(self, editor):
        with pytest.raises(PersistenceError):
            editor.save()

    def test_save(self, catalog):
        backend = RecordingBackend()
        editor = TimetableEditor(catalog, backend=backend)
        editor.place(MON, NINE, "CS101", "A101", "F1")

        assert editor.save() is True
        payload = backend.saved[0]
        assert payload["grid"][MON][NINE] == {"courseId": "CS101", "facultyId": "F1", "roomId": "A101"}
        assert payload["conflicts"] == []

    def test_backend_failure_keeps_state(self, catalog):
        editor = TimetableEditor(catalog, backend=RecordingBackend(result=False))
        editor.place(MON, NINE, "CS101", "A101", "F1")
        with pytest.raises(PersistenceError):
            editor.save()
        assert editor.grid.get(MON, NINE).course_id == "CS101"

    def test_backend_exception_propagates(self, catalog):
        editor = TimetableEditor(catalog, backend=RecordingBackend(error=OSError("disk full")))
        editor.place(MON, NINE, "CS101", "A101", "F1")
        with pytest.raises(OSError):
            editor.save()
        editor.remove(MON, NINE)
        assert editor.grid.occupied() == []

    def test_publish_blocked(self, catalog):
        backend = RecordingBackend()
        editor = TimetableEditor(catalog, backend=backend)
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(MON, NINE, "CS201", "A101", "F4")

        with pytest.raises(ConflictBlockedError) as exc_info:
            editor.publish()
        assert [c.kind for c in exc_info.value.conflicts] == [ConflictKind.ROOM]
        assert backend.published == []

        editor.mark_all_resolved()
        assert editor.publish() is True
        assert len(backend.published) == 1

    def test_minor_conflicts_do_not_block(self, catalog):
        backend = RecordingBackend()
        editor = TimetableEditor(catalog, backend=backend)
        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(MON, NINE, "PH101", "B201", "F2")
        assert editor.summary().minor == 1
        assert editor.publish() is True


class TestInstancesAndEvents:
    """Tests for instance management and emitted events."""

    def test_instances_are_independent(self, editor):
        editor.place(MON, NINE, "CS101", "A101", "F1")
        first = editor.active.id
        second = editor.new_instance("Draft B")

        assert editor.active.id == second
        assert editor.grid.occupied() == []
        assert editor.active.courses["CS101"].faculty_id is None

        editor.switch_instance(first)
        assert editor.grid.get(MON, NINE).course_id == "CS101"

    def test_events(self, editor):
        received = []
        editor.events.subscribe(received.append)

        editor.place(MON, NINE, "CS101", "A101", "F1")
        editor.place(MON, NINE, "CS201", "A101", "F4")
        editor.mark_all_resolved()

        assert [e.type for e in received] == [
            EventType.ASSIGNMENT_PLACED,
            EventType.ASSIGNMENT_PLACED,
            EventType.CONFLICT_DETECTED,
            EventType.CONFLICT_RESOLVED,
        ]
        assert received[0].payload["courseId"] == "CS101"
        assert all(e.instance_id == "tab-1" for e in received)

    def test_auto_assign_events(self, editor):
        assigned = []
        editor.events.subscribe(assigned.append, EventType.FACULTY_ASSIGNED)
        editor.auto_assign()
        assert len(assigned) == 4
