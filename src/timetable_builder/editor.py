"""Command interface over the timetable engine.

``TimetableEditor`` is what a UI, CLI or service layer drives. Every command
targets the active instance, validates its arguments before touching any
state, applies the grid transform, revalidates the conflict set, records a
history snapshot and finally emits events.

Example usage:
    from timetable_builder import CatalogLoader, TimetableEditor

    catalog = CatalogLoader("data/catalog").load()
    editor = TimetableEditor(catalog)

    conflicts = editor.place("Monday", "09:00 - 10:00", "CS101", "A101", "F1")
    editor.undo()
    result = editor.auto_assign()
    editor.auto_resolve()
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from . import conflicts as detector
from .assigner import auto_assign, place_courses
from .catalog import Catalog
from .coordinator import InstanceCoordinator, TimetableInstance
from .events import Event, EventBus, EventType
from .exceptions import (
    ConflictBlockedError,
    MissingFacultyError,
    PersistenceError,
    UnknownConflictError,
    UnknownCourseError,
)
from .grid import Grid, create_assignment, remove_assignment, reset_grid
from .models import (
    Assignment,
    AssignmentResult,
    Conflict,
    ConflictSummary,
    Course,
    FacultyLoad,
    ResolutionResult,
    Room,
    TimeSlot,
)
from .persistence import PersistenceBackend
from .resolver import auto_resolve
from .workload import apply_loads, compute_loads

logger = logging.getLogger(__name__)


class TimetableEditor:
    """Single-operator editor for one or more timetable instances.

    Args:
        catalog: Courses, faculty, rooms and calendar
        backend: Persistence collaborator for save/publish
        events: Event bus to emit assignment/conflict events on
        coordinator: Existing instances (e.g. restored from a session file)
    """

    def __init__(
        self,
        catalog: Catalog,
        backend: PersistenceBackend | None = None,
        events: EventBus | None = None,
        coordinator: InstanceCoordinator | None = None,
    ) -> None:
        self.catalog = catalog
        self.backend = backend
        self.events = events or EventBus()
        self.coordinator = coordinator or InstanceCoordinator(catalog)

    # Instances

    @property
    def active(self) -> TimetableInstance:
        return self.coordinator.active

    @property
    def grid(self) -> Grid:
        return self.active.grid

    @property
    def conflicts(self) -> list[Conflict]:
        return list(self.active.conflicts)

    @property
    def courses(self) -> list[Course]:
        """The active instance's working courses, in catalog order."""
        return list(self.active.courses.values())

    def new_instance(self, name: str | None = None, activate: bool = True) -> str:
        instance_id = self.coordinator.create_instance(name)
        if activate:
            self.coordinator.switch_active(instance_id)
        return instance_id

    def close_instance(self, instance_id: str) -> None:
        self.coordinator.close_instance(instance_id)

    def switch_instance(self, instance_id: str) -> None:
        self.coordinator.switch_active(instance_id)

    # Manual editing

    def check(
        self,
        day: str,
        interval: str,
        course_id: str,
        room_id: str,
        faculty_id: str | None = None,
        critical: bool = False,
    ) -> list[Conflict]:
        """Preview the conflicts a placement would cause, without placing."""
        candidate = self._candidate(day, interval, course_id, room_id, faculty_id)
        return detector.detect(
            self.grid, day, interval, candidate, self.active.courses, critical
        )

    def place(
        self,
        day: str,
        interval: str,
        course_id: str,
        room_id: str,
        faculty_id: str | None = None,
        critical: bool = False,
    ) -> list[Conflict]:
        """Place a course at a cell, overwriting the cell's assignment.

        The faculty member defaults to the course's assigned one.

        Args:
            day: Target day
            interval: Target interval
            course_id: Course to place
            room_id: Room to use
            faculty_id: Faculty member (default: the course's faculty)
            critical: Flag conflicts caused by this placement as critical

        Returns:
            Conflicts detected for this placement

        Raises:
            ValidationError: If any reference is unknown (grid unchanged)
        """
        instance = self.active
        candidate = self._candidate(day, interval, course_id, room_id, faculty_id)
        detected = detector.detect(
            instance.grid, day, interval, candidate, instance.courses, critical
        )

        grid = create_assignment(instance.grid, day, interval, candidate)
        course = instance.courses[course_id]
        course.faculty_id = course.faculty_id or candidate.faculty_id
        course.room_id = room_id

        self._commit(instance, grid, detected, [TimeSlot(day, interval)])
        logger.info(
            f"Placed {course_id} at {day} {interval} in {room_id}"
            + (f" with {len(detected)} conflict(s)" if detected else "")
        )
        self._emit(
            EventType.ASSIGNMENT_PLACED,
            {"day": day, "interval": interval, **candidate.to_dict()},
        )
        self._emit_detected(detected)
        return detected

    def move(
        self,
        from_day: str,
        from_interval: str,
        to_day: str,
        to_interval: str,
        critical: bool = False,
    ) -> list[Conflict]:
        """Move an assignment to another cell, clearing the source cell.

        Moving from an empty cell is a no-op.

        Returns:
            Conflicts detected at the target cell
        """
        instance = self.active
        self.catalog.check_slot(from_day, from_interval)
        self.catalog.check_slot(to_day, to_interval)
        assignment = instance.grid.get(from_day, from_interval)
        if assignment is None:
            return []

        source = TimeSlot(from_day, from_interval)
        target = TimeSlot(to_day, to_interval)
        detected = detector.detect(
            instance.grid, to_day, to_interval, assignment, instance.courses, critical, source=source
        )
        grid = create_assignment(instance.grid, to_day, to_interval, assignment, source=source)

        self._commit(instance, grid, detected, [source, target])
        self._emit(
            EventType.ASSIGNMENT_MOVED,
            {"from": source.label, "to": target.label, **assignment.to_dict()},
        )
        self._emit_detected(detected)
        return detected

    def remove(self, day: str, interval: str) -> Assignment | None:
        """Empty a cell and drop the conflicts recorded at it.

        Removing from an empty cell is a no-op (nothing is recorded).

        Returns:
            The removed assignment, or None if the cell was empty
        """
        instance = self.active
        self.catalog.check_slot(day, interval)
        removed = instance.grid.get(day, interval)
        if removed is None:
            return None

        grid, remaining = remove_assignment(instance.grid, day, interval, instance.conflicts)
        instance.conflicts = remaining
        self.coordinator.push(instance.id, grid)
        self._emit(
            EventType.ASSIGNMENT_REMOVED,
            {"day": day, "interval": interval, **removed.to_dict()},
        )
        return removed

    def reset(self) -> None:
        """Empty every cell of the active grid (recorded in history)."""
        instance = self.active
        instance.conflicts = []
        self.coordinator.push(instance.id, reset_grid(instance.grid))
        self._emit(EventType.GRID_RESET, {})

    def undo(self) -> Grid:
        """Restore the previous snapshot; no-op at the start of history.

        The conflict set and course assignments recorded with the snapshot
        are restored along with the grid.
        """
        return self.coordinator.undo(self.active.id)

    def redo(self) -> Grid:
        """Restore the next snapshot; no-op at the end of history."""
        return self.coordinator.redo(self.active.id)

    # Batch operations

    def auto_assign(
        self,
        place: bool = True,
        should_stop: Callable[[], bool] | None = None,
    ) -> AssignmentResult:
        """Assign faculty to unassigned courses, then place unplaced courses.

        Faculty loads are seeded from the current grid. The batch is applied
        to the instance only once it has finished; a stopped batch returns
        its partial result with ``completed`` False and leaves the instance
        untouched.

        Args:
            place: Also place faculty-assigned courses that are not on the grid
            should_stop: Optional stop check evaluated between courses

        Returns:
            AssignmentResult describing the batch
        """
        instance = self.active
        loads = compute_loads(instance.grid, self.catalog.faculty, instance.courses)
        roster = apply_loads(self.catalog.faculty, loads)
        stop = _StopLatch(should_stop)

        result = auto_assign(list(instance.courses.values()), roster, stop)
        grid = instance.grid
        if place and result.completed:
            grid, result.placed, result.unplaced = place_courses(
                grid, result.courses, self.catalog.rooms, stop
            )
            result.completed = not stop.stopped
        if not result.completed:
            logger.warning("Auto-assign stopped, nothing applied")
            return result

        instance.courses = {course.id: course for course in result.courses}
        instance.conflicts = detector.revalidate(instance.conflicts, grid, instance.courses)
        if grid != instance.grid or result.assigned:
            self.coordinator.push(instance.id, grid)
        else:
            self.coordinator.record_conflicts(instance.id)

        for course_id, faculty_id in result.assigned:
            self._emit(EventType.FACULTY_ASSIGNED, {"courseId": course_id, "facultyId": faculty_id})
        for course_id, slot in result.placed:
            assignment = grid.get(slot.day, slot.interval)
            self._emit(
                EventType.ASSIGNMENT_PLACED,
                {"day": slot.day, "interval": slot.interval, **assignment.to_dict()},
            )
        return result

    def auto_resolve(
        self,
        rooms: Sequence[Room] | None = None,
        slots: Sequence[TimeSlot] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> ResolutionResult:
        """Repair the active instance's unresolved conflicts.

        A stopped batch returns its partial result with ``completed`` False
        and leaves the instance untouched. Assignments a repair leaves without
        a cell are announced as removed.

        Args:
            rooms: Candidate rooms (default: all catalog rooms)
            slots: Candidate slots (default: every calendar slot)
            should_stop: Optional stop check evaluated between conflicts

        Returns:
            ResolutionResult; ``conflicts`` is the instance's new conflict set
        """
        instance = self.active
        current = detector.revalidate(instance.conflicts, instance.grid, instance.courses)
        result = auto_resolve(
            current,
            instance.grid,
            rooms if rooms is not None else self.catalog.rooms,
            slots if slots is not None else self.catalog.slots(),
            instance.courses,
            should_stop,
        )
        if not result.completed:
            logger.warning("Auto-resolve stopped, nothing applied")
            return result

        result.conflicts = detector.revalidate(result.conflicts, result.grid, instance.courses)
        instance.conflicts = result.conflicts
        if result.grid != instance.grid:
            self._sync_course_rooms(instance, result.grid)
            self.coordinator.push(instance.id, result.grid)
        else:
            self.coordinator.record_conflicts(instance.id)

        for conflict_id in result.resolved:
            self._emit(EventType.CONFLICT_RESOLVED, {"id": conflict_id, "auto": True})
        announced: list[Assignment] = []
        for conflict in current:
            if conflict.id in result.resolved and conflict.first in result.displaced:
                if conflict.first in announced:
                    continue
                announced.append(conflict.first)
                self._emit(
                    EventType.ASSIGNMENT_REMOVED,
                    {
                        "day": conflict.day,
                        "interval": conflict.interval,
                        "displaced": True,
                        **conflict.first.to_dict(),
                    },
                )
        return result

    # Conflicts

    def mark_conflict_resolved(self, conflict_id: str) -> Conflict:
        """Acknowledge a conflict as resolved without changing the grid."""
        instance = self.active
        instance.conflicts = detector.mark_resolved(instance.conflicts, conflict_id)
        self.coordinator.record_conflicts(instance.id)
        self._emit(EventType.CONFLICT_RESOLVED, {"id": conflict_id, "auto": False})
        return self._conflict(conflict_id)

    def mark_all_resolved(self) -> int:
        """Acknowledge every unresolved conflict; returns how many were open."""
        instance = self.active
        open_ids = [c.id for c in detector.unresolved(instance.conflicts)]
        instance.conflicts = detector.mark_all_resolved(instance.conflicts)
        self.coordinator.record_conflicts(instance.id)
        for conflict_id in open_ids:
            self._emit(EventType.CONFLICT_RESOLVED, {"id": conflict_id, "auto": False})
        return len(open_ids)

    def change_room(self, conflict_id: str, room_id: str) -> Conflict:
        """Repair a conflict by giving its incoming assignment another room."""
        self.catalog.room(room_id)

        def apply(grid: Grid, conflict: Conflict, current: Assignment) -> tuple[Grid, list[Conflict]]:
            return grid.with_cell(conflict.day, conflict.interval, current.with_room(room_id)), []

        return self._repair(conflict_id, apply)

    def reassign_faculty(self, conflict_id: str, faculty_id: str) -> Conflict:
        """Repair a conflict by giving its incoming assignment another faculty member."""
        self.catalog.faculty_member(faculty_id)

        def apply(grid: Grid, conflict: Conflict, current: Assignment) -> tuple[Grid, list[Conflict]]:
            self.active.courses[current.course_id].faculty_id = faculty_id
            return grid.with_cell(conflict.day, conflict.interval, current.with_faculty(faculty_id)), []

        return self._repair(conflict_id, apply)

    def swap_time(self, conflict_id: str, day: str, interval: str) -> Conflict:
        """Repair a conflict by moving its incoming assignment to another slot.

        The displaced assignment goes back into the original cell. Conflicts
        at the new slot are detected and added to the conflict set.
        """
        self.catalog.check_slot(day, interval)
        target = TimeSlot(day, interval)

        def apply(grid: Grid, conflict: Conflict, current: Assignment) -> tuple[Grid, list[Conflict]]:
            detected = detector.detect(
                grid, day, interval, current, self.active.courses, source=conflict.slot
            )
            grid = create_assignment(grid, day, interval, current, source=conflict.slot)
            if grid.is_empty(conflict.day, conflict.interval):
                grid = grid.with_cell(conflict.day, conflict.interval, conflict.first)
            return grid, detected

        if target == self._conflict(conflict_id).slot:
            return self._conflict(conflict_id)
        return self._repair(conflict_id, apply)

    def summary(self) -> ConflictSummary:
        return detector.summarize(self.active.conflicts)

    # Derived views

    def loads(self) -> dict[str, FacultyLoad]:
        """Current load of every faculty member, recomputed from the grid."""
        return compute_loads(self.grid, self.catalog.faculty, self.active.courses)

    def faculty_timetable(self, faculty_id: str) -> Grid:
        """Grid showing only the given faculty member's assignments."""
        self.catalog.faculty_member(faculty_id)
        grid = reset_grid(self.grid)
        for slot, assignment in self.grid.occupied():
            if assignment.faculty_id == faculty_id:
                grid = grid.with_cell(slot.day, slot.interval, assignment)
        return grid

    def free_rooms(self, day: str, interval: str) -> list[Room]:
        """Rooms not in use at a slot."""
        self.catalog.check_slot(day, interval)
        assignment = self.grid.get(day, interval)
        used = {assignment.room_id} if assignment else set()
        return [room for room in self.catalog.rooms if room.id not in used]

    def room_occupancy(self, room_id: str) -> list[tuple[TimeSlot, Assignment]]:
        """Slots where a room is in use, in calendar order."""
        self.catalog.room(room_id)
        return [(slot, a) for slot, a in self.grid.occupied() if a.room_id == room_id]

    # Persistence

    def payload(self) -> dict[str, Any]:
        """Serializable form of the active instance handed to the backend."""
        instance = self.active
        return {
            "id": instance.id,
            "name": instance.name,
            "generated_at": datetime.now().isoformat(),
            "days": list(instance.grid.days),
            "intervals": list(instance.grid.intervals),
            "grid": instance.grid.to_dict(),
            "conflicts": [c.to_dict() for c in instance.conflicts],
        }

    def save(self) -> bool:
        """Save the active instance through the backend.

        Raises:
            PersistenceError: If no backend is configured or it reports failure
        """
        backend = self._require_backend("save")
        if not backend.save(self.payload()):
            raise PersistenceError("save", "backend reported failure")
        self._emit(EventType.GRID_SAVED, {})
        return True

    def publish(self) -> bool:
        """Publish the active instance.

        Raises:
            ConflictBlockedError: If unresolved critical conflicts remain
            PersistenceError: If no backend is configured or it reports failure
        """
        blockers = detector.blocking_conflicts(self.active.conflicts)
        if blockers:
            logger.warning(f"Publish blocked by {len(blockers)} critical conflict(s)")
            raise ConflictBlockedError(blockers)

        backend = self._require_backend("publish")
        if not backend.publish(self.payload()):
            raise PersistenceError("publish", "backend reported failure")
        self._emit(EventType.GRID_PUBLISHED, {})
        return True

    # Internals

    def _candidate(
        self,
        day: str,
        interval: str,
        course_id: str,
        room_id: str,
        faculty_id: str | None,
    ) -> Assignment:
        """Validate placement arguments and build the assignment."""
        self.catalog.check_slot(day, interval)
        course = self.active.courses.get(course_id)
        if course is None:
            raise UnknownCourseError(course_id)
        self.catalog.room(room_id)
        faculty_id = faculty_id or course.faculty_id
        if not faculty_id:
            raise MissingFacultyError(course_id)
        self.catalog.faculty_member(faculty_id)
        return Assignment(course_id, faculty_id, room_id)

    def _conflict(self, conflict_id: str) -> Conflict:
        for conflict in self.active.conflicts:
            if conflict.id == conflict_id:
                return conflict
        raise UnknownConflictError(conflict_id)

    def _repair(
        self,
        conflict_id: str,
        apply: Callable[[Grid, Conflict, Assignment], tuple[Grid, list[Conflict]]],
    ) -> Conflict:
        """Apply a manual repair to a conflict's incoming assignment."""
        instance = self.active
        conflict = self._conflict(conflict_id)
        current = instance.grid.get(conflict.day, conflict.interval)

        detected: list[Conflict] = []
        grid = instance.grid
        if current is not None and current.course_id == conflict.second.course_id:
            grid, detected = apply(grid, conflict, current)

        instance.conflicts = detector.mark_resolved(instance.conflicts, conflict_id)
        if grid != instance.grid:
            self._sync_course_rooms(instance, grid)
            self._commit(instance, grid, detected, None)
        else:
            self.coordinator.record_conflicts(instance.id)
        self._emit(EventType.CONFLICT_RESOLVED, {"id": conflict_id, "auto": False})
        self._emit_detected(detected)
        return self._conflict(conflict_id)

    def _commit(
        self,
        instance: TimetableInstance,
        grid: Grid,
        detected: list[Conflict],
        slots: list[TimeSlot] | None,
    ) -> None:
        """Revalidate the conflict set on the new grid, add new conflicts and
        record the grid in history."""
        conflicts = detector.revalidate(instance.conflicts, grid, instance.courses, slots)
        instance.conflicts = detector.merge_conflicts(conflicts, detected)
        self.coordinator.push(instance.id, grid)

    def _sync_course_rooms(self, instance: TimetableInstance, grid: Grid) -> None:
        for _, assignment in grid.occupied():
            course = instance.courses.get(assignment.course_id)
            if course is not None:
                course.room_id = assignment.room_id

    def _require_backend(self, operation: str) -> PersistenceBackend:
        if self.backend is None:
            raise PersistenceError(operation, "no persistence backend configured")
        return self.backend

    def _emit(self, event_type: EventType, payload: dict[str, Any]) -> None:
        self.events.emit(Event(event_type, self.active.id, payload))

    def _emit_detected(self, detected: list[Conflict]) -> None:
        for conflict in detected:
            self._emit(EventType.CONFLICT_DETECTED, conflict.to_dict())


class _StopLatch:
    """Stop check that stays True once the wrapped check has returned True."""

    def __init__(self, should_stop: Callable[[], bool] | None) -> None:
        self.should_stop = should_stop
        self.stopped = False

    def __call__(self) -> bool:
        if not self.stopped and self.should_stop is not None:
            self.stopped = bool(self.should_stop())
        return self.stopped
