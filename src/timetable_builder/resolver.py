"""Automatic repair of detected conflicts.

Each unresolved conflict is repaired by changing its incoming (``second``)
assignment, first fit over fixed candidate lists:

- room conflict: give the incoming assignment another room
- faculty conflict: move the incoming assignment to a free slot and put the
  displaced assignment back into the original cell
- overlap conflict: move the incoming assignment to a free slot with another
  room, and put the displaced assignment back

A conflict with no alternative left is reported as unresolved.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime

from .conflicts import rule_holds
from .grid import Grid, create_assignment
from .models import (
    Assignment,
    Conflict,
    ConflictKind,
    Course,
    ResolutionResult,
    Room,
    TimeSlot,
)

logger = logging.getLogger(__name__)


def find_alternative_room(
    rooms: Sequence[Room],
    exclude: Iterable[str],
    course: Course | None = None,
) -> Room | None:
    """First room not in ``exclude`` that fits the course's enrollment."""
    excluded = set(exclude)
    for room in rooms:
        if room.id in excluded:
            continue
        if course is not None and course.enrollment and room.capacity and room.capacity < course.enrollment:
            continue
        return room
    return None


def find_alternative_slot(
    grid: Grid,
    slots: Sequence[TimeSlot],
    exclude: Iterable[TimeSlot] = (),
) -> TimeSlot | None:
    """First empty slot of ``slots`` not in ``exclude``."""
    excluded = {(s.day, s.interval) for s in exclude}
    for slot in slots:
        if (slot.day, slot.interval) in excluded:
            continue
        if grid.has_slot(slot.day, slot.interval) and grid.is_empty(slot.day, slot.interval):
            return slot
    return None


def auto_resolve(
    conflicts: Sequence[Conflict],
    grid: Grid,
    rooms: Sequence[Room],
    slots: Sequence[TimeSlot] | None,
    courses: Mapping[str, Course],
    should_stop: Callable[[], bool] | None = None,
    now: datetime | None = None,
) -> ResolutionResult:
    """Repair every unresolved conflict that has an alternative.

    The input grid and conflicts are not modified; the result carries the
    repaired grid and the updated conflict set.

    Args:
        conflicts: Conflict set, in detection order
        grid: Grid the conflicts were detected on
        rooms: Candidate rooms, in preference order
        slots: Candidate slots, in preference order (default: all grid slots)
        courses: Course lookup (course id -> Course)
        should_stop: Optional callable checked before each conflict
        now: Resolution timestamp (default: now)

    Returns:
        ResolutionResult with the repaired grid and conflict set
    """
    now = now or datetime.now()
    candidate_slots = list(slots) if slots is not None else grid.slots()
    updated = list(conflicts)
    result = ResolutionResult(grid=grid)
    displaced_candidates: list[Assignment] = []

    for index, conflict in enumerate(conflicts):
        if conflict.resolved:
            continue
        if should_stop is not None and should_stop():
            logger.warning("Auto-resolve stopped before all conflicts were processed")
            result.completed = False
            break

        repaired = _repair(conflict, result.grid, rooms, candidate_slots, courses)
        if repaired is None:
            logger.warning(f"No alternative found for conflict {conflict.id}")
            result.unresolved.append(conflict)
            continue

        result.grid = repaired
        updated[index] = conflict.mark_resolved(now)
        result.resolved.append(conflict.id)
        displaced_candidates.append(conflict.first)

    # Assignments that lost their cell and were never put back
    for assignment in displaced_candidates:
        if not result.grid.find_course(assignment.course_id) and assignment not in result.displaced:
            result.displaced.append(assignment)

    result.conflicts = updated
    logger.info(
        f"Auto-resolved {len(result.resolved)} conflict(s), "
        f"{len(result.unresolved)} unresolved"
    )
    return result


def _repair(
    conflict: Conflict,
    grid: Grid,
    rooms: Sequence[Room],
    slots: Sequence[TimeSlot],
    courses: Mapping[str, Course],
) -> Grid | None:
    """Repair one conflict; returns the new grid, or None if impossible."""
    day, interval = conflict.day, conflict.interval
    current = grid.get(day, interval)

    # An earlier repair in this batch may already have separated the pair
    if current is None or current.course_id != conflict.second.course_id:
        logger.debug(f"Conflict {conflict.id} already separated")
        return grid
    if not rule_holds(conflict.kind, conflict.first, current, courses):
        logger.debug(f"Conflict {conflict.id} no longer holds")
        return grid

    course = courses.get(current.course_id)
    first = conflict.first

    if conflict.kind == ConflictKind.ROOM:
        room = find_alternative_room(rooms, {first.room_id, current.room_id}, course)
        if room is None:
            return None
        logger.debug(f"Moving {current.course_id} from room {current.room_id} to {room.id}")
        return grid.with_cell(day, interval, current.with_room(room.id))

    slot = find_alternative_slot(grid, slots, exclude=[conflict.slot])
    if slot is None:
        return None

    moved = current
    if conflict.kind == ConflictKind.OVERLAP:
        room = find_alternative_room(rooms, {first.room_id, current.room_id}, course)
        if room is None:
            return None
        moved = current.with_room(room.id)

    logger.debug(f"Moving {current.course_id} from {conflict.slot.label} to {slot.label}")
    grid = create_assignment(grid, slot.day, slot.interval, moved, source=conflict.slot)
    if grid.is_empty(day, interval):
        grid = grid.with_cell(day, interval, first)
    return grid
