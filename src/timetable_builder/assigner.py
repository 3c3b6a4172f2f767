"""Greedy auto-assignment of faculty members and slots to courses.

The heuristic is single-pass and never revisits a decision: courses are
processed in catalog order and each takes the best-ranked qualifying faculty
member at the time it is reached. It does not try to minimise the number of
overloaded faculty members.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace

from .grid import Grid, create_assignment
from .models import (
    Assignment,
    AssignmentResult,
    Course,
    Faculty,
    LoadStatus,
    Room,
    TimeSlot,
)
from .utils import normalize_tags
from .workload import load_status

logger = logging.getLogger(__name__)


def is_candidate(course: Course, member: Faculty) -> bool:
    """Check whether a faculty member qualifies for a course.

    A member qualifies when an expertise tag matches a course topic tag
    (case-insensitive) or the course code is in their preferred courses.
    """
    if course.id in member.preferred_courses:
        return True
    return bool(normalize_tags(member.expertise) & normalize_tags(course.tags))


def rank_candidates(course: Course, roster: Iterable[Faculty]) -> list[Faculty]:
    """Rank qualifying faculty members for a course, best first.

    Ranking:
    1. Members who list the course as preferred
    2. Lower committed/maximum load ratio
    3. Lower faculty identifier (deterministic tie-break)
    """
    candidates = [member for member in roster if is_candidate(course, member)]
    return sorted(
        candidates,
        key=lambda m: (course.id not in m.preferred_courses, m.load_ratio, m.id),
    )


def auto_assign(
    courses: Sequence[Course],
    roster: Sequence[Faculty],
    should_stop: Callable[[], bool] | None = None,
) -> AssignmentResult:
    """Assign a faculty member to every course that lacks one.

    The inputs are not modified: the result holds updated copies. Members who
    are overloaded when the batch starts take no part in it. The roster copy
    is updated after each assignment (committed hours and status), so earlier
    assignments in the batch affect the ranking of later ones, but a member
    who becomes overloaded during the batch stays eligible.

    Args:
        courses: Courses in catalog order
        roster: Faculty roster with current committed hours
        should_stop: Optional callable checked before each course; when it
                     returns True the batch stops and returns what it has

    Returns:
        AssignmentResult with updated courses and roster
    """
    working_courses = [replace(course) for course in courses]
    running_roster = [replace(member) for member in roster]
    result = AssignmentResult(courses=working_courses, roster=running_roster)
    available = [member for member in running_roster if member.status != LoadStatus.OVERLOADED]

    pending = [course for course in working_courses if not course.faculty_id]
    for course in pending:
        if should_stop is not None and should_stop():
            logger.warning("Auto-assign stopped before all courses were processed")
            result.completed = False
            break

        candidates = rank_candidates(course, available)
        if not candidates:
            logger.debug(f"No qualifying faculty for {course.id}")
            result.unassigned.append(course.id)
            continue

        selected = candidates[0]
        course.faculty_id = selected.id
        selected.committed_hours += course.weekly_hours
        selected.status = load_status(selected.committed_hours, selected.max_hours)
        result.assigned.append((course.id, selected.id))
        logger.debug(
            f"Assigned {course.id} to {selected.id} "
            f"({selected.committed_hours}/{selected.max_hours}h, {selected.status.value})"
        )

    logger.info(
        f"Auto-assigned {len(result.assigned)} of {len(pending)} courses"
        + (f", {len(result.unassigned)} without a qualifying faculty member" if result.unassigned else "")
    )
    return result


def select_room(course: Course, rooms: Sequence[Room], exclude: Iterable[str] = ()) -> Room | None:
    """Pick a room for a course, first fit.

    The course's own room is used when set and not excluded; otherwise the
    first room large enough for the course's enrollment.
    """
    excluded = set(exclude)
    if course.room_id and course.room_id not in excluded:
        for room in rooms:
            if room.id == course.room_id:
                return room
    for room in rooms:
        if room.id in excluded:
            continue
        if room.capacity and course.enrollment and room.capacity < course.enrollment:
            continue
        return room
    return None


def place_courses(
    grid: Grid,
    courses: Sequence[Course],
    rooms: Sequence[Room],
    should_stop: Callable[[], bool] | None = None,
) -> tuple[Grid, list[tuple[str, TimeSlot]], list[str]]:
    """Place every faculty-assigned course that is not on the grid yet.

    Each course goes to the first empty cell (calendar order) with the room
    chosen by :func:`select_room`. Courses without a room get the chosen room
    recorded on them, so pass working copies.

    Args:
        grid: Grid to place into (not modified)
        courses: Courses in catalog order
        rooms: Candidate rooms in preference order
        should_stop: Optional stop check, evaluated before each course

    Returns:
        Tuple of (new grid, placed (course id, slot) pairs, unplaced course ids)
    """
    placed: list[tuple[str, TimeSlot]] = []
    unplaced: list[str] = []
    free_slots = grid.empty_slots()

    for course in courses:
        if not course.faculty_id or grid.find_course(course.id):
            continue
        if should_stop is not None and should_stop():
            break

        room = select_room(course, rooms)
        if room is None or not free_slots:
            reason = "no room" if room is None else "no free slot"
            logger.warning(f"Could not place {course.id}: {reason}")
            unplaced.append(course.id)
            continue

        slot = free_slots.pop(0)
        assignment = Assignment(course.id, course.faculty_id, room.id)
        grid = create_assignment(grid, slot.day, slot.interval, assignment)
        course.room_id = course.room_id or room.id
        placed.append((course.id, slot))
        logger.debug(f"Placed {course.id} at {slot.label} in {room.id}")

    return grid, placed, unplaced
