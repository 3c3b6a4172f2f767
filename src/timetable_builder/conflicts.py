"""Conflict detection for timetable grids.

A grid cell holds one assignment, so conflicts arise at placement time: the
incoming assignment is compared with the assignment currently holding the
target cell. Three rules are evaluated independently, so one placement can
produce up to three conflicts:

- room: both assignments use the same room
- faculty: both assignments use the same faculty member
- overlap: two different courses of the same semester (one student cohort)
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date, datetime

from .exceptions import UnknownConflictError
from .grid import Grid
from .models import (
    Assignment,
    Conflict,
    ConflictKind,
    ConflictSummary,
    Course,
    Severity,
    TimeSlot,
)

logger = logging.getLogger(__name__)


def classify_severity(
    kind: ConflictKind,
    first: Course | None,
    second: Course | None,
    critical: bool = False,
) -> Severity:
    """Decide whether a conflict is critical or minor.

    Rules, in order:
    1. Flagged critical by the caller -> critical
    2. Room and faculty conflicts -> critical (a double-booked room or
       faculty member means one of the two classes cannot take place)
    3. Overlap conflicts -> critical only if both courses are core courses
       of their cohort, minor otherwise (students can drop an elective)

    Args:
        kind: Conflict kind
        first: Course holding the cell
        second: Course placed on top of it
        critical: Caller's explicit critical flag

    Returns:
        Severity of the conflict
    """
    if critical:
        return Severity.CRITICAL
    if kind in (ConflictKind.ROOM, ConflictKind.FACULTY):
        return Severity.CRITICAL
    if first is not None and second is not None and first.core and second.core:
        return Severity.CRITICAL
    return Severity.MINOR


def conflict_id(kind: ConflictKind, day: str, interval: str, first: Assignment, second: Assignment) -> str:
    """Build the deterministic identifier of a conflict."""
    return f"{kind.value}:{day}:{interval}:{first.course_id}:{second.course_id}"


def rule_holds(
    kind: ConflictKind,
    first: Assignment,
    second: Assignment,
    courses: Mapping[str, Course],
) -> bool:
    """Check whether a conflict rule is violated by two assignments at one slot."""
    if first.course_id == second.course_id:
        return False
    if kind == ConflictKind.ROOM:
        return first.room_id == second.room_id
    if kind == ConflictKind.FACULTY:
        return first.faculty_id == second.faculty_id
    # Overlap: same cohort (semester tag) in the same slot
    first_course = courses.get(first.course_id)
    second_course = courses.get(second.course_id)
    if first_course is None or second_course is None:
        return False
    return bool(first_course.semester) and first_course.semester == second_course.semester


def detect(
    grid: Grid,
    day: str,
    interval: str,
    candidate: Assignment,
    courses: Mapping[str, Course],
    critical: bool = False,
    source: TimeSlot | None = None,
) -> list[Conflict]:
    """Detect the conflicts a candidate placement would cause.

    Args:
        grid: Grid before the placement
        day: Target day
        interval: Target interval
        candidate: Assignment to be placed
        courses: Course lookup (course id -> Course) for cohort and core flags
        critical: Flag every detected conflict as critical
        source: Cell the candidate is moved from, if it is a move

    Returns:
        Conflicts in rule order (room, faculty, overlap); empty if none
    """
    occupant = grid.get(day, interval)
    if occupant is None:
        return []
    if source is not None and (source.day, source.interval) == (day, interval):
        return []
    if occupant.course_id == candidate.course_id:
        # Re-placing the same course updates the cell
        return []

    first_course = courses.get(occupant.course_id)
    second_course = courses.get(candidate.course_id)

    conflicts = []
    for kind in ConflictKind:
        if not rule_holds(kind, occupant, candidate, courses):
            continue
        conflict = Conflict(
            id=conflict_id(kind, day, interval, occupant, candidate),
            kind=kind,
            day=day,
            interval=interval,
            first=occupant,
            second=candidate,
            severity=classify_severity(kind, first_course, second_course, critical),
            message=_describe(kind, day, interval, occupant, candidate, first_course),
        )
        conflicts.append(conflict)
        logger.debug(f"Detected {kind.value} conflict {conflict.id}")

    return conflicts


def _describe(
    kind: ConflictKind,
    day: str,
    interval: str,
    first: Assignment,
    second: Assignment,
    first_course: Course | None,
) -> str:
    if kind == ConflictKind.ROOM:
        return f"Room {second.room_id} already booked for {first.course_id} at {interval} on {day}"
    if kind == ConflictKind.FACULTY:
        return f"Faculty {second.faculty_id} already teaching {first.course_id} at {interval} on {day}"
    semester = first_course.semester if first_course else ""
    return (
        f"{first.course_id} and {second.course_id} ({semester}) "
        f"are both scheduled at {interval} on {day}"
    )


def merge_conflicts(existing: Iterable[Conflict], detected: Iterable[Conflict]) -> list[Conflict]:
    """Add newly detected conflicts to a conflict set.

    A detected conflict replaces an existing record with the same identifier
    (the same pair colliding again reopens an acknowledged conflict).
    """
    merged = {c.id: c for c in existing}
    for conflict in detected:
        merged[conflict.id] = conflict
    return list(merged.values())


def revalidate(
    conflicts: Iterable[Conflict],
    grid: Grid,
    courses: Mapping[str, Course],
    slots: Iterable[TimeSlot] | None = None,
    now: datetime | None = None,
) -> list[Conflict]:
    """Re-check unresolved conflicts against the current grid.

    For each unresolved conflict (restricted to ``slots`` if given):
    - the incoming assignment no longer holds the cell -> dropped as stale
    - the rule no longer holds (e.g. its room changed) -> marked resolved
    - otherwise kept, with the current assignment recorded as ``second``

    Resolved conflicts are kept unchanged.
    """
    scope = {(s.day, s.interval) for s in slots} if slots is not None else None
    result = []
    for conflict in conflicts:
        if conflict.resolved or (scope is not None and (conflict.day, conflict.interval) not in scope):
            result.append(conflict)
            continue

        current = None
        if grid.has_slot(conflict.day, conflict.interval):
            current = grid.get(conflict.day, conflict.interval)
        if current is None or current.course_id != conflict.second.course_id:
            logger.debug(f"Dropping stale conflict {conflict.id}")
            continue

        if current != conflict.second:
            if rule_holds(conflict.kind, conflict.first, current, courses):
                conflict = replace(conflict, second=current)
            else:
                logger.debug(f"Conflict {conflict.id} no longer holds, marking resolved")
                conflict = conflict.mark_resolved(now)
        result.append(conflict)
    return result


def mark_resolved(conflicts: Iterable[Conflict], conflict_id: str, now: datetime | None = None) -> list[Conflict]:
    """Acknowledge one conflict as resolved without touching the grid.

    Raises:
        UnknownConflictError: If no conflict has the given identifier
    """
    conflicts = list(conflicts)
    if not any(c.id == conflict_id for c in conflicts):
        raise UnknownConflictError(conflict_id)
    return [
        c.mark_resolved(now) if c.id == conflict_id and not c.resolved else c
        for c in conflicts
    ]


def mark_all_resolved(conflicts: Iterable[Conflict], now: datetime | None = None) -> list[Conflict]:
    """Acknowledge every unresolved conflict."""
    now = now or datetime.now()
    return [c if c.resolved else c.mark_resolved(now) for c in conflicts]


def unresolved(conflicts: Iterable[Conflict]) -> list[Conflict]:
    return [c for c in conflicts if not c.resolved]


def blocking_conflicts(conflicts: Iterable[Conflict]) -> list[Conflict]:
    """Unresolved critical conflicts (these block publishing)."""
    return [c for c in conflicts if not c.resolved and c.is_critical]


def conflicts_at(conflicts: Iterable[Conflict], day: str, interval: str) -> list[Conflict]:
    return [c for c in conflicts if (c.day, c.interval) == (day, interval)]


def summarize(conflicts: Iterable[Conflict], today: date | None = None) -> ConflictSummary:
    """Count conflicts by severity, kind and resolution state.

    Args:
        conflicts: Conflict set
        today: Day used for the "resolved today" count (default: today)

    Returns:
        ConflictSummary with the counts
    """
    today = today or date.today()
    summary = ConflictSummary()
    for conflict in conflicts:
        summary.total += 1
        if conflict.is_critical:
            summary.critical += 1
        else:
            summary.minor += 1
        if not conflict.resolved:
            summary.unresolved += 1
        elif conflict.resolved_at is not None and conflict.resolved_at.date() == today:
            summary.resolved_today += 1
        summary.by_kind[conflict.kind.value] = summary.by_kind.get(conflict.kind.value, 0) + 1
    return summary
