"""Faculty load tracking.

Loads are always derived from a grid and a roster; nothing here stores or
mutates state.
"""

from collections.abc import Iterable, Mapping
from dataclasses import replace

from .constants import NEARLY_FULL_THRESHOLD, OVERLOADED_THRESHOLD
from .grid import Grid
from .models import Course, Faculty, FacultyLoad, LoadStatus


def load_status(committed_hours: int, max_hours: int) -> LoadStatus:
    """Classify a load by its committed/maximum ratio.

    Rules:
    - more than 90% of maximum hours -> overloaded
    - more than 70% -> nearly full
    - otherwise -> available

    A non-positive maximum counts as overloaded as soon as any hours are
    committed.
    """
    if max_hours <= 0:
        return LoadStatus.OVERLOADED if committed_hours > 0 else LoadStatus.AVAILABLE
    percentage = committed_hours / max_hours * 100
    if percentage > OVERLOADED_THRESHOLD:
        return LoadStatus.OVERLOADED
    if percentage > NEARLY_FULL_THRESHOLD:
        return LoadStatus.NEARLY_FULL
    return LoadStatus.AVAILABLE


def compute_loads(
    grid: Grid,
    roster: Iterable[Faculty],
    courses: Mapping[str, Course],
) -> dict[str, FacultyLoad]:
    """Compute every roster member's committed load from a grid.

    Committed hours are the sum of the weekly contact hours of the distinct
    courses the faculty member teaches on the grid. A course spread over
    several cells is counted once, since its weekly hours already cover the
    whole week.

    Args:
        grid: Grid to read assignments from
        roster: Faculty members to report on
        courses: Course lookup (course id -> Course) for weekly hours

    Returns:
        Mapping faculty id -> FacultyLoad, in roster order
    """
    taught: dict[str, list[str]] = {}
    for _, assignment in grid.occupied():
        course_ids = taught.setdefault(assignment.faculty_id, [])
        if assignment.course_id not in course_ids:
            course_ids.append(assignment.course_id)

    loads: dict[str, FacultyLoad] = {}
    for member in roster:
        course_ids = taught.get(member.id, [])
        committed = sum(
            courses[course_id].weekly_hours for course_id in course_ids if course_id in courses
        )
        if member.max_hours > 0:
            ratio = committed / member.max_hours
        else:
            ratio = float("inf") if committed > 0 else 0.0
        loads[member.id] = FacultyLoad(
            faculty_id=member.id,
            committed_hours=committed,
            max_hours=member.max_hours,
            ratio=ratio,
            status=load_status(committed, member.max_hours),
            course_ids=course_ids,
        )
    return loads


def apply_loads(roster: Iterable[Faculty], loads: Mapping[str, FacultyLoad]) -> list[Faculty]:
    """Return roster copies with committed hours and status taken from ``loads``."""
    updated = []
    for member in roster:
        load = loads.get(member.id)
        if load is None:
            updated.append(replace(member, committed_hours=0, status=LoadStatus.AVAILABLE))
        else:
            updated.append(
                replace(member, committed_hours=load.committed_hours, status=load.status)
            )
    return updated


def overloaded(loads: Mapping[str, FacultyLoad]) -> list[str]:
    """Identifiers of overloaded faculty members."""
    return [fid for fid, load in loads.items() if load.status == LoadStatus.OVERLOADED]
