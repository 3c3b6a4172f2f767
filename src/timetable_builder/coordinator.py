"""Management of independent timetable instances ("tabs")."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .catalog import Catalog
from .exceptions import LastInstanceError, UnknownInstanceError
from .grid import Grid
from .history import History, course_assignments
from .models import Conflict, Course

logger = logging.getLogger(__name__)


@dataclass
class TimetableInstance:
    """One timetable with its own grid, conflict set, history and courses.

    ``courses`` is the instance's working copy of the catalog courses; faculty
    and room assignments made in this instance are recorded there only.
    """

    id: str
    name: str
    grid: Grid
    history: History
    conflicts: list[Conflict] = field(default_factory=list)
    courses: dict[str, Course] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "grid": self.grid.to_dict(),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "courses": {
                cid: {"faculty_id": c.faculty_id, "room_id": c.room_id}
                for cid, c in self.courses.items()
            },
        }


class InstanceCoordinator:
    """Holds the open timetable instances and tracks which one is active.

    Instances never share mutable state. At least one instance is always
    open.
    """

    def __init__(self, catalog: Catalog, name: str = "Timetable 1") -> None:
        self.catalog = catalog
        self._instances: dict[str, TimetableInstance] = {}
        self._counter = 0
        self._active_id = self.create_instance(name)

    @property
    def active_id(self) -> str:
        return self._active_id

    @property
    def active(self) -> TimetableInstance:
        return self._instances[self._active_id]

    @property
    def instances(self) -> list[TimetableInstance]:
        return list(self._instances.values())

    def get(self, instance_id: str) -> TimetableInstance:
        """Get an instance by identifier.

        Raises:
            UnknownInstanceError: If no such instance is open
        """
        try:
            return self._instances[instance_id]
        except KeyError:
            raise UnknownInstanceError(instance_id) from None

    def create_instance(self, name: str | None = None) -> str:
        """Open a new instance with an empty grid, no conflicts and a
        one-entry history seeded with the empty grid.

        Returns:
            Identifier of the new instance
        """
        self._counter += 1
        instance_id = f"tab-{self._counter}"
        while instance_id in self._instances:
            self._counter += 1
            instance_id = f"tab-{self._counter}"

        grid = self.catalog.empty_grid()
        courses = {c.id: replace(c) for c in self.catalog.courses}
        self._instances[instance_id] = TimetableInstance(
            id=instance_id,
            name=name or f"Timetable {self._counter}",
            grid=grid,
            history=History(grid, courses=course_assignments(courses)),
            courses=courses,
        )
        logger.debug(f"Created timetable instance {instance_id}")
        return instance_id

    def close_instance(self, instance_id: str) -> None:
        """Close an instance.

        If the active instance is closed, the first remaining one becomes
        active.

        Raises:
            UnknownInstanceError: If no such instance is open
            LastInstanceError: If it is the only open instance
        """
        self.get(instance_id)
        if len(self._instances) == 1:
            raise LastInstanceError(instance_id)
        del self._instances[instance_id]
        if self._active_id == instance_id:
            self._active_id = next(iter(self._instances))
        logger.debug(f"Closed timetable instance {instance_id}")

    def switch_active(self, instance_id: str) -> TimetableInstance:
        """Make another instance the target of subsequent operations."""
        instance = self.get(instance_id)
        self._active_id = instance_id
        return instance

    def rename_instance(self, instance_id: str, name: str) -> None:
        self.get(instance_id).name = name

    def push(self, instance_id: str, grid: Grid) -> None:
        """Make ``grid`` the instance's grid and record it in its history.

        The snapshot also holds the instance's current conflict set and
        course assignments, so set those before pushing.
        """
        instance = self.get(instance_id)
        instance.grid = grid
        instance.history.push(grid, instance.conflicts, course_assignments(instance.courses))

    def record_conflicts(self, instance_id: str) -> None:
        """Store the instance's conflict set on its current history entry."""
        instance = self.get(instance_id)
        instance.history.amend(instance.conflicts)

    def undo(self, instance_id: str) -> Grid:
        """Step the instance's history back and return the restored grid."""
        instance = self.get(instance_id)
        instance.history.undo()
        return self._restore(instance)

    def redo(self, instance_id: str) -> Grid:
        """Step the instance's history forward and return the restored grid."""
        instance = self.get(instance_id)
        instance.history.redo()
        return self._restore(instance)

    def _restore(self, instance: TimetableInstance) -> Grid:
        """Load the grid, conflicts and course assignments of the current snapshot."""
        snapshot = instance.history.snapshot
        instance.grid = snapshot.grid.copy()
        instance.conflicts = list(snapshot.conflicts)
        for course_id, (faculty_id, room_id) in snapshot.courses.items():
            course = instance.courses.get(course_id)
            if course is not None:
                course.faculty_id = faculty_id
                course.room_id = room_id
        return instance.grid

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self._active_id,
            "instances": [instance.to_dict() for instance in self._instances.values()],
        }

    @classmethod
    def from_dict(cls, catalog: Catalog, data: dict[str, Any]) -> "InstanceCoordinator":
        """Restore instances saved with :meth:`to_dict`.

        Histories start afresh from the restored grids.
        """
        records = data.get("instances") or []
        coordinator = cls(catalog)
        if not records:
            return coordinator

        coordinator._instances.clear()
        coordinator._counter = 0
        for record in records:
            grid = Grid.from_dict(record.get("grid", {}), catalog.days, catalog.intervals)
            courses = {c.id: replace(c) for c in catalog.courses}
            for course_id, fields in (record.get("courses") or {}).items():
                if course_id in courses:
                    courses[course_id].faculty_id = fields.get("faculty_id")
                    courses[course_id].room_id = fields.get("room_id")
            conflicts = [Conflict.from_dict(c) for c in record.get("conflicts", [])]
            instance = TimetableInstance(
                id=record["id"],
                name=record.get("name", record["id"]),
                grid=grid,
                history=History(grid, conflicts, course_assignments(courses)),
                conflicts=conflicts,
                courses=courses,
            )
            coordinator._instances[instance.id] = instance
            coordinator._counter += 1

        active = data.get("active")
        coordinator._active_id = active if active in coordinator._instances else next(iter(coordinator._instances))
        return coordinator
