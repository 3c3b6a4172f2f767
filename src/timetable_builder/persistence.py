"""Persistence collaborators: save/publish backends and the CLI session file."""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from .catalog import Catalog
from .constants import PUBLISHED_FILE_NAME, SAVED_FILE_NAME
from .coordinator import InstanceCoordinator

logger = logging.getLogger(__name__)


class PersistenceBackend(ABC):
    """Write-only store for timetable payloads.

    Implementations return True on success and False (or raise) on failure.
    The editor never rolls back its in-memory state on a failure.
    """

    @abstractmethod
    def save(self, payload: dict[str, Any]) -> bool:
        """Store a draft timetable."""
        pass

    @abstractmethod
    def publish(self, payload: dict[str, Any]) -> bool:
        """Store a timetable as the published version."""
        pass


class JSONFileBackend(PersistenceBackend):
    """Writes timetable payloads as JSON files into a directory."""

    def __init__(
        self,
        output_dir: str | Path,
        indent: int = 2,
        ensure_ascii: bool = False,
    ) -> None:
        """Initialize backend.

        Args:
            output_dir: Directory for timetable.json / published.json
            indent: JSON indentation level
            ensure_ascii: If False, allows non-ASCII characters
        """
        self.output_dir = Path(output_dir)
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def save(self, payload: dict[str, Any]) -> bool:
        self._write(self.output_dir / SAVED_FILE_NAME, payload)
        return True

    def publish(self, payload: dict[str, Any]) -> bool:
        self._write(self.output_dir / PUBLISHED_FILE_NAME, payload)
        return True

    def _write(self, path: Path, payload: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=self.indent, ensure_ascii=self.ensure_ascii)
        logger.info(f"Wrote timetable to {path}")


def save_session(coordinator: InstanceCoordinator, path: str | Path) -> None:
    """Write all open instances (grids, conflicts, course assignments) to a file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {"saved_at": datetime.now().isoformat(), **coordinator.to_dict()}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def load_session(catalog: Catalog, path: str | Path) -> InstanceCoordinator:
    """Restore instances from a session file; a missing file gives a fresh session."""
    path = Path(path)
    if not path.exists():
        return InstanceCoordinator(catalog)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return InstanceCoordinator.from_dict(catalog, data)
