"""CLI entry point for the timetable builder."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .catalog import Catalog, CatalogLoader
from .editor import TimetableEditor
from .exceptions import TimetableError
from .models import Conflict, LoadStatus
from .persistence import JSONFileBackend, load_session, save_session
from .utils import compact_interval

app = typer.Typer(
    name="timetable-builder",
    help="Build weekly course timetables and resolve scheduling conflicts",
    add_completion=False,
)
tab_app = typer.Typer(help="Manage open timetables (tabs)", add_completion=False)
app.add_typer(tab_app, name="tab")
console = Console()

# Default paths
DEFAULT_CATALOG_DIR = Path("data/catalog")
DEFAULT_SESSION_FILE = Path("output/session.json")

CatalogOption = Annotated[
    Path,
    typer.Option("--catalog", "-c", help="Catalog directory (courses, faculty, rooms)"),
]
SessionOption = Annotated[
    Path,
    typer.Option("--session", "-s", help="Session file holding the open timetables"),
]

STATUS_STYLES = {
    LoadStatus.AVAILABLE: "green",
    LoadStatus.NEARLY_FULL: "yellow",
    LoadStatus.OVERLOADED: "red",
}


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed log output"),
    ] = False,
) -> None:
    """Timetable builder."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@contextmanager
def _errors() -> Iterator[None]:
    """Print library errors and exit with status 1."""
    try:
        yield
    except TimetableError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e


def _load_catalog(catalog_dir: Path) -> Catalog:
    with _errors(), console.status("[bold green]Loading catalog..."):
        return CatalogLoader(catalog_dir).load()


def _open_editor(catalog_dir: Path, session: Path, output: Path | None = None) -> TimetableEditor:
    catalog = _load_catalog(catalog_dir)
    with _errors():
        coordinator = load_session(catalog, session)
    backend = JSONFileBackend(output) if output else None
    return TimetableEditor(catalog, backend=backend, coordinator=coordinator)


def _print_conflicts(conflicts: list[Conflict], title: str = "Conflicts") -> None:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Slot", style="blue")
    table.add_column("Courses")
    table.add_column("Severity")
    table.add_column("Status")

    for conflict in conflicts:
        severity_style = "red" if conflict.is_critical else "yellow"
        table.add_row(
            conflict.id,
            conflict.kind.value,
            conflict.slot.label,
            f"{conflict.course_id1} / {conflict.course_id2}",
            f"[{severity_style}]{conflict.severity.value}[/{severity_style}]",
            "[green]resolved[/green]" if conflict.resolved else "open",
        )
    console.print(table)


@app.command()
def validate(catalog: CatalogOption = DEFAULT_CATALOG_DIR) -> None:
    """Load a catalog and show what it contains."""
    loaded = _load_catalog(catalog)

    console.print(f"\n[bold]Catalog:[/bold] {catalog}")
    console.print("[bold green]✓ Catalog is valid[/bold green]")

    table = Table(title="Overview", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Courses", str(len(loaded.courses)))
    table.add_row("Faculty", str(len(loaded.faculty)))
    table.add_row("Rooms", str(len(loaded.rooms)))
    table.add_row("Days", str(len(loaded.days)))
    table.add_row("Intervals", str(len(loaded.intervals)))
    table.add_row("Unassigned courses", str(sum(1 for c in loaded.courses if not c.faculty_id)))
    console.print(table)


@app.command()
def init(
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Name of the first timetable"),
    ] = "Timetable 1",
) -> None:
    """Start a new session with one empty timetable."""
    loaded = _load_catalog(catalog)
    editor = TimetableEditor(loaded)
    editor.coordinator.rename_instance(editor.active.id, name)
    save_session(editor.coordinator, session)
    console.print(f"[bold green]✓[/bold green] Started session {session} with '{name}' ({editor.active.id})")


@tab_app.command("new")
def tab_new(
    name: Annotated[str, typer.Argument(help="Name of the new timetable")],
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Open a new empty timetable and make it active."""
    editor = _open_editor(catalog, session)
    instance_id = editor.new_instance(name)
    save_session(editor.coordinator, session)
    console.print(f"[bold green]✓[/bold green] Opened '{name}' as {instance_id}")


@tab_app.command("close")
def tab_close(
    instance_id: Annotated[str, typer.Argument(help="Timetable identifier (e.g. tab-2)")],
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Close a timetable."""
    editor = _open_editor(catalog, session)
    with _errors():
        editor.close_instance(instance_id)
    save_session(editor.coordinator, session)
    console.print(f"[bold green]✓[/bold green] Closed {instance_id}; active is {editor.active.id}")


@tab_app.command("switch")
def tab_switch(
    instance_id: Annotated[str, typer.Argument(help="Timetable identifier (e.g. tab-2)")],
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Make another timetable the active one."""
    editor = _open_editor(catalog, session)
    with _errors():
        editor.switch_instance(instance_id)
    save_session(editor.coordinator, session)
    console.print(f"[bold green]✓[/bold green] Active timetable is {instance_id}")


@tab_app.command("list")
def tab_list(
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """List the open timetables."""
    editor = _open_editor(catalog, session)

    table = Table(title="Timetables")
    table.add_column("", style="green")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Assignments", style="green")
    table.add_column("Open conflicts", style="yellow")
    for instance in editor.coordinator.instances:
        open_conflicts = sum(1 for c in instance.conflicts if not c.resolved)
        table.add_row(
            "*" if instance.id == editor.active.id else "",
            instance.id,
            instance.name,
            str(len(instance.grid.occupied())),
            str(open_conflicts),
        )
    console.print(table)


@app.command()
def place(
    day: Annotated[str, typer.Argument(help="Day name (e.g. Monday)")],
    interval: Annotated[str, typer.Argument(help='Interval label (e.g. "09:00 - 10:00")')],
    course: Annotated[str, typer.Argument(help="Course code")],
    room: Annotated[str, typer.Argument(help="Room identifier")],
    faculty: Annotated[
        Optional[str],
        typer.Option("--faculty", "-f", help="Faculty member (default: the course's)"),
    ] = None,
    critical: Annotated[
        bool,
        typer.Option("--critical", help="Flag conflicts caused by this placement as critical"),
    ] = False,
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Place a course at a slot."""
    editor = _open_editor(catalog, session)
    with _errors():
        detected = editor.place(day, interval, course, room, faculty, critical)
    save_session(editor.coordinator, session)

    console.print(f"[bold green]✓[/bold green] Placed {course} at {day}, {interval} in {room}")
    if detected:
        _print_conflicts(detected, title="New conflicts")


@app.command()
def move(
    from_day: Annotated[str, typer.Argument(help="Source day")],
    from_interval: Annotated[str, typer.Argument(help="Source interval")],
    to_day: Annotated[str, typer.Argument(help="Target day")],
    to_interval: Annotated[str, typer.Argument(help="Target interval")],
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Move an assignment to another slot."""
    editor = _open_editor(catalog, session)
    with _errors():
        detected = editor.move(from_day, from_interval, to_day, to_interval)
    save_session(editor.coordinator, session)

    console.print(f"[bold green]✓[/bold green] Moved {from_day}, {from_interval} to {to_day}, {to_interval}")
    if detected:
        _print_conflicts(detected, title="New conflicts")


@app.command()
def remove(
    day: Annotated[str, typer.Argument(help="Day name")],
    interval: Annotated[str, typer.Argument(help="Interval label")],
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Empty a slot."""
    editor = _open_editor(catalog, session)
    with _errors():
        removed = editor.remove(day, interval)
    save_session(editor.coordinator, session)

    if removed is None:
        console.print(f"[yellow]{day}, {interval} is already empty[/yellow]")
    else:
        console.print(f"[bold green]✓[/bold green] Removed {removed.course_id} from {day}, {interval}")


@app.command("auto-assign")
def auto_assign(
    place: Annotated[
        bool,
        typer.Option("--place/--no-place", help="Also place assigned courses on free slots"),
    ] = True,
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Assign faculty to unassigned courses and place them."""
    editor = _open_editor(catalog, session)
    with console.status("[bold green]Assigning faculty..."):
        result = editor.auto_assign(place=place)
    save_session(editor.coordinator, session)

    console.print("\n[bold]Auto-assign results:[/bold]")
    console.print(f"  Faculty assigned: {result.total_assigned}")
    console.print(f"  Courses placed: {len(result.placed)}")

    for course_id, faculty_id in result.assigned:
        console.print(f"  [green]• {course_id} → {faculty_id}[/green]")
    if result.unassigned:
        console.print(f"\n[bold yellow]No qualifying faculty ({len(result.unassigned)}):[/bold yellow]")
        for course_id in result.unassigned:
            console.print(f"  [yellow]- {course_id}[/yellow]")
    if result.unplaced:
        console.print(f"\n[bold yellow]Not placed ({len(result.unplaced)}):[/bold yellow]")
        for course_id in result.unplaced:
            console.print(f"  [yellow]- {course_id}[/yellow]")


@app.command("auto-resolve")
def auto_resolve(
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Repair open conflicts with alternative rooms and slots."""
    editor = _open_editor(catalog, session)
    with console.status("[bold green]Resolving conflicts..."):
        result = editor.auto_resolve()
    save_session(editor.coordinator, session)

    console.print("\n[bold]Auto-resolve results:[/bold]")
    console.print(f"  Resolved: {len(result.resolved)}")
    console.print(f"  Unresolved: {len(result.unresolved)}")

    if result.unresolved:
        _print_conflicts(result.unresolved, title="No alternative found")
    if result.displaced:
        console.print(f"\n[bold yellow]Displaced assignments ({len(result.displaced)}):[/bold yellow]")
        for assignment in result.displaced:
            console.print(f"  [yellow]- {assignment.course_id} ({assignment.room_id})[/yellow]")


@app.command()
def show(
    faculty: Annotated[
        Optional[str],
        typer.Option("--faculty", "-f", help="Only show this faculty member's classes"),
    ] = None,
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Show the active timetable."""
    editor = _open_editor(catalog, session)
    with _errors():
        grid = editor.faculty_timetable(faculty) if faculty else editor.grid

    table = Table(title=f"{editor.active.name} ({editor.active.id})", show_lines=True)
    table.add_column("Time", style="cyan")
    for day in grid.days:
        table.add_column(day)
    for interval in grid.intervals:
        row = [compact_interval(interval)]
        for day in grid.days:
            assignment = grid.get(day, interval)
            if assignment is None:
                row.append("")
            else:
                row.append(
                    f"[bold]{assignment.course_id}[/bold]\n"
                    f"{assignment.room_id} · {assignment.faculty_id}"
                )
        table.add_row(*row)
    console.print(table)


@app.command()
def conflicts(
    open_only: Annotated[
        bool,
        typer.Option("--open", help="Only show unresolved conflicts"),
    ] = False,
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """List conflicts of the active timetable."""
    editor = _open_editor(catalog, session)
    listed = [c for c in editor.conflicts if not (open_only and c.resolved)]
    if listed:
        _print_conflicts(listed)
    else:
        console.print("[bold green]✓ No conflicts[/bold green]")

    summary = editor.summary()
    console.print(
        f"\n  Total: {summary.total}  Critical: {summary.critical}  "
        f"Minor: {summary.minor}  Unresolved: {summary.unresolved}  "
        f"Resolved today: {summary.resolved_today}"
    )


@app.command()
def loads(
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Show faculty teaching loads of the active timetable."""
    editor = _open_editor(catalog, session)

    table = Table(title="Faculty Loads")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Hours", style="green")
    table.add_column("Load", style="green")
    table.add_column("Status")
    table.add_column("Courses", style="blue")
    for faculty_id, load in editor.loads().items():
        member = editor.catalog.faculty_member(faculty_id)
        style = STATUS_STYLES[load.status]
        table.add_row(
            faculty_id,
            member.name,
            f"{load.committed_hours}/{load.max_hours}",
            f"{load.percentage:.0f}%",
            f"[{style}]{load.status.value}[/{style}]",
            ", ".join(load.course_ids),
        )
    console.print(table)


@app.command("free-rooms")
def free_rooms(
    day: Annotated[str, typer.Argument(help="Day name")],
    interval: Annotated[str, typer.Argument(help="Interval label")],
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """List rooms not in use at a slot."""
    editor = _open_editor(catalog, session)
    with _errors():
        rooms = editor.free_rooms(day, interval)

    table = Table(title=f"Free rooms: {day}, {interval}")
    table.add_column("Room", style="cyan")
    table.add_column("Capacity", style="green")
    table.add_column("Type")
    for room in rooms:
        table.add_row(room.id, str(room.capacity), room.type)
    console.print(table)


@app.command()
def resolve(
    conflict_id: Annotated[
        Optional[str],
        typer.Argument(help="Conflict identifier to acknowledge"),
    ] = None,
    all_conflicts: Annotated[
        bool,
        typer.Option("--all", help="Acknowledge every open conflict"),
    ] = False,
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Mark conflicts resolved without changing the timetable."""
    if not conflict_id and not all_conflicts:
        console.print("[bold red]Error:[/bold red] Give a conflict identifier or --all")
        raise typer.Exit(1)

    editor = _open_editor(catalog, session)
    with _errors():
        if all_conflicts:
            count = editor.mark_all_resolved()
            message = f"Marked {count} conflict(s) resolved"
        else:
            editor.mark_conflict_resolved(conflict_id)
            message = f"Marked {conflict_id} resolved"
    save_session(editor.coordinator, session)
    console.print(f"[bold green]✓[/bold green] {message}")


@app.command()
def save(
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Output directory"),
    ] = Path("output"),
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Save the active timetable as a draft."""
    editor = _open_editor(catalog, session, output)
    with _errors(), console.status("[bold green]Saving timetable..."):
        editor.save()
    console.print(f"[bold green]✓[/bold green] Saved to: {output}")


@app.command()
def publish(
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Output directory"),
    ] = Path("output"),
    catalog: CatalogOption = DEFAULT_CATALOG_DIR,
    session: SessionOption = DEFAULT_SESSION_FILE,
) -> None:
    """Publish the active timetable (blocked by open critical conflicts)."""
    editor = _open_editor(catalog, session, output)
    try:
        with _errors():
            editor.publish()
    except typer.Exit:
        blockers = [c for c in editor.conflicts if not c.resolved and c.is_critical]
        if blockers:
            _print_conflicts(blockers, title="Blocking conflicts")
        raise
    console.print(f"[bold green]✓[/bold green] Published to: {output}")


if __name__ == "__main__":
    app()
