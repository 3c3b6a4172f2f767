"""Test fixtures for timetable builder tests."""

import json

import pytest

from timetable_builder.catalog import Catalog
from timetable_builder.editor import TimetableEditor
from timetable_builder.models import Course, Faculty, Room, WeeklyHours


@pytest.fixture
def courses():
    """Sample courses of one department across three cohorts."""
    return [
        Course(
            id="CS101",
            name="Introduction to Programming",
            department="CS",
            semester="S1",
            hours=WeeklyHours(3, 1, 0),
            tags=["Programming"],
            core=True,
            enrollment=40,
        ),
        Course(
            id="CS102",
            name="Discrete Mathematics",
            department="CS",
            semester="S1",
            hours=WeeklyHours(3, 0, 0),
            tags=["Math"],
            core=True,
            enrollment=40,
        ),
        Course(
            id="CS201",
            name="Data Structures",
            department="CS",
            semester="S3",
            hours=WeeklyHours(3, 1, 2),
            tags=["Programming", "Algorithms"],
            enrollment=35,
        ),
        Course(
            id="AI301",
            name="Machine Learning",
            department="CS",
            semester="S5",
            hours=WeeklyHours(3, 0, 2),
            tags=["AI"],
            enrollment=30,
        ),
        Course(
            id="PH101",
            name="Physics",
            department="PH",
            semester="S1",
            hours=WeeklyHours(2, 1, 0),
            tags=["Physics"],
            enrollment=25,
        ),
    ]


@pytest.fixture
def faculty():
    """Sample faculty roster."""
    return [
        Faculty(id="F1", name="Dr. Rao", department="CS", expertise=["programming", "algorithms"]),
        Faculty(id="F2", name="Dr. Iyer", department="CS", expertise=["Math"], preferred_courses=["CS102"]),
        Faculty(id="F3", name="Dr. Sen", department="CS", expertise=["AI"]),
        Faculty(id="F4", name="Dr. Das", department="CS", expertise=["AI", "Programming"]),
    ]


@pytest.fixture
def rooms():
    """Sample rooms, largest first."""
    return [
        Room(id="A101", capacity=60, type="lecture", facilities=["projector"]),
        Room(id="B201", capacity=40, type="lab", facilities=["computers"]),
        Room(id="C301", capacity=30, type="seminar"),
    ]


@pytest.fixture
def course_map(courses):
    return {course.id: course for course in courses}


@pytest.fixture
def catalog(courses, faculty, rooms):
    """Catalog over the default calendar (Monday-Saturday, eight intervals)."""
    return Catalog(courses, faculty, rooms)


@pytest.fixture
def editor(catalog):
    return TimetableEditor(catalog)


@pytest.fixture
def catalog_dir(tmp_path):
    """Catalog directory with CSV files for the loader and the CLI."""
    directory = tmp_path / "catalog"
    directory.mkdir()
    (directory / "courses.csv").write_text(
        "id,name,department,semester,hours,tags,core,enrollment,faculty_id,room_id\n"
        "CS101,Introduction to Programming,CS,S1,3L+1T+0P,Programming,true,40,,\n"
        "CS201,Data Structures,CS,S3,3L+1T+2P,Programming;Algorithms,false,35,,\n"
        "AI301,Machine Learning,CS,S5,3L+0T+2P,AI,false,30,F3,B201\n",
        encoding="utf-8",
    )
    (directory / "faculty.csv").write_text(
        "id,name,department,expertise,preferred_courses,max_hours\n"
        "F1,Dr. Rao,CS,programming;algorithms,,18\n"
        "F3,Dr. Sen,CS,AI,AI301,12\n"
        "F4,Dr. Das,CS,AI;Programming,,\n",
        encoding="utf-8",
    )
    (directory / "rooms.json").write_text(
        json.dumps(
            [
                {"id": "A101", "capacity": 60, "type": "lecture", "facilities": ["projector"]},
                {"id": "B201", "capacity": 40, "type": "lab"},
            ]
        ),
        encoding="utf-8",
    )
    return directory
