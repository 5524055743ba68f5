import os

# Keep the application engine off the filesystem during tests
os.environ.setdefault("TERMPLAN_DATABASE_URL", "sqlite://")

import pytest

from app.services.catalog import Course, CourseCatalog, CourseCategory
from app.services.thresholds import Thresholds


def make_courses(*entries: dict) -> list[Course]:
    """Build courses from short dicts; list position becomes the original order."""
    courses = []
    for position, entry in enumerate(entries):
        entry = dict(entry)
        courses.append(
            Course(
                id=entry.pop("id"),
                name=entry.pop("name", None) or "",
                units=entry.pop("units", 4),
                difficulty=entry.pop("difficulty", 3),
                prerequisites=tuple(entry.pop("prereqs", ())),
                corequisites=tuple(entry.pop("coreqs", ())),
                category=entry.pop("category", CourseCategory.REQUIRED),
                taken=entry.pop("taken", None),
                original_order=entry.pop("order", position),
            )
        )
    return courses


def make_catalog(*entries: dict) -> CourseCatalog:
    return CourseCatalog.build(make_courses(*entries))


@pytest.fixture
def thresholds() -> Thresholds:
    return Thresholds(min_units=12, target_units=13, max_units=15, target_difficulty=12, max_difficulty=15)
