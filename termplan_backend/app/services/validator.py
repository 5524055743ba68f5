from dataclasses import dataclass

from app.services.catalog import Course, CourseCatalog
from app.services.terms import Term, TermSequence
from app.services.thresholds import Thresholds


@dataclass(frozen=True)
class PlacementCheck:
    valid: bool
    reason: str = ""


VALID = PlacementCheck(valid=True)


def _display(course_id: str, catalog: CourseCatalog | None) -> str:
    course = catalog.get(course_id) if catalog is not None else None
    if course is None or not course.name or course.name == course_id:
        return course_id
    return f"{course.name} ({course_id})"


def validate_placement(
    course: Course,
    term: Term,
    sequence: TermSequence,
    thresholds: Thresholds,
    check_capacity: bool = True,
    catalog: CourseCatalog | None = None,
) -> PlacementCheck:
    """Check one course against one term, as if it were moved there.

    Prerequisites are checked first, then corequisites, units, difficulty;
    the reason names the first failure only. With a `catalog`, missing
    courses are named by title as well as id.
    """
    completed = sequence.completed_before(term)
    completed.discard(course.id)

    for prereq_id in course.prerequisites:
        if prereq_id not in completed:
            return PlacementCheck(False, f"Missing prerequisite: {_display(prereq_id, catalog)}")

    for coreq_id in course.corequisites:
        if coreq_id not in completed and coreq_id not in term.courses:
            return PlacementCheck(False, f"Missing corequisite: {_display(coreq_id, catalog)}")

    if not check_capacity:
        return VALID

    current_units = term.units
    current_difficulty = term.difficulty
    if course.id in term.courses:
        current_units -= course.units
        current_difficulty -= course.difficulty

    if current_units + course.units > thresholds.max_units:
        return PlacementCheck(
            False,
            f"Unit limit exceeded (current {current_units} + adding {course.units} > max {thresholds.max_units})",
        )
    if current_difficulty + course.difficulty > thresholds.max_difficulty:
        return PlacementCheck(
            False,
            f"Difficulty limit exceeded (current {current_difficulty} + adding {course.difficulty}"
            f" > max {thresholds.max_difficulty})",
        )
    return VALID
