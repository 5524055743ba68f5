from dataclasses import dataclass, field
from enum import Enum

from app.services.errors import CatalogError, CatalogIssue
from app.services.graph import build_graph, topo_sort


class CourseCategory(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    CAPSTONE = "capstone"
    EXTERNAL = "external"


def determine_category(text: str | None) -> CourseCategory:
    value = (text or "").strip().lower()
    if "optional" in value:
        return CourseCategory.OPTIONAL
    if "capstone" in value:
        return CourseCategory.CAPSTONE
    if "external" in value:
        return CourseCategory.EXTERNAL
    return CourseCategory.REQUIRED


@dataclass(frozen=True)
class Course:
    id: str
    name: str
    units: int
    original_order: int
    description: str = ""
    difficulty: int = 1
    category: CourseCategory = CourseCategory.REQUIRED
    prerequisites: tuple[str, ...] = ()
    corequisites: tuple[str, ...] = ()
    taken: str | None = None

    @property
    def plannable(self) -> bool:
        return self.category != CourseCategory.OPTIONAL


@dataclass
class CourseCatalog:
    """Validated, ordered course list. Build with `CourseCatalog.build`."""

    courses: list[Course]
    _by_id: dict[str, Course] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self._by_id = {course.id: course for course in self.courses}

    @classmethod
    def build(cls, courses: list[Course]) -> "CourseCatalog":
        issues = validate_courses(courses)
        if issues:
            raise CatalogError(issues)
        return cls(sorted(courses, key=lambda c: c.original_order))

    def get(self, course_id: str) -> Course | None:
        return self._by_id.get(course_id)

    def __contains__(self, course_id: str) -> bool:
        return course_id in self._by_id

    def __iter__(self):
        return iter(self.courses)

    def __len__(self) -> int:
        return len(self.courses)

    @property
    def ids(self) -> list[str]:
        return [course.id for course in self.courses]

    def plannable(self) -> list[Course]:
        return [course for course in self.courses if course.plannable]


def validate_courses(courses: list[Course]) -> list[CatalogIssue]:
    issues: list[CatalogIssue] = []
    by_id: dict[str, Course] = {}

    for course in courses:
        if not course.id or not course.id.strip():
            issues.append(CatalogIssue("empty_id", "", f"Course at position {course.original_order} has an empty id"))
            continue
        if course.id in by_id:
            issues.append(CatalogIssue("duplicate_id", course.id, f"Duplicate course id {course.id}"))
            continue
        by_id[course.id] = course

    for course in by_id.values():
        for prereq in course.prerequisites:
            if prereq == course.id:
                issues.append(
                    CatalogIssue("self_prerequisite", course.id, f"{course.id} lists itself as a prerequisite")
                )
            elif prereq not in by_id:
                issues.append(
                    CatalogIssue(
                        "unknown_prerequisite",
                        course.id,
                        f"{course.id} requires unknown course {prereq}",
                    )
                )
        for coreq in course.corequisites:
            if coreq == course.id:
                issues.append(
                    CatalogIssue("self_corequisite", course.id, f"{course.id} lists itself as a corequisite")
                )
            elif coreq not in by_id:
                issues.append(
                    CatalogIssue(
                        "unknown_corequisite",
                        course.id,
                        f"{course.id} lists unknown corequisite {coreq}",
                    )
                )
            elif course.id not in by_id[coreq].corequisites:
                issues.append(
                    CatalogIssue(
                        "asymmetric_corequisite",
                        course.id,
                        f"{course.id} lists {coreq} as a corequisite but {coreq} does not list {course.id}",
                    )
                )

    # Cycles only make sense once self-references and dangling ids are gone
    if not issues:
        prereq_map = {course.id: set(course.prerequisites) for course in by_id.values()}
        try:
            topo_sort(build_graph(prereq_map))
        except ValueError:
            for course_id in _cycle_members(prereq_map):
                issues.append(
                    CatalogIssue(
                        "prerequisite_cycle",
                        course_id,
                        f"{course_id} is part of a prerequisite cycle",
                    )
                )
    return issues


def _cycle_members(prereq_map: dict[str, set[str]]) -> list[str]:
    # Repeatedly strip courses with no remaining prerequisites; what is left
    # is on (or downstream of) a cycle.
    remaining = {course: set(reqs) for course, reqs in prereq_map.items()}
    while True:
        free = [course for course, reqs in remaining.items() if not reqs]
        if not free:
            break
        for course in free:
            del remaining[course]
        for reqs in remaining.values():
            reqs.difference_update(free)
    return sorted(remaining)
