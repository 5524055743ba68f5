import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from app.services.catalog import Course, CourseCatalog


class AcademicSystem(str, Enum):
    QUARTER = "quarter"
    SEMESTER = "semester"

    @property
    def seasons(self) -> tuple[str, ...]:
        if self is AcademicSystem.QUARTER:
            return ("summer", "fall", "winter", "spring")
        return ("fall", "spring")

    @property
    def pre_term_seasons(self) -> frozenset[str]:
        # Summer quarters count as taken before the main sequence starts.
        if self is AcademicSystem.QUARTER:
            return frozenset({"summer"})
        return frozenset()

    def academic_term_count(self, total_terms: int) -> float:
        if self is AcademicSystem.QUARTER:
            return total_terms * 3 / 4
        return float(total_terms)


UNASSIGNED = "unassigned"

_TERM_LABEL_RE = re.compile(r"^\s*(summer|fall|winter|spring)\s*,?\s*year\s*(\d+)\s*$", re.IGNORECASE)


def parse_term_label(label: str | None) -> str | None:
    """Map "Fall, Year 2" / "fall year 2" to the term id "fall2"."""
    if not label:
        return None
    match = _TERM_LABEL_RE.match(label)
    if not match:
        return None
    return f"{match.group(1).lower()}{int(match.group(2))}"


def format_term_label(season: str, year: int) -> str:
    return f"{season.title()} Year {year}"


@dataclass
class Term:
    id: str
    name: str
    season: str
    year: int
    order: int
    pre_term: bool = False
    courses: list[str] = field(default_factory=list)
    pinned: set[str] = field(default_factory=set)
    units: int = 0
    difficulty: int = 0
    locked: bool = False

    def add(self, course: Course, pinned: bool = False) -> None:
        if course.id not in self.courses:
            self.courses.append(course.id)
            self.units += course.units
            self.difficulty += course.difficulty
        if pinned:
            self.pinned.add(course.id)

    def remove(self, course: Course) -> None:
        if course.id in self.courses:
            self.courses.remove(course.id)
            self.units -= course.units
            self.difficulty -= course.difficulty
        self.pinned.discard(course.id)

    def clear(self) -> None:
        self.courses = []
        self.pinned = set()
        self.units = 0
        self.difficulty = 0


def fits_capacity(
    term: Term,
    courses: Iterable[Course],
    max_units: int,
    max_difficulty: int | None,
) -> bool:
    """Whether all `courses` together fit on top of the term's totals.

    `max_difficulty=None` ignores the difficulty ceiling.
    """
    courses = list(courses)
    units = term.units + sum(c.units for c in courses)
    if units > max_units:
        return False
    if max_difficulty is None:
        return True
    return term.difficulty + sum(c.difficulty for c in courses) <= max_difficulty


@dataclass
class TermSequence:
    system: AcademicSystem
    years: int
    terms: list[Term]
    unassigned: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, system: AcademicSystem, years: int, course_ids: Iterable[str] = ()) -> "TermSequence":
        per_year = len(system.seasons)
        terms = []
        for year in range(1, years + 1):
            for index, season in enumerate(system.seasons):
                terms.append(
                    Term(
                        id=f"{season}{year}",
                        name=format_term_label(season, year),
                        season=season,
                        year=year,
                        order=(year - 1) * per_year + index,
                        pre_term=season in system.pre_term_seasons,
                    )
                )
        return cls(system=system, years=years, terms=terms, unassigned=list(course_ids))

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, term_id: str) -> Term | None:
        for term in self.terms:
            if term.id == term_id:
                return term
        return None

    def term_of(self, course_id: str) -> Term | None:
        for term in self.terms:
            if course_id in term.courses:
                return term
        return None

    def placed_ids(self) -> set[str]:
        return {course_id for term in self.terms for course_id in term.courses}

    def chronological(self) -> list[Term]:
        return sorted(self.terms, key=lambda t: t.order)

    def main_terms(self) -> list[Term]:
        """Chronologically ordered terms, pre-term buckets excluded."""
        return [t for t in self.chronological() if not t.pre_term]

    def pre_term_courses(self, exclude: Term | None = None) -> set[str]:
        return {
            course_id
            for term in self.terms
            if term.pre_term and term is not exclude
            for course_id in term.courses
        }

    def completed_before(self, term: Term) -> set[str]:
        completed = self.pre_term_courses(exclude=term)
        for other in self.terms:
            if not other.pre_term and other.order < term.order:
                completed.update(other.courses)
        return completed

    # ── Mutation ──────────────────────────────────────────────────────────────

    def place(self, course: Course, term: Term, pinned: bool = False) -> None:
        self.detach(course)
        term.add(course, pinned=pinned)

    def detach(self, course: Course) -> Term | None:
        previous = self.term_of(course.id)
        if previous is not None:
            previous.remove(course)
        if course.id in self.unassigned:
            self.unassigned.remove(course.id)
        return previous

    def unassign(self, course: Course) -> Term | None:
        previous = self.detach(course)
        self.unassigned.append(course.id)
        return previous

    def refresh_unassigned(self, catalog: CourseCatalog) -> None:
        placed = self.placed_ids()
        self.unassigned = [course_id for course_id in catalog.ids if course_id not in placed]

    def recalculate(self, catalog: CourseCatalog) -> None:
        """Drop ids the catalog no longer knows and recompute every total."""
        for term in self.terms:
            term.courses = [cid for cid in term.courses if cid in catalog]
            term.pinned = {cid for cid in term.pinned if cid in catalog}
            term.units = sum(catalog.get(cid).units for cid in term.courses)
            term.difficulty = sum(catalog.get(cid).difficulty for cid in term.courses)
        self.refresh_unassigned(catalog)

    def reset_for_planning(self, catalog: CourseCatalog) -> None:
        for term in self.terms:
            if term.locked:
                continue
            pinned = [cid for cid in term.courses if cid in term.pinned and cid in catalog]
            term.clear()
            for course_id in pinned:
                term.add(catalog.get(course_id), pinned=True)
        self.refresh_unassigned(catalog)

    def resized(self, system: AcademicSystem, years: int, catalog: CourseCatalog) -> "TermSequence":
        """A new sequence that keeps contents, pins and locks of surviving term ids."""
        fresh = TermSequence.build(system, years)
        for term in fresh.terms:
            old = self.get(term.id)
            if old is None:
                continue
            term.locked = old.locked
            for course_id in old.courses:
                term.add(catalog.get(course_id), pinned=course_id in old.pinned)
        fresh.refresh_unassigned(catalog)
        return fresh
