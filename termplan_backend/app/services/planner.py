import logging
from dataclasses import dataclass, field

from app.core.config import settings
from app.services.catalog import Course, CourseCatalog
from app.services.errors import PlanningOperationError
from app.services.scheduler import DEFAULT_WEIGHTS, ScheduleResult, ScoringWeights, plan_terms
from app.services.terms import UNASSIGNED, AcademicSystem, Term, TermSequence, parse_term_label
from app.services.thresholds import PlanningConfig, Thresholds, resolve_thresholds
from app.services.validator import VALID, PlacementCheck, validate_placement

logger = logging.getLogger(__name__)

OPTIONAL_NOT_PLANNED = "Optional course, not auto-planned."


@dataclass
class TermState:
    id: str
    name: str
    year: int
    order: int
    pre_term: bool
    locked: bool
    units: int
    difficulty: int
    courses: list[str]
    pinned: list[str]


@dataclass
class CourseDiagnostic:
    course_id: str
    status: str  # placed | unassigned
    term_id: str | None = None
    valid: bool = True
    reason: str = ""


@dataclass
class PlanSnapshot:
    academic_system: str
    graduation_years: int
    thresholds: Thresholds
    terms: list[TermState]
    unassigned: list[str]
    diagnostics: list[CourseDiagnostic] = field(default_factory=list)


class PlanningSession:
    """Owns the catalog, the term sequence and the planning configuration.

    Every mutation goes through a method here; operations that are rejected
    raise `PlanningOperationError` before touching any state.
    """

    def __init__(
        self,
        catalog: CourseCatalog,
        sequence: TermSequence,
        config: PlanningConfig | None = None,
        reasons: dict[str, str] | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.catalog = catalog
        self.sequence = sequence
        self.config = config or PlanningConfig()
        self.weights = weights
        self.thresholds = resolve_thresholds(self.config, catalog, sequence.system, len(sequence.terms))
        self.reasons: dict[str, str] = dict(reasons or {})
        self.last_result: ScheduleResult | None = None

    @classmethod
    def create(
        cls,
        courses: list[Course],
        system: AcademicSystem | None = None,
        years: int | None = None,
        config: PlanningConfig | None = None,
    ) -> "PlanningSession":
        catalog = CourseCatalog.build(courses)
        system = system or AcademicSystem(settings.default_academic_system)
        years = years or settings.default_graduation_years
        session = cls(catalog, TermSequence.build(system, years, catalog.ids), config)
        session.apply_preassigned()
        return session

    # ── Catalog & configuration ───────────────────────────────────────────────

    def apply_preassigned(self) -> None:
        """Pin courses that arrive with a "taken" term label into that term."""
        for course in self.catalog:
            if not course.taken or self.sequence.term_of(course.id) is not None:
                continue
            term = self.sequence.get(parse_term_label(course.taken) or "")
            if term is None:
                logger.warning("Ignoring unusable term label %r for %s", course.taken, course.id)
                continue
            if term.locked:
                continue
            self.sequence.place(course, term, pinned=True)

    def load_catalog(self, courses: list[Course]) -> None:
        catalog = CourseCatalog.build(courses)
        thresholds = resolve_thresholds(self.config, catalog, self.sequence.system, len(self.sequence.terms))

        for term in self.sequence.terms:
            if not term.locked:
                term.courses = [cid for cid in term.courses if cid in term.pinned]
        self.sequence.recalculate(catalog)
        self.catalog = catalog
        self.thresholds = thresholds
        self.reasons = {}
        self.last_result = None
        self.apply_preassigned()
        logger.info("Loaded catalog with %d course(s)", len(catalog))

    def configure(
        self,
        system: AcademicSystem | None = None,
        years: int | None = None,
        **overrides,
    ) -> Thresholds:
        system = system or self.sequence.system
        if years is None:
            years = self.sequence.years
        if years < 1:
            raise PlanningOperationError("Graduation timeline must be at least one year.")
        config = self.config.updated(**overrides)
        term_count = years * len(system.seasons)
        thresholds = resolve_thresholds(config, self.catalog, system, term_count)

        if system != self.sequence.system or years != self.sequence.years:
            self.sequence = self.sequence.resized(system, years, self.catalog)
            self.apply_preassigned()
        self.config = config
        self.thresholds = thresholds
        return thresholds

    # ── Automatic planning ────────────────────────────────────────────────────

    def auto_plan(self) -> ScheduleResult:
        result = plan_terms(self.catalog, self.sequence, self.thresholds, self.weights)
        self.reasons = {course_id: reason for course_id, reason in result.reasons.items() if reason}
        self.last_result = result
        return result

    def reset_planning(self) -> None:
        for term in self.sequence.terms:
            if not term.locked:
                term.clear()
        self.sequence.refresh_unassigned(self.catalog)
        self.reasons = {}
        self.last_result = None
        self.apply_preassigned()

    # ── Manual operations ─────────────────────────────────────────────────────

    def place_course(self, course_id: str, term_id: str, pin: bool = False) -> PlacementCheck:
        course = self._course(course_id)
        if term_id == UNASSIGNED:
            self.remove_course(course_id)
            return VALID
        term = self._term(term_id)
        if term.locked:
            raise PlanningOperationError(f"{term.name} is locked.")
        current = self.sequence.term_of(course_id)
        if current is not None and current.locked:
            raise PlanningOperationError(f"{course_id} is in locked term {current.name}.")

        check = validate_placement(course, term, self.sequence, self.thresholds, catalog=self.catalog)
        if pin:
            ordering = validate_placement(
                course, term, self.sequence, self.thresholds, check_capacity=False, catalog=self.catalog
            )
            if not ordering.valid:
                raise PlanningOperationError(f"Cannot pin {course_id}: {ordering.reason}")

        self.sequence.place(course, term, pinned=pin)
        self.reasons.pop(course_id, None)
        return check

    def remove_course(self, course_id: str) -> None:
        course = self._course(course_id)
        current = self.sequence.term_of(course_id)
        if current is None:
            return
        if current.locked:
            raise PlanningOperationError(f"{course_id} is in locked term {current.name}.")
        self.sequence.unassign(course)

    def pin_course(self, course_id: str) -> None:
        self._course(course_id)
        term = self.sequence.term_of(course_id)
        if term is None:
            raise PlanningOperationError(f"Cannot pin {course_id}: course is unassigned.")
        check = self.course_check(course_id)
        if not check.valid:
            raise PlanningOperationError(f"Cannot pin {course_id}: {check.reason}")
        term.pinned.add(course_id)

    def unpin_course(self, course_id: str) -> None:
        self._course(course_id)
        term = self.sequence.term_of(course_id)
        if term is None or course_id not in term.pinned:
            raise PlanningOperationError(f"{course_id} is not pinned.")
        if term.locked:
            raise PlanningOperationError(f"{term.name} is locked.")
        term.pinned.discard(course_id)

    def lock_term(self, term_id: str) -> None:
        term = self._term(term_id)
        for course_id in term.courses:
            check = self.course_check(course_id)
            if not check.valid:
                raise PlanningOperationError(f"Cannot lock {term.name}: {course_id}: {check.reason}")
        term.locked = True

    def unlock_term(self, term_id: str) -> None:
        self._term(term_id).locked = False

    def validate(self, course_id: str, term_id: str) -> PlacementCheck:
        if term_id == UNASSIGNED:
            return VALID
        return validate_placement(
            self._course(course_id), self._term(term_id), self.sequence, self.thresholds, catalog=self.catalog
        )

    def course_check(self, course_id: str) -> PlacementCheck:
        """Ordering validity of a course where it currently sits."""
        term = self.sequence.term_of(course_id)
        if term is None:
            return VALID
        return validate_placement(
            self._course(course_id),
            term,
            self.sequence,
            self.thresholds,
            check_capacity=False,
            catalog=self.catalog,
        )

    # ── Output ────────────────────────────────────────────────────────────────

    def snapshot(self) -> PlanSnapshot:
        terms = [
            TermState(
                id=term.id,
                name=term.name,
                year=term.year,
                order=term.order,
                pre_term=term.pre_term,
                locked=term.locked,
                units=term.units,
                difficulty=term.difficulty,
                courses=self._in_catalog_order(term.courses),
                pinned=self._in_catalog_order(term.pinned),
            )
            for term in self.sequence.chronological()
        ]
        return PlanSnapshot(
            academic_system=self.sequence.system.value,
            graduation_years=self.sequence.years,
            thresholds=self.thresholds,
            terms=terms,
            unassigned=self._in_catalog_order(self.sequence.unassigned),
            diagnostics=[self.diagnose(course.id) for course in self.catalog],
        )

    def diagnose(self, course_id: str) -> CourseDiagnostic:
        course = self._course(course_id)
        term = self.sequence.term_of(course_id)
        if term is not None:
            check = self.course_check(course_id)
            return CourseDiagnostic(course_id, "placed", term.id, check.valid, check.reason)
        reason = self.reasons.get(course_id, "")
        if not reason and not course.plannable:
            reason = OPTIONAL_NOT_PLANNED
        return CourseDiagnostic(course_id, "unassigned", None, True, reason)

    def _in_catalog_order(self, course_ids) -> list[str]:
        return sorted(
            course_ids,
            key=lambda cid: (self.catalog.get(cid).original_order, cid),
        )

    def _course(self, course_id: str) -> Course:
        course = self.catalog.get(course_id)
        if course is None:
            raise LookupError(f"Unknown course {course_id}")
        return course

    def _term(self, term_id: str) -> Term:
        term = self.sequence.get(term_id)
        if term is None:
            raise LookupError(f"Unknown term {term_id}")
        return term
