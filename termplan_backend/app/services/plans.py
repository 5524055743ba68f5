import logging
from datetime import datetime
from typing import Callable

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from app.models.plan import Plan, PlanCourse, PlanItem, PlanTerm
from app.schemas.course import CatalogRequest, to_courses
from app.schemas.plan import (
    ConfigUpdateRequest,
    CourseDiagnosticOut,
    PlaceCourseRequest,
    PlacementResponse,
    PlanCreateRequest,
    PlanResponse,
    TermOut,
    ThresholdsOut,
)
from app.services.catalog import Course, CourseCatalog, CourseCategory
from app.services.planner import PlanningSession
from app.services.terms import AcademicSystem, TermSequence
from app.services.thresholds import PlanningConfig

logger = logging.getLogger(__name__)

_THRESHOLD_FIELDS = (
    "min_units",
    "target_units",
    "max_units",
    "target_difficulty",
    "max_difficulty",
    "top_up_attempts",
)


def create_plan(db: Session, payload: PlanCreateRequest) -> PlanResponse:
    config = PlanningConfig(**payload.thresholds.model_dump(), max_unit_top_up=payload.max_unit_top_up)
    session = PlanningSession.create(
        to_courses(payload.courses),
        system=AcademicSystem(payload.academic_system) if payload.academic_system else None,
        years=payload.graduation_years,
        config=config,
    )
    plan = Plan(name=payload.name)
    db.add(plan)
    save_session(db, plan, session)
    logger.info("Created plan %s with %d course(s)", plan.id, len(session.catalog))
    return build_response(plan, session, "Plan created.")


def get_plan(db: Session, plan_id: int) -> PlanResponse:
    plan = _get_plan_row(db, plan_id)
    return build_response(plan, load_session(plan))


def replace_catalog(db: Session, plan_id: int, payload: CatalogRequest) -> PlanResponse:
    courses = to_courses(payload.courses)
    return _apply(db, plan_id, lambda s: s.load_catalog(courses), "Catalog replaced.")


def update_config(db: Session, plan_id: int, payload: ConfigUpdateRequest) -> PlanResponse:
    changes = payload.model_dump(exclude_unset=True)
    system = changes.pop("academic_system", None)
    years = changes.pop("graduation_years", None)
    if changes.get("max_unit_top_up", True) is None:
        changes.pop("max_unit_top_up")

    def configure(session: PlanningSession):
        session.configure(system=AcademicSystem(system) if system else None, years=years, **changes)

    return _apply(db, plan_id, configure, "Configuration updated.")


def run_auto_plan(db: Session, plan_id: int) -> PlanResponse:
    plan = _get_plan_row(db, plan_id)
    session = load_session(plan)
    result = session.auto_plan()
    save_session(db, plan, session)

    message = "Plan generated successfully."
    if result.unplaced:
        message = f"Plan generated with {len(result.unplaced)} unplaced course(s)."
    elif result.forced:
        message = f"Plan generated; {len(result.forced)} course(s) placed beyond the unit limit."
    return build_response(plan, session, message)


def reset_plan(db: Session, plan_id: int) -> PlanResponse:
    return _apply(db, plan_id, lambda s: s.reset_planning(), "Planning reset.")


def place_course(db: Session, plan_id: int, course_id: str, payload: PlaceCourseRequest) -> PlacementResponse:
    checks = []
    plan = _apply(
        db,
        plan_id,
        lambda s: checks.append(s.place_course(course_id, payload.term_id, pin=payload.pin)),
        f"Moved {course_id}.",
    )
    return PlacementResponse(valid=checks[0].valid, reason=checks[0].reason, plan=plan)


def remove_course(db: Session, plan_id: int, course_id: str) -> PlanResponse:
    return _apply(db, plan_id, lambda s: s.remove_course(course_id), f"Removed {course_id}.")


def pin_course(db: Session, plan_id: int, course_id: str) -> PlanResponse:
    return _apply(db, plan_id, lambda s: s.pin_course(course_id), f"Pinned {course_id}.")


def unpin_course(db: Session, plan_id: int, course_id: str) -> PlanResponse:
    return _apply(db, plan_id, lambda s: s.unpin_course(course_id), f"Unpinned {course_id}.")


def lock_term(db: Session, plan_id: int, term_id: str) -> PlanResponse:
    return _apply(db, plan_id, lambda s: s.lock_term(term_id), f"Locked {term_id}.")


def unlock_term(db: Session, plan_id: int, term_id: str) -> PlanResponse:
    return _apply(db, plan_id, lambda s: s.unlock_term(term_id), f"Unlocked {term_id}.")


def validate_course(db: Session, plan_id: int, course_id: str, term_id: str) -> PlacementResponse:
    session = load_session(_get_plan_row(db, plan_id))
    try:
        check = session.validate(course_id, term_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return PlacementResponse(valid=check.valid, reason=check.reason)


# ── Session <-> rows ──────────────────────────────────────────────────────────


def load_session(plan: Plan) -> PlanningSession:
    rows = sorted(plan.courses, key=lambda r: r.original_order)
    catalog = CourseCatalog.build(
        [
            Course(
                id=row.course_id,
                name=row.name or row.course_id,
                description=row.description or "",
                units=row.units,
                difficulty=row.difficulty or 1,
                category=CourseCategory(row.category or "required"),
                prerequisites=tuple(row.prerequisites or ()),
                corequisites=tuple(row.corequisites or ()),
                taken=row.taken,
                original_order=row.original_order,
            )
            for row in rows
        ]
    )

    sequence = TermSequence.build(AcademicSystem(plan.academic_system), plan.graduation_years)
    for term_row in plan.terms:
        term = sequence.get(term_row.term_key)
        if term is None:
            continue
        term.locked = bool(term_row.locked)
        for item in sorted(term_row.items, key=lambda i: i.position):
            course = catalog.get(item.course_id)
            if course is not None:
                term.add(course, pinned=bool(item.pinned))
    sequence.refresh_unassigned(catalog)

    config = PlanningConfig(
        **{name: getattr(plan, name) for name in _THRESHOLD_FIELDS},
        max_unit_top_up=plan.max_unit_top_up if plan.max_unit_top_up is not None else True,
    )
    reasons = {row.course_id: row.unassigned_reason for row in rows if row.unassigned_reason}
    return PlanningSession(catalog, sequence, config, reasons)


def save_session(db: Session, plan: Plan, session: PlanningSession) -> None:
    plan.academic_system = session.sequence.system.value
    plan.graduation_years = session.sequence.years
    for name in _THRESHOLD_FIELDS:
        setattr(plan, name, getattr(session.config, name))
    plan.max_unit_top_up = session.config.max_unit_top_up

    plan.courses = [
        PlanCourse(
            course_id=course.id,
            name=course.name,
            description=course.description,
            units=course.units,
            difficulty=course.difficulty,
            category=course.category.value,
            prerequisites=list(course.prerequisites),
            corequisites=list(course.corequisites),
            taken=course.taken,
            original_order=course.original_order,
            unassigned_reason=session.reasons.get(course.id),
        )
        for course in session.catalog
    ]
    plan.terms = [
        PlanTerm(
            term_key=term.id,
            locked=term.locked,
            items=[
                PlanItem(course_id=course_id, pinned=course_id in term.pinned, position=position)
                for position, course_id in enumerate(term.courses)
            ],
        )
        for term in session.sequence.chronological()
    ]
    plan.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(plan)


def build_response(plan: Plan, session: PlanningSession, message: str = "") -> PlanResponse:
    snapshot = session.snapshot()
    return PlanResponse(
        plan_id=plan.id,
        name=plan.name,
        message=message,
        academic_system=snapshot.academic_system,
        graduation_years=snapshot.graduation_years,
        thresholds=ThresholdsOut.model_validate(snapshot.thresholds),
        overrides=session.config.overridden(),
        terms=[TermOut.model_validate(term) for term in snapshot.terms],
        unassigned=snapshot.unassigned,
        diagnostics=[CourseDiagnosticOut.model_validate(d) for d in snapshot.diagnostics],
    )


def _get_plan_row(db: Session, plan_id: int) -> Plan:
    plan = (
        db.query(Plan)
        .options(selectinload(Plan.courses), selectinload(Plan.terms).selectinload(PlanTerm.items))
        .filter(Plan.id == plan_id)
        .first()
    )
    if plan is None:
        raise HTTPException(status_code=404, detail="Plan not found.")
    return plan


def _apply(db: Session, plan_id: int, action: Callable[[PlanningSession], object], message: str) -> PlanResponse:
    plan = _get_plan_row(db, plan_id)
    session = load_session(plan)
    try:
        action(session)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    save_session(db, plan, session)
    return build_response(plan, session, message)
