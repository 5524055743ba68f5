from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.course import CatalogRequest
from app.schemas.plan import (
    ConfigUpdateRequest,
    PlaceCourseRequest,
    PlacementResponse,
    PlanCreateRequest,
    PlanResponse,
)
from app.services import plans

router = APIRouter(prefix="/api")


@router.post("/plans", response_model=PlanResponse, status_code=201)
def create_plan_endpoint(payload: PlanCreateRequest, db: Session = Depends(get_db)):
    return plans.create_plan(db, payload)


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def get_plan_endpoint(plan_id: int, db: Session = Depends(get_db)):
    return plans.get_plan(db, plan_id)


@router.put("/plans/{plan_id}/catalog", response_model=PlanResponse)
def replace_catalog_endpoint(plan_id: int, payload: CatalogRequest, db: Session = Depends(get_db)):
    return plans.replace_catalog(db, plan_id, payload)


@router.put("/plans/{plan_id}/config", response_model=PlanResponse)
def update_config_endpoint(plan_id: int, payload: ConfigUpdateRequest, db: Session = Depends(get_db)):
    return plans.update_config(db, plan_id, payload)


# ── Planning ──────────────────────────────────────────────────────────────────

@router.post("/plans/{plan_id}/auto-plan", response_model=PlanResponse)
def auto_plan_endpoint(plan_id: int, db: Session = Depends(get_db)):
    return plans.run_auto_plan(db, plan_id)


@router.post("/plans/{plan_id}/reset", response_model=PlanResponse)
def reset_plan_endpoint(plan_id: int, db: Session = Depends(get_db)):
    return plans.reset_plan(db, plan_id)


@router.get("/plans/{plan_id}/validate", response_model=PlacementResponse)
def validate_endpoint(
    plan_id: int,
    course_id: str = Query(...),
    term_id: str = Query(..., description="Term id such as fall1, or 'unassigned'"),
    db: Session = Depends(get_db),
):
    return plans.validate_course(db, plan_id, course_id, term_id)


# ── Manual placement ──────────────────────────────────────────────────────────

@router.post("/plans/{plan_id}/courses/{course_id}/place", response_model=PlacementResponse)
def place_course_endpoint(
    plan_id: int,
    course_id: str,
    payload: PlaceCourseRequest,
    db: Session = Depends(get_db),
):
    return plans.place_course(db, plan_id, course_id, payload)


@router.delete("/plans/{plan_id}/courses/{course_id}/placement", response_model=PlanResponse)
def remove_course_endpoint(plan_id: int, course_id: str, db: Session = Depends(get_db)):
    return plans.remove_course(db, plan_id, course_id)


@router.post("/plans/{plan_id}/courses/{course_id}/pin", response_model=PlanResponse)
def pin_course_endpoint(plan_id: int, course_id: str, db: Session = Depends(get_db)):
    return plans.pin_course(db, plan_id, course_id)


@router.delete("/plans/{plan_id}/courses/{course_id}/pin", response_model=PlanResponse)
def unpin_course_endpoint(plan_id: int, course_id: str, db: Session = Depends(get_db)):
    return plans.unpin_course(db, plan_id, course_id)


@router.post("/plans/{plan_id}/terms/{term_id}/lock", response_model=PlanResponse)
def lock_term_endpoint(plan_id: int, term_id: str, db: Session = Depends(get_db)):
    return plans.lock_term(db, plan_id, term_id)


@router.delete("/plans/{plan_id}/terms/{term_id}/lock", response_model=PlanResponse)
def unlock_term_endpoint(plan_id: int, term_id: str, db: Session = Depends(get_db)):
    return plans.unlock_term(db, plan_id, term_id)
