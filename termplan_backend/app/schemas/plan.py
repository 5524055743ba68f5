from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.course import CourseIn


class ThresholdOverrides(BaseModel):
    # Leave a field out (or null) to have it derived from the catalog
    min_units: int | None = Field(None, ge=0)
    target_units: int | None = Field(None, ge=1)
    max_units: int | None = Field(None, ge=1)
    target_difficulty: int | None = Field(None, ge=1)
    max_difficulty: int | None = Field(None, ge=1)
    top_up_attempts: int | None = Field(None, ge=0, le=50)


class PlanCreateRequest(BaseModel):
    name: str | None = None
    academic_system: Literal["quarter", "semester"] | None = None
    graduation_years: int | None = Field(None, ge=1, le=10)
    thresholds: ThresholdOverrides = ThresholdOverrides()
    max_unit_top_up: bool = True
    courses: list[CourseIn]


class ConfigUpdateRequest(ThresholdOverrides):
    academic_system: Literal["quarter", "semester"] | None = None
    graduation_years: int | None = Field(None, ge=1, le=10)
    max_unit_top_up: bool | None = None


class PlaceCourseRequest(BaseModel):
    term_id: str
    pin: bool = False


class ThresholdsOut(BaseModel):
    min_units: int
    target_units: int
    max_units: int
    target_difficulty: int
    max_difficulty: int
    top_up_attempts: int
    max_unit_top_up: bool

    model_config = {"from_attributes": True}


class TermOut(BaseModel):
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

    model_config = {"from_attributes": True}


class CourseDiagnosticOut(BaseModel):
    course_id: str
    status: str
    term_id: str | None = None
    valid: bool
    reason: str = ""

    model_config = {"from_attributes": True}


class PlanResponse(BaseModel):
    plan_id: int
    name: str | None = None
    message: str = ""
    academic_system: str
    graduation_years: int
    thresholds: ThresholdsOut
    overrides: dict[str, bool] = {}
    terms: list[TermOut] = []
    unassigned: list[str] = []
    diagnostics: list[CourseDiagnosticOut] = []


class PlacementResponse(BaseModel):
    valid: bool
    reason: str = ""
    plan: PlanResponse | None = None
