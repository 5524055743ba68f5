from pydantic import BaseModel, Field, field_validator

from app.services.catalog import Course, CourseCategory, determine_category


class CourseIn(BaseModel):
    # Empty ids are reported by catalog validation together with other issues
    id: str
    name: str | None = None
    description: str = ""
    units: int = Field(..., gt=0)
    difficulty: int = Field(1, ge=1)
    category: CourseCategory = CourseCategory.REQUIRED
    prerequisites: list[str] = []
    corequisites: list[str] = []
    taken: str | None = None
    original_order: int | None = None

    @field_validator("category", mode="before")
    @classmethod
    def normalise_category(cls, value):
        if isinstance(value, CourseCategory):
            return value
        return determine_category(value)

    @field_validator("prerequisites", "corequisites")
    @classmethod
    def strip_ids(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]

    def to_course(self, position: int) -> Course:
        course_id = self.id.strip()
        return Course(
            id=course_id,
            name=self.name or course_id,
            description=self.description,
            units=self.units,
            difficulty=self.difficulty,
            category=self.category,
            prerequisites=tuple(self.prerequisites),
            corequisites=tuple(self.corequisites),
            taken=self.taken,
            original_order=self.original_order if self.original_order is not None else position,
        )


class CatalogRequest(BaseModel):
    courses: list[CourseIn]


def to_courses(items: list[CourseIn]) -> list[Course]:
    return [item.to_course(position) for position, item in enumerate(items)]


class CatalogIssueOut(BaseModel):
    code: str
    course_id: str
    message: str
