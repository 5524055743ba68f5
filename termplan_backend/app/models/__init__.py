from app.models.plan import Plan, PlanCourse, PlanItem, PlanTerm  # noqa: F401
