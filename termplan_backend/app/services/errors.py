from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogIssue:
    code: str
    course_id: str
    message: str


class CatalogError(ValueError):
    """Raised once per catalog build with every integrity problem found."""

    def __init__(self, issues: list[CatalogIssue]):
        self.issues = issues
        summary = "; ".join(issue.message for issue in issues)
        super().__init__(f"Invalid course catalog ({len(issues)} issue(s)): {summary}")


class ConfigurationError(ValueError):
    pass


class PlanningOperationError(ValueError):
    pass
