import math
from dataclasses import dataclass, fields, replace

from app.core.config import settings
from app.services.catalog import CourseCatalog
from app.services.errors import ConfigurationError
from app.services.terms import AcademicSystem


@dataclass(frozen=True)
class Thresholds:
    min_units: int
    target_units: int
    max_units: int
    target_difficulty: int
    max_difficulty: int
    top_up_attempts: int = 5
    max_unit_top_up: bool = True


@dataclass(frozen=True)
class PlanningConfig:
    """User overrides; a `None` threshold is computed from the catalog."""

    min_units: int | None = None
    target_units: int | None = None
    max_units: int | None = None
    target_difficulty: int | None = None
    max_difficulty: int | None = None
    top_up_attempts: int | None = None
    max_unit_top_up: bool = True

    def overridden(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) is not None for f in fields(self) if f.name != "max_unit_top_up"}

    def updated(self, **changes) -> "PlanningConfig":
        return replace(self, **changes)


def default_thresholds() -> Thresholds:
    return Thresholds(
        min_units=settings.default_min_units,
        target_units=settings.default_target_units,
        max_units=settings.default_max_units,
        target_difficulty=settings.default_target_difficulty,
        max_difficulty=settings.default_max_difficulty,
        top_up_attempts=settings.default_top_up_attempts,
    )


def dynamic_thresholds(catalog: CourseCatalog, system: AcademicSystem, total_terms: int) -> Thresholds:
    """Spread the required load evenly over the academic (non-summer) terms."""
    required = catalog.plannable()
    academic_terms = system.academic_term_count(total_terms)
    if not required or academic_terms <= 0:
        return default_thresholds()

    target_units = max(1, math.ceil(sum(c.units for c in required) / academic_terms))
    target_difficulty = max(1, math.ceil(sum(c.difficulty for c in required) / academic_terms))
    return Thresholds(
        min_units=max(0, target_units - 1),
        target_units=target_units,
        max_units=target_units + 2,
        target_difficulty=target_difficulty,
        max_difficulty=target_difficulty + 3,
        top_up_attempts=settings.default_top_up_attempts,
    )


def resolve_thresholds(
    config: PlanningConfig,
    catalog: CourseCatalog,
    system: AcademicSystem,
    total_terms: int,
) -> Thresholds:
    base = dynamic_thresholds(catalog, system, total_terms)
    overrides = {
        name: getattr(config, name)
        for name, is_set in config.overridden().items()
        if is_set
    }
    resolved = replace(base, max_unit_top_up=config.max_unit_top_up, **overrides)

    # Computed values give way to explicit ceilings; two explicit values that
    # contradict each other are still an error.
    clamped = {}
    if "target_units" not in overrides:
        clamped["target_units"] = min(resolved.target_units, resolved.max_units)
    if "min_units" not in overrides:
        clamped["min_units"] = min(resolved.min_units, resolved.max_units)
    if "target_difficulty" not in overrides:
        clamped["target_difficulty"] = min(resolved.target_difficulty, resolved.max_difficulty)
    resolved = replace(resolved, **clamped)
    check_thresholds(resolved)
    return resolved


def check_thresholds(thresholds: Thresholds) -> None:
    problems = []
    for name in ("target_units", "max_units", "target_difficulty", "max_difficulty"):
        if getattr(thresholds, name) <= 0:
            problems.append(f"{name} must be positive")
    if thresholds.min_units < 0:
        problems.append("min_units must not be negative")
    if thresholds.top_up_attempts < 0:
        problems.append("top_up_attempts must not be negative")
    if thresholds.min_units > thresholds.max_units:
        problems.append(f"min_units ({thresholds.min_units}) exceeds max_units ({thresholds.max_units})")
    if thresholds.target_units > thresholds.max_units:
        problems.append(f"target_units ({thresholds.target_units}) exceeds max_units ({thresholds.max_units})")
    if thresholds.target_difficulty > thresholds.max_difficulty:
        problems.append(
            f"target_difficulty ({thresholds.target_difficulty}) exceeds max_difficulty ({thresholds.max_difficulty})"
        )
    if problems:
        raise ConfigurationError("; ".join(problems))
