import pytest

from app.services.catalog import CourseCategory
from app.services.errors import CatalogError, ConfigurationError, PlanningOperationError
from app.services.planner import OPTIONAL_NOT_PLANNED, PlanningSession
from app.services.terms import AcademicSystem
from app.services.thresholds import PlanningConfig

from conftest import make_courses

FIXED = PlanningConfig(min_units=12, target_units=13, max_units=15, target_difficulty=12, max_difficulty=15)


def _session(*entries, system=AcademicSystem.SEMESTER, years=4, config=FIXED):
    return PlanningSession.create(make_courses(*entries), system=system, years=years, config=config)


def test_invalid_catalog_never_produces_a_session():
    with pytest.raises(CatalogError) as excinfo:
        _session({"id": "X", "prereqs": ["X"]})

    assert excinfo.value.issues[0].course_id == "X"


def test_preassigned_labels_pin_courses():
    session = _session(
        {"id": "A", "taken": "Fall, Year 2"},
        {"id": "B", "taken": "sometime"},
        {"id": "C", "taken": "Winter Year 1"},
    )

    assert session.sequence.term_of("A").id == "fall2"
    assert "A" in session.sequence.get("fall2").pinned
    assert session.sequence.unassigned == ["B", "C"]


def test_auto_plan_keeps_pins_and_reports_diagnostics():
    session = _session(
        {"id": "A"},
        {"id": "B", "prereqs": ["A"]},
        {"id": "ELEC", "category": CourseCategory.OPTIONAL},
    )
    session.place_course("A", "spring1", pin=True)

    session.auto_plan()
    snapshot = session.snapshot()

    assert session.sequence.term_of("A").id == "spring1"
    assert session.sequence.term_of("B").id == "fall2"
    assert snapshot.unassigned == ["ELEC"]
    diagnostics = {d.course_id: d for d in snapshot.diagnostics}
    assert diagnostics["B"].status == "placed"
    assert diagnostics["B"].term_id == "fall2"
    assert diagnostics["ELEC"].status == "unassigned"
    assert diagnostics["ELEC"].reason == OPTIONAL_NOT_PLANNED


def test_auto_plan_is_idempotent():
    session = _session(
        {"id": "A"},
        {"id": "B", "prereqs": ["A"]},
        {"id": "C", "coreqs": ["D"]},
        {"id": "D", "coreqs": ["C"]},
        {"id": "E", "units": 6},
    )

    session.auto_plan()
    first = session.snapshot()
    session.auto_plan()

    assert session.snapshot() == first


def test_invalid_manual_placement_is_allowed_but_flagged():
    session = _session({"id": "A"}, {"id": "B", "prereqs": ["A"]})

    check = session.place_course("B", "fall1")

    assert not check.valid
    assert check.reason == "Missing prerequisite: A"
    assert session.sequence.term_of("B").id == "fall1"
    assert not session.diagnose("B").valid


def test_pinning_an_invalid_placement_changes_nothing():
    session = _session({"id": "A"}, {"id": "B", "prereqs": ["A"]})

    with pytest.raises(PlanningOperationError):
        session.place_course("B", "fall1", pin=True)

    assert session.sequence.term_of("B") is None
    assert session.sequence.unassigned == ["A", "B"]


def test_pin_requires_a_valid_placed_course():
    session = _session({"id": "A"}, {"id": "B", "prereqs": ["A"]})

    with pytest.raises(PlanningOperationError, match="unassigned"):
        session.pin_course("A")

    session.place_course("B", "fall1")
    with pytest.raises(PlanningOperationError, match="Missing prerequisite"):
        session.pin_course("B")

    session.place_course("A", "fall1")
    session.pin_course("A")
    assert session.sequence.get("fall1").pinned == {"A"}

    session.unpin_course("A")
    assert session.sequence.get("fall1").pinned == set()
    with pytest.raises(PlanningOperationError):
        session.unpin_course("A")


def test_lock_fails_when_a_member_is_invalid():
    session = _session({"id": "A"}, {"id": "B", "prereqs": ["A"]})
    session.place_course("A", "fall1")
    session.place_course("B", "fall1")

    with pytest.raises(PlanningOperationError, match="Cannot lock Fall Year 1"):
        session.lock_term("fall1")

    assert not session.sequence.get("fall1").locked


def test_locked_term_survives_planning_and_rejects_moves():
    session = _session(
        {"id": "E", "units": 4, "difficulty": 2},
        {"id": "F", "units": 5, "difficulty": 4},
        {"id": "G"},
    )
    session.place_course("E", "fall2")
    session.place_course("F", "fall2")
    session.lock_term("fall2")

    session.auto_plan()

    fall2 = session.sequence.get("fall2")
    assert fall2.courses == ["E", "F"]
    assert (fall2.units, fall2.difficulty) == (9, 6)
    with pytest.raises(PlanningOperationError):
        session.remove_course("E")
    with pytest.raises(PlanningOperationError):
        session.place_course("G", "fall2")

    session.unlock_term("fall2")
    session.remove_course("E")
    assert "E" in session.sequence.unassigned


def test_reset_clears_unlocked_terms_and_reapplies_labels():
    session = _session(
        {"id": "A", "taken": "Spring Year 1"},
        {"id": "B"},
        {"id": "C"},
    )
    session.place_course("B", "fall1", pin=True)
    session.place_course("C", "fall2")
    session.lock_term("fall2")

    session.reset_planning()

    assert session.sequence.term_of("A").id == "spring1"
    assert session.sequence.term_of("B") is None
    assert session.sequence.term_of("C").id == "fall2"


def test_reloading_the_catalog_keeps_locked_and_pinned_courses():
    session = _session({"id": "A"}, {"id": "B"}, {"id": "C"}, {"id": "D"})
    session.place_course("A", "fall1")
    session.lock_term("fall1")
    session.place_course("B", "spring1", pin=True)
    session.place_course("C", "spring1")

    session.load_catalog(
        make_courses(
            {"id": "A", "units": 5},
            {"id": "B", "units": 2},
            {"id": "C"},
            {"id": "NEW"},
        )
    )

    assert session.sequence.get("fall1").courses == ["A"]
    assert session.sequence.get("fall1").units == 5
    assert session.sequence.get("spring1").courses == ["B"]
    assert session.sequence.get("spring1").units == 2
    assert session.sequence.unassigned == ["C", "NEW"]


def test_bad_catalog_reload_leaves_the_session_alone():
    session = _session({"id": "A"})
    session.place_course("A", "fall1", pin=True)

    with pytest.raises(CatalogError):
        session.load_catalog(make_courses({"id": "A", "coreqs": ["A"]}))

    assert session.sequence.term_of("A").id == "fall1"
    assert session.catalog.ids == ["A"]


def test_rejected_configuration_keeps_the_previous_one():
    session = _session({"id": "A"})
    before = session.thresholds

    with pytest.raises(ConfigurationError):
        session.configure(min_units=20, max_units=10)

    assert session.thresholds == before
    assert session.config == FIXED


def test_configure_resizes_the_timeline():
    session = _session({"id": "A"}, {"id": "B"}, years=2)
    session.place_course("A", "fall1", pin=True)
    session.place_course("B", "spring2")

    thresholds = session.configure(years=1, max_units=18)

    assert [t.id for t in session.sequence.terms] == ["fall1", "spring1"]
    assert session.sequence.term_of("A").id == "fall1"
    assert session.sequence.unassigned == ["B"]
    assert thresholds.max_units == 18


def test_unknown_ids_raise_lookup_errors():
    session = _session({"id": "A"})

    with pytest.raises(LookupError):
        session.place_course("NOPE", "fall1")
    with pytest.raises(LookupError):
        session.place_course("A", "winter9")


def test_auto_plan_leaves_every_term_lockable():
    session = _session(
        {"id": "A"},
        {"id": "REQ", "coreqs": ["OPT"]},
        {"id": "OPT", "coreqs": ["REQ"], "category": CourseCategory.OPTIONAL},
    )

    session.auto_plan()

    assert session.sequence.term_of("REQ") is None
    assert session.diagnose("REQ").reason == "Coreq. OPT (optional) not scheduled."
    assert all(d.valid for d in session.snapshot().diagnostics)
    for term in session.sequence.terms:
        session.lock_term(term.id)


def test_zero_year_timeline_is_rejected():
    session = _session({"id": "A"}, years=2)

    with pytest.raises(PlanningOperationError, match="at least one year"):
        session.configure(years=0)

    assert session.sequence.years == 2
