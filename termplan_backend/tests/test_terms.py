import pytest

from app.services.terms import AcademicSystem, TermSequence, fits_capacity, parse_term_label

from conftest import make_catalog


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Fall, Year 2", "fall2"),
        ("fall year 2", "fall2"),
        ("WINTER Year 1", "winter1"),
        ("  Spring,Year 10 ", "spring10"),
        ("Summer Year 3", "summer3"),
        ("Autumn Year 1", None),
        ("Fall 2024", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_term_label(label, expected):
    assert parse_term_label(label) == expected


def test_quarter_sequence_order_and_pre_terms():
    sequence = TermSequence.build(AcademicSystem.QUARTER, 4)

    assert len(sequence.terms) == 16
    orders = {t.id: t.order for t in sequence.terms}
    assert orders["summer1"] == 0
    assert orders["fall1"] == 1
    assert orders["winter1"] == 2
    assert orders["spring1"] == 3
    assert orders["fall2"] == 5
    assert [t.id for t in sequence.terms if t.pre_term] == ["summer1", "summer2", "summer3", "summer4"]
    assert sequence.get("fall1").name == "Fall Year 1"
    assert [t.id for t in sequence.main_terms()][:4] == ["fall1", "winter1", "spring1", "fall2"]


def test_semester_sequence_has_no_pre_terms():
    sequence = TermSequence.build(AcademicSystem.SEMESTER, 2)

    assert [(t.id, t.order) for t in sequence.chronological()] == [
        ("fall1", 0),
        ("spring1", 1),
        ("fall2", 2),
        ("spring2", 3),
    ]
    assert not any(t.pre_term for t in sequence.terms)


def test_pre_term_courses_count_as_completed_for_every_term():
    catalog = make_catalog({"id": "A"}, {"id": "B"}, {"id": "C"})
    sequence = TermSequence.build(AcademicSystem.QUARTER, 2, catalog.ids)
    sequence.place(catalog.get("A"), sequence.get("summer2"))
    sequence.place(catalog.get("B"), sequence.get("fall1"))

    assert sequence.completed_before(sequence.get("fall1")) == {"A"}
    assert sequence.completed_before(sequence.get("winter1")) == {"A", "B"}
    assert sequence.unassigned == ["C"]


def test_place_keeps_running_totals():
    catalog = make_catalog({"id": "A", "units": 4, "difficulty": 2}, {"id": "B", "units": 5, "difficulty": 4})
    sequence = TermSequence.build(AcademicSystem.SEMESTER, 1, catalog.ids)
    fall, spring = sequence.get("fall1"), sequence.get("spring1")

    sequence.place(catalog.get("A"), fall)
    sequence.place(catalog.get("B"), fall)
    sequence.place(catalog.get("A"), spring)

    assert (fall.courses, fall.units, fall.difficulty) == (["B"], 5, 4)
    assert (spring.courses, spring.units, spring.difficulty) == (["A"], 4, 2)
    assert sequence.term_of("A") is spring


def test_reset_for_planning_keeps_locked_terms_and_pins():
    catalog = make_catalog({"id": "A"}, {"id": "B"}, {"id": "C"}, {"id": "D"})
    sequence = TermSequence.build(AcademicSystem.SEMESTER, 2, catalog.ids)
    fall1, spring1 = sequence.get("fall1"), sequence.get("spring1")
    sequence.place(catalog.get("A"), fall1)
    sequence.place(catalog.get("B"), fall1)
    fall1.locked = True
    sequence.place(catalog.get("C"), spring1, pinned=True)
    sequence.place(catalog.get("D"), spring1)

    sequence.reset_for_planning(catalog)

    assert fall1.courses == ["A", "B"]
    assert fall1.units == 8
    assert spring1.courses == ["C"]
    assert spring1.pinned == {"C"}
    assert (spring1.units, spring1.difficulty) == (4, 3)
    assert sequence.unassigned == ["D"]


def test_fits_capacity_checks_units_and_difficulty():
    catalog = make_catalog(
        {"id": "A", "units": 8, "difficulty": 5},
        {"id": "B", "units": 6, "difficulty": 5},
        {"id": "C", "units": 1, "difficulty": 9},
    )
    sequence = TermSequence.build(AcademicSystem.SEMESTER, 1)
    term = sequence.get("fall1")
    term.add(catalog.get("A"))

    assert fits_capacity(term, [catalog.get("B")], max_units=15, max_difficulty=15)
    assert not fits_capacity(term, [catalog.get("B"), catalog.get("C")], max_units=15, max_difficulty=15)
    assert not fits_capacity(term, [catalog.get("C")], max_units=15, max_difficulty=12)
    assert fits_capacity(term, [catalog.get("C")], max_units=15, max_difficulty=None)


def test_resized_sequence_keeps_surviving_terms():
    catalog = make_catalog({"id": "A"}, {"id": "B"})
    sequence = TermSequence.build(AcademicSystem.SEMESTER, 2, catalog.ids)
    sequence.place(catalog.get("A"), sequence.get("fall1"), pinned=True)
    sequence.get("fall1").locked = True
    sequence.place(catalog.get("B"), sequence.get("spring2"))

    resized = sequence.resized(AcademicSystem.SEMESTER, 1, catalog)

    assert [t.id for t in resized.terms] == ["fall1", "spring1"]
    assert resized.get("fall1").courses == ["A"]
    assert resized.get("fall1").locked
    assert resized.get("fall1").pinned == {"A"}
    assert resized.unassigned == ["B"]
