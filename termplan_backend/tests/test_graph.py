import pytest

from app.services.catalog import CourseCatalog, CourseCategory
from app.services.constraints import coreq_group
from app.services.graph import build_graph, build_planning_graph, prerequisites_met, topo_sort

from conftest import make_catalog, make_courses


def test_planning_graph_links_dependents_and_skips_optional_courses():
    catalog = make_catalog(
        {"id": "ELEC", "category": CourseCategory.OPTIONAL},
        {"id": "CS1"},
        {"id": "CS2", "prereqs": ["CS1"]},
        {"id": "CS3", "prereqs": ["CS1", "ELEC"]},
    )

    graph = build_planning_graph(catalog, placed={"CS1"})

    assert list(graph) == ["CS1", "CS2", "CS3"]
    assert graph["CS1"].dependents == ["CS2", "CS3"]
    assert graph["CS3"].prerequisites == ["CS1", "ELEC"]
    assert graph["CS1"].placed
    assert not graph["CS2"].placed


def test_missing_prerequisite_node_never_blocks():
    catalog = make_catalog(
        {"id": "ELEC", "category": CourseCategory.OPTIONAL},
        {"id": "ADV", "prereqs": ["ELEC"]},
        {"id": "CS1"},
        {"id": "CS2", "prereqs": ["CS1"]},
    )
    graph = build_planning_graph(catalog)

    assert prerequisites_met(graph["ADV"], set(), graph)
    assert not prerequisites_met(graph["CS2"], set(), graph)
    assert prerequisites_met(graph["CS2"], {"CS1"}, graph)


def test_topo_sort_orders_prerequisites_first():
    order = topo_sort(build_graph({"B": {"A"}, "C": {"B", "A"}, "A": set()}))

    assert order == ["A", "B", "C"]


def test_topo_sort_detects_cycles():
    with pytest.raises(ValueError):
        topo_sort(build_graph({"A": {"B"}, "B": {"A"}}))


def test_corequisite_group_is_transitive():
    catalog = make_catalog(
        {"id": "LAB", "coreqs": ["PHYS"]},
        {"id": "PHYS", "coreqs": ["LAB", "REC"]},
        {"id": "REC", "coreqs": ["PHYS"]},
        {"id": "SOLO"},
    )
    graph = build_planning_graph(catalog)

    assert coreq_group("REC", graph) == ["LAB", "PHYS", "REC"]
    assert coreq_group("SOLO", graph) == ["SOLO"]


def test_corequisite_group_follows_back_references():
    # Skip catalog validation to get a one-sided corequisite edge
    catalog = CourseCatalog(make_courses({"id": "X", "coreqs": ["Y"]}, {"id": "Y"}, {"id": "Z"}))
    graph = build_planning_graph(catalog)

    assert coreq_group("Y", graph) == ["X", "Y"]
    assert coreq_group("X", graph) == ["X", "Y"]


def test_corequisite_group_ignores_non_plannable_partners():
    catalog = make_catalog(
        {"id": "MAIN", "coreqs": ["OPT"]},
        {"id": "OPT", "coreqs": ["MAIN"], "category": CourseCategory.OPTIONAL},
    )
    graph = build_planning_graph(catalog)

    assert coreq_group("MAIN", graph) == ["MAIN"]
