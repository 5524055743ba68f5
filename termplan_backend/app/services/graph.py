from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.catalog import Course, CourseCatalog


@dataclass
class PrereqGraph:
    nodes: set[str]
    edges: dict[str, set[str]]  # prereq -> dependents
    prereqs: dict[str, set[str]]  # course -> prereqs


def build_graph(prereq_map: dict[str, set[str]]) -> PrereqGraph:
    nodes = set(prereq_map.keys())
    edges: dict[str, set[str]] = defaultdict(set)
    prereqs: dict[str, set[str]] = defaultdict(set)

    for course, reqs in prereq_map.items():
        nodes.update(reqs)
        prereqs[course].update(reqs)
        for req in reqs:
            edges[req].add(course)

    return PrereqGraph(nodes=nodes, edges=edges, prereqs=prereqs)


def topo_sort(graph: PrereqGraph) -> list[str]:
    indegree = {n: 0 for n in graph.nodes}
    for course, reqs in graph.prereqs.items():
        indegree.setdefault(course, 0)
        for req in reqs:
            indegree[course] += 1

    queue = deque(sorted(n for n, d in indegree.items() if d == 0))
    order: list[str] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for nxt in sorted(graph.edges.get(node, set())):
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)

    if len(order) != len(indegree):
        raise ValueError("Cycle detected in prerequisites")

    return order


@dataclass
class PlanningNode:
    course: "Course"
    prerequisites: list[str]
    corequisites: list[str]
    original_order: int
    dependents: list[str] = field(default_factory=list)
    placed: bool = False
    unassigned_reason: str = ""

    @property
    def id(self) -> str:
        return self.course.id


PlanningGraph = dict[str, PlanningNode]


def build_planning_graph(catalog: "CourseCatalog", placed: set[str] | None = None) -> PlanningGraph:
    """One node per plannable course, in catalog order.

    `placed` holds ids already sitting in a term (locked or pinned); their
    nodes start out placed so the engine leaves them alone.
    """
    placed = placed or set()
    graph: PlanningGraph = {}
    for course in catalog.plannable():
        graph[course.id] = PlanningNode(
            course=course,
            prerequisites=list(course.prerequisites),
            corequisites=list(course.corequisites),
            original_order=course.original_order,
            placed=course.id in placed,
        )

    for node in graph.values():
        for prereq_id in node.prerequisites:
            if prereq_id in graph:
                graph[prereq_id].dependents.append(node.id)

    return graph


def prerequisites_met(node: PlanningNode, completed: set[str], graph: PlanningGraph) -> bool:
    # A prerequisite without a node (optional course) never blocks.
    return all(prereq_id in completed or prereq_id not in graph for prereq_id in node.prerequisites)
