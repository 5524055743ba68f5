from collections import deque

from app.services.graph import PlanningGraph


def build_coreq_map(graph: PlanningGraph) -> dict[str, set[str]]:
    """Undirected corequisite adjacency between graph nodes.

    Forward edges come from each node's own list; the reverse index covers
    nodes that are only named by others.
    """
    mapping: dict[str, set[str]] = {node_id: set() for node_id in graph}
    for node_id, node in graph.items():
        for coreq in node.corequisites:
            if coreq not in graph or coreq == node_id:
                continue
            mapping[node_id].add(coreq)
            mapping[coreq].add(node_id)
    return mapping


def coreq_group(
    course_id: str,
    graph: PlanningGraph,
    coreq_map: dict[str, set[str]] | None = None,
) -> list[str]:
    """Transitive corequisite closure of `course_id`, in catalog order."""
    if course_id not in graph:
        return [course_id]
    if coreq_map is None:
        coreq_map = build_coreq_map(graph)

    seen = {course_id}
    queue = deque([course_id])
    while queue:
        current = queue.popleft()
        for other in coreq_map.get(current, ()):
            if other not in seen:
                seen.add(other)
                queue.append(other)

    return sorted(seen, key=lambda cid: (graph[cid].original_order, cid))
