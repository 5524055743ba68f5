import logging
from dataclasses import dataclass, field

from app.services.catalog import Course, CourseCatalog
from app.services.constraints import build_coreq_map, coreq_group
from app.services.graph import PlanningGraph, PlanningNode, build_planning_graph, prerequisites_met
from app.services.terms import Term, TermSequence, fits_capacity
from app.services.thresholds import Thresholds

logger = logging.getLogger(__name__)

NO_SUITABLE_TERM = "No suitable term (capacity/schedule)."
MAX_ITERATIONS_REACHED = "Max planning iterations reached."


@dataclass(frozen=True)
class ScoringWeights:
    # Fallback placement score
    under_min_bonus: int = 300
    reach_min_bonus: int = 150
    over_max_penalty: int = 1000
    within_target_difficulty_bonus: int = 100
    difficulty_overage_penalty: int = 30
    difficulty_headroom_bonus: int = 20
    difficulty_headroom_margin: int = 3
    unit_deviation_penalty: int = 10
    position_penalty: int = 15
    fallback_iteration_slack: int = 5

    # Final cleanup capacity preference
    cleanup_unit_weight: int = 10
    cleanup_headroom_weight: int = 5
    cleanup_position_weight: int = 15


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass
class ScheduleResult:
    graph: PlanningGraph
    forced: list[str] = field(default_factory=list)  # placed past the unit ceiling by final cleanup

    @property
    def unplaced(self) -> list[str]:
        return [node_id for node_id, node in self.graph.items() if not node.placed]

    @property
    def reasons(self) -> dict[str, str]:
        return {node_id: node.unassigned_reason for node_id, node in self.graph.items() if not node.placed}


def score_placement(
    term: Term,
    course: Course,
    position: int,
    thresholds: Thresholds,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Desirability of adding `course` to `term` during the fallback pass."""
    new_units = term.units + course.units
    new_difficulty = term.difficulty + course.difficulty
    score = 0

    if term.units < thresholds.min_units:
        score += weights.under_min_bonus
        if new_units >= thresholds.min_units:
            score += weights.reach_min_bonus
    elif new_units > thresholds.max_units:
        score -= weights.over_max_penalty

    if new_difficulty <= thresholds.target_difficulty:
        score += weights.within_target_difficulty_bonus
    else:
        score -= (new_difficulty - thresholds.target_difficulty) * weights.difficulty_overage_penalty

    if new_difficulty < thresholds.max_difficulty - weights.difficulty_headroom_margin:
        score += weights.difficulty_headroom_bonus

    score -= abs(new_units - thresholds.target_units) * weights.unit_deviation_penalty
    score -= position * weights.position_penalty
    return score


def capacity_preference(
    term: Term,
    position: int,
    thresholds: Thresholds,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Final cleanup score: emptier, easier, earlier terms win."""
    return (
        -term.units * weights.cleanup_unit_weight
        + (thresholds.max_difficulty - term.difficulty) * weights.cleanup_headroom_weight
        - position * weights.cleanup_position_weight
    )


def candidate_key(node: PlanningNode) -> tuple:
    return (node.original_order, -len(node.dependents), node.course.difficulty, node.id)


@dataclass
class _Group:
    members: list[str]  # not yet placed, catalog order
    anchor: Term | None = None  # term already holding part of the group
    anchored_by: str | None = None
    split: bool = False  # placed members already sit in different terms
    blocked_by: str | None = None  # optional corequisite that is not scheduled

    @property
    def placeable(self) -> bool:
        return not self.split and self.blocked_by is None


class PlacementEngine:
    """One automatic planning run over an already reset term sequence."""

    def __init__(
        self,
        catalog: CourseCatalog,
        sequence: TermSequence,
        thresholds: Thresholds,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.catalog = catalog
        self.sequence = sequence
        self.thresholds = thresholds
        self.weights = weights
        self.graph = build_planning_graph(catalog, placed=sequence.placed_ids())
        self.coreq_map = build_coreq_map(self.graph)
        self.forced: list[str] = []

    def run(self) -> ScheduleResult:
        completed = self.sequence.pre_term_courses()
        for term in self.sequence.main_terms():
            if not term.locked:
                added: set[str] = set()
                self.primary(term, completed, added)
                self.top_up(term, completed, added)
                if self.thresholds.max_unit_top_up:
                    self.max_unit_top_up(term, completed, added)
            completed.update(term.courses)

        logger.debug("Primary placement left %d course(s) unplaced", len(self._unplaced()))
        self.fallback()
        self.final_cleanup()
        self._explain(self._unplaced())
        self.sequence.refresh_unassigned(self.catalog)

        result = ScheduleResult(graph=self.graph, forced=self.forced)
        logger.info(
            "Planned %d of %d course(s); %d unplaced, %d forced over the unit ceiling",
            len(self.graph) - len(result.unplaced),
            len(self.graph),
            len(result.unplaced),
            len(self.forced),
        )
        return result

    # ── Phase 1-3: per-term filling ───────────────────────────────────────────

    def available(self, completed: set[str], added: set[str]) -> list[PlanningNode]:
        nodes = [
            node
            for node in self.graph.values()
            if not node.placed
            and node.id not in added
            and prerequisites_met(node, completed, self.graph)
        ]
        return sorted(nodes, key=candidate_key)

    def primary(self, term: Term, completed: set[str], added: set[str]) -> None:
        while True:
            candidates = self.available(completed, added)
            if not candidates:
                break
            placed = self._place_first(candidates, term, completed, self.thresholds.max_difficulty)
            if not placed:
                break
            added.update(placed)

    def top_up(self, term: Term, completed: set[str], added: set[str]) -> None:
        """Add courses while the term is under its minimum, up to the attempt limit."""
        attempts = 0
        while term.units < self.thresholds.min_units and attempts < self.thresholds.top_up_attempts:
            candidates = self.available(completed, added)
            if not candidates:
                break
            placed = self._place_first(candidates, term, completed, self.thresholds.max_difficulty)
            if not placed:
                break
            added.update(placed)
            attempts += 1

    def max_unit_top_up(self, term: Term, completed: set[str], added: set[str]) -> None:
        """Keep adding courses that fit the unit ceiling, difficulty ignored."""
        for _ in range(self.thresholds.top_up_attempts):
            candidates = self.available(completed, added)
            if not candidates:
                break
            placed = self._place_first(candidates, term, completed, None)
            if not placed:
                break
            added.update(placed)

    def _place_first(
        self,
        candidates: list[PlanningNode],
        term: Term,
        completed: set[str],
        max_difficulty: int | None,
    ) -> list[str]:
        for node in candidates:
            group = self.group(node.id)
            if not group.placeable or (group.anchor is not None and group.anchor is not term):
                continue
            members = [self.graph[m] for m in group.members]
            if not all(prerequisites_met(m, completed, self.graph) for m in members):
                continue
            if not fits_capacity(term, [m.course for m in members], self.thresholds.max_units, max_difficulty):
                continue
            self._place(group.members, term)
            return group.members
        return []

    # ── Phase 4: fallback best-fit search ─────────────────────────────────────

    def fallback(self) -> None:
        main = self.sequence.main_terms()
        unplaced = self._unplaced()
        budget = len(unplaced) + len(main) + self.weights.fallback_iteration_slack
        iterations = 0

        while unplaced and iterations < budget:
            progressed = False
            unplaced.sort(key=self._fallback_key)
            for node in unplaced:
                if node.placed:
                    continue
                group = self.group(node.id)
                term = self._best_fallback_term(group, main)
                if term is not None:
                    self._place(group.members, term)
                    progressed = True
                    break

            unplaced = self._unplaced()
            if not progressed and unplaced:
                self._explain(unplaced)
                break
            iterations += 1

        if unplaced and iterations >= budget:
            logger.warning("Fallback placement stopped after %d iteration(s)", iterations)
            for node in unplaced:
                if not node.unassigned_reason:
                    node.unassigned_reason = MAX_ITERATIONS_REACHED

    def _fallback_key(self, node: PlanningNode) -> tuple:
        unmet = sum(1 for p in node.prerequisites if p in self.graph and not self.graph[p].placed)
        return (node.original_order, unmet, node.course.difficulty)

    def _best_fallback_term(self, group: _Group, main: list[Term]) -> Term | None:
        if not group.placeable:
            return None
        courses = [self.graph[m].course for m in group.members]
        best_term = None
        best_score = float("-inf")
        for position, term in enumerate(main):
            if term.locked or (group.anchor is not None and group.anchor is not term):
                continue
            if not fits_capacity(term, courses, self.thresholds.max_units, self.thresholds.max_difficulty):
                continue
            if not self._prerequisites_ready(group, term):
                continue
            score = sum(
                score_placement(term, course, position, self.thresholds, self.weights) for course in courses
            ) / len(courses)
            if score > best_score:
                best_score = score
                best_term = term
        return best_term

    # ── Phase 5: final cleanup, unit ceiling ignored ──────────────────────────

    def final_cleanup(self) -> None:
        main = self.sequence.main_terms()
        for node in sorted(self._unplaced(), key=self._fallback_key):
            if node.placed:
                continue
            group = self.group(node.id)
            if not group.placeable:
                continue
            best_term = None
            best_score = float("-inf")
            for position, term in enumerate(main):
                if term.locked or (group.anchor is not None and group.anchor is not term):
                    continue
                if not self._prerequisites_ready(group, term):
                    continue
                score = capacity_preference(term, position, self.thresholds, self.weights)
                if score > best_score:
                    best_score = score
                    best_term = term
            if best_term is None:
                continue

            self._place(group.members, best_term)
            for member in group.members:
                self.graph[member].unassigned_reason = ""
            if best_term.units > self.thresholds.max_units or best_term.difficulty > self.thresholds.max_difficulty:
                self.forced.extend(group.members)
                logger.warning(
                    "Placed %s in %s beyond capacity (%d units, %d difficulty)",
                    ", ".join(group.members),
                    best_term.name,
                    best_term.units,
                    best_term.difficulty,
                )

    # ── Helpers ───────────────────────────────────────────────────────────────

    def group(self, course_id: str) -> _Group:
        members = coreq_group(course_id, self.graph, self.coreq_map)
        result = _Group(members=[m for m in members if not self.graph[m].placed])
        anchors = {}
        for member in members:
            if self.graph[member].placed:
                term = self.sequence.term_of(member)
                if term is not None:
                    anchors.setdefault(term.id, (term, member))

        # Optional corequisites are never auto-planned; the group follows them or waits
        for member in result.members:
            for coreq_id in self.graph[member].corequisites:
                if coreq_id in self.graph:
                    continue
                term = self.sequence.term_of(coreq_id)
                if term is None:
                    result.blocked_by = result.blocked_by or coreq_id
                else:
                    anchors.setdefault(term.id, (term, coreq_id))

        if len(anchors) > 1:
            result.split = True
        elif anchors:
            result.anchor, result.anchored_by = next(iter(anchors.values()))
        return result

    def _prerequisites_ready(self, group: _Group, term: Term) -> bool:
        completed = self.sequence.completed_before(term)
        return all(prerequisites_met(self.graph[m], completed, self.graph) for m in group.members)

    def _place(self, course_ids: list[str], term: Term) -> None:
        for course_id in course_ids:
            node = self.graph[course_id]
            self.sequence.place(node.course, term)
            node.placed = True

    def _unplaced(self) -> list[PlanningNode]:
        return [node for node in self.graph.values() if not node.placed]

    def _explain(self, nodes: list[PlanningNode]) -> None:
        scheduled = self.sequence.placed_ids()
        for node in nodes:
            if not node.unassigned_reason:
                node.unassigned_reason = self._reason_for(node, scheduled)

    def _reason_for(self, node: PlanningNode, scheduled: set[str]) -> str:
        for prereq_id in node.prerequisites:
            if prereq_id in self.graph and not self.graph[prereq_id].placed:
                return f"Prereq. {prereq_id} not scheduled."
            prereq = self.catalog.get(prereq_id)
            if prereq is not None and not prereq.plannable and prereq_id not in scheduled:
                return f"Prereq. {prereq_id} (optional) not taken."

        group = self.group(node.id)
        if group.blocked_by is not None:
            return f"Coreq. {group.blocked_by} (optional) not scheduled."
        if group.split:
            return "Corequisites are scheduled in different terms."
        if group.anchor is not None:
            return f"Coreq. {group.anchored_by} is fixed in {group.anchor.name}."
        for member in group.members:
            if member == node.id:
                continue
            for prereq_id in self.graph[member].prerequisites:
                if prereq_id in self.graph and not self.graph[prereq_id].placed:
                    return f"Coreq. {member} waits on prereq. {prereq_id}."
        return NO_SUITABLE_TERM


def plan_terms(
    catalog: CourseCatalog,
    sequence: TermSequence,
    thresholds: Thresholds,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScheduleResult:
    """Reset the sequence and run every placement phase over it."""
    sequence.reset_for_planning(catalog)
    return PlacementEngine(catalog, sequence, thresholds, weights).run()
