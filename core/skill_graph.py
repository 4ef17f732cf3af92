"""
Skill Graph - Manages the concept prerequisite DAG.

Features:
    - Registry loading with validation (duplicates, dangling ids, cycles)
    - Unlock checks and next-available concepts
    - Topological ordering via iterative three-colour DFS
    - Reinforcement targets, learning paths and skill-tree state

Queries never raise for unknown concept ids; they answer False or empty.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx
from pydantic import ValidationError

from .models import CategoryMap, Concept

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = Path(__file__).parent / "data" / "frontend_skill_graph.json"

# DFS colours
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


class SkillGraphError(ValueError):
    """The concept registry is malformed and cannot be loaded."""


class SkillGraph:
    """
    Directed acyclic graph of concepts.

    Edges point from a prerequisite to the concept that requires it, so
    predecessors are prerequisites and successors are the concepts a
    concept unlocks.
    """

    def __init__(self, concepts: Iterable[Concept]):
        """Build and validate the graph. Raises SkillGraphError if malformed."""
        self.graph = nx.DiGraph()
        self.concepts: Dict[str, Concept] = {}

        for concept in concepts:
            if concept.id in self.concepts:
                raise SkillGraphError(f"Duplicate concept id '{concept.id}'")
            self.concepts[concept.id] = concept
            self.graph.add_node(concept.id, phase=concept.phase)

        self._add_edges()
        self._order = self._compute_topological_order()

        logger.info(
            "Skill graph loaded: %d concepts, %d prerequisite edges",
            len(self.concepts), self.graph.number_of_edges(),
        )

    # ==================== Loading ====================

    @classmethod
    def from_dict(cls, data: dict) -> "SkillGraph":
        """Build from registry data: ``{"concepts": [...]}``."""
        concepts = []
        for raw in data.get("concepts", []):
            try:
                concepts.append(Concept.model_validate(raw))
            except ValidationError as exc:
                cid = raw.get("id", "?") if isinstance(raw, dict) else "?"
                raise SkillGraphError(f"Invalid concept '{cid}': {exc}") from exc
        return cls(concepts)

    @classmethod
    def from_file(cls, path) -> "SkillGraph":
        return load_registry(path)[0]

    def _add_edges(self):
        for cid, concept in self.concepts.items():
            for prereq in concept.prerequisites:
                if prereq not in self.concepts:
                    raise SkillGraphError(
                        f"Concept '{cid}' requires unknown concept '{prereq}'"
                    )
                self.graph.add_edge(prereq, cid)

            for target in concept.reinforces or ():
                if target not in self.concepts:
                    raise SkillGraphError(
                        f"Concept '{cid}' reinforces unknown concept '{target}'"
                    )

    def _compute_topological_order(self) -> List[str]:
        """
        Depth-first postorder over prerequisites with an explicit stack.

        Reaching a node that is still in progress means the prerequisite
        relation has a cycle.
        """
        colour = {cid: _UNVISITED for cid in self.concepts}
        order: List[str] = []

        for root in self.concepts:
            if colour[root] != _UNVISITED:
                continue

            colour[root] = _IN_PROGRESS
            path = [root]
            stack: List[Tuple[str, int]] = [(root, 0)]

            while stack:
                node, next_index = stack[-1]
                prereqs = self.concepts[node].prerequisites

                if next_index < len(prereqs):
                    stack[-1] = (node, next_index + 1)
                    child = prereqs[next_index]

                    if colour[child] == _IN_PROGRESS:
                        cycle = path[path.index(child):] + [child]
                        raise SkillGraphError(
                            "Prerequisite cycle: " + " -> ".join(reversed(cycle))
                        )
                    if colour[child] == _UNVISITED:
                        colour[child] = _IN_PROGRESS
                        path.append(child)
                        stack.append((child, 0))
                else:
                    stack.pop()
                    path.pop()
                    colour[node] = _DONE
                    order.append(node)

        return order

    # ==================== Unlocking ====================

    def can_unlock(self, concept_id: str, completed: Iterable[str]) -> bool:
        """True iff the concept exists and all its prerequisites are completed."""
        concept = self.concepts.get(concept_id)
        if concept is None:
            return False
        done = _as_set(completed)
        return all(prereq in done for prereq in concept.prerequisites)

    def next_available(self, completed: Iterable[str]) -> List[Concept]:
        """Concepts not yet completed whose prerequisites all are."""
        done = _as_set(completed)
        return [
            concept for cid, concept in self.concepts.items()
            if cid not in done and self.can_unlock(cid, done)
        ]

    def progress_percentage(self, completed: Iterable[str]) -> int:
        """Share of the registry completed, as a rounded percentage."""
        if not self.concepts:
            return 0
        done = _as_set(completed) & self.concepts.keys()
        return int(100 * len(done) / len(self.concepts) + 0.5)

    # ==================== Query Methods ====================

    def get_concept(self, concept_id: str) -> Optional[Concept]:
        return self.concepts.get(concept_id)

    def __contains__(self, concept_id) -> bool:
        return concept_id in self.concepts

    def __len__(self) -> int:
        return len(self.concepts)

    def topological_order(self) -> List[str]:
        """All concept ids, every prerequisite before its dependents."""
        return list(self._order)

    def get_prerequisites(self, concept_id: str) -> List[str]:
        """Immediate prerequisites (one level up)."""
        concept = self.concepts.get(concept_id)
        return list(concept.prerequisites) if concept else []

    def get_all_prerequisites(self, concept_id: str) -> Set[str]:
        """All prerequisites, transitively."""
        if concept_id not in self.concepts:
            return set()
        return nx.ancestors(self.graph, concept_id)

    def get_dependents(self, concept_id: str) -> List[str]:
        """Concepts that list this one as a direct prerequisite."""
        if concept_id not in self.concepts:
            return []
        return list(self.graph.successors(concept_id))

    def get_all_dependents(self, concept_id: str) -> Set[str]:
        if concept_id not in self.concepts:
            return set()
        return nx.descendants(self.graph, concept_id)

    def reinforcement_targets(self, concept_id: str) -> List[str]:
        """
        Concepts to revisit while studying this one.

        An explicit ``reinforces`` list wins, even when empty; otherwise the
        direct prerequisites are used.
        """
        concept = self.concepts.get(concept_id)
        if concept is None:
            return []
        if concept.reinforces is not None:
            return list(concept.reinforces)
        return list(concept.prerequisites)

    def concepts_by_phase(self) -> Dict[str, List[Concept]]:
        phases: Dict[str, List[Concept]] = {}
        for concept in self.concepts.values():
            phases.setdefault(concept.phase, []).append(concept)
        return phases

    # ==================== Learning Path ====================

    def learning_path(self, target_concept: str, completed: Iterable[str]) -> List[str]:
        """
        Ordered concepts still to study before (and including) the target.

        Only includes concepts not already completed.
        """
        if target_concept not in self.concepts:
            return []
        done = _as_set(completed)
        needed = self.get_all_prerequisites(target_concept)
        needed.add(target_concept)
        return [cid for cid in self._order if cid in needed and cid not in done]

    # ==================== Skill Tree ====================

    def skill_tree(self, completed: Iterable[str], mastery: Dict[str, int]) -> dict:
        """Nodes with completed/available/locked state plus prerequisite edges."""
        done = _as_set(completed)
        nodes = []

        for cid, concept in self.concepts.items():
            if cid in done:
                state = "completed"
            elif self.can_unlock(cid, done):
                state = "available"
            else:
                state = "locked"

            nodes.append({
                "id": cid,
                "label": concept.title,
                "phase": concept.phase,
                "state": state,
                "mastery": mastery.get(cid, 0),
            })

        edges = [{"source": s, "target": t} for s, t in self.graph.edges()]
        return {"nodes": nodes, "edges": edges}

    # ==================== Statistics ====================

    def get_stats(self) -> dict:
        phases = self.concepts_by_phase()
        return {
            "total_concepts": len(self.concepts),
            "total_edges": self.graph.number_of_edges(),
            "phases": list(phases.keys()),
            "concepts_per_phase": {p: len(c) for p, c in phases.items()},
            "max_depth": nx.dag_longest_path_length(self.graph) if self.concepts else 0,
        }


# ==================== Registry Loading ====================

def load_category_map(data: dict, graph: SkillGraph) -> CategoryMap:
    """Read ``categories`` from registry data, checking every id is known."""
    categories: CategoryMap = {}
    for name, concept_ids in data.get("categories", {}).items():
        unknown = [cid for cid in concept_ids if cid not in graph]
        if unknown:
            raise SkillGraphError(f"Category '{name}' lists unknown concepts: {unknown}")
        categories[name] = list(concept_ids)
    return categories


def load_registry(path=DEFAULT_REGISTRY) -> Tuple[SkillGraph, CategoryMap]:
    """
    Load a registry JSON file.

    Returns:
        (SkillGraph, CategoryMap) with categories in declared order
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise SkillGraphError(f"Cannot read concept registry {path}: {exc}") from exc

    graph = SkillGraph.from_dict(data)
    categories = load_category_map(data, graph)
    logger.info("Registry %s: %d categories", path.name, len(categories))
    return graph, categories


def _as_set(ids: Iterable[str]) -> Set[str]:
    return ids if isinstance(ids, (set, frozenset)) else set(ids)
