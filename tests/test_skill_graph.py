"""Tests for core/skill_graph.py"""

import json

import networkx as nx
import pytest

from core.skill_graph import DEFAULT_REGISTRY, SkillGraph, SkillGraphError, load_registry
from tests.conftest import SMALL_REGISTRY


def _registry(*concepts):
    return {"concepts": list(concepts)}


def _concept(cid, prereqs=(), **extra):
    return {"id": cid, "title": cid.title(), "phase": "p", "prerequisites": list(prereqs), **extra}


# ==================== Unlocking ====================

def test_concept_without_prerequisites_unlocks_immediately(graph):
    assert graph.can_unlock("A", []) is True


def test_concept_unlocks_once_prerequisites_completed(graph):
    assert graph.can_unlock("B", ["A"]) is True
    assert graph.can_unlock("B", []) is False


def test_can_unlock_requires_every_prerequisite(graph):
    assert graph.can_unlock("D", ["A", "B"]) is False
    assert graph.can_unlock("D", {"A", "B", "C"}) is True


def test_unknown_concept_never_unlocks(graph):
    assert graph.can_unlock("nope", ["A", "B", "C", "D", "E"]) is False


def test_can_unlock_matches_superset_of_prerequisites(graph):
    completed_sets = [set(), {"A"}, {"A", "B"}, {"A", "C"}, {"A", "B", "C"}, {"A", "B", "C", "D"}]
    for completed in completed_sets:
        for cid in graph.concepts:
            expected = set(graph.get_prerequisites(cid)) <= completed
            assert graph.can_unlock(cid, completed) is expected


def test_next_available_excludes_completed(graph):
    assert [c.id for c in graph.next_available([])] == ["A"]
    assert [c.id for c in graph.next_available(["A"])] == ["B", "C"]
    assert [c.id for c in graph.next_available(["A", "B"])] == ["C"]
    assert [c.id for c in graph.next_available(["A", "B", "C", "D", "E"])] == []


def test_progress_percentage(graph):
    assert graph.progress_percentage([]) == 0
    assert graph.progress_percentage(["A"]) == 20
    assert graph.progress_percentage(["A", "B", "C"]) == 60
    # Unknown ids do not count
    assert graph.progress_percentage(["A", "zzz"]) == 20


def test_progress_percentage_rounds_half_up():
    graph = SkillGraph.from_dict(_registry(*[_concept(f"c{i}") for i in range(8)]))
    # 1/8 = 12.5%
    assert graph.progress_percentage(["c0"]) == 13


# ==================== Ordering ====================

def test_topological_order_puts_prerequisites_first(graph):
    order = graph.topological_order()
    assert sorted(order) == ["A", "B", "C", "D", "E"]
    position = {cid: i for i, cid in enumerate(order)}
    for source, target in graph.graph.edges():
        assert position[source] < position[target]


def test_topological_order_is_a_copy(graph):
    graph.topological_order().clear()
    assert len(graph.topological_order()) == 5


def test_bundled_registry_is_acyclic():
    graph, categories = load_registry(DEFAULT_REGISTRY)
    assert nx.is_directed_acyclic_graph(graph.graph)
    for cid in graph.concepts:
        assert cid not in graph.get_all_prerequisites(cid)
    order = graph.topological_order()
    assert order.index("design-principles") < order.index("async-js")
    assert list(categories)[0] == "Foundation"


def test_deep_chain_does_not_recurse():
    chain = [_concept("n0")] + [_concept(f"n{i}", [f"n{i - 1}"]) for i in range(1, 5000)]
    graph = SkillGraph.from_dict(_registry(*reversed(chain)))
    order = graph.topological_order()
    assert order[0] == "n0"
    assert order[-1] == "n4999"


# ==================== Malformed Registries ====================

def test_cycle_is_rejected_at_load():
    data = _registry(_concept("x", ["z"]), _concept("y", ["x"]), _concept("z", ["y"]))
    with pytest.raises(SkillGraphError, match="cycle"):
        SkillGraph.from_dict(data)


def test_self_prerequisite_is_rejected():
    with pytest.raises(SkillGraphError):
        SkillGraph.from_dict(_registry(_concept("x", ["x"])))


def test_unknown_prerequisite_is_rejected():
    with pytest.raises(SkillGraphError, match="unknown concept 'ghost'"):
        SkillGraph.from_dict(_registry(_concept("x", ["ghost"])))


def test_unknown_reinforcement_target_is_rejected():
    with pytest.raises(SkillGraphError):
        SkillGraph.from_dict(_registry(_concept("x", reinforces=["ghost"])))


def test_duplicate_id_is_rejected():
    with pytest.raises(SkillGraphError, match="Duplicate"):
        SkillGraph.from_dict(_registry(_concept("x"), _concept("x")))


def test_missing_title_is_rejected():
    with pytest.raises(SkillGraphError, match="Invalid concept 'x'"):
        SkillGraph.from_dict(_registry({"id": "x", "phase": "p"}))


def test_category_with_unknown_concept_is_rejected(tmp_path):
    data = dict(SMALL_REGISTRY, categories={"Broken": ["A", "missing"]})
    path = tmp_path / "registry.json"
    path.write_text(json.dumps(data))
    with pytest.raises(SkillGraphError, match="Broken"):
        load_registry(path)


def test_unreadable_registry_is_a_config_error(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(SkillGraphError):
        load_registry(path)


# ==================== Queries ====================

def test_reinforcement_targets(graph):
    # Explicit list wins
    assert graph.reinforcement_targets("D") == ["A"]
    # Explicit empty list stays empty
    assert graph.reinforcement_targets("E") == []
    # Falls back to prerequisites
    assert graph.reinforcement_targets("B") == ["A"]
    assert graph.reinforcement_targets("unknown") == []


def test_prerequisite_and_dependent_queries(graph):
    assert graph.get_prerequisites("D") == ["B", "C"]
    assert graph.get_all_prerequisites("E") == {"A", "B", "C", "D"}
    assert sorted(graph.get_dependents("A")) == ["B", "C"]
    assert graph.get_all_dependents("C") == {"D", "E"}


def test_queries_on_unknown_ids_are_empty(graph):
    assert graph.get_concept("nope") is None
    assert graph.get_prerequisites("nope") == []
    assert graph.get_all_prerequisites("nope") == set()
    assert graph.get_dependents("nope") == []
    assert graph.learning_path("nope", []) == []


def test_learning_path_skips_completed(graph):
    assert graph.learning_path("D", ["A"]) in (["B", "C", "D"], ["C", "B", "D"])
    assert graph.learning_path("E", ["A", "B", "C", "D"]) == ["E"]


def test_concepts_by_phase(graph):
    phases = graph.concepts_by_phase()
    assert list(phases) == ["foundation", "core", "advanced"]
    assert [c.id for c in phases["core"]] == ["C", "D"]


def test_skill_tree_states(graph):
    tree = graph.skill_tree(["A"], {"A": 90, "B": 30})
    states = {n["id"]: n["state"] for n in tree["nodes"]}
    assert states == {"A": "completed", "B": "available", "C": "available",
                      "D": "locked", "E": "locked"}
    mastery = {n["id"]: n["mastery"] for n in tree["nodes"]}
    assert mastery["B"] == 30 and mastery["C"] == 0
    assert {"source": "A", "target": "B"} in tree["edges"]


def test_stats(graph):
    stats = graph.get_stats()
    assert stats["total_concepts"] == 5
    assert stats["total_edges"] == 5
    assert stats["max_depth"] == 3


def test_concept_aliases(graph):
    assert graph.get_concept("C").estimated_hours == 1.5
    assert graph.get_concept("A").reinforces is None
