"""Shared fixtures: a small concept graph, a fixed clock and an in-memory store."""

import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import MasteryRecord
from core.skill_graph import SkillGraph
from mastery_store import InMemoryMasteryStore
from tracker import LearningTracker

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

SMALL_REGISTRY = {
    "concepts": [
        {"id": "A", "title": "Alpha", "phase": "foundation", "prerequisites": [], "estimatedHours": 2},
        {"id": "B", "title": "Beta", "phase": "foundation", "prerequisites": ["A"], "estimatedHours": 3},
        {"id": "C", "title": "Gamma", "phase": "core", "prerequisites": ["A"], "estimatedHours": 1.5},
        {"id": "D", "title": "Delta", "phase": "core", "prerequisites": ["B", "C"],
         "estimatedHours": 4, "reinforces": ["A"]},
        {"id": "E", "title": "Epsilon", "phase": "advanced", "prerequisites": ["D"],
         "estimatedHours": 5, "reinforces": []},
    ],
    "categories": {
        "Foundation": ["A", "B"],
        "Core": ["C", "D"],
        "Advanced": ["E"],
    },
}

SMALL_CATEGORIES = SMALL_REGISTRY["categories"]


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, hours: float = 0):
        self.now += timedelta(days=days, hours=hours)


def seed_record(store, learner_id, concept_id, mastery, exposures=1, successes=None,
                next_review_at=None, last_practiced_at=NOW):
    """Write a record straight into a store, bypassing the mastery formula."""
    if successes is None:
        successes = exposures
    store.update(learner_id, concept_id, lambda r: MasteryRecord(
        learner_id=learner_id,
        concept_id=concept_id,
        exposures=exposures,
        successes=successes,
        failures=exposures - successes,
        mastery=mastery,
        last_practiced_at=last_practiced_at,
        next_review_at=next_review_at or NOW + timedelta(days=30),
    ))


@pytest.fixture()
def clock():
    return FixedClock()


@pytest.fixture()
def graph():
    return SkillGraph.from_dict(SMALL_REGISTRY)


@pytest.fixture()
def store():
    return InMemoryMasteryStore()


@pytest.fixture()
def tracker(graph, store, clock):
    return LearningTracker(
        graph=graph,
        categories=SMALL_CATEGORIES,
        store=store,
        clock=clock,
        rng=random.Random(7),
    )
