"""
Learning Tracker - The operations callers use.

Wires the skill graph, mastery store, scheduler, session generator,
recommender and readiness evaluator together. Learner identity comes from the
caller; nothing here authenticates.

Flow for an exposure:
    record_exposure -> apply_exposure (mastery + next review) -> store.update
"""

import logging
import random
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

import redis

from config import Settings, setup_logging
from core.mastery import apply_exposure
from core.models import CategoryMap, Concept, MasteryRecord
from core.scheduler import REVIEW_INTERVALS, is_due, validate_intervals
from core.skill_graph import SkillGraph, load_registry
from mastery_store import InMemoryMasteryStore, MasteryStore, RedisMasteryStore
from practice.readiness import (
    CategoryScore,
    Difficulty,
    GapResult,
    LearningStats,
    ReadinessEvaluator,
    ReadinessResult,
)
from practice.recommender import Recommendation, Recommender, ReinforcementTarget
from practice.session_generator import PracticeSession, SessionGenerator

logger = logging.getLogger(__name__)


class UnknownConceptError(KeyError):
    """Exposure reported for a concept id that is not in the registry."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LearningTracker:
    """
    Records exposures and answers progress queries for any learner.

    Args:
        graph: Concept registry
        categories: Ordered category map for radar/gap aggregation
        store: Mastery store (injected; never global)
        clock: Returns the current time; defaults to UTC now
        rng: Random source for practice sessions
        intervals: Review interval table
    """

    def __init__(
        self,
        graph: SkillGraph,
        categories: CategoryMap,
        store: MasteryStore,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
        intervals: Sequence[int] = REVIEW_INTERVALS,
    ):
        self.graph = graph
        self.categories = categories
        self.store = store
        self.clock = clock
        self.intervals = validate_intervals(intervals)

        self.sessions = SessionGenerator(store, clock, rng)
        self.recommender = Recommender(graph, store, clock)
        self.evaluator = ReadinessEvaluator(store, categories, clock)

    # ==================== Exposures ====================

    def record_exposure(self, learner_id: str, concept_id: str, success: bool) -> MasteryRecord:
        """
        Record one attempt at a concept and return the updated record.

        Raises:
            UnknownConceptError: if the concept is not in the registry
            StoreUnavailableError: if persistence fails (safe to retry)
        """
        if concept_id not in self.graph:
            raise UnknownConceptError(concept_id)

        now = self.clock()
        record = self.store.update(
            learner_id,
            concept_id,
            lambda current: apply_exposure(current, success, now, self.intervals),
        )

        logger.info(
            "Exposure recorded: learner=%s concept=%s success=%s mastery=%d status=%s",
            learner_id, concept_id, success, record.mastery, record.status.value,
        )
        return record

    # ==================== Progress ====================

    def get_progress(self, learner_id: str) -> List[MasteryRecord]:
        """All studied concepts, most recently practiced first."""
        records = self.store.list_exposed(learner_id)
        records.sort(key=lambda r: r.last_practiced_at, reverse=True)
        return records

    def get_due_for_review(self, learner_id: str) -> List[MasteryRecord]:
        """Records due for review, most overdue first."""
        now = self.clock()
        due = [r for r in self.store.list_exposed(learner_id) if is_due(r, now)]
        due.sort(key=lambda r: (r.next_review_at, r.concept_id))
        return due

    def get_next_concepts(self, completed: Iterable[str]) -> List[Concept]:
        return self.graph.next_available(completed)

    def get_skill_tree(self, learner_id: str, completed: Iterable[str]) -> dict:
        mastery = {r.concept_id: r.mastery for r in self.store.list_exposed(learner_id)}
        return self.graph.skill_tree(completed, mastery)

    # ==================== Practice ====================

    def get_mixed_practice(self, learner_id: str, count: int = 5) -> PracticeSession:
        """
        Mixed practice session of at most ``count`` concepts.

        An empty session means the learner has not studied anything yet and
        should be sent to start learning instead.
        """
        return self.sessions.generate_session(learner_id, count)

    def get_recommendations(self, learner_id: str,
                            completed: Optional[Iterable[str]] = None) -> List[Recommendation]:
        return self.recommender.recommend(learner_id, completed)

    def get_reinforcement_queue(self, learner_id: str, current_concept_id: str,
                                limit: int = 3) -> List[ReinforcementTarget]:
        return self.recommender.reinforcement_queue(learner_id, current_concept_id, limit)

    def get_struggling_concepts(self, learner_id: str, limit: int = 5) -> List[MasteryRecord]:
        return self.recommender.struggling_concepts(learner_id, limit)

    # ==================== Evaluation ====================

    def get_readiness(self, learner_id: str, role: str = "frontend") -> ReadinessResult:
        return self.evaluator.readiness(learner_id, role)

    def get_skill_radar(self, learner_id: str) -> List[CategoryScore]:
        return self.evaluator.skill_radar(learner_id)

    def get_gaps(self, learner_id: str) -> GapResult:
        return self.evaluator.gaps(learner_id)

    def get_learning_stats(self, learner_id: str) -> LearningStats:
        return self.evaluator.learning_stats(learner_id)

    def get_difficulty_level(self, learner_id: str) -> Difficulty:
        return self.evaluator.difficulty_level(learner_id)


# ==================== Factory ====================

def build_store(settings: Settings) -> MasteryStore:
    if settings.mastery_backend == "redis":
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
            decode_responses=True,
        )
        logger.info("Using Redis mastery store at %s:%d", settings.redis_host, settings.redis_port)
        return RedisMasteryStore(client)

    logger.info("Using in-memory mastery store")
    return InMemoryMasteryStore()


def build_tracker(settings: Optional[Settings] = None) -> LearningTracker:
    """
    Build a tracker from settings (read from the environment by default).

    Also configures the root logger at ``settings.log_level``.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    graph, categories = load_registry(settings.skill_graph_path)

    if settings.session_seed is not None:
        rng = random.Random(settings.session_seed)
    else:
        rng = random.Random()

    return LearningTracker(
        graph=graph,
        categories=categories,
        store=build_store(settings),
        rng=rng,
    )
