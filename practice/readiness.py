"""
Readiness Evaluator - Aggregates mastery into categories and a single score.

Features:
    - Category scores and skill radar (declared category order)
    - Role readiness from mastery, coverage and consistency
    - Gap detection (weak categories, weakest first)
    - Learning statistics and difficulty level
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List

from core.mastery import clamp, round_half_up
from core.models import CategoryMap, MasteryRecord
from core.scheduler import is_due
from mastery_store import MasteryStore

logger = logging.getLogger(__name__)


# Concepts a learner is expected to have touched per target role
ROLE_EXPECTATIONS = {
    "frontend": 20,
    "backend": 25,
    "fullstack": 40,
}
DEFAULT_EXPECTED_CONCEPTS = 20

# Readiness weights
MASTERY_WEIGHT = 0.4
COVERAGE_WEIGHT = 0.3
CONSISTENCY_WEIGHT = 0.3

# Categories below this score are gaps
GAP_THRESHOLD = 50

NO_GAPS_MESSAGE = "No major gaps identified!"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


@dataclass(frozen=True)
class CategoryScore:
    category: str
    score: int


@dataclass
class ReadinessResult:
    overall: int
    level: str
    role: str
    breakdown: Dict[str, int] = field(default_factory=dict)  # mastery, coverage, consistency


@dataclass
class GapResult:
    gaps: List[CategoryScore]
    recommendation: str

    @property
    def has_gaps(self) -> bool:
        return bool(self.gaps)


@dataclass
class LearningStats:
    total_practiced: int = 0
    average_mastery: int = 0
    total_exposures: int = 0
    total_successes: int = 0
    total_failures: int = 0
    mastered_count: int = 0  # >= 80
    proficient_count: int = 0  # 60-79
    learning_count: int = 0  # 40-59
    struggling_count: int = 0  # < 40
    due_for_review: int = 0
    success_rate: int = 0  # percent


def expected_concept_count(role: str) -> int:
    return ROLE_EXPECTATIONS.get(role, DEFAULT_EXPECTED_CONCEPTS)


def readiness_level(overall: float) -> str:
    if overall >= 80:
        return "Ready"
    if overall >= 60:
        return "Almost Ready"
    if overall >= 40:
        return "In Progress"
    return "Just Started"


class ReadinessEvaluator:
    """
    Category and readiness metrics over a learner's mastery records.

    Args:
        store: Mastery store to read from
        categories: Ordered category -> concept ids
        clock: Current time, for due-for-review counts
    """

    def __init__(self, store: MasteryStore, categories: CategoryMap,
                 clock: Callable[[], datetime]):
        self.store = store
        self.categories = categories
        self.clock = clock

    # ==================== Categories ====================

    def category_score(self, learner_id: str, category: str) -> int:
        """Rounded average mastery over the category's studied concepts."""
        return self._category_score(self._exposed_by_id(learner_id), category)

    def skill_radar(self, learner_id: str) -> List[CategoryScore]:
        exposed = self._exposed_by_id(learner_id)
        return [
            CategoryScore(category=name, score=self._category_score(exposed, name))
            for name in self.categories
        ]

    def gaps(self, learner_id: str) -> GapResult:
        """Categories under the gap threshold, weakest first."""
        gaps = [c for c in self.skill_radar(learner_id) if c.score < GAP_THRESHOLD]
        gaps.sort(key=lambda c: c.score)

        if not gaps:
            return GapResult(gaps=[], recommendation=NO_GAPS_MESSAGE)

        top = gaps[0]
        return GapResult(
            gaps=gaps,
            recommendation=f"Focus on {top.category} first - currently at {top.score}%",
        )

    def _category_score(self, exposed: Dict[str, MasteryRecord], category: str) -> int:
        masteries = [
            exposed[cid].mastery
            for cid in self.categories.get(category, [])
            if cid in exposed
        ]
        if not masteries:
            return 0
        return round_half_up(sum(masteries) / len(masteries))

    # ==================== Readiness ====================

    def readiness(self, learner_id: str, role: str = "frontend") -> ReadinessResult:
        """
        Job readiness score (0-100) for a target role.

        Combines:
        - Mastery: average mastery over studied concepts
        - Coverage: studied concepts vs the role's expected count
        - Consistency: share of successful exposures
        """
        exposed = self.store.list_exposed(learner_id)

        if exposed:
            mastery_score = sum(r.mastery for r in exposed) / len(exposed)
        else:
            mastery_score = 0.0

        coverage_score = min(100.0, 100.0 * len(exposed) / expected_concept_count(role))

        successes = sum(r.successes for r in exposed)
        failures = sum(r.failures for r in exposed)
        consistency_score = 100.0 * successes / max(1, successes + failures)

        overall = round_half_up(clamp(
            mastery_score * MASTERY_WEIGHT
            + coverage_score * COVERAGE_WEIGHT
            + consistency_score * CONSISTENCY_WEIGHT
        ))

        logger.debug("Readiness %s (%s): %d", learner_id, role, overall)
        return ReadinessResult(
            overall=overall,
            level=readiness_level(overall),
            role=role,
            breakdown={
                "mastery": round_half_up(mastery_score),
                "coverage": round_half_up(coverage_score),
                "consistency": round_half_up(consistency_score),
            },
        )

    # ==================== Statistics ====================

    def learning_stats(self, learner_id: str) -> LearningStats:
        exposed = self.store.list_exposed(learner_id)
        if not exposed:
            return LearningStats()

        now = self.clock()
        successes = sum(r.successes for r in exposed)
        failures = sum(r.failures for r in exposed)
        attempts = successes + failures

        return LearningStats(
            total_practiced=len(exposed),
            average_mastery=round_half_up(sum(r.mastery for r in exposed) / len(exposed)),
            total_exposures=sum(r.exposures for r in exposed),
            total_successes=successes,
            total_failures=failures,
            mastered_count=sum(1 for r in exposed if r.mastery >= 80),
            proficient_count=sum(1 for r in exposed if 60 <= r.mastery < 80),
            learning_count=sum(1 for r in exposed if 40 <= r.mastery < 60),
            struggling_count=sum(1 for r in exposed if r.mastery < 40),
            due_for_review=sum(1 for r in exposed if is_due(r, now)),
            success_rate=round_half_up(100 * successes / attempts) if attempts else 0,
        )

    def difficulty_level(self, learner_id: str) -> Difficulty:
        """Pick practice difficulty from average mastery and success rate."""
        exposed = self.store.list_exposed(learner_id)
        if not exposed:
            return Difficulty.EASY

        avg_mastery = sum(r.mastery for r in exposed) / len(exposed)
        avg_success = sum(r.success_rate for r in exposed) / len(exposed)
        score = avg_mastery * 0.6 + avg_success * 100 * 0.4

        if score >= 80:
            return Difficulty.EXPERT
        if score >= 60:
            return Difficulty.HARD
        if score >= 40:
            return Difficulty.MEDIUM
        return Difficulty.EASY

    def _exposed_by_id(self, learner_id: str) -> Dict[str, MasteryRecord]:
        return {r.concept_id: r for r in self.store.list_exposed(learner_id)}
