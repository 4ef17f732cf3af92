"""
Recommender - What should the learner do next?

Ranking, highest first:
    1. Weak concepts (mastery < 50)           priority high
    2. Concepts due for spaced review         priority medium
    3. Newly unlockable concepts              priority normal
    4. A mixed practice session (3+ studied)  priority normal

Also answers which concepts to fold into a lesson as reinforcement and which
concepts the learner keeps failing.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from core.models import MasteryRecord, MasteryStatus
from core.scheduler import is_due
from core.skill_graph import SkillGraph
from mastery_store import MasteryStore

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 5

# Studied concepts needed before mixed practice is suggested
MIXED_PRACTICE_MIN_STUDIED = 3

# Struggling = practiced this often and still below this mastery
STRUGGLING_MIN_EXPOSURES = 3
STRUGGLING_MASTERY = 40


@dataclass(frozen=True)
class Recommendation:
    type: str  # review, spaced-review, new, practice, caught_up
    title: str
    reason: str
    priority: str  # high, medium, normal
    concept_id: Optional[str] = None


ALL_CAUGHT_UP = Recommendation(
    type="caught_up",
    title="All caught up",
    reason="Nothing is weak or due, and no new concepts are unlocked right now",
    priority="normal",
)


@dataclass(frozen=True)
class ReinforcementTarget:
    concept_id: str
    mastery: int
    reason: str  # weak, due-for-review


class Recommender:
    def __init__(self, graph: SkillGraph, store: MasteryStore,
                 clock: Callable[[], datetime]):
        self.graph = graph
        self.store = store
        self.clock = clock

    def recommend(self, learner_id: str,
                  completed: Optional[Iterable[str]] = None) -> List[Recommendation]:
        """
        Up to five ranked recommendations, or the all-caught-up sentinel.

        Args:
            learner_id: Learner to rank for
            completed: Concepts treated as completed when finding unlockable
                ones; defaults to the learner's mastered concepts
        """
        studied = self.store.list_exposed(learner_id)
        now = self.clock()

        if completed is None:
            completed = {r.concept_id for r in studied if r.status is MasteryStatus.MASTERED}

        candidates: List[Recommendation] = []

        # 1. Weak concepts, least mastered first
        for record in sorted(studied, key=lambda r: (r.mastery, r.concept_id)):
            if record.is_weak:
                candidates.append(Recommendation(
                    type="review",
                    concept_id=record.concept_id,
                    title=self._title(record.concept_id),
                    reason=f"Mastery at {record.mastery}% - needs practice",
                    priority="high",
                ))

        # 2. Due for spaced repetition, most overdue first
        due = sorted(
            (r for r in studied if is_due(r, now)),
            key=lambda r: (r.next_review_at, r.concept_id),
        )
        for record in due:
            candidates.append(Recommendation(
                type="spaced-review",
                concept_id=record.concept_id,
                title=self._title(record.concept_id),
                reason="Due for spaced repetition review",
                priority="medium",
            ))

        # 3. Next concepts in the learning path, not yet started
        started = {r.concept_id for r in studied}
        for concept in self.graph.next_available(completed):
            if concept.id in started:
                continue
            candidates.append(Recommendation(
                type="new",
                concept_id=concept.id,
                title=concept.title,
                reason=f"Next in your learning path ({concept.estimated_hours:g}h)",
                priority="normal",
            ))

        # 4. Mixed practice once enough has been studied
        if len(studied) >= MIXED_PRACTICE_MIN_STUDIED:
            candidates.append(Recommendation(
                type="practice",
                title="Mixed Practice Session",
                reason="Reinforce multiple concepts together",
                priority="normal",
            ))

        recommendations = _dedupe(candidates)[:MAX_RECOMMENDATIONS]
        logger.debug("Recommendations for %s: %d of %d candidates",
                     learner_id, len(recommendations), len(candidates))

        if not recommendations:
            return [ALL_CAUGHT_UP]
        return recommendations

    # ==================== Reinforcement ====================

    def reinforcement_queue(self, learner_id: str, current_concept_id: str,
                            limit: int = 3) -> List[ReinforcementTarget]:
        """
        Studied concepts worth revisiting during a lesson on another concept.

        Weak or due concepts other than the current one, lowest mastery
        first, then soonest review.
        """
        now = self.clock()
        picked = [
            r for r in self.store.list_exposed(learner_id)
            if r.concept_id != current_concept_id and (r.is_weak or is_due(r, now))
        ]
        picked.sort(key=lambda r: (r.mastery, r.next_review_at or now, r.concept_id))

        return [
            ReinforcementTarget(
                concept_id=r.concept_id,
                mastery=r.mastery,
                reason="weak" if r.is_weak else "due-for-review",
            )
            for r in picked[:limit]
        ]

    def struggling_concepts(self, learner_id: str, limit: int = 5) -> List[MasteryRecord]:
        """Concepts practiced repeatedly that are still low, worst success rate first."""
        struggling = [
            r for r in self.store.list_exposed(learner_id)
            if r.exposures >= STRUGGLING_MIN_EXPOSURES and r.mastery < STRUGGLING_MASTERY
        ]
        struggling.sort(key=lambda r: (r.success_rate, r.concept_id))
        return struggling[:limit]

    def _title(self, concept_id: str) -> str:
        concept = self.graph.get_concept(concept_id)
        return concept.title if concept else concept_id


def _dedupe(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Keep the first (highest ranked) entry per concept."""
    seen = set()
    unique = []
    for rec in recommendations:
        if rec.concept_id is not None:
            if rec.concept_id in seen:
                continue
            seen.add(rec.concept_id)
        unique.append(rec)
    return unique

