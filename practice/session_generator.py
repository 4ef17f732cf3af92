"""
Session Generator - Builds mixed practice sessions.

A session is roughly 60% weak concepts (least mastered first), topped up
with concepts due for review and then a random sample of the rest. Items
are shuffled so weak and review work interleave.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from core.models import MasteryRecord
from core.scheduler import is_due
from mastery_store import MasteryStore

logger = logging.getLogger(__name__)


class PracticePriority(str, Enum):
    WEAK = "weak"
    REVIEW = "review"


@dataclass(frozen=True)
class PracticeItem:
    concept_id: str
    priority: PracticePriority


@dataclass
class PracticeSession:
    """Ordered practice items. Empty when the learner has studied nothing."""
    learner_id: str
    items: List[PracticeItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def concept_ids(self) -> List[str]:
        return [item.concept_id for item in self.items]

    @property
    def weak_count(self) -> int:
        return sum(1 for item in self.items if item.priority is PracticePriority.WEAK)

    def __len__(self) -> int:
        return len(self.items)


def weak_slot_count(requested_count: int) -> int:
    """ceil(0.6 * requested_count), in integer arithmetic."""
    return -(-requested_count * 3 // 5)


class SessionGenerator:
    """
    Composes mastery records into a bounded, de-duplicated practice set.

    Args:
        store: Mastery store to read records from
        clock: Returns the current time (for due checks)
        rng: Random source for sampling and shuffling; seed it for
            reproducible sessions
    """

    def __init__(self, store: MasteryStore, clock: Callable[[], datetime],
                 rng: Optional[random.Random] = None):
        self.store = store
        self.clock = clock
        self.rng = rng or random.Random()

    def generate_session(self, learner_id: str, requested_count: int) -> PracticeSession:
        session = PracticeSession(learner_id=learner_id)
        if requested_count <= 0:
            return session

        studied = self.store.list_exposed(learner_id)
        if not studied:
            logger.info("No studied concepts for %s; empty practice session", learner_id)
            return session

        weak = sorted(
            (r for r in studied if r.is_weak),
            key=lambda r: (r.mastery, r.concept_id),
        )
        eligible = sorted(
            (r for r in studied if not r.is_weak),
            key=lambda r: r.concept_id,
        )

        # Weak concepts, least mastered first
        chosen_weak = weak[:min(weak_slot_count(requested_count), len(weak))]
        remaining = requested_count - len(chosen_weak)

        # Due reviews first, then a random sample of the rest
        chosen_review = self._pick_reviews(eligible, remaining)

        items = [PracticeItem(r.concept_id, PracticePriority.WEAK) for r in chosen_weak]
        items += [PracticeItem(r.concept_id, PracticePriority.REVIEW) for r in chosen_review]
        self.rng.shuffle(items)

        session.items = items
        logger.debug(
            "Session for %s: %d weak + %d review (requested %d)",
            learner_id, len(chosen_weak), len(chosen_review), requested_count,
        )
        return session

    def _pick_reviews(self, eligible: List[MasteryRecord], slots: int) -> List[MasteryRecord]:
        if slots <= 0:
            return []

        now = self.clock()
        due = sorted(
            (r for r in eligible if is_due(r, now)),
            key=lambda r: (r.next_review_at, r.concept_id),
        )
        picked = due[:slots]

        if len(picked) < slots:
            picked_ids = {r.concept_id for r in picked}
            rest = [r for r in eligible if r.concept_id not in picked_ids]
            picked += self.rng.sample(rest, min(slots - len(picked), len(rest)))

        return picked
