"""
Mastery Update - Turns one exposure into a new mastery record.

Mastery is the sum of three bounded factors:
    exposure  min(exposures * 8, 40)     rewards repetition
    success   success_rate * 40          rewards accuracy
    recency   20, minus 2/day past a week rewards recent practice

The sum is rounded and clamped to [0, 100]. Nothing here touches storage;
the store applies ``apply_exposure`` inside its atomic update.
"""

import logging
import math
from datetime import datetime
from typing import Optional, Sequence

from .models import MasteryRecord
from .scheduler import REVIEW_INTERVALS, next_review_date

logger = logging.getLogger(__name__)


# Factor caps
EXPOSURE_POINTS = 8
MAX_EXPOSURE_FACTOR = 40
MAX_SUCCESS_FACTOR = 40
MAX_RECENCY_FACTOR = 20

# Recency stays full for this many days, then decays per day
RECENCY_GRACE_DAYS = 7
RECENCY_DECAY_PER_DAY = 2

SECONDS_PER_DAY = 86400


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def days_between(earlier: Optional[datetime], later: datetime) -> int:
    """Whole days elapsed, 0 when there is no earlier timestamp."""
    if earlier is None:
        return 0
    elapsed = (later - earlier).total_seconds()
    return max(0, math.floor(elapsed / SECONDS_PER_DAY))


def recency_factor(days_since_last: float) -> float:
    if days_since_last <= RECENCY_GRACE_DAYS:
        return MAX_RECENCY_FACTOR
    decay = RECENCY_DECAY_PER_DAY * (days_since_last - RECENCY_GRACE_DAYS)
    return max(0, MAX_RECENCY_FACTOR - decay)


def calculate_mastery(exposures: int, success_rate: float, days_since_last: float) -> int:
    """
    Mastery score from exposure count, accuracy and recency.

    Args:
        exposures: Total exposures including the current one
        success_rate: successes / exposures, in [0, 1]
        days_since_last: Days since the previous practice (0 on first exposure)

    Returns:
        Integer mastery in [0, 100]
    """
    exposure = min(exposures * EXPOSURE_POINTS, MAX_EXPOSURE_FACTOR)
    success = success_rate * MAX_SUCCESS_FACTOR
    recency = recency_factor(days_since_last)
    return int(clamp(round_half_up(exposure + success + recency)))


def apply_exposure(record: MasteryRecord, success: bool, now: datetime,
                   intervals: Sequence[int] = REVIEW_INTERVALS) -> MasteryRecord:
    """
    Compute the record that results from one more exposure.

    The input record is left untouched; a missing record should be passed
    in as a zero-state ``MasteryRecord``.
    """
    exposures = record.exposures + 1
    successes = record.successes + (1 if success else 0)
    failures = record.failures + (0 if success else 1)

    days_since_last = days_between(record.last_practiced_at, now)
    mastery = calculate_mastery(exposures, successes / exposures, days_since_last)

    updated = record.copy(
        exposures=exposures,
        successes=successes,
        failures=failures,
        mastery=mastery,
        last_practiced_at=now,
        next_review_at=next_review_date(mastery, now, intervals),
    )
    logger.debug(
        "Exposure %s/%s success=%s: mastery %d -> %d, next review %s",
        record.learner_id, record.concept_id, success,
        record.mastery, mastery, updated.next_review_at.isoformat(),
    )
    return updated
