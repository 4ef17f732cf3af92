"""
Review Scheduler - Spaced repetition intervals keyed by mastery.

Mastery [0, 100] is cut into bands of 15 points; each band maps to a review
interval in days. Higher mastery never yields a shorter interval.
"""

import math
from datetime import datetime, timedelta
from typing import Optional, Sequence

from .models import MasteryRecord


# Days until the next review, indexed by mastery band
REVIEW_INTERVALS = (1, 2, 4, 7, 14, 30, 60)

# Older, coarser table; swap it in by passing it as ``intervals``
LEGACY_REVIEW_INTERVALS = (1, 3, 7, 14, 30, 60)

BAND_WIDTH = 15


def validate_intervals(intervals: Sequence[int]) -> Sequence[int]:
    """
    Check an interval table before it is used for scheduling.

    Raises:
        ValueError: if the table is empty, has a non-positive entry, or
            ever decreases.
    """
    if not intervals:
        raise ValueError("review interval table is empty")
    if any(days <= 0 for days in intervals):
        raise ValueError(f"review intervals must be positive: {list(intervals)}")
    if any(a > b for a, b in zip(intervals, intervals[1:])):
        raise ValueError(f"review intervals must be non-decreasing: {list(intervals)}")
    return intervals


def mastery_band(mastery: float, intervals: Sequence[int] = REVIEW_INTERVALS) -> int:
    """Band index for a mastery score, capped at the last table entry."""
    band = math.floor(max(0, mastery) / BAND_WIDTH)
    return min(band, len(intervals) - 1)


def interval_days(mastery: float, intervals: Sequence[int] = REVIEW_INTERVALS) -> int:
    """Days between a practice at this mastery and its next review."""
    return intervals[mastery_band(mastery, intervals)]


def next_review_date(mastery: float, last_practiced_at: datetime,
                     intervals: Sequence[int] = REVIEW_INTERVALS) -> datetime:
    """
    When a concept practiced at ``last_practiced_at`` is next due.

    Args:
        mastery: Mastery score after the practice
        last_practiced_at: Time of the practice
        intervals: Interval table (defaults to REVIEW_INTERVALS)

    Returns:
        last_practiced_at plus the band's interval
    """
    return last_practiced_at + timedelta(days=interval_days(mastery, intervals))


def is_due(record: Optional[MasteryRecord], now: datetime) -> bool:
    """True when the record has a review date that is not in the future."""
    if record is None or record.next_review_at is None:
        return False
    return record.next_review_at <= now
