"""Tests for core/scheduler.py"""

from datetime import timedelta

import pytest

from core.models import MasteryRecord
from core.scheduler import (
    LEGACY_REVIEW_INTERVALS,
    REVIEW_INTERVALS,
    interval_days,
    is_due,
    mastery_band,
    next_review_date,
    validate_intervals,
)
from tests.conftest import NOW


def test_bands_are_fifteen_points_wide():
    assert mastery_band(0) == 0
    assert mastery_band(14) == 0
    assert mastery_band(15) == 1
    assert mastery_band(68) == 4
    assert mastery_band(89) == 5
    assert mastery_band(90) == 6
    assert mastery_band(100) == 6


def test_interval_table():
    assert [interval_days(m) for m in (0, 15, 30, 45, 60, 75, 90)] == [1, 2, 4, 7, 14, 30, 60]


def test_intervals_never_shrink_as_mastery_grows():
    for table in (REVIEW_INTERVALS, LEGACY_REVIEW_INTERVALS):
        days = [interval_days(m, table) for m in range(0, 101)]
        assert days == sorted(days)


def test_legacy_table_caps_at_last_band():
    assert interval_days(100, LEGACY_REVIEW_INTERVALS) == 60
    assert mastery_band(100, LEGACY_REVIEW_INTERVALS) == 5


def test_next_review_date_adds_band_interval():
    assert next_review_date(68, NOW) == NOW + timedelta(days=14)
    assert next_review_date(5, NOW) == NOW + timedelta(days=1)


@pytest.mark.parametrize("table", [(), (1, 0), (3, 2, 5)])
def test_invalid_tables_are_rejected(table):
    with pytest.raises(ValueError):
        validate_intervals(table)


def test_is_due():
    record = MasteryRecord("u", "A", exposures=1, successes=1, mastery=68,
                           last_practiced_at=NOW, next_review_at=NOW + timedelta(days=14))
    assert not is_due(record, NOW)
    assert is_due(record, NOW + timedelta(days=14))
    assert is_due(record, NOW + timedelta(days=20))


def test_record_without_review_date_is_never_due():
    assert not is_due(MasteryRecord("u", "A"), NOW)
    assert not is_due(None, NOW)
