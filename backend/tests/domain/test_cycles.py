"""Tests for billing-cycle arithmetic."""

from datetime import UTC, datetime

import pytest

from ghoste.domain.cycles import CycleReset, add_one_month, balance_drift, next_cycle

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("start", "expected"),
    [
        (datetime(2030, 6, 15, 9, 30, tzinfo=UTC), datetime(2030, 7, 15, 9, 30, tzinfo=UTC)),
        (datetime(2030, 12, 15, tzinfo=UTC), datetime(2031, 1, 15, tzinfo=UTC)),
        (datetime(2030, 1, 31, tzinfo=UTC), datetime(2030, 2, 28, tzinfo=UTC)),
        (datetime(2028, 1, 31, tzinfo=UTC), datetime(2028, 2, 29, tzinfo=UTC)),
        (datetime(2030, 3, 31, tzinfo=UTC), datetime(2030, 4, 30, tzinfo=UTC)),
    ],
)
def test_add_one_month(start, expected):
    assert add_one_month(start) == expected


def test_add_one_month_keeps_timezone():
    assert add_one_month(datetime(2030, 5, 1, tzinfo=UTC)).tzinfo is UTC


def test_balance_drift_zero_for_consistent_wallet():
    assert balance_drift(30_000, 800, 29_200) == 0


def test_balance_drift_negative_after_bypass():
    assert balance_drift(500_000, 3_800, 500_000) == -3_800


def test_next_cycle_none_before_cycle_end():
    end = datetime(2030, 7, 1, tzinfo=UTC)
    assert next_cycle("growth", end, datetime(2030, 6, 30, 23, 59, tzinfo=UTC)) is None


def test_next_cycle_at_cycle_end_grants_plan_allotment():
    now = datetime(2030, 7, 1, tzinfo=UTC)

    reset = next_cycle("growth", now, now)

    assert reset == CycleReset(
        monthly_credits=65_000,
        credits_remaining=65_000,
        credits_used=0,
        cycle_start=now,
        cycle_end=datetime(2030, 8, 1, tzinfo=UTC),
    )


def test_next_cycle_unknown_plan_gets_operator_allotment():
    now = datetime(2030, 7, 2, tzinfo=UTC)

    reset = next_cycle("legacy_pro", datetime(2030, 7, 1, tzinfo=UTC), now)

    assert reset.monthly_credits == 30_000
