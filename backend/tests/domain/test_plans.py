"""Tests for plan tiers."""

import pytest

from ghoste.domain.plans import PLAN_MONTHLY_CREDITS, Plan, bypasses_balance, plan_allotment

pytestmark = pytest.mark.unit


def test_every_plan_has_an_allotment():
    assert set(PLAN_MONTHLY_CREDITS) == set(Plan)


@pytest.mark.parametrize(
    ("plan", "credits"),
    [("operator", 30_000), ("growth", 65_000), ("scale", 500_000), ("enterprise", 30_000)],
)
def test_plan_allotment(plan, credits):
    assert plan_allotment(plan) == credits


def test_only_scale_bypasses_balance():
    assert bypasses_balance("scale") is True
    assert bypasses_balance(Plan.SCALE) is True
    assert bypasses_balance("growth") is False
    assert bypasses_balance("operator") is False
    assert bypasses_balance("SCALE") is False
