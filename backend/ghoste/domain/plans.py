"""Subscription plans and their monthly credit allotments."""

from enum import StrEnum


class Plan(StrEnum):
    """Wallet plan tiers, lowest to highest."""

    OPERATOR = "operator"
    GROWTH = "growth"
    SCALE = "scale"


PLAN_MONTHLY_CREDITS: dict[Plan, int] = {
    Plan.OPERATOR: 30_000,
    Plan.GROWTH: 65_000,
    Plan.SCALE: 500_000,
}


def plan_allotment(plan: str) -> int:
    """Monthly credits granted to a plan. Unknown plans get the operator allotment."""
    try:
        return PLAN_MONTHLY_CREDITS[Plan(plan)]
    except ValueError:
        return PLAN_MONTHLY_CREDITS[Plan.OPERATOR]


def bypasses_balance(plan: str) -> bool:
    """Scale-tier wallets are never blocked on balance; usage is still recorded."""
    return plan == Plan.SCALE
