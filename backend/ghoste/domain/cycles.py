"""Billing-cycle arithmetic for credit wallets.

Pure domain functions: no DB access, deterministic given ``now``.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime

from ghoste.domain.plans import plan_allotment


@dataclass(frozen=True)
class CycleReset:
    """Wallet values to write when a billing cycle rolls over."""

    monthly_credits: int
    credits_remaining: int
    credits_used: int
    cycle_start: datetime
    cycle_end: datetime


def add_one_month(dt: datetime) -> datetime:
    """Same instant one calendar month later, day clamped to the month's end.

    Jan 31 -> Feb 28 (or 29), Dec 15 -> Jan 15 of the next year.
    """
    year = dt.year + dt.month // 12
    month = dt.month % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def balance_drift(monthly_credits: int, credits_used: int, credits_remaining: int) -> int:
    """How far a wallet is from ``used + remaining == monthly``.

    Zero for a consistent wallet. Negative after scale-tier bypasses (usage
    counted without a debit), positive after a plan upgrade mid-cycle.
    """
    return monthly_credits - (credits_used + credits_remaining)


def next_cycle(plan: str, cycle_end: datetime, now: datetime) -> CycleReset | None:
    """Return reset values if the cycle ending at ``cycle_end`` has expired.

    Returns None while ``now < cycle_end``. The new cycle starts at ``now``
    and grants the plan's full allotment with usage zeroed.
    """
    if now < cycle_end:
        return None

    allotment = plan_allotment(plan)
    return CycleReset(
        monthly_credits=allotment,
        credits_remaining=allotment,
        credits_used=0,
        cycle_start=now,
        cycle_end=add_one_month(now),
    )
