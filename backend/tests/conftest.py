"""Shared test fixtures for all test groups."""

from datetime import UTC, datetime

import pytest

from ghoste.credits.cache import MemoryCostCache
from ghoste.credits.memory import InMemoryLedger
from ghoste.credits.service import WalletGate
from ghoste.schemas.credits import CreditCostEntry, Wallet

CYCLE_START = datetime(2030, 6, 1, tzinfo=UTC)
CYCLE_END = datetime(2030, 7, 1, tzinfo=UTC)


class FakeClock:
    """Settable stand-in for time.time()."""

    def __init__(self, now: float = 1_900_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_wallet(user_id: str, plan: str = "operator", remaining: int = 30_000, used: int = 0, **kw) -> Wallet:
    monthly = kw.pop("monthly_credits", remaining + used)
    return Wallet(
        user_id=user_id,
        plan=plan,
        monthly_credits=monthly,
        credits_remaining=remaining,
        credits_used=used,
        cycle_start=kw.pop("cycle_start", CYCLE_START),
        cycle_end=kw.pop("cycle_end", CYCLE_END),
        **kw,
    )


@pytest.fixture
def sample_costs() -> list[CreditCostEntry]:
    return [
        CreditCostEntry(feature_key="ai_cover_art_generate", credit_cost=800),
        CreditCostEntry(feature_key="smart_link_create", credit_cost=100),
        CreditCostEntry(feature_key="meta_ad_campaign", credit_cost=3000),
        CreditCostEntry(feature_key="free_preview", credit_cost=0),
    ]


@pytest.fixture
def ledger(sample_costs) -> InMemoryLedger:
    """Ledger with one wallet per plan tier."""
    return InMemoryLedger(
        wallets=[
            make_wallet("user-growth", plan="growth", remaining=500, used=64_500),
            make_wallet("user-scale", plan="scale", remaining=500, used=499_500),
            make_wallet("user-operator", plan="operator", remaining=30_000),
        ],
        costs=sample_costs,
    )


@pytest.fixture
def cost_cache() -> MemoryCostCache:
    return MemoryCostCache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_gate(ledger, cost_cache, clock):
    """Factory: ``make_gate("user-growth")`` builds a gate for that caller."""

    def _make(caller: str | None = None, **kwargs) -> WalletGate:
        kwargs.setdefault("cache_ttl_seconds", 600)
        kwargs.setdefault("clock", clock)
        return WalletGate(ledger, cost_cache, caller=caller, **kwargs)

    return _make


@pytest.fixture
def wallet_factory():
    """``make_wallet`` as a fixture, for tests that build their own ledger."""
    return make_wallet
