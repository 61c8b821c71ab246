"""InMemoryLedger: dict-backed SpendLedger for tests and local development.

Mirrors SqlLedger semantics, including the conditional debit, without a
database. Each mutating call holds one asyncio.Lock so interleaved charges
in the same event loop behave like serialized transactions.
"""

import asyncio
import uuid
from datetime import UTC, datetime
from typing import Any

from ghoste.credits.errors import CostNotFoundError, InsufficientCreditsError, WalletNotFoundError
from ghoste.credits.ledger import CYCLE_RESET_FEATURE_KEY
from ghoste.domain.cycles import balance_drift, next_cycle
from ghoste.schemas.credits import ChargeResult, CreditCostEntry, CreditTransactionEntry, Wallet


class InMemoryLedger:
    """SpendLedger held in process memory.

    Counters (``fetch_wallet_calls``, ``fetch_costs_calls``) let tests assert
    how often the gate reached the ledger.
    """

    def __init__(
        self,
        wallets: list[Wallet] | None = None,
        costs: list[CreditCostEntry] | None = None,
    ):
        self.wallets: dict[str, Wallet] = {w.user_id: w for w in wallets or []}
        self.costs: dict[str, CreditCostEntry] = {c.feature_key: c for c in costs or []}
        self.transactions: list[CreditTransactionEntry] = []
        self.fetch_wallet_calls = 0
        self.fetch_costs_calls = 0
        self._lock = asyncio.Lock()

    async def fetch_wallet(self, user_id: str) -> Wallet | None:
        self.fetch_wallet_calls += 1
        wallet = self.wallets.get(user_id)
        return wallet.model_copy() if wallet else None

    async def create_wallet(self, wallet: Wallet) -> Wallet:
        async with self._lock:
            now = datetime.now(UTC)
            stored = self.wallets.setdefault(
                wallet.user_id,
                wallet.model_copy(update={"created_at": now, "updated_at": now}),
            )
            return stored.model_copy()

    async def fetch_credit_costs(self) -> list[CreditCostEntry]:
        self.fetch_costs_calls += 1
        return [self.costs[key].model_copy() for key in sorted(self.costs)]

    async def record_bypass(
        self, user_id: str, feature_key: str, cost: int, metadata: dict[str, Any]
    ) -> Wallet:
        async with self._lock:
            wallet = self.wallets.get(user_id)
            if wallet is None:
                raise WalletNotFoundError(user_id)

            wallet = wallet.model_copy(
                update={"credits_used": wallet.credits_used + cost, "updated_at": datetime.now(UTC)}
            )
            self.wallets[user_id] = wallet
            self._append(user_id, feature_key, cost, wallet.credits_remaining, wallet.credits_remaining, metadata)
            return wallet.model_copy()

    async def charge(self, user_id: str, feature_key: str, metadata: dict[str, Any]) -> ChargeResult:
        async with self._lock:
            cost_entry = self.costs.get(feature_key)
            if cost_entry is None:
                raise CostNotFoundError(feature_key)
            cost = cost_entry.credit_cost

            wallet = self.wallets.get(user_id)
            if wallet is None:
                raise WalletNotFoundError(user_id)
            if wallet.credits_remaining < cost:
                raise InsufficientCreditsError(cost, wallet.credits_remaining, feature_key)

            before = wallet.credits_remaining
            wallet = wallet.model_copy(
                update={
                    "credits_remaining": before - cost,
                    "credits_used": wallet.credits_used + cost,
                    "updated_at": datetime.now(UTC),
                }
            )
            self.wallets[user_id] = wallet
            self._append(user_id, feature_key, cost, before, wallet.credits_remaining, metadata)
            return ChargeResult(remaining=wallet.credits_remaining, cost=cost)

    async def list_transactions(self, user_id: str, limit: int = 50) -> list[CreditTransactionEntry]:
        mine = [t for t in self.transactions if t.user_id == user_id]
        return list(reversed(mine))[:limit]

    async def roll_expired_cycles(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        reset_count = 0

        async with self._lock:
            for user_id, wallet in list(self.wallets.items()):
                reset = next_cycle(wallet.plan, wallet.cycle_end, now)
                if reset is None:
                    continue

                self.wallets[user_id] = wallet.model_copy(
                    update={
                        "monthly_credits": reset.monthly_credits,
                        "credits_remaining": reset.credits_remaining,
                        "credits_used": reset.credits_used,
                        "cycle_start": reset.cycle_start,
                        "cycle_end": reset.cycle_end,
                        "updated_at": now,
                    }
                )
                self._append(
                    user_id,
                    CYCLE_RESET_FEATURE_KEY,
                    0,
                    wallet.credits_remaining,
                    reset.credits_remaining,
                    {
                        "plan": wallet.plan,
                        "previous_cycle_end": wallet.cycle_end.isoformat(),
                        "previous_credits_used": wallet.credits_used,
                        "drift": balance_drift(wallet.monthly_credits, wallet.credits_used, wallet.credits_remaining),
                    },
                )
                reset_count += 1

        return reset_count

    def _append(
        self,
        user_id: str,
        feature_key: str,
        credits_used: int,
        balance_before: int,
        balance_after: int,
        metadata: dict[str, Any],
    ) -> None:
        self.transactions.append(
            CreditTransactionEntry(
                id=uuid.uuid4(),
                user_id=user_id,
                feature_key=feature_key,
                credits_used=credits_used,
                balance_before=balance_before,
                balance_after=balance_after,
                metadata=dict(metadata),
                created_at=datetime.now(UTC),
            )
        )
