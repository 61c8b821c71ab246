"""SpendLedger port and its Postgres implementation.

The ledger is the only durable state behind the wallet gate. ``charge`` is
where atomicity lives: the debit and the transaction insert happen inside
one database transaction, and the debit is a conditional UPDATE so two
concurrent charges can never take a wallet below zero.
"""

from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghoste.credits.errors import CostNotFoundError, InsufficientCreditsError, WalletNotFoundError
from ghoste.db.models.credit_cost import CreditCost
from ghoste.db.models.credit_transaction import CreditTransaction
from ghoste.db.models.user_wallet import UserWallet
from ghoste.domain.cycles import balance_drift, next_cycle
from ghoste.schemas.credits import ChargeResult, CreditCostEntry, CreditTransactionEntry, Wallet

logger = structlog.get_logger(__name__)

CYCLE_RESET_FEATURE_KEY = "cycle_reset"


class SpendLedger(Protocol):
    """Persistence boundary for wallets, costs and credit transactions."""

    async def fetch_wallet(self, user_id: str) -> Wallet | None: ...

    async def create_wallet(self, wallet: Wallet) -> Wallet:
        """Insert ``wallet`` unless one exists for the user; return the stored row."""
        ...

    async def fetch_credit_costs(self) -> list[CreditCostEntry]: ...

    async def record_bypass(
        self, user_id: str, feature_key: str, cost: int, metadata: dict[str, Any]
    ) -> Wallet:
        """Log usage without debiting: ``credits_used += cost``, balance untouched."""
        ...

    async def charge(self, user_id: str, feature_key: str, metadata: dict[str, Any]) -> ChargeResult:
        """Atomically debit the feature's current cost and append a transaction.

        Returns the new ``credits_remaining`` and the cost actually applied,
        which can differ from a cached cost table.
        """
        ...

    async def list_transactions(self, user_id: str, limit: int = 50) -> list[CreditTransactionEntry]: ...

    async def roll_expired_cycles(self, now: datetime | None = None) -> int: ...


def _to_entry(row: CreditTransaction) -> CreditTransactionEntry:
    return CreditTransactionEntry(
        id=row.id,
        user_id=row.user_id,
        feature_key=row.feature_key,
        credits_used=row.credits_used,
        balance_before=row.balance_before,
        balance_after=row.balance_after,
        metadata=row.meta or {},
        created_at=row.created_at,
    )


class SqlLedger:
    """SpendLedger backed by the user_wallets / credit_costs / credit_transactions tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def fetch_wallet(self, user_id: str) -> Wallet | None:
        async with self.session_factory() as session:
            row = await session.get(UserWallet, user_id)
            return Wallet.model_validate(row) if row else None

    async def create_wallet(self, wallet: Wallet) -> Wallet:
        # Race-safe: a concurrent first read may insert the same user
        stmt = (
            insert(UserWallet)
            .values(
                user_id=wallet.user_id,
                plan=wallet.plan,
                monthly_credits=wallet.monthly_credits,
                credits_remaining=wallet.credits_remaining,
                credits_used=wallet.credits_used,
                cycle_start=wallet.cycle_start,
                cycle_end=wallet.cycle_end,
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()
            row = await session.get(UserWallet, wallet.user_id, populate_existing=True)
            return Wallet.model_validate(row)

    async def fetch_credit_costs(self) -> list[CreditCostEntry]:
        async with self.session_factory() as session:
            result = await session.execute(select(CreditCost).order_by(CreditCost.feature_key))
            return [CreditCostEntry.model_validate(row) for row in result.scalars().all()]

    async def record_bypass(
        self, user_id: str, feature_key: str, cost: int, metadata: dict[str, Any]
    ) -> Wallet:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(UserWallet)
                    .where(UserWallet.user_id == user_id)
                    .values(
                        credits_used=UserWallet.credits_used + cost,
                        updated_at=datetime.now(UTC),
                    )
                    .returning(UserWallet)
                    .execution_options(synchronize_session=False)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    raise WalletNotFoundError(user_id)

                session.add(
                    CreditTransaction(
                        user_id=user_id,
                        feature_key=feature_key,
                        credits_used=cost,
                        balance_before=row.credits_remaining,
                        balance_after=row.credits_remaining,
                        meta=metadata,
                    )
                )
                return Wallet.model_validate(row)

    async def charge(self, user_id: str, feature_key: str, metadata: dict[str, Any]) -> ChargeResult:
        async with self.session_factory() as session:
            async with session.begin():
                cost_row = await session.get(CreditCost, feature_key)
                if cost_row is None:
                    raise CostNotFoundError(feature_key)
                cost = cost_row.credit_cost

                result = await session.execute(
                    update(UserWallet)
                    .where(
                        UserWallet.user_id == user_id,
                        UserWallet.credits_remaining >= cost,
                    )
                    .values(
                        credits_remaining=UserWallet.credits_remaining - cost,
                        credits_used=UserWallet.credits_used + cost,
                        updated_at=datetime.now(UTC),
                    )
                    .returning(UserWallet.credits_remaining)
                    .execution_options(synchronize_session=False)
                )
                remaining = result.scalar_one_or_none()

                if remaining is None:
                    current = await session.scalar(
                        select(UserWallet.credits_remaining).where(UserWallet.user_id == user_id)
                    )
                    if current is None:
                        raise WalletNotFoundError(user_id)
                    raise InsufficientCreditsError(cost, current, feature_key)

                session.add(
                    CreditTransaction(
                        user_id=user_id,
                        feature_key=feature_key,
                        credits_used=cost,
                        balance_before=remaining + cost,
                        balance_after=remaining,
                        meta=metadata,
                    )
                )

        logger.debug("spend_credits", user_id=user_id, feature_key=feature_key, cost=cost, remaining=remaining)
        return ChargeResult(remaining=remaining, cost=cost)

    async def list_transactions(self, user_id: str, limit: int = 50) -> list[CreditTransactionEntry]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CreditTransaction)
                .where(CreditTransaction.user_id == user_id)
                .order_by(CreditTransaction.created_at.desc())
                .limit(limit)
            )
            return [_to_entry(row) for row in result.scalars().all()]

    async def roll_expired_cycles(self, now: datetime | None = None) -> int:
        """Reset every wallet whose cycle has ended. Returns the number reset.

        Each wallet is reset in its own transaction, guarded on the cycle_end
        value that was read, so a concurrent reset of the same wallet is a no-op.
        """
        now = now or datetime.now(UTC)

        async with self.session_factory() as session:
            result = await session.execute(select(UserWallet).where(UserWallet.cycle_end <= now))
            expired = [Wallet.model_validate(row) for row in result.scalars().all()]

        reset_count = 0
        for wallet in expired:
            reset = next_cycle(wallet.plan, wallet.cycle_end, now)
            if reset is None:
                continue

            drift = balance_drift(wallet.monthly_credits, wallet.credits_used, wallet.credits_remaining)
            bound = logger.bind(user_id=wallet.user_id, plan=wallet.plan)
            if drift:
                bound.info("wallet_balance_drift", drift=drift)

            async with self.session_factory() as session:
                async with session.begin():
                    updated = await session.execute(
                        update(UserWallet)
                        .where(
                            UserWallet.user_id == wallet.user_id,
                            UserWallet.cycle_end == wallet.cycle_end,
                        )
                        .values(
                            monthly_credits=reset.monthly_credits,
                            credits_remaining=reset.credits_remaining,
                            credits_used=reset.credits_used,
                            cycle_start=reset.cycle_start,
                            cycle_end=reset.cycle_end,
                            updated_at=now,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if updated.rowcount == 0:
                        bound.info("wallet_cycle_reset_skipped", reason="concurrent_reset")
                        continue

                    session.add(
                        CreditTransaction(
                            user_id=wallet.user_id,
                            feature_key=CYCLE_RESET_FEATURE_KEY,
                            credits_used=0,
                            balance_before=wallet.credits_remaining,
                            balance_after=reset.credits_remaining,
                            meta={
                                "plan": wallet.plan,
                                "previous_cycle_end": wallet.cycle_end.isoformat(),
                                "previous_credits_used": wallet.credits_used,
                                "drift": drift,
                            },
                        )
                    )

            reset_count += 1
            bound.info("wallet_cycle_reset", new_cycle_end=reset.cycle_end.isoformat())

        return reset_count
