"""WalletGate: plan-tiered spend authorization over a credit ledger.

Decision sequence for ``charge_credits``:
  1. no caller                     -> UnauthorizedError
  2. wallet cannot be resolved     -> WalletNotFoundError
  3. feature cost is 0             -> allowed, nothing recorded
  4. plan is scale                 -> allowed, usage logged, balance untouched
  5. credits_remaining < cost      -> InsufficientCreditsError
  6. otherwise                     -> ledger.charge (atomic debit + transaction)

The gate owns no state besides the injected cost cache. Concurrent charges
against one wallet are serialized by the ledger, not here.
"""

import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from ghoste.core.config import get_settings
from ghoste.credits.cache import CostCache
from ghoste.credits.errors import InsufficientCreditsError, UnauthorizedError, WalletNotFoundError
from ghoste.credits.ledger import SpendLedger
from ghoste.domain.cycles import add_one_month
from ghoste.domain.plans import Plan, bypasses_balance
from ghoste.schemas.credits import ChargeResult, CreditCostEntry, CreditTransactionEntry, Wallet

logger = structlog.get_logger(__name__)

_COST_TABLE = TypeAdapter(list[CreditCostEntry])


class WalletGate:
    """Gate a caller's paid actions behind their remaining credits.

    One gate per request: ``caller`` is the authenticated user id, or None
    for an anonymous request.
    """

    def __init__(
        self,
        ledger: SpendLedger,
        cost_cache: CostCache,
        caller: str | None = None,
        cache_ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = get_settings()
        self.ledger = ledger
        self.cost_cache = cost_cache
        self.caller = caller
        self.cache_ttl_seconds = (
            cache_ttl_seconds if cache_ttl_seconds is not None else settings.credit_cost_cache_ttl_seconds
        )
        self.clock = clock
        self.default_plan = settings.default_wallet_plan
        self.default_monthly_credits = settings.default_monthly_credits

    # ── Wallet ──────────────────────────────────────────────────────

    async def get_wallet(self, user_id: str | None = None) -> Wallet | None:
        """Resolve a wallet, creating the default one on first read.

        Defaults to the caller's wallet. Returns None for an anonymous caller
        or when the ledger cannot be read or written.
        """
        user_id = user_id or self.caller
        if not user_id:
            return None

        try:
            wallet = await self.ledger.fetch_wallet(user_id)
            if wallet is None:
                wallet = await self._create_default_wallet(user_id)
        except Exception as exc:
            logger.error("get_wallet_failed", user_id=user_id, error=str(exc), error_type=type(exc).__name__)
            return None

        return wallet

    async def refresh_wallet(self) -> Wallet | None:
        """Re-read the caller's wallet from the ledger."""
        return await self.get_wallet()

    async def _create_default_wallet(self, user_id: str) -> Wallet:
        now = datetime.now(UTC)
        wallet = await self.ledger.create_wallet(
            Wallet(
                user_id=user_id,
                plan=self.default_plan,
                monthly_credits=self.default_monthly_credits,
                credits_remaining=self.default_monthly_credits,
                credits_used=0,
                cycle_start=now,
                cycle_end=add_one_month(now),
            )
        )
        logger.info("wallet_created", user_id=user_id, plan=wallet.plan, monthly_credits=wallet.monthly_credits)
        return wallet

    # ── Costs ───────────────────────────────────────────────────────

    async def get_credit_costs(self, force_refresh: bool = False) -> list[CreditCostEntry]:
        """Return the cost table, served from cache while younger than the TTL.

        A missing, expired or corrupt cache entry falls through to the ledger.
        If the ledger read fails the table is empty, which makes every
        feature free until the next successful fetch.
        """
        if not force_refresh:
            cached = await self._read_cached_costs()
            if cached is not None:
                return cached

        try:
            costs = await self.ledger.fetch_credit_costs()
        except Exception as exc:
            logger.error("credit_costs_fetch_failed", error=str(exc), error_type=type(exc).__name__)
            return []

        await self._write_cached_costs(costs)
        return costs

    async def get_cost(self, feature_key: str) -> int:
        """Cost of one feature. Unknown features cost 0 (always allowed)."""
        costs = await self.get_credit_costs()
        for entry in costs:
            if entry.feature_key == feature_key:
                return entry.credit_cost

        logger.warning("credit_cost_not_found", feature_key=feature_key)
        return 0

    async def clear_cost_cache(self) -> None:
        await self.cost_cache.clear()
        logger.info("credit_cost_cache_cleared")

    async def _read_cached_costs(self) -> list[CreditCostEntry] | None:
        try:
            payload, fetched_at = await self.cost_cache.read()
        except Exception as exc:
            logger.warning("credit_cost_cache_read_failed", error=str(exc))
            return None

        if not payload or not fetched_at:
            return None

        try:
            age = self.clock() - float(fetched_at)
        except ValueError:
            logger.warning("credit_cost_cache_bad_timestamp", fetched_at=fetched_at)
            return None

        # False for NaN, and for timestamps from the future
        if not 0 <= age < self.cache_ttl_seconds:
            return None

        try:
            return _COST_TABLE.validate_json(payload)
        except ValidationError as exc:
            logger.warning("credit_cost_cache_parse_failed", error=str(exc))
            return None

    async def _write_cached_costs(self, costs: list[CreditCostEntry]) -> None:
        try:
            await self.cost_cache.write(_COST_TABLE.dump_json(costs).decode(), self.clock())
        except Exception as exc:
            logger.warning("credit_cost_cache_write_failed", error=str(exc))

    # ── Spend authorization ─────────────────────────────────────────

    async def charge_credits(self, feature_key: str, metadata: dict[str, Any] | None = None) -> ChargeResult:
        """Authorize and charge one use of ``feature_key`` for the caller.

        Raises:
            UnauthorizedError: no caller
            WalletNotFoundError: wallet missing and could not be created
            InsufficientCreditsError: non-scale wallet cannot cover the cost
        """
        if not self.caller:
            raise UnauthorizedError()

        bound = logger.bind(user_id=self.caller, feature_key=feature_key)

        wallet = await self.get_wallet(self.caller)
        if wallet is None:
            raise WalletNotFoundError(self.caller)

        cost = await self.get_cost(feature_key)
        if cost == 0:
            bound.warning("credit_charge_zero_cost")
            return ChargeResult(remaining=wallet.credits_remaining, cost=0)

        if bypasses_balance(wallet.plan):
            bound.info("credit_charge_scale_bypass", cost=cost)
            await self.ledger.record_bypass(
                self.caller,
                feature_key,
                cost,
                {**(metadata or {}), "bypass": True, "plan": Plan.SCALE.value},
            )
            return ChargeResult(remaining=wallet.credits_remaining, cost=cost)

        if wallet.credits_remaining < cost:
            bound.info("credit_charge_insufficient", cost=cost, remaining=wallet.credits_remaining)
            raise InsufficientCreditsError(cost, wallet.credits_remaining, feature_key)

        try:
            result = await self.ledger.charge(self.caller, feature_key, metadata or {})
        except InsufficientCreditsError as exc:
            # The balance or the price moved between our read and the debit
            bound.info("credit_charge_lost_race", cost=exc.cost, remaining=exc.remaining, cached_cost=cost)
            raise

        bound.info("credit_charged", cost=result.cost, remaining=result.remaining, cached_cost=cost)
        return result

    async def check_can_afford(self, feature_key: str) -> bool:
        """Non-mutating affordability check, used to enable or disable actions."""
        wallet = await self.get_wallet()
        if wallet is None:
            return False

        if bypasses_balance(wallet.plan):
            return True

        cost = await self.get_cost(feature_key)
        return wallet.credits_remaining >= cost

    # ── History ─────────────────────────────────────────────────────

    async def get_transactions(self, limit: int = 50) -> list[CreditTransactionEntry]:
        """Caller's most recent credit transactions, newest first."""
        if not self.caller:
            raise UnauthorizedError()
        return await self.ledger.list_transactions(self.caller, limit)
