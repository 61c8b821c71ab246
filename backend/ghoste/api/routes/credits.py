"""Credit wallet routes: wallet, cost table, affordability, charge, history.

Credit failures propagate as CreditError and are rendered by the
credit_error_handler registered in ghoste.main.
"""

from fastapi import APIRouter, Depends, Query

from ghoste.core.auth import AuthUser, optional_auth, require_auth
from ghoste.core.config import get_settings
from ghoste.credits.cache import CostCache, RedisCostCache
from ghoste.credits.errors import UnauthorizedError, WalletNotFoundError
from ghoste.credits.ledger import SpendLedger, SqlLedger
from ghoste.credits.service import WalletGate
from ghoste.db.base import get_session_factory
from ghoste.db.redis import get_redis
from ghoste.schemas.credits import (
    AffordabilityResponse,
    ChargeRequest,
    ChargeResult,
    CostLookupResponse,
    CreditCostListResponse,
    TransactionListResponse,
    Wallet,
)

router = APIRouter()


def get_ledger() -> SpendLedger:
    """Dependency that provides the SpendLedger.

    Override this dependency in tests via app.dependency_overrides.
    """
    return SqlLedger(get_session_factory())


def get_cost_cache() -> CostCache:
    """Dependency that provides the cost-table cache (Redis)."""
    ttl = get_settings().credit_cost_cache_ttl_seconds
    return RedisCostCache(get_redis(), expire_seconds=ttl * 2)


def get_wallet_gate(
    user: AuthUser | None = Depends(optional_auth),
    ledger: SpendLedger = Depends(get_ledger),
    cost_cache: CostCache = Depends(get_cost_cache),
) -> WalletGate:
    return WalletGate(ledger, cost_cache, caller=user.user_id if user else None)


@router.get("/wallet", response_model=Wallet)
async def get_wallet(gate: WalletGate = Depends(get_wallet_gate)):
    """Return the caller's wallet, creating it on first access."""
    if not gate.caller:
        raise UnauthorizedError()

    wallet = await gate.get_wallet()
    if wallet is None:
        raise WalletNotFoundError(gate.caller)
    return wallet


@router.get("/costs", response_model=CreditCostListResponse)
async def list_credit_costs(
    force_refresh: bool = Query(False),
    gate: WalletGate = Depends(get_wallet_gate),
):
    """Full cost table, served from cache unless ``force_refresh`` is set."""
    return CreditCostListResponse(costs=await gate.get_credit_costs(force_refresh=force_refresh))


@router.delete("/costs/cache", status_code=204, dependencies=[Depends(require_auth)])
async def clear_cost_cache(gate: WalletGate = Depends(get_wallet_gate)):
    await gate.clear_cost_cache()


@router.get("/costs/{feature_key}", response_model=CostLookupResponse)
async def get_cost(feature_key: str, gate: WalletGate = Depends(get_wallet_gate)):
    """Cost of one feature; unknown features cost 0."""
    return CostLookupResponse(feature_key=feature_key, credit_cost=await gate.get_cost(feature_key))


@router.get("/can-afford/{feature_key}", response_model=AffordabilityResponse)
async def can_afford(feature_key: str, gate: WalletGate = Depends(get_wallet_gate)):
    return AffordabilityResponse(feature_key=feature_key, can_afford=await gate.check_can_afford(feature_key))


@router.post("/charge", response_model=ChargeResult)
async def charge(body: ChargeRequest, gate: WalletGate = Depends(get_wallet_gate)):
    """Charge the caller for one use of a feature.

    Raises:
        CreditError(401): no session
        CreditError(402): insufficient credits (detail carries cost/remaining/feature_key)
        CreditError(404): wallet not found
    """
    return await gate.charge_credits(body.feature_key, body.metadata)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    gate: WalletGate = Depends(get_wallet_gate),
):
    transactions = await gate.get_transactions(limit)
    return TransactionListResponse(transactions=transactions, count=len(transactions))
