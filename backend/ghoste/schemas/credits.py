"""Credit wallet Pydantic schemas shared by the gate, the ledgers and the API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Wallet(BaseModel):
    """A user's plan tier and credit balance for the current cycle."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    plan: str
    monthly_credits: int
    credits_remaining: int
    credits_used: int
    cycle_start: datetime
    cycle_end: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreditCostEntry(BaseModel):
    """Cost of one chargeable feature."""

    model_config = ConfigDict(from_attributes=True)

    feature_key: str
    credit_cost: int = Field(ge=0)
    description: str | None = None


class CreditTransactionEntry(BaseModel):
    """One immutable ledger line."""

    id: UUID | None = None
    user_id: str
    feature_key: str
    credits_used: int
    balance_before: int
    balance_after: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class ChargeResult(BaseModel):
    """Outcome of an allowed charge."""

    ok: bool = True
    remaining: int
    cost: int


class ChargeRequest(BaseModel):
    feature_key: str = Field(min_length=1, max_length=100)
    metadata: dict[str, Any] | None = None


class AffordabilityResponse(BaseModel):
    feature_key: str
    can_afford: bool


class CostLookupResponse(BaseModel):
    feature_key: str
    credit_cost: int


class CreditCostListResponse(BaseModel):
    costs: list[CreditCostEntry]


class TransactionListResponse(BaseModel):
    transactions: list[CreditTransactionEntry]
    count: int
