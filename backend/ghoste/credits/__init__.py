"""Credit metering: wallet gate, spend ledgers and the cost-table cache."""

from ghoste.credits.cache import CostCache, MemoryCostCache, RedisCostCache
from ghoste.credits.errors import (
    CostNotFoundError,
    CreditError,
    CreditErrorCode,
    InsufficientCreditsError,
    UnauthorizedError,
    WalletNotFoundError,
)
from ghoste.credits.ledger import SpendLedger, SqlLedger
from ghoste.credits.memory import InMemoryLedger
from ghoste.credits.service import WalletGate

__all__ = [
    "CostCache",
    "CostNotFoundError",
    "CreditError",
    "CreditErrorCode",
    "InMemoryLedger",
    "InsufficientCreditsError",
    "MemoryCostCache",
    "RedisCostCache",
    "SpendLedger",
    "SqlLedger",
    "UnauthorizedError",
    "WalletGate",
    "WalletNotFoundError",
]
