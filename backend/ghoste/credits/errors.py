"""Typed credit errors.

Callers branch on ``code`` to choose between a generic failure message and
a dedicated upgrade prompt, so every failure the gate raises carries one.
"""

from enum import StrEnum
from typing import Any

from ghoste.core.exceptions import GhosteError


class CreditErrorCode(StrEnum):
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    WALLET_NOT_FOUND = "WALLET_NOT_FOUND"
    COST_NOT_FOUND = "COST_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    UNKNOWN = "UNKNOWN"


class CreditError(GhosteError):
    """Base class for failures surfaced by the wallet gate."""

    code: CreditErrorCode = CreditErrorCode.UNKNOWN

    def __init__(self, message: str, code: CreditErrorCode | None = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": str(self.code), "message": self.message}


class InsufficientCreditsError(CreditError):
    """Raised when a non-scale wallet cannot cover a feature's cost."""

    code = CreditErrorCode.INSUFFICIENT_CREDITS

    def __init__(self, cost: int, remaining: int, feature_key: str):
        self.cost = cost
        self.remaining = remaining
        self.feature_key = feature_key
        super().__init__(f"Insufficient credits. Need {cost}, have {remaining}")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "cost": self.cost,
            "remaining": self.remaining,
            "feature_key": self.feature_key,
        }


class WalletNotFoundError(CreditError):
    """Provisioning problem: the caller has no wallet and none could be created."""

    code = CreditErrorCode.WALLET_NOT_FOUND

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id
        super().__init__("Wallet not found")


class CostNotFoundError(CreditError):
    """The ledger has no cost row for a feature key it was asked to charge."""

    code = CreditErrorCode.COST_NOT_FOUND

    def __init__(self, feature_key: str):
        self.feature_key = feature_key
        super().__init__(f"No credit cost configured for feature: {feature_key}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "feature_key": self.feature_key}


class UnauthorizedError(CreditError):
    code = CreditErrorCode.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized: No user session"):
        super().__init__(message)
