"""Re-export all models so Base.metadata sees them."""

from ghoste.db.models.credit_cost import CreditCost
from ghoste.db.models.credit_transaction import CreditTransaction
from ghoste.db.models.user_wallet import UserWallet

__all__ = [
    "CreditCost",
    "CreditTransaction",
    "UserWallet",
]
