"""
Wallet Schemas.
"""

from pydantic import BaseModel
from decimal import Decimal


class AccountSnapshotResponse(BaseModel):
    """Derived balances of one account."""
    account_id: int
    wallet_balance: Decimal
    pending_withdrawals: Decimal
    available_to_request: Decimal

    class Config:
        from_attributes = True
