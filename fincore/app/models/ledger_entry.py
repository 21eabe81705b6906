"""
Ledger Entry database model.

Immutable signed monetary records, the sole source of truth for balances.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, String, Numeric, JSON
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import LedgerEntryType


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Immutable record of financial movement on one account.
    Credits are stored positive, debits negative, so the wallet balance is
    a plain SUM(amount). NO updates or deletions allowed.
    """
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)

    # Entry details
    entry_type = Column(Enum(LedgerEntryType), nullable=False)  # DEBIT or CREDIT
    source = Column(String(50), nullable=False)  # DAILY_SALARY, WITHDRAWAL, ...
    reference = Column(String(120), unique=True, nullable=False)

    # Financials (signed)
    amount = Column(Numeric(14, 2), nullable=False)
    meta_data = Column("metadata", JSON, nullable=True)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.entry_type.value}', amount={self.amount})>"
