"""
Account database model.

One account per console user. Balances are never stored here; they are
derived from the ledger on every read.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Numeric
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.enums import UserRole


class Account(Base):
    """
    Account model.

    `revision` is an optimistic version counter. Every check-then-act
    sequence on the account touches the row, so two racing writers cannot
    both commit against the same read.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    department = Column(String(100), nullable=True)

    # Payroll inputs
    monthly_salary = Column(Numeric(14, 2), default=0, nullable=False)
    phone_number = Column(String(20), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Concurrency control
    revision = Column(Integer, nullable=False)
    last_activity_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": revision}

    def __repr__(self):
        return f"<Account(id={self.id}, username='{self.username}', role='{self.role.value}')>"
