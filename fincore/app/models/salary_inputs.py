"""
Salary input models.

Outstanding salary advances and overtime awards adjust what an employee
may draw against this month's salary.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Numeric
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import SalaryAdvanceStatus, OvertimeStatus


class SalaryAdvance(Base):
    """
    Long-running salary advance repaid in monthly instalments.

    minimum_payment is recovered from each month's salary until
    remaining_balance reaches zero.
    """
    __tablename__ = "salary_advances"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)

    amount = Column(Numeric(14, 2), nullable=False)
    remaining_balance = Column(Numeric(14, 2), nullable=False)
    minimum_payment = Column(Numeric(14, 2), nullable=False)
    status = Column(Enum(SalaryAdvanceStatus), default=SalaryAdvanceStatus.ACTIVE, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SalaryAdvance(id={self.id}, remaining={self.remaining_balance}, status='{self.status.value}')>"


class OvertimeAward(Base):
    """Overtime awarded to an employee; pending and claimed awards add to this month's pay."""
    __tablename__ = "overtime_awards"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)

    amount = Column(Numeric(14, 2), nullable=False)
    hours = Column(Numeric(6, 2), nullable=True)
    awarded_by = Column(String(255), nullable=True)
    status = Column(Enum(OvertimeStatus), default=OvertimeStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<OvertimeAward(id={self.id}, amount={self.amount}, status='{self.status.value}')>"
