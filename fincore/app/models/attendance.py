"""
Attendance Record database model.

Daily attendance feeds the weekly lunch allowance.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Date, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import AttendanceStatus


class AttendanceRecord(Base):
    """
    Attendance model.

    One row per account per calendar day, enforced by a unique constraint
    so re-marking a day updates the existing row.
    """
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(Enum(AttendanceStatus), nullable=False)

    marked_by = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    marked_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('account_id', 'date', name='uq_attendance_account_date'),
    )

    def __repr__(self):
        return f"<AttendanceRecord(account_id={self.account_id}, date={self.date}, status='{self.status.value}')>"
