"""
Modification Request database model.

A reviewer sends an approval request back to its originating department.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import ModificationStatus


class ModificationRequest(Base):
    __tablename__ = "modification_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    approval_request_id = Column(Integer, ForeignKey('approval_requests.id'), nullable=False, index=True)

    requested_by = Column(String(255), nullable=False)
    requested_by_department = Column(String(100), nullable=False)
    target_department = Column(String(100), nullable=False, index=True)

    reason = Column(String(100), nullable=False)
    comments = Column(Text, nullable=True)

    status = Column(Enum(ModificationStatus), default=ModificationStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ModificationRequest(id={self.id}, target='{self.target_department}', status='{self.status.value}')>"
