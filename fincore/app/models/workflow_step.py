"""
Workflow Step Database Model.

Append-only audit trail of request transitions; the canonical proof of the
two-tier approval for compliance printing.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import WorkflowAction, RequestKind


class WorkflowStep(Base):
    """
    Workflow step model, one row per transition.

    Actions recorded:
    - submitted
    - approved / rejected (per approving department)
    - modification_requested / modified

    Never updated or deleted.
    """
    __tablename__ = "workflow_steps"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Which request (or linked payment) the step belongs to
    payment_id = Column(String(100), nullable=False, index=True)
    request_kind = Column(Enum(RequestKind), nullable=False)

    # What happened
    action = Column(Enum(WorkflowAction), nullable=False, index=True)
    from_department = Column(String(100), nullable=False)
    to_department = Column(String(100), nullable=False)

    # Who did it (None for system actions)
    processed_by = Column(String(255), nullable=False)
    processed_by_id = Column(Integer, nullable=True)

    reason = Column(String(100), nullable=True)
    comments = Column(Text, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<WorkflowStep(id={self.id}, payment='{self.payment_id}', action='{self.action.value}', by={self.processed_by})>"
