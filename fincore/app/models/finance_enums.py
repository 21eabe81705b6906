"""
Financial enumerations.

Closed value sets for ledger entries, request kinds, approval stages and
workflow actions.
"""

import enum


class LedgerEntryType(str, enum.Enum):
    """Ledger entry type enumeration."""
    DEBIT = "DEBIT"  # Money leaving the account
    CREDIT = "CREDIT"  # Money entering the account


class MoneyRequestType(str, enum.Enum):
    """Money request categories."""
    ADVANCE = "advance"
    LUNCH_REFRESHMENT = "lunch_refreshment"
    BONUS = "bonus"
    EXPENSE = "expense"
    EMERGENCY = "emergency"
    MID_MONTH = "mid-month"
    END_MONTH = "end-month"


class ApprovalStage(str, enum.Enum):
    """Whose turn is next on a two-tier request."""
    PENDING_ADMIN = "pending_admin"
    PENDING_FINANCE = "pending_finance"
    APPROVED = "approved"
    REJECTED = "rejected"


class MoneyRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentChannel(str, enum.Enum):
    CASH = "CASH"
    MOBILE_MONEY = "MOBILE_MONEY"


class WithdrawalChannel(str, enum.Enum):
    ZENGAPAY = "ZENGAPAY"
    CASH = "CASH"


class WithdrawalStatus(str, enum.Enum):
    """
    Withdrawal lifecycle.

    pending -> approved -> processing -> completed | failed
    pending -> rejected
    """
    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


# Statuses that still reserve capacity against available_to_request
RESERVING_WITHDRAWAL_STATUSES = (
    WithdrawalStatus.PENDING,
    WithdrawalStatus.APPROVED,
    WithdrawalStatus.PROCESSING,
)


class ApprovalRequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ApprovalPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class RejectionReason(str, enum.Enum):
    DUPLICATE_ORDER = "duplicate_order"
    PRICE_TOO_HIGH = "price_too_high"
    NO_DEMAND = "no_demand"
    QUALITY_ISSUES = "quality_issues"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    OTHER = "other"


class WorkflowAction(str, enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFICATION_REQUESTED = "modification_requested"
    MODIFIED = "modified"
    COMPLETED = "completed"
    FAILED = "failed"


class RequestKind(str, enum.Enum):
    """Which table a workflow step's payment_id points into."""
    MONEY = "money_request"
    WITHDRAWAL = "withdrawal_request"
    APPROVAL = "approval_request"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"


class SalaryAdvanceStatus(str, enum.Enum):
    ACTIVE = "active"
    CLEARED = "cleared"


class OvertimeStatus(str, enum.Enum):
    PENDING = "pending"
    CLAIMED = "claimed"
    COMPLETED = "completed"


class ModificationStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
