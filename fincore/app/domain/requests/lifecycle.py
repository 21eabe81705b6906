"""
Request Lifecycle (Domain Logic).

Creates money, withdrawal and generic approval requests in their initial
stage. Each submission validates the payload before any write, then
re-checks eligibility or balance under the per-account guard and commits
the request together with its `submitted` workflow step.
"""

import re
import uuid
import logging
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Optional, Any

from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.core.clock import utcnow, local_day
from fincore.app.core.config import settings
from fincore.app.core.exceptions import RequestValidationFailed, InsufficientBalanceError
from fincore.app.domain.eligibility.evaluator import EligibilityEvaluator
from fincore.app.domain.ledger.balance_calculator import BalanceCalculator
from fincore.app.domain.money import to_money, MAX_AMOUNT
from fincore.app.domain.requests.kinds import (
    AmountRule, rule_for, WITHDRAWAL_AMOUNT_RULE, APPROVAL_REQUEST_INITIAL_STAGE
)
from fincore.app.models.money_request import MoneyRequest
from fincore.app.models.withdrawal_request import WithdrawalRequest
from fincore.app.models.approval_request import ApprovalRequest
from fincore.app.models.finance_enums import (
    MoneyRequestType, MoneyRequestStatus, ApprovalStage, PaymentChannel,
    WithdrawalChannel, WithdrawalStatus, ApprovalRequestStatus, ApprovalPriority,
    WorkflowAction, RequestKind
)
from fincore.app.services import audit
from fincore.app.services.account_lock import account_guard, commit_guarded

logger = logging.getLogger(__name__)

MOBILE_CHANNELS = (PaymentChannel.MOBILE_MONEY.value, WithdrawalChannel.ZENGAPAY.value)

STAGE_DEPARTMENTS = {
    ApprovalStage.PENDING_ADMIN: audit.Department.ADMIN,
    ApprovalStage.PENDING_FINANCE: audit.Department.FINANCE,
}


def validate_amount(amount: Any, rule: Optional[AmountRule] = None) -> Decimal:
    """
    Parse and check a requested amount.

    Raises:
        RequestValidationFailed: Not a positive number, too large, below the floor
            or off the step grid
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise RequestValidationFailed("Amount must be a number", field="amount")

    if not value.is_finite() or value <= 0:
        raise RequestValidationFailed("Amount must be positive", field="amount")

    if value > MAX_AMOUNT:
        raise RequestValidationFailed(
            f"Amount cannot exceed {MAX_AMOUNT:,.2f}",
            field="amount",
            details={"maximum": str(MAX_AMOUNT)}
        )

    if rule is not None:
        if value < rule.minimum:
            raise RequestValidationFailed(
                f"Minimum amount is {rule.minimum:,.0f}",
                field="amount",
                details={"minimum": str(rule.minimum)}
            )
        if value % rule.step != 0:
            raise RequestValidationFailed(
                f"Amount must be a multiple of {rule.step:,.0f}",
                field="amount",
                details={"step": str(rule.step)}
            )

    return to_money(value)


def normalize_phone(phone_number: Optional[str]) -> Optional[str]:
    if phone_number is None:
        return None
    cleaned = re.sub(r"[\s\-]", "", phone_number).lstrip("+")
    return cleaned or None


def validate_channel(channel: str, phone_number: Optional[str]) -> Optional[str]:
    """
    Check channel-specific fields and return the phone number to store.

    Mobile channels need a Ugandan MSISDN (256 followed by 9 digits).
    A phone number on a cash request is dropped.
    """
    channel_value = getattr(channel, "value", channel)
    if channel_value not in MOBILE_CHANNELS:
        return None

    phone = normalize_phone(phone_number)
    if not phone:
        raise RequestValidationFailed(
            "Phone number is required for mobile money payouts", field="phone_number"
        )
    if not re.match(settings.mobile_money_phone_pattern, phone):
        raise RequestValidationFailed(
            "Phone number must be in the format 256XXXXXXXXX", field="phone_number"
        )
    return phone


def generate_request_ref(moment: datetime) -> str:
    return f"WR-{local_day(moment):%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


async def submit_money_request(
    db: AsyncSession,
    redis,
    account_id: int,
    request_type: MoneyRequestType,
    amount: Any,
    reason: str,
    payment_channel: PaymentChannel = PaymentChannel.CASH,
    phone_number: Optional[str] = None,
    requested_by: Optional[str] = None,
    now: Optional[datetime] = None
) -> MoneyRequest:
    """
    Submit a money request.

    Flow:
    1. Validate amount against the category floor and step
    2. Validate channel fields
    3. Under the account guard: window open and amount within allowance
    4. Create the request in its category's initial stage
    5. Append the `submitted` workflow step and commit

    Raises:
        RequestValidationFailed: Amount or channel fields invalid
        InvalidWindowError: Outside a calendar-gated window
        InsufficientAllowanceError: Amount exceeds the remaining allowance
        ConcurrencyConflictError: Another writer holds the account
    """
    request_type = MoneyRequestType(request_type)
    payment_channel = PaymentChannel(payment_channel)
    rule = rule_for(request_type)
    value = validate_amount(amount, rule.amount)
    phone = validate_channel(payment_channel, phone_number)
    if not reason or not reason.strip():
        raise RequestValidationFailed("Reason is required", field="reason")

    moment = now or utcnow()

    async with account_guard(db, redis, account_id) as account:
        await EligibilityEvaluator.ensure_submittable(db, account_id, request_type, value, moment)

        request = MoneyRequest(
            user_id=account_id,
            amount=value,
            reason=reason.strip(),
            request_type=request_type,
            requested_by=requested_by or account.full_name or account.username,
            approval_stage=rule.initial_stage,
            status=MoneyRequestStatus.PENDING,
            payment_channel=payment_channel,
            phone_number=phone,
            created_at=moment,
            updated_at=moment
        )
        db.add(request)
        await db.flush()

        await audit.append_step(
            db,
            payment_id=audit.money_request_key(request.id),
            request_kind=RequestKind.MONEY,
            action=WorkflowAction.SUBMITTED,
            from_department=account.department or audit.Department.EMPLOYEE,
            to_department=STAGE_DEPARTMENTS[rule.initial_stage],
            processed_by=request.requested_by,
            processed_by_id=account_id,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info(
        "Money request %s submitted: %s %s for account %s",
        request.id, request_type.value, value, account_id
    )
    return request


async def submit_withdrawal_request(
    db: AsyncSession,
    redis,
    account_id: int,
    amount: Any,
    channel: WithdrawalChannel = WithdrawalChannel.ZENGAPAY,
    phone_number: Optional[str] = None,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    """
    Submit a withdrawal of already-earned wallet balance.

    The amount is reserved against available_to_request from the moment
    the request is committed.

    Raises:
        RequestValidationFailed: Amount or channel fields invalid
        InsufficientBalanceError: Amount exceeds available_to_request
        ConcurrencyConflictError: Another writer holds the account
    """
    channel = WithdrawalChannel(channel)
    value = validate_amount(amount, WITHDRAWAL_AMOUNT_RULE)
    phone = validate_channel(channel, phone_number)
    moment = now or utcnow()

    async with account_guard(db, redis, account_id) as account:
        snapshot = await BalanceCalculator.get_account_snapshot(db, account_id)
        if value > snapshot.authorization_ceiling:
            logger.warning(
                "Rejected withdrawal for account %s: %s exceeds available %s",
                account_id, value, snapshot.authorization_ceiling
            )
            raise InsufficientBalanceError(value, snapshot.available_to_request)

        withdrawal = WithdrawalRequest(
            user_id=account_id,
            request_ref=generate_request_ref(moment),
            amount=value,
            phone_number=phone,
            channel=channel,
            status=WithdrawalStatus.PENDING,
            created_at=moment,
            updated_at=moment
        )
        db.add(withdrawal)
        await db.flush()

        await audit.append_step(
            db,
            payment_id=audit.withdrawal_key(withdrawal.id),
            request_kind=RequestKind.WITHDRAWAL,
            action=WorkflowAction.SUBMITTED,
            from_department=account.department or audit.Department.EMPLOYEE,
            to_department=audit.Department.FINANCE,
            processed_by=account.full_name or account.username,
            processed_by_id=account_id,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Withdrawal %s submitted: %s for account %s", withdrawal.request_ref, value, account_id)
    return withdrawal


async def submit_approval_request(
    db: AsyncSession,
    redis,
    account_id: int,
    type: str,
    title: str,
    amount: Any,
    department: str,
    description: Optional[str] = None,
    priority: ApprovalPriority = ApprovalPriority.MEDIUM,
    details: Optional[dict] = None,
    daterequested: Optional[date] = None,
    now: Optional[datetime] = None
) -> ApprovalRequest:
    """
    Submit a generic approval request (procurement, requisition, linked payment).

    Starts with Admin; both Admin and Finance must approve. No ledger effect.

    Raises:
        RequestValidationFailed: Missing title/type or non-positive amount
        ConcurrencyConflictError: Another writer holds the account
    """
    value = validate_amount(amount)
    if not title or not title.strip():
        raise RequestValidationFailed("Title is required", field="title")
    if not type or not type.strip():
        raise RequestValidationFailed("Request type is required", field="type")
    if not department or not department.strip():
        raise RequestValidationFailed("Department is required", field="department")

    moment = now or utcnow()

    async with account_guard(db, redis, account_id) as account:
        request = ApprovalRequest(
            type=type.strip(),
            title=title.strip(),
            description=description,
            amount=value,
            department=department.strip(),
            priority=ApprovalPriority(priority),
            requestedby=account.full_name or account.username,
            requested_by_id=account_id,
            daterequested=daterequested or local_day(moment),
            status=ApprovalRequestStatus.PENDING,
            approval_stage=APPROVAL_REQUEST_INITIAL_STAGE,
            details=details or {},
            created_at=moment,
            updated_at=moment
        )
        db.add(request)
        await db.flush()

        await audit.append_step(
            db,
            payment_id=request.audit_key,
            request_kind=RequestKind.APPROVAL,
            action=WorkflowAction.SUBMITTED,
            from_department=request.department,
            to_department=STAGE_DEPARTMENTS[APPROVAL_REQUEST_INITIAL_STAGE],
            processed_by=request.requestedby,
            processed_by_id=account_id,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Approval request %s submitted: %s %s", request.id, request.type, value)
    return request
