"""
Two-Tier Approval Orchestrator (Domain Logic).

Drives money requests and generic approval requests through Admin +
Finance consensus, withdrawals through single-tier approval and
settlement, and approval requests through modification round-trips.

Every transition:
1. Runs under the per-account guard of the request's owner
2. Reloads the request row fresh (FOR UPDATE)
3. Applies the state change, appends one workflow step
4. Commits both together
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.core.clock import utcnow
from fincore.app.core.exceptions import (
    ResourceNotFoundError, InvalidTransitionError, RequestValidationFailed,
    SeparationOfDutiesError, PayoutGatewayError
)
from fincore.app.core.reliability import storage_guard
from fincore.app.domain.actor import Actor
from fincore.app.domain.approvals.consensus import DualApproval, Vote, VoterRole
from fincore.app.domain.approvals.payout_gateway import ZengaPayClient, PayoutResult
from fincore.app.domain.ledger.balance_calculator import BalanceCalculator
from fincore.app.domain.requests.kinds import rule_for, APPROVAL_REQUEST_INITIAL_STAGE
from fincore.app.domain.requests.lifecycle import validate_amount
from fincore.app.models.approval_request import ApprovalRequest
from fincore.app.models.ledger_entry import LedgerEntry
from fincore.app.models.modification_request import ModificationRequest
from fincore.app.models.money_request import MoneyRequest
from fincore.app.models.withdrawal_request import WithdrawalRequest
from fincore.app.models.finance_enums import (
    ApprovalStage, MoneyRequestStatus, ApprovalRequestStatus, ApprovalPriority,
    WithdrawalStatus, WithdrawalChannel, RejectionReason, WorkflowAction,
    RequestKind, LedgerEntryType, ModificationStatus
)
from fincore.app.services import audit
from fincore.app.services.account_lock import account_guard, commit_guarded

logger = logging.getLogger(__name__)

WITHDRAWAL_SOURCE = "WITHDRAWAL"
INSUFFICIENT_BALANCE = "Insufficient balance"
MODIFIABLE_FIELDS = ("title", "description", "amount", "priority", "details")


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

async def _owner_of(db: AsyncSession, owner_column, request_id: int, resource: str) -> int:
    model = owner_column.class_
    async with storage_guard(f"load_{resource}"):
        result = await db.execute(select(owner_column).where(model.id == request_id))
        owner_id = result.scalar_one_or_none()
    if owner_id is None:
        raise ResourceNotFoundError(resource, request_id)
    return owner_id


async def _locked(db: AsyncSession, model, request_id: int, resource: str):
    query = (
        select(model)
        .where(model.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    async with storage_guard(f"lock_{resource}"):
        result = await db.execute(query)
        row = result.scalar_one_or_none()
    if not row:
        raise ResourceNotFoundError(resource, request_id)
    return row


def parse_rejection_reason(reason: Any) -> RejectionReason:
    try:
        return RejectionReason(getattr(reason, "value", reason))
    except ValueError:
        allowed = ", ".join(r.value for r in RejectionReason)
        raise RequestValidationFailed(
            f"Rejection reason must be one of: {allowed}", field="reason"
        )


# ---------------------------------------------------------------------------
# Consensus <-> row mapping
# ---------------------------------------------------------------------------

def consensus_of(request, requester_id: Optional[int]) -> DualApproval:
    """Read the two votes stored on a money or approval request row."""
    return DualApproval(
        admin=Vote(bool(request.admin_approved), request.admin_approved_by, request.admin_approver_id),
        finance=Vote(bool(request.finance_approved), request.finance_approved_by, request.finance_approver_id),
        rejected=request.approval_stage == ApprovalStage.REJECTED,
        requester_id=requester_id,
    )


def write_consensus(
    request,
    consensus: DualApproval,
    initial_stage: ApprovalStage,
    voter: Optional[VoterRole] = None,
    moment: Optional[datetime] = None
) -> None:
    for role in VoterRole:
        vote = consensus.vote_of(role)
        setattr(request, f"{role.value}_approved", vote.approved)
        setattr(request, f"{role.value}_approved_by", vote.actor)
        setattr(request, f"{role.value}_approver_id", vote.actor_id)
        if role is voter:
            setattr(request, f"{role.value}_approved_at", moment)
        elif not vote.approved:
            setattr(request, f"{role.value}_approved_at", None)
    request.approval_stage = consensus.stage(initial_stage)


def _next_department(consensus: DualApproval, voter: VoterRole, final_department: str) -> str:
    if consensus.approved:
        return final_department
    return voter.other.department


# ---------------------------------------------------------------------------
# Money requests
# ---------------------------------------------------------------------------

async def approve_money_request(
    db: AsyncSession,
    redis,
    request_id: int,
    actor: Actor,
    now: Optional[datetime] = None
) -> MoneyRequest:
    """
    Cast the actor's role vote on a money request.

    The second approval makes the request terminal `approved`; the payout
    itself happens outside the ledger.

    Raises:
        ResourceNotFoundError: Unknown request
        InvalidTransitionError: Terminal request, repeated vote, or non-approver role
        SeparationOfDutiesError: Requester approving, or one person voting twice
    """
    voter = VoterRole.from_role(actor.role)
    moment = now or utcnow()
    owner_id = await _owner_of(db, MoneyRequest.user_id, request_id, "MoneyRequest")

    async with account_guard(db, redis, owner_id) as account:
        request = await _locked(db, MoneyRequest, request_id, "MoneyRequest")
        consensus = consensus_of(request, requester_id=request.user_id)
        consensus = consensus.approve(voter, actor.name, actor.id)

        write_consensus(request, consensus, rule_for(request.request_type).initial_stage, voter, moment)
        if consensus.approved:
            request.status = MoneyRequestStatus.APPROVED
        request.updated_at = moment

        await audit.append_step(
            db,
            payment_id=audit.money_request_key(request.id),
            request_kind=RequestKind.MONEY,
            action=WorkflowAction.APPROVED,
            from_department=voter.department,
            to_department=_next_department(consensus, voter, audit.Department.PAYROLL),
            processed_by=actor.name,
            processed_by_id=actor.id,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info(
        "Money request %s approved by %s (%s), stage now %s",
        request_id, actor.name, voter.value, request.approval_stage.value
    )
    return request


async def reject_money_request(
    db: AsyncSession,
    redis,
    request_id: int,
    actor: Actor,
    reason: Any,
    comments: Optional[str] = None,
    now: Optional[datetime] = None
) -> MoneyRequest:
    """
    Reject a money request. Final after one rejection from either voter.

    Raises:
        RequestValidationFailed: Unknown rejection reason
        InvalidTransitionError: Request already decided, or non-approver role
    """
    voter = VoterRole.from_role(actor.role)
    rejection = parse_rejection_reason(reason)
    moment = now or utcnow()
    owner_id = await _owner_of(db, MoneyRequest.user_id, request_id, "MoneyRequest")

    async with account_guard(db, redis, owner_id) as account:
        request = await _locked(db, MoneyRequest, request_id, "MoneyRequest")
        consensus_of(request, requester_id=request.user_id).reject(voter)

        request.approval_stage = ApprovalStage.REJECTED
        request.status = MoneyRequestStatus.REJECTED
        request.rejection_reason = rejection
        request.rejection_comments = comments
        request.rejected_by = actor.name
        request.updated_at = moment

        await audit.append_step(
            db,
            payment_id=audit.money_request_key(request.id),
            request_kind=RequestKind.MONEY,
            action=WorkflowAction.REJECTED,
            from_department=voter.department,
            to_department=audit.Department.EMPLOYEE,
            processed_by=actor.name,
            processed_by_id=actor.id,
            reason=rejection.value,
            comments=comments,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Money request %s rejected by %s: %s", request_id, actor.name, rejection.value)
    return request


# ---------------------------------------------------------------------------
# Generic approval requests
# ---------------------------------------------------------------------------

async def _approval_owner(db: AsyncSession, request_id: int) -> int:
    return await _owner_of(db, ApprovalRequest.requested_by_id, request_id, "ApprovalRequest")


async def approve_approval_request(
    db: AsyncSession,
    redis,
    request_id: int,
    actor: Actor,
    now: Optional[datetime] = None
) -> ApprovalRequest:
    """
    Cast the actor's role vote on a generic approval request.

    Workflow steps are keyed by the linked payment id when the request
    carries one.
    """
    voter = VoterRole.from_role(actor.role)
    moment = now or utcnow()
    owner_id = await _approval_owner(db, request_id)

    async with account_guard(db, redis, owner_id) as account:
        request = await _locked(db, ApprovalRequest, request_id, "ApprovalRequest")
        consensus = consensus_of(request, requester_id=request.requested_by_id)
        consensus = consensus.approve(voter, actor.name, actor.id)

        write_consensus(request, consensus, APPROVAL_REQUEST_INITIAL_STAGE, voter, moment)
        if consensus.approved:
            request.status = ApprovalRequestStatus.APPROVED
        request.updated_at = moment

        await audit.append_step(
            db,
            payment_id=request.audit_key,
            request_kind=RequestKind.APPROVAL,
            action=WorkflowAction.APPROVED,
            from_department=voter.department,
            to_department=_next_department(consensus, voter, request.department),
            processed_by=actor.name,
            processed_by_id=actor.id,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info(
        "Approval request %s approved by %s (%s), status %s",
        request_id, actor.name, voter.value, request.status.value
    )
    return request


async def reject_approval_request(
    db: AsyncSession,
    redis,
    request_id: int,
    actor: Actor,
    reason: Any,
    comments: Optional[str] = None,
    now: Optional[datetime] = None
) -> ApprovalRequest:
    voter = VoterRole.from_role(actor.role)
    rejection = parse_rejection_reason(reason)
    moment = now or utcnow()
    owner_id = await _approval_owner(db, request_id)

    async with account_guard(db, redis, owner_id) as account:
        request = await _locked(db, ApprovalRequest, request_id, "ApprovalRequest")
        consensus_of(request, requester_id=request.requested_by_id).reject(voter)

        request.approval_stage = ApprovalStage.REJECTED
        request.status = ApprovalRequestStatus.REJECTED
        request.rejection_reason = rejection
        request.rejection_comments = comments
        request.updated_at = moment

        await audit.append_step(
            db,
            payment_id=request.audit_key,
            request_kind=RequestKind.APPROVAL,
            action=WorkflowAction.REJECTED,
            from_department=voter.department,
            to_department=request.department,
            processed_by=actor.name,
            processed_by_id=actor.id,
            reason=rejection.value,
            comments=comments,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Approval request %s rejected by %s: %s", request_id, actor.name, rejection.value)
    return request


# ---------------------------------------------------------------------------
# Modification requests
# ---------------------------------------------------------------------------

async def request_modification(
    db: AsyncSession,
    redis,
    request_id: int,
    actor: Actor,
    target_department: str,
    reason: str,
    comments: Optional[str] = None,
    now: Optional[datetime] = None
) -> ModificationRequest:
    """
    Send an open approval request back to a department for changes.

    Raises:
        InvalidTransitionError: The request is already approved or rejected
        RequestValidationFailed: Missing target department or reason
    """
    if not target_department or not reason:
        raise RequestValidationFailed("Target department and reason are required", field="target_department")

    voter = VoterRole.from_role(actor.role)
    moment = now or utcnow()
    owner_id = await _approval_owner(db, request_id)

    async with account_guard(db, redis, owner_id) as account:
        request = await _locked(db, ApprovalRequest, request_id, "ApprovalRequest")
        if consensus_of(request, request.requested_by_id).terminal:
            raise InvalidTransitionError(
                "Only pending requests can be sent back for modification",
                details={"status": request.status.value}
            )

        modification = ModificationRequest(
            approval_request_id=request.id,
            requested_by=actor.name,
            requested_by_department=voter.department,
            target_department=target_department,
            reason=reason,
            comments=comments,
            status=ModificationStatus.PENDING,
            created_at=moment
        )
        db.add(modification)

        await audit.append_step(
            db,
            payment_id=request.audit_key,
            request_kind=RequestKind.APPROVAL,
            action=WorkflowAction.MODIFICATION_REQUESTED,
            from_department=voter.department,
            to_department=target_department,
            processed_by=actor.name,
            processed_by_id=actor.id,
            reason=reason,
            comments=comments,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info(
        "Modification of approval request %s requested by %s for %s",
        request_id, actor.name, target_department
    )
    return modification


async def complete_modification(
    db: AsyncSession,
    redis,
    modification_id: int,
    actor: Actor,
    changes: Optional[dict] = None,
    comments: Optional[str] = None,
    now: Optional[datetime] = None
) -> ModificationRequest:
    """
    Close a modification request, applying the changed fields.

    Any single outstanding approval vote is cleared so both Admin and
    Finance concur on the modified content.
    """
    moment = now or utcnow()
    changes = {k: v for k, v in (changes or {}).items() if v is not None}
    unknown = set(changes) - set(MODIFIABLE_FIELDS)
    if unknown:
        raise RequestValidationFailed(
            f"Fields cannot be modified: {', '.join(sorted(unknown))}", field="changes"
        )
    if "amount" in changes:
        changes["amount"] = validate_amount(changes["amount"])
    if "priority" in changes:
        changes["priority"] = ApprovalPriority(changes["priority"])

    async with storage_guard("load_modification"):
        pending = await db.get(ModificationRequest, modification_id)
    if not pending:
        raise ResourceNotFoundError("ModificationRequest", modification_id)
    owner_id = await _approval_owner(db, pending.approval_request_id)

    async with account_guard(db, redis, owner_id) as account:
        modification = await _locked(db, ModificationRequest, modification_id, "ModificationRequest")
        if modification.status != ModificationStatus.PENDING:
            raise InvalidTransitionError(
                "Modification request is already closed",
                details={"status": modification.status.value}
            )

        request = await _locked(db, ApprovalRequest, modification.approval_request_id, "ApprovalRequest")
        consensus = consensus_of(request, request.requested_by_id).reset()
        write_consensus(request, consensus, APPROVAL_REQUEST_INITIAL_STAGE)
        for name, value in changes.items():
            setattr(request, name, value)
        request.updated_at = moment

        modification.status = ModificationStatus.COMPLETED
        modification.completed_at = moment

        await audit.append_step(
            db,
            payment_id=request.audit_key,
            request_kind=RequestKind.APPROVAL,
            action=WorkflowAction.MODIFIED,
            from_department=modification.target_department,
            to_department=modification.requested_by_department,
            processed_by=actor.name,
            processed_by_id=actor.id,
            comments=comments,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Modification %s completed by %s", modification_id, actor.name)
    return modification


async def get_pending_modifications(db: AsyncSession, department: str) -> list[ModificationRequest]:
    """Open modification requests addressed to `department`, oldest first."""
    query = select(ModificationRequest).where(
        ModificationRequest.target_department == department,
        ModificationRequest.status == ModificationStatus.PENDING
    ).order_by(ModificationRequest.created_at, ModificationRequest.id)

    async with storage_guard("get_pending_modifications"):
        result = await db.execute(query)
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------------

async def _withdrawal_owner(db: AsyncSession, withdrawal_id: int) -> int:
    return await _owner_of(db, WithdrawalRequest.user_id, withdrawal_id, "WithdrawalRequest")


def _ensure_status(withdrawal: WithdrawalRequest, *allowed: WithdrawalStatus):
    if withdrawal.status not in allowed:
        raise InvalidTransitionError(
            f"Withdrawal is {withdrawal.status.value}, expected {' or '.join(s.value for s in allowed)}",
            details={"status": withdrawal.status.value}
        )


def _mark_failed(withdrawal: WithdrawalRequest, reason: str, moment: datetime) -> None:
    withdrawal.status = WithdrawalStatus.FAILED
    withdrawal.failure_reason = reason
    withdrawal.processed_at = moment
    withdrawal.updated_at = moment


async def _settle(db: AsyncSession, withdrawal: WithdrawalRequest, moment: datetime) -> bool:
    """
    Post the debit and mark the withdrawal completed.

    Returns False (and fails the withdrawal) when the wallet no longer
    covers the amount.
    """
    amount = Decimal(str(withdrawal.amount))
    wallet = await BalanceCalculator.wallet_balance(db, withdrawal.user_id)
    if wallet < amount:
        _mark_failed(withdrawal, INSUFFICIENT_BALANCE, moment)
        logger.warning(
            "Withdrawal %s failed: wallet %s does not cover %s",
            withdrawal.request_ref, wallet, amount
        )
        return False

    db.add(LedgerEntry(
        account_id=withdrawal.user_id,
        entry_type=LedgerEntryType.DEBIT,
        source=WITHDRAWAL_SOURCE,
        reference=payout_reference_for(withdrawal.id),
        amount=-amount,
        meta_data={
            "request_ref": withdrawal.request_ref,
            "channel": withdrawal.channel.value,
            "transaction_reference": withdrawal.transaction_reference,
        },
        created_at=moment
    ))
    withdrawal.status = WithdrawalStatus.COMPLETED
    withdrawal.processed_at = moment
    withdrawal.updated_at = moment
    return True


async def approve_withdrawal(
    db: AsyncSession,
    redis,
    withdrawal_id: int,
    actor: Actor,
    gateway: Optional[ZengaPayClient] = None,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    """
    Approve a pending withdrawal (single tier, Admin or Finance).

    CASH withdrawals settle immediately. ZENGAPAY withdrawals are handed to
    the payout gateway after the approval commits; the gateway's answer
    moves them to processing or failed.

    Raises:
        InvalidTransitionError: Not pending, or non-approver role
        SeparationOfDutiesError: Requester approving their own withdrawal
    """
    voter = VoterRole.from_role(actor.role)
    moment = now or utcnow()
    owner_id = await _withdrawal_owner(db, withdrawal_id)

    async with account_guard(db, redis, owner_id) as account:
        withdrawal = await _locked(db, WithdrawalRequest, withdrawal_id, "WithdrawalRequest")
        _ensure_status(withdrawal, WithdrawalStatus.PENDING)
        if withdrawal.user_id == actor.id:
            raise SeparationOfDutiesError("You cannot approve your own withdrawal")

        withdrawal.status = WithdrawalStatus.APPROVED
        withdrawal.approved_by = actor.name
        withdrawal.approver_id = actor.id
        withdrawal.approved_at = moment
        withdrawal.updated_at = moment

        await audit.append_step(
            db,
            payment_id=audit.withdrawal_key(withdrawal.id),
            request_kind=RequestKind.WITHDRAWAL,
            action=WorkflowAction.APPROVED,
            from_department=voter.department,
            to_department=audit.Department.PAYROLL,
            processed_by=actor.name,
            processed_by_id=actor.id,
            timestamp=moment
        )

        if withdrawal.channel == WithdrawalChannel.CASH:
            await _settle(db, withdrawal, moment)
        else:
            wallet = await BalanceCalculator.wallet_balance(db, withdrawal.user_id)
            if wallet < Decimal(str(withdrawal.amount)):
                _mark_failed(withdrawal, INSUFFICIENT_BALANCE, moment)
            else:
                withdrawal.payout_reference = payout_reference_for(withdrawal.id)

        await commit_guarded(db, account, moment)

    logger.info(
        "Withdrawal %s approved by %s, status %s",
        withdrawal.request_ref, actor.name, withdrawal.status.value
    )

    if withdrawal.status == WithdrawalStatus.APPROVED:
        withdrawal = await dispatch_payout(db, withdrawal_id, gateway or ZengaPayClient(), now=moment)

    return withdrawal


def payout_reference_for(withdrawal_id: int) -> str:
    return f"WD-{withdrawal_id}"


async def dispatch_payout(
    db: AsyncSession,
    withdrawal_id: int,
    gateway: ZengaPayClient,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    """
    Hand an approved mobile-money withdrawal to the payout gateway.

    The payout reference is committed with the approval, before the
    transfer is attempted, so an outcome that is never recorded can still
    be matched against the gateway. An unreachable gateway fails the
    withdrawal and releases the reservation.
    """
    async with storage_guard("load_withdrawal"):
        withdrawal = await db.get(WithdrawalRequest, withdrawal_id)
    if withdrawal is None:
        raise ResourceNotFoundError("WithdrawalRequest", withdrawal_id)
    _ensure_status(withdrawal, WithdrawalStatus.APPROVED)
    if not withdrawal.payout_reference:
        raise InvalidTransitionError(
            "Withdrawal has no payout reference", details={"withdrawal_id": withdrawal_id}
        )

    try:
        outcome = await gateway.initiate_transfer(withdrawal.id, withdrawal.phone_number, withdrawal.amount)
    except PayoutGatewayError as exc:
        outcome = PayoutResult(accepted=False, message=exc.message)

    return await record_payout_outcome(db, withdrawal_id, outcome, now=now)


async def record_payout_outcome(
    db: AsyncSession,
    withdrawal_id: int,
    outcome: PayoutResult,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    """
    Write the gateway's answer back to an approved withdrawal.

    Takes the withdrawal row lock only, never the account mutex: moving to
    processing keeps the reservation and moving to failed only releases it.
    """
    moment = now or utcnow()
    try:
        withdrawal = await _locked(db, WithdrawalRequest, withdrawal_id, "WithdrawalRequest")
        if withdrawal.status != WithdrawalStatus.APPROVED:
            logger.warning(
                "Payout outcome for %s arrived in status %s, left unchanged",
                withdrawal.payout_reference, withdrawal.status.value
            )
        elif outcome.accepted:
            withdrawal.status = WithdrawalStatus.PROCESSING
            withdrawal.transaction_reference = outcome.transaction_reference
            withdrawal.processed_at = moment
            withdrawal.updated_at = moment
        else:
            _mark_failed(withdrawal, outcome.message, moment)

        async with storage_guard("record_payout_outcome"):
            await db.commit()
    except Exception:
        await db.rollback()
        logger.error(
            "Payout outcome for %s not recorded (accepted=%s, transaction %s)",
            payout_reference_for(withdrawal_id), outcome.accepted, outcome.transaction_reference
        )
        raise

    logger.info(
        "Payout %s dispatched: %s",
        withdrawal.payout_reference, withdrawal.status.value
    )
    return withdrawal


def _payout_outcome_unknown(withdrawal: WithdrawalRequest) -> bool:
    """Sent to the gateway, but its answer was never recorded."""
    return withdrawal.status == WithdrawalStatus.APPROVED and bool(withdrawal.payout_reference)


async def complete_withdrawal(
    db: AsyncSession,
    redis,
    withdrawal_id: int,
    actor: Actor,
    transaction_reference: Optional[str] = None,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    """
    Gateway confirmed the transfer: post the debit and mark completed.

    A withdrawal whose payout outcome was never recorded can be completed
    straight from approved, given the gateway's transaction reference.
    """
    voter = VoterRole.from_role(actor.role)
    moment = now or utcnow()
    owner_id = await _withdrawal_owner(db, withdrawal_id)

    async with account_guard(db, redis, owner_id) as account:
        withdrawal = await _locked(db, WithdrawalRequest, withdrawal_id, "WithdrawalRequest")
        if _payout_outcome_unknown(withdrawal):
            if not transaction_reference:
                raise RequestValidationFailed(
                    "Transaction reference is required to complete an unconfirmed payout",
                    field="transaction_reference"
                )
        else:
            _ensure_status(withdrawal, WithdrawalStatus.PROCESSING)
        if transaction_reference:
            withdrawal.transaction_reference = transaction_reference

        settled = await _settle(db, withdrawal, moment)
        await audit.append_step(
            db,
            payment_id=audit.withdrawal_key(withdrawal.id),
            request_kind=RequestKind.WITHDRAWAL,
            action=WorkflowAction.COMPLETED if settled else WorkflowAction.FAILED,
            from_department=voter.department,
            to_department=audit.Department.EMPLOYEE,
            processed_by=actor.name,
            processed_by_id=actor.id,
            comments=withdrawal.transaction_reference if settled else withdrawal.failure_reason,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info(
        "Withdrawal %s settled by %s: %s",
        withdrawal.request_ref, actor.name, withdrawal.status.value
    )
    return withdrawal


async def fail_withdrawal(
    db: AsyncSession,
    redis,
    withdrawal_id: int,
    actor: Actor,
    reason: str,
    gateway_confirmed: bool = False,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    """
    Gateway reported failure: release the reservation, no ledger effect.

    Raises:
        InvalidTransitionError: Not approved or processing, or the payout was
            sent and its failure is not confirmed by the gateway
    """
    voter = VoterRole.from_role(actor.role)
    if not reason:
        raise RequestValidationFailed("Failure reason is required", field="reason")

    moment = now or utcnow()
    owner_id = await _withdrawal_owner(db, withdrawal_id)

    async with account_guard(db, redis, owner_id) as account:
        withdrawal = await _locked(db, WithdrawalRequest, withdrawal_id, "WithdrawalRequest")
        _ensure_status(withdrawal, WithdrawalStatus.APPROVED, WithdrawalStatus.PROCESSING)
        if _payout_outcome_unknown(withdrawal) and not gateway_confirmed:
            raise InvalidTransitionError(
                f"Payout {withdrawal.payout_reference} may have been sent; "
                "confirm the failure with the gateway first",
                details={"payout_reference": withdrawal.payout_reference}
            )

        _mark_failed(withdrawal, reason, moment)
        await audit.append_step(
            db,
            payment_id=audit.withdrawal_key(withdrawal.id),
            request_kind=RequestKind.WITHDRAWAL,
            action=WorkflowAction.FAILED,
            from_department=voter.department,
            to_department=audit.Department.EMPLOYEE,
            processed_by=actor.name,
            processed_by_id=actor.id,
            comments=reason,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Withdrawal %s failed by %s: %s", withdrawal.request_ref, actor.name, reason)
    return withdrawal


async def reject_withdrawal(
    db: AsyncSession,
    redis,
    withdrawal_id: int,
    actor: Actor,
    reason: Any,
    comments: Optional[str] = None,
    now: Optional[datetime] = None
) -> WithdrawalRequest:
    voter = VoterRole.from_role(actor.role)
    rejection = parse_rejection_reason(reason)
    moment = now or utcnow()
    owner_id = await _withdrawal_owner(db, withdrawal_id)

    async with account_guard(db, redis, owner_id) as account:
        withdrawal = await _locked(db, WithdrawalRequest, withdrawal_id, "WithdrawalRequest")
        _ensure_status(withdrawal, WithdrawalStatus.PENDING)

        withdrawal.status = WithdrawalStatus.REJECTED
        withdrawal.rejection_reason = rejection
        withdrawal.rejection_comments = comments
        withdrawal.updated_at = moment

        await audit.append_step(
            db,
            payment_id=audit.withdrawal_key(withdrawal.id),
            request_kind=RequestKind.WITHDRAWAL,
            action=WorkflowAction.REJECTED,
            from_department=voter.department,
            to_department=audit.Department.EMPLOYEE,
            processed_by=actor.name,
            processed_by_id=actor.id,
            reason=rejection.value,
            comments=comments,
            timestamp=moment
        )
        await commit_guarded(db, account, moment)

    logger.info("Withdrawal %s rejected by %s: %s", withdrawal.request_ref, actor.name, rejection.value)
    return withdrawal
