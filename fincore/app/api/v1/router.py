"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fincore.app.api.v1.endpoints import (
    wallet, eligibility, money_requests, withdrawals,
    approval_requests, workflow, attendance
)

router = APIRouter()

# Balances and eligibility
router.include_router(wallet.router)
router.include_router(eligibility.router)

# Request lifecycle and approvals
router.include_router(money_requests.router)
router.include_router(withdrawals.router)
router.include_router(approval_requests.router)
router.include_router(approval_requests.modifications_router)

# Audit trail
router.include_router(workflow.router)

# Attendance and payroll inputs
router.include_router(attendance.router)
router.include_router(attendance.payroll_router)
