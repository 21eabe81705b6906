"""
FastAPI Application Entry Point.

This is the main application file for the Financial Core Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fincore.app.core.config import settings
from fincore.app.api.v1.router import router as api_v1_router
from fincore.app.core.observability import ObservabilityMiddleware, configure_logging
from fincore.app.core.redis_client import ping_redis, close_redis
from fincore.app.db.session import engine, Base
from fincore.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fincore.app.models.account import Account
from fincore.app.models.ledger_entry import LedgerEntry
from fincore.app.models.money_request import MoneyRequest
from fincore.app.models.withdrawal_request import WithdrawalRequest
from fincore.app.models.approval_request import ApprovalRequest
from fincore.app.models.modification_request import ModificationRequest
from fincore.app.models.workflow_step import WorkflowStep
from fincore.app.models.attendance import AttendanceRecord
from fincore.app.models.salary_inputs import SalaryAdvance, OvertimeAward

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Releases the engine pool and the lock store connection on shutdown.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()
    await close_redis()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Financial request and ledger-reconciliation engine",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and lock store reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Financial Core Backend API",
        "docs": "/docs",
        "health": "/health",
    }
