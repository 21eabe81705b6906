"""
Custom exceptions and error handlers for consistent error responses.

Provides the financial error taxonomy and global exception handlers.
Business outcomes (a rejected request) are never raised; only failures are.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class RequestValidationFailed(AppException):
    """Amount, channel or phone number failed validation. Raised before any write."""

    def __init__(self, message: str, field: str = None, details: Dict[str, Any] = None):
        payload = dict(details or {})
        if field:
            payload["field"] = field
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=payload
        )


class InvalidWindowError(AppException):
    """Submission attempted outside a calendar-gated policy window."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_WINDOW_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class InsufficientBalanceError(AppException):
    """Amount exceeds the account's available_to_request."""

    def __init__(self, requested: Any, available: Any):
        super().__init__(
            message=f"Requested {requested} exceeds available balance {available}",
            error_code="ERR_FUNDS_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"requested": str(requested), "available": str(available)}
        )


class InsufficientAllowanceError(AppException):
    """Amount exceeds what the eligibility window still allows."""

    def __init__(self, requested: Any, available: Any, message: str = None):
        super().__init__(
            message=message or f"Requested {requested} exceeds available allowance {available}",
            error_code="ERR_FUNDS_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"requested": str(requested), "available": str(available)}
        )


class InvalidTransitionError(AppException):
    """Approve/reject called on a terminal request or by an unknown role."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class SeparationOfDutiesError(AppException):
    """Requester approving their own request, or one person casting both votes."""

    def __init__(self, message: str = "Approval blocked by separation of duties policy"):
        super().__init__(
            message=message,
            error_code="ERR_PERM_002",
            status_code=status.HTTP_403_FORBIDDEN
        )


class ConcurrencyConflictError(AppException):
    """
    Another writer holds or changed the account.

    The caller must retry its whole check-then-act sequence from a fresh read.
    """

    def __init__(self, account_id: Any = None):
        super().__init__(
            message="Account is being modified by another request, retry from a fresh read",
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"account_id": account_id, "retryable": True}
        )


class StorageUnavailableError(AppException):
    """The persistent store cannot be reached. Operations fail closed."""

    def __init__(self, message: str = "Storage is unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class PayoutGatewayError(AppException):
    """The mobile money gateway could not be reached or is short-circuited."""

    def __init__(self, message: str = "Payout gateway unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_GATEWAY_001",
            status_code=status.HTTP_502_BAD_GATEWAY
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # Pydantic v2 may embed exception instances in "ctx"
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
