"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from dataclasses import dataclass, field
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, List, Optional

logger = logging.getLogger("bizledger.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Raised for missing or invalid input the caller can correct."""

    def __init__(self, message: str, details: Dict[str, Any] = None, error_code: str = "ERR_VALIDATION_001"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InsufficientStockError(ValidationError):
    """Raised when a sale requests more units than a product has on hand."""

    def __init__(self, shortages: List[Dict[str, Any]]):
        super().__init__(
            message="Insufficient stock for one or more products. Transaction cancelled.",
            details={"insufficient": shortages},
            error_code="ERR_STOCK_001"
        )


class LoanHasPaymentsError(ValidationError):
    """Raised when deleting a loan that already has a paid installment."""

    def __init__(self, loan_id: str):
        super().__init__(
            message='Cannot delete loan with paid installments. Set status to "defaulted" instead.',
            details={"loan_id": loan_id},
            error_code="ERR_LOAN_001"
        )


class NotFoundError(AppException):
    """Raised when a referenced record is absent or not owned by the caller."""

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


class AlreadyPaidError(AppException):
    """Raised when paying an installment that is already paid."""

    def __init__(self, installment_id: Any):
        super().__init__(
            message="Installment already paid",
            error_code="ERR_IDEMPOTENCY_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"installment_id": installment_id}
        )


class AlreadyProcessedError(AppException):
    """Raised when a one-shot event (payment, settlement) was already processed."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} already processed",
            error_code="ERR_IDEMPOTENCY_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "id": resource_id}
        )


class NegativeProfitError(AppException):
    """Raised when a profit-sharing period closes with a loss."""

    def __init__(self, net_profit: Any):
        super().__init__(
            message="Net profit is negative. Cannot distribute loss to investor.",
            error_code="ERR_DOMAIN_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"net_profit": str(net_profit)}
        )


class PersistenceError(AppException):
    """Raised when the first write of an operation fails (nothing to undo)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STORE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class DependentWriteError(AppException):
    """
    Raised when a later step of a multi-record write failed.

    By the time this surfaces the earlier steps have been compensated;
    ``details`` lists what was undone and any inverse that failed.
    """

    def __init__(
        self,
        operation: str,
        failed_step: str,
        cause: str,
        rolled_back: List[str],
        compensation_failures: List[Dict[str, str]] = None
    ):
        self.operation = operation
        self.failed_step = failed_step
        self.rolled_back = rolled_back
        self.compensation_failures = compensation_failures or []
        super().__init__(
            message=f"{operation} failed at step '{failed_step}': {cause}",
            error_code="ERR_STORE_002",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={
                "operation": operation,
                "failed_step": failed_step,
                "rolled_back": rolled_back,
                "compensation_failures": self.compensation_failures
            }
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class SchemaShapeUnresolvedError(Exception):
    """
    No candidate column answered a probe.

    Never raised to callers: the resolver logs it and falls back to the
    most-preferred candidate.
    """

    def __init__(self, table: str, candidates: List[str]):
        self.table = table
        self.candidates = list(candidates)
        super().__init__(
            f"None of {self.candidates} could be resolved on table '{table}'"
        )


@dataclass
class PartialSideEffectWarning:
    """Non-fatal diagnostic attached to a successful response."""
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message, extra={"details": exc.details})
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
                "errors": jsonable_errors(exc.errors())
            }
        }
    )


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


def jsonable_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Strip non-serializable ``ctx`` payloads from pydantic error dicts."""
    cleaned = []
    for error in errors:
        item = {key: value for key, value in error.items() if key != "ctx"}
        if "ctx" in error:
            item["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        cleaned.append(item)
    return cleaned


def warning_payload(warnings: Optional[List[PartialSideEffectWarning]]) -> List[Dict[str, Any]]:
    return [warning.as_dict() for warning in warnings or []]
