"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes for the shipment lifecycle and pricing
domain, plus the global exception handlers registered on the application.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


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


class ShipmentValidationError(AppException):
    """Raised when shipment input fails a business validation rule."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class StructuralTransitionError(AppException):
    """Raised when the requested status is not reachable from the current one."""

    def __init__(self, mode: Optional[str], current_status: Optional[str], next_status: str):
        super().__init__(
            message=f"Cannot move shipment from {current_status or 'no status'} to {next_status}",
            error_code="ERR_STATUS_001",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "transport_mode": mode,
                "current_status": current_status,
                "requested_status": next_status,
            }
        )


class MissingModeError(AppException):
    """Raised when a mode-dependent operation runs without a known transport mode."""

    def __init__(self, message: str = "Transport mode is required for this operation", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STATUS_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class PaymentNotCompleteError(AppException):
    """Raised when pickup readiness is requested before payment is collected."""

    def __init__(self, payment_status: str, unpaid_tracking_numbers: Optional[List[str]] = None):
        details: Dict[str, Any] = {"payment_collection_status": payment_status}
        if unpaid_tracking_numbers:
            details["unpaid_tracking_numbers"] = unpaid_tracking_numbers
        super().__init__(
            message="Shipment cannot be marked ready for pickup until it is paid in full",
            error_code="ERR_PAYMENT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class NoApplicableRateError(AppException):
    """Raised when no pricing rule or customer override matches a shipment."""

    def __init__(self, mode: str, weight_kg: Any = None, volume_cbm: Any = None):
        super().__init__(
            message=f"No applicable {mode} rate found for this shipment",
            error_code="ERR_PRICING_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={
                "transport_mode": mode,
                "weight_kg": str(weight_kg) if weight_kg is not None else None,
                "volume_cbm": str(volume_cbm) if volume_cbm is not None else None,
            }
        )


class RestrictedItemBlockedError(AppException):
    """Raised when verification stops on a restricted package without an approved override."""

    def __init__(self, shipment_id: int, blocked_packages: List[Dict[str, Any]]):
        super().__init__(
            message="Restricted items require an approved override before verification",
            error_code="ERR_RESTRICTED_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"shipment_id": shipment_id, "blocked_packages": blocked_packages}
        )


class ConcurrentUpdateError(AppException):
    """Raised when another request changed the same row first."""

    def __init__(self, resource: str, resource_id: Any = None):
        super().__init__(
            message=f"{resource} was modified by another request, please retry",
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "id": resource_id}
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
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
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


def jsonable_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    # ctx may carry exception instances that JSONResponse cannot serialize
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
