"""
Custom exception hierarchy for the availability service.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class AvailabilityException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInputError(AvailabilityException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_INPUT"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class PolicyNotFoundError(AvailabilityException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "POLICY_NOT_FOUND"

    def __init__(self, policy_id: int, version: Optional[int] = None):
        details: dict[str, Any] = {"policy_id": policy_id}
        label = f"Policy {policy_id}"
        if version is not None:
            details["version"] = version
            label += f" version {version}"
        super().__init__(message=f"{label} not found.", details=details)


class NoActivePolicyError(AvailabilityException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NO_ACTIVE_POLICY"

    def __init__(self):
        super().__init__(
            message="No active policy found and no week lock or explicit policy given.",
        )


class WeekLockNotFoundError(AvailabilityException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "WEEK_LOCK_NOT_FOUND"

    def __init__(self, week_year: int, week_number: int):
        super().__init__(
            message=f"No policy lock for ISO week {week_year}-W{week_number:02d}.",
            details={"week_year": week_year, "week_number": week_number},
        )


class PartialComputationError(AvailabilityException):
    """Raised in weekly auto mode when the policy asks to abort on a failed day."""
    http_status = status.HTTP_409_CONFLICT
    code = "PARTIAL_COMPUTATION_FAILURE"

    def __init__(self, week_start: date, failed_days: list[date]):
        super().__init__(
            message=(
                f"Daily recomputation failed for {len(failed_days)} day(s) "
                f"of the week starting {week_start}."
            ),
            details={
                "week_start": str(week_start),
                "failed_days": [str(d) for d in failed_days],
            },
        )


class PersistenceError(AvailabilityException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Could not persist results of {operation}.",
            details={"operation": operation, "reason": reason},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def availability_exception_handler(
    request: Request, exc: AvailabilityException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
