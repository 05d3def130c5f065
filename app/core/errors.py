"""
Central error handling for the Guard Attendance backend

Two categories leave the core:
- AttendanceError subclasses: expected validation outcomes, surfaced verbatim
  to the caller as {"ok": false, "error_kind", "message"} and never retried.
- InfrastructureError: persistence failures, surfaced as a generic 503.
"""
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class AttendanceError(Exception):
    """Base class for typed, user-facing validation failures."""

    kind: str = "validation_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(AttendanceError):
    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authentication credentials"


class Forbidden(AttendanceError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class SubscriptionNotAllowed(AttendanceError):
    kind = "subscription_not_allowed"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, reason: str):
        messages = {
            "suspended": "Organization is suspended",
            "cancelled": "Subscription cancelled",
            "trial_expired": "Trial expired",
            "not_found": "Organization not found",
        }
        super().__init__(messages.get(reason, reason), reason=reason)
        self.reason = reason


class QuotaExceeded(AttendanceError):
    kind = "quota_exceeded"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, current: int, limit: int):
        super().__init__(
            f"Guard limit reached ({current}/{limit}). Please upgrade your plan.",
            current=current,
            limit=limit,
        )


class GuardNotFound(AttendanceError):
    kind = "guard_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Guard not found"


class UnitNotFound(AttendanceError):
    kind = "unit_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Unit not found"


class WorkEventNotFound(AttendanceError):
    kind = "work_event_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Work event not found"


class GuardNotActive(AttendanceError):
    kind = "guard_not_active"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, employment_status: str):
        super().__init__(
            f"Guard is {employment_status}. Cannot record attendance.",
            employment_status=employment_status,
        )
        self.employment_status = employment_status


class NoPrimaryUnit(AttendanceError):
    kind = "no_primary_unit"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Guard has no primary unit assigned"


class DuplicateActiveShift(AttendanceError):
    kind = "duplicate_active_shift"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Guard already has an active shift. Must check out first."


class NoActiveShift(AttendanceError):
    kind = "no_active_shift"
    status_code = status.HTTP_409_CONFLICT
    default_message = "No active shift found for this guard"


class EventLocked(AttendanceError):
    kind = "event_locked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Work event is locked and cannot be modified"


class NotEligible(AttendanceError):
    kind = "not_eligible"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Work event is not pending approval"


class AlreadyPunchedIn(AttendanceError):
    kind = "already_punched_in"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already punched in today. Punch out first."


class MustPunchInFirst(AttendanceError):
    kind = "must_punch_in_first"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Must punch in before punching out"


class NotAuthorized(AttendanceError):
    kind = "not_authorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized as supervisor for this guard"


class DuplicateGuardCode(AttendanceError):
    kind = "duplicate_guard_code"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, guard_code: str):
        super().__init__(f"Guard with code '{guard_code}' already exists", guard_code=guard_code)


class SlugTaken(AttendanceError):
    kind = "slug_taken"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, slug: str):
        super().__init__("Organization slug already taken", slug=slug)
        self.slug = slug


class EmailTaken(AttendanceError):
    kind = "email_taken"
    status_code = status.HTTP_409_CONFLICT
    default_message = "An account with this email already exists"


class InfrastructureError(Exception):
    """Persistence (or other collaborator) failure while executing a write or read."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        self.message = message
        super().__init__(message)


def error_payload(error_kind: str, message: str, path: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build the failure envelope shared by every error path."""
    payload: Dict[str, Any] = {"ok": False, "error_kind": error_kind, "message": message}
    if path is not None:
        payload["path"] = path
    payload.update(extra)
    return payload


async def attendance_error_handler(request: Request, exc: AttendanceError) -> JSONResponse:
    """Render AttendanceError raised outside run_operation (e.g. from dependencies)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.kind, exc.message, str(request.url.path)),
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None,
    )


async def infrastructure_error_handler(request: Request, exc: InfrastructureError) -> JSONResponse:
    """Infrastructure failures are reported generically; details stay in the log."""
    logger.error("Infrastructure failure on %s: %s", request.url.path, exc.__cause__ or exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_payload("infrastructure", exc.message, str(request.url.path)),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload("http_error", str(exc.detail), str(request.url.path)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_payload("request_invalid", "Validation error: Invalid request data", str(request.url.path)),
        )

    # Sanitize for JSON: e.g. ctx.error ValueError -> str
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_payload("request_invalid", "Validation error", str(request.url.path), errors=errors),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload("internal_error", "Internal server error", str(request.url.path)),
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(
            "internal_error",
            str(exc),
            str(request.url.path),
            traceback=traceback.format_exc() if settings.APP_ENV == "local" else None,
        ),
    )
