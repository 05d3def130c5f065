"""
Operation runner: executes a service call and turns its outcome into a discriminated result.

Validation failures (AttendanceError) become a failed OperationResult after the
session is rolled back. Persistence failures (SQLAlchemyError) are re-raised as
InfrastructureError and rendered as 503 by the exception handler.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AttendanceError, InfrastructureError, error_payload

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    ok: bool
    data: Any = None
    message: Optional[str] = None
    error_kind: Optional[str] = None
    status_code: int = status.HTTP_200_OK
    error: Optional[AttendanceError] = None

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None, status_code: int = status.HTTP_200_OK) -> "OperationResult":
        return cls(ok=True, data=data, message=message, status_code=status_code)

    @classmethod
    def failure(cls, exc: AttendanceError) -> "OperationResult":
        return cls(ok=False, message=exc.message, error_kind=exc.kind, status_code=exc.status_code, error=exc)

    def to_response(self, serialize: Optional[Callable[[Any], Any]] = None) -> JSONResponse:
        """Render the {"ok", "data", "message"} / {"ok", "error_kind", "message"} envelope."""
        if not self.ok:
            return JSONResponse(status_code=self.status_code, content=error_payload(self.error_kind, self.message))
        data = serialize(self.data) if serialize is not None else self.data
        return JSONResponse(
            status_code=self.status_code,
            content={"ok": True, "data": _jsonable(data), "message": self.message},
        )


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_jsonable(item) for item in data]
    return data


def run_operation(
    db: Session,
    func: Callable[..., Any],
    *args: Any,
    success_message: Optional[str] = None,
    success_status: int = status.HTTP_200_OK,
    **kwargs: Any,
) -> OperationResult:
    """
    Call func(db, *args, **kwargs) and wrap the outcome

    A returned object exposing `message` (e.g. CheckInOutcome) supplies the
    success message itself; otherwise success_message is used.
    """
    try:
        value = func(db, *args, **kwargs)
    except AttendanceError as exc:
        db.rollback()
        logger.info("%s rejected: %s (%s)", func.__name__, exc.kind, exc.message)
        return OperationResult.failure(exc)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s failed on persistence: %s", func.__name__, exc)
        raise InfrastructureError() from exc

    message = getattr(value, "message", None) or success_message
    return OperationResult.success(value, message=message, status_code=success_status)
