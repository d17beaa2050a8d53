"""
Global exception handling for the application.
Every failure is rendered as the same envelope: {name, message, action, status_code}.
"""

from typing import Any, Optional

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.localization import localize

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        action: Optional[str] = None,
        cause: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.name = self.__class__.__name__
        self.message = message or localize(f"error.{self.name}.message")
        self.action = action or localize(f"error.{self.name}.action")
        self.cause = cause
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "message": self.message,
            "action": self.action,
            "status_code": self.status_code,
        }


class ValidationError(AppError):
    """Malformed or missing input, format violations, duplicates."""
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    """Authentication failure error."""
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    """Authorization failure error."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Resource not found error."""
    status_code = status.HTTP_404_NOT_FOUND


class InternalServerError(AppError):
    """Underlying store failure. The cause is kept for logs, never rendered."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ServiceError(AppError):
    """Internal contract violation or unavailable collaborator."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request rejected",
        error=exc.name,
        message=exc.message,
        path=request.url.path,
        cause=repr(exc.cause) if exc.cause is not None else None,
    )
    return _error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn FastAPI/pydantic validation failures into a field-specific ValidationError."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "body"

    if first.get("type") == "missing":
        message = localize("error.generic.required", field=field)
    elif first.get("type") == "value_error" and first.get("ctx", {}).get("error") is not None:
        message = str(first["ctx"]["error"])
    else:
        message = localize("error.generic.invalidFormat", field=field)

    return _error_response(ValidationError(message=message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(NotFoundError(message=f"Route {request.url.path} not found"))
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return _error_response(NotFoundError(message=f"Route {request.method} {request.url.path} not found"))
    return _error_response(AppError(message=str(exc.detail), status_code=exc.status_code))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""
    if isinstance(exc, AppError):
        return await app_error_handler(request, exc)

    logger.exception("Unexpected error occurred", path=request.url.path)
    return _error_response(InternalServerError(cause=exc))


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
