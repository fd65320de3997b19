from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    context: dict[str, Any] | None = None


class AppError(Exception):
    """Base application exception."""

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.context = context
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input, disallowed leave type for the category, or bad date range."""

    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConflictError(AppError):
    """The requested range overlaps an active request of the same trainer."""

    default_status_code = status.HTTP_409_CONFLICT


class NotFoundError(AppError):
    default_status_code = status.HTTP_404_NOT_FOUND


class InsufficientBalanceError(AppError):
    default_status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    default_status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(AppError):
    """Illegal transition for the request's current status."""

    default_status_code = status.HTTP_409_CONFLICT


class JobAlreadyRunningError(AppError):
    default_status_code = status.HTTP_409_CONFLICT


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            context=exc.context,
        ).model_dump(mode="json"),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
