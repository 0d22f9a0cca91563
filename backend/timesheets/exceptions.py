from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class FieldViolation(BaseModel):
    """A single field-level validation failure."""

    path: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    violations: list[FieldViolation] | None = None


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """One or more fields of an entry are invalid. Never retried."""

    def __init__(self, violations: list[FieldViolation]) -> None:
        if not violations:
            msg = "ValidationError requires at least one violation"
            raise ValueError(msg)
        self.violations = list(violations)
        super().__init__(
            "; ".join(f"{v.path}: {v.message}" for v in self.violations),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @classmethod
    def single(cls, path: str, message: str) -> ValidationError:
        return cls([FieldViolation(path=path, message=message)])

    @property
    def paths(self) -> list[str]:
        return [v.path for v in self.violations]


class UnauthenticatedError(AppError):
    """No authenticated actor is present."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    """The actor lacks the role or ownership required for the operation."""

    def __init__(self, message: str = "Not authorized to perform this action") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    """The addressed document does not exist (or is soft-deleted)."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class InvalidTransitionError(AppError):
    """The workflow transition is not legal from the entry's current state."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ConflictError(AppError):
    """The entry changed since it was read; refetch and retry."""

    def __init__(self, message: str = "Entry was modified concurrently; reload and try again") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class TransientError(AppError):
    """Network or store failure that may succeed when retried."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    violations = exc.violations if isinstance(exc, ValidationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            violations=violations,
        ).model_dump(exclude_none=True),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(exclude_none=True),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
