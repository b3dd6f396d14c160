"""
Custom HTTP exceptions and global exception handlers for MyTasks.
All application-level errors are defined here for consistency.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ── Custom exception classes ──────────────────────────────────────────────────

class MyTasksException(Exception):
    """Base exception for all MyTasks domain errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "MYTASKS_ERROR"
        super().__init__(detail)


class NotFoundException(MyTasksException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class UnauthorizedException(MyTasksException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class InvalidTokenException(MyTasksException):
    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_TOKEN",
        )


class BadRequestException(MyTasksException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST",
        )


# ── Attachment errors ─────────────────────────────────────────────────────────

class ValidationError(MyTasksException):
    """
    A candidate PDF was rejected before any network call.
    `reason` is either "too large" or "wrong type".
    """

    TOO_LARGE = "too large"
    WRONG_TYPE = "wrong type"

    def __init__(self, reason: str, detail: str | None = None) -> None:
        self.reason = reason
        if reason == self.TOO_LARGE:
            status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
            error_code = "FILE_TOO_LARGE"
        else:
            status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
            error_code = "UNSUPPORTED_FILE_TYPE"
        super().__init__(
            status_code=status_code,
            detail=detail or reason,
            error_code=error_code,
        )


class StorageError(MyTasksException):
    """Object store transport or provider failure."""

    def __init__(self, detail: str, error_code: str = "STORAGE_ERROR") -> None:
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code,
        )


class ObjectNotFoundError(StorageError):
    def __init__(self, bucket: str, path: str) -> None:
        self.bucket = bucket
        self.path = path
        super().__init__(
            detail=f"Object '{path}' not found in bucket '{bucket}'",
            error_code="OBJECT_NOT_FOUND",
        )


class ResolutionFailure(StorageError):
    """Signed URL issuance failed. Callers degrade to "link unavailable"."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=detail, error_code="SIGNED_URL_UNAVAILABLE")


class DatabaseError(MyTasksException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="DATABASE_ERROR",
        )


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "detail": detail,
        },
    )


async def mytasks_exception_handler(
    request: Request, exc: MyTasksException
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed: method=%s path=%s error=%s detail=%s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.detail,
        )
    return _error_response(exc.status_code, exc.detail, exc.error_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "VALIDATION_ERROR",
            "detail": "Request validation failed",
            "errors": errors,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected internal server error occurred",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(MyTasksException, mytasks_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
