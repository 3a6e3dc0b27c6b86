"""Exception handlers rendering every failure as the response envelope.

Status mapping:
1. Request validation and domain validation failures → 400 with itemized errors
2. Authentication failures → 401, role failures → 403, missing rows → 404
3. Persistence, storage and unexpected failures → 500 (503 when the database
   is unreachable)
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg.errors import (
    CheckViolation as CheckViolationError,
    ForeignKeyViolation as ForeignKeyViolationError,
    NotNullViolation as NotNullViolationError,
    UniqueViolation as UniqueViolationError,
)
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.responses import ErrorItem, envelope
from src.exceptions import (
    DomainError,
    OperationFailedError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from src.storage.exceptions import StorageError


logger = logging.getLogger(__name__)


def error_response(
    message: str,
    status_code: int,
    errors: list[ErrorItem] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Format a failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content=envelope(message=message, success=False, errors=errors),
        headers=headers,
    )


def _field_path(loc: tuple[Any, ...]) -> str:
    # Drop the request part ("body", "query", "path") so clients see their own field names
    parts = loc[1:] if len(loc) > 1 and loc[0] in ("body", "query", "path", "header") else loc
    return ".".join(str(part) for part in parts)


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed requests before they reach a service."""
    errors = [
        ErrorItem(field=_field_path(tuple(error.get("loc", ()))), message=error["msg"], type=error["type"])
        for error in exc.errors()
    ]
    logger.info("Validation error on %s %s: %d issue(s)", request.method, request.url.path, len(errors))
    return error_response("Invalid request data", status.HTTP_400_BAD_REQUEST, errors)


async def handle_domain_errors(request: Request, exc: DomainError) -> JSONResponse:
    """Map service-layer exceptions onto HTTP status codes."""
    if isinstance(exc, ResourceNotFoundError):
        return error_response(exc.message, status.HTTP_404_NOT_FOUND)

    if isinstance(exc, PermissionDeniedError):
        return error_response(exc.message, status.HTTP_403_FORBIDDEN)

    if isinstance(exc, ValidationError):
        errors = [ErrorItem(**error) for error in exc.errors] or None
        return error_response(exc.message, status.HTTP_400_BAD_REQUEST, errors)

    if isinstance(exc, OperationFailedError):
        logger.error("%s on %s %s", exc.message, request.method, request.url.path)
        return error_response(exc.message, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return error_response(exc.message, status.HTTP_400_BAD_REQUEST)


async def handle_http_exceptions(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException (auth errors, 404 routes, 413 uploads) as an envelope."""
    return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


async def handle_authentication_errors(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render a 401 for failures raised before routing (middleware)."""
    logger.warning(
        "Authentication failed for %s %s: %s",
        request.method,
        request.url.path,
        exc.detail,
        extra={"client_host": request.client.host if request.client else "unknown"},
    )
    return error_response(str(exc.detail), exc.status_code, headers={"WWW-Authenticate": "Bearer"})


async def handle_storage_errors(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)


async def handle_rate_limit_errors(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
    return error_response(f"Rate limit exceeded: {exc.detail}", status.HTTP_429_TOO_MANY_REQUESTS)


async def handle_database_errors(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database errors that escaped a service."""
    logger.exception(
        "Database error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        extra={"error_type": type(exc).__name__},
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    cause = getattr(exc, "orig", None)
    if isinstance(cause, UniqueViolationError) or (isinstance(exc, IntegrityError) and "unique" in str(exc).lower()):
        return error_response("This resource already exists", status.HTTP_409_CONFLICT)

    if isinstance(cause, ForeignKeyViolationError):
        return error_response("Referenced resource does not exist", status.HTTP_400_BAD_REQUEST)

    if isinstance(cause, (NotNullViolationError, CheckViolationError)):
        return error_response("Required data is missing or invalid", status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, OperationalError):
        return error_response("Database connection error", status.HTTP_503_SERVICE_UNAVAILABLE)

    return error_response("A database error occurred", status.HTTP_500_INTERNAL_SERVER_ERROR)


async def handle_unexpected_errors(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with an error id, never leak internals."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)
    return error_response(
        f"An unexpected error occurred (error id: {error_id})",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log request context for an unhandled failure, without credentials."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": str(getattr(request.state, "user_id", None)),
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    context["headers"] = {
        k: v for k, v in request.headers.items() if k.lower() not in ["authorization", "cookie", "x-api-key"]
    }

    logger.error("Request failed", extra=context, exc_info=exc)
