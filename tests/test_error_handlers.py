"""Failure envelopes produced by the exception handlers."""

import json
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException
from psycopg.errors import ForeignKeyViolation, UniqueViolation
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.requests import Request

from src.auth.exceptions import MissingTokenError
from src.exceptions import OperationFailedError, PermissionDeniedError, ResourceNotFoundError, ValidationError
from src.middleware.error_handlers import (
    handle_authentication_errors,
    handle_database_errors,
    handle_domain_errors,
    handle_http_exceptions,
    handle_rate_limit_errors,
    handle_storage_errors,
    handle_unexpected_errors,
)
from src.storage.exceptions import FileUploadError


@pytest.fixture
def request_() -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/v1/formations",
            "headers": [(b"authorization", b"Bearer secret")],
            "query_string": b"",
            "client": ("127.0.0.1", 5000),
        }
    )


def _body(response) -> dict:
    return json.loads(response.body)


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (ResourceNotFoundError("Quiz", "q1"), 404),
        (PermissionDeniedError(), 403),
        (ValidationError("bad"), 400),
        (OperationFailedError("Quiz submission", "timeout"), 500),
    ],
)
async def test_domain_errors_map_to_status(request_, exc, status_code) -> None:
    response = await handle_domain_errors(request_, exc)

    assert response.status_code == status_code
    assert _body(response) == {"success": False, "message": exc.message}


async def test_validation_error_items_are_kept(request_) -> None:
    exc = ValidationError("Bad header", [{"field": "X-Organization-Id", "message": "not a uuid", "type": "uuid"}])

    body = _body(await handle_domain_errors(request_, exc))

    assert body["errors"] == [{"field": "X-Organization-Id", "message": "not a uuid", "type": "uuid"}]


async def test_http_exception_keeps_status_and_headers(request_) -> None:
    exc = HTTPException(status_code=413, detail="File too large", headers={"X-Limit": "100"})

    response = await handle_http_exceptions(request_, exc)

    assert response.status_code == 413
    assert response.headers["X-Limit"] == "100"
    assert _body(response) == {"success": False, "message": "File too large"}


async def test_authentication_errors_ask_for_bearer(request_) -> None:
    response = await handle_authentication_errors(request_, MissingTokenError())

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_storage_errors_are_500(request_) -> None:
    response = await handle_storage_errors(request_, FileUploadError("bucket missing"))

    assert response.status_code == 500
    assert _body(response)["message"] == "bucket missing"


async def test_rate_limit_uses_envelope(request_) -> None:
    exc = RateLimitExceeded(SimpleNamespace(error_message=None, limit="20 per 1 minute"))

    response = await handle_rate_limit_errors(request_, exc)

    assert response.status_code == 429
    assert _body(response) == {"success": False, "message": "Rate limit exceeded: 20 per 1 minute"}


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (IntegrityError("INSERT", {}, UniqueViolation("duplicate key")), 409),
        (IntegrityError("INSERT", {}, ForeignKeyViolation("missing parent")), 400),
        (OperationalError("SELECT 1", {}, Exception("could not connect")), 503),
    ],
)
async def test_database_errors(request_, exc, status_code) -> None:
    response = await handle_database_errors(request_, exc)

    assert response.status_code == status_code
    assert _body(response)["success"] is False


async def test_unexpected_errors_hide_details(request_) -> None:
    response = await handle_unexpected_errors(request_, RuntimeError("password=hunter2"))

    body = _body(response)
    assert response.status_code == 500
    assert "hunter2" not in body["message"]
    assert body["message"].startswith("An unexpected error occurred (error id: ")


async def test_unknown_route_uses_envelope(client) -> None:
    response = await client.get(f"/api/v1/unknown/{uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}
