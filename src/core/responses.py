"""Uniform JSON envelope returned by every formations endpoint."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class ErrorItem(BaseModel):
    """One itemized validation issue."""

    field: str
    message: str
    type: str


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: flag, payload and a human readable message.

    Failures are rendered by the exception handlers with ``envelope()`` and
    carry an ``errors`` list instead of ``data``.
    """

    success: bool = True
    data: T | None = None
    message: str = ""


def envelope(
    data: Any = None,
    message: str = "",
    *,
    success: bool = True,
    errors: list[ErrorItem] | None = None,
) -> dict[str, Any]:
    """Build an envelope dict, dropping keys that carry no value."""
    content: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        content["data"] = data
    if errors is not None:
        content["errors"] = [error.model_dump() for error in errors]
    return content
