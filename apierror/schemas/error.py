"""Error envelope schemas shared across API handlers."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Single flattened field-level issue reported by the upstream API."""

    field: str
    issue: str


class ErrorObject(BaseModel):
    """Canonical error payload object."""

    code: str
    message: str
    upstream_code: int | str | None = None
    details: list[ErrorDetail] | None = None


class ErrorResponse(BaseModel):
    """Top-level API error response envelope."""

    error: ErrorObject
