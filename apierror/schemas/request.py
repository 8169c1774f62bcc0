"""Outbound request context attached to upstream API errors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any


@dataclass(frozen=True)
class RequestContext:
    """The request that produced an upstream error response."""

    method: str
    path: str
    retries: int = 0
    data: Any = None
    files: list[Any] | None = None
    headers: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class RequestData:
    """Payload echoed back on an upstream error."""

    json: Any = None
    files: list[Any] = field(default_factory=list)
    headers: Mapping[str, Any] | None = None

    @classmethod
    def from_request(cls, request: RequestContext) -> RequestData:
        files = request.files if request.files is not None else []
        return cls(json=request.data, files=files, headers=request.headers)
