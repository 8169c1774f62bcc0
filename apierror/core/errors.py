"""Upstream API error value and exception handler registration."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
import logging

import requests
from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse

from apierror.core.config import DEFAULT_MAX_FLATTEN_DEPTH
from apierror.core.config import get_error_settings
from apierror.core.config import redact_headers
from apierror.flatten import ErrorPayloadDepthError
from apierror.flatten import flatten_entries
from apierror.schemas.error import ErrorDetail
from apierror.schemas.error import ErrorObject
from apierror.schemas.error import ErrorResponse
from apierror.schemas.request import RequestContext
from apierror.schemas.request import RequestData

logger = logging.getLogger(__name__)

EDGE_NETWORK_BLOCK_CODE = 40333

__all__ = [
    "EDGE_NETWORK_BLOCK_CODE",
    "ErrorPayloadDepthError",
    "UpstreamAPIError",
    "register_error_handlers",
    "upstream_api_error_handler",
]


class UpstreamAPIError(Exception):
    """Raised when a remote API call fails.

    The nested error payload is flattened into one readable message while the
    original code, HTTP status and request metadata stay available as
    read-only attributes.
    """

    def __init__(
        self,
        error: Mapping[str, Any],
        status: int,
        request: RequestContext,
        *,
        max_depth: int = DEFAULT_MAX_FLATTEN_DEPTH,
    ) -> None:
        if not isinstance(error, Mapping):
            raise TypeError(f"Upstream error payload must be a mapping, got {type(error).__name__}")

        source = error.get("errors")
        if source is None:
            source = error

        entries = list(flatten_entries(source, max_depth=max_depth))
        flattened = "\n".join(variant.render(path) for path, variant in entries)
        top_message = error.get("message")
        if top_message and flattened:
            message = f"{top_message}\n{flattened}"
        else:
            message = top_message or flattened or ""

        super().__init__(message)
        self._message = str(message)
        self._details = tuple(ErrorDetail(field=path, issue=variant.render(path)) for path, variant in entries)
        self._method = request.method
        self._path = request.path
        self._code = error.get("code")
        self._http_status = status
        self._request_data = RequestData.from_request(request)
        self._retries = request.retries
        self._captcha = error if error.get("captcha_service") else None
        self._reduce_args = (error, status, request)
        self._max_depth = max_depth

    def __reduce__(self) -> tuple[Any, ...]:
        return (_rebuild_upstream_api_error, (type(self), *self._reduce_args, self._max_depth))

    @classmethod
    def from_response(cls, response: requests.Response, request: RequestContext) -> UpstreamAPIError:
        """Build the error from a failed ``requests`` response with a JSON body."""
        return cls(response.json(), response.status_code, request)

    @property
    def message(self) -> str:
        return self._message

    @property
    def method(self) -> str:
        """HTTP method used for the request."""
        return self._method

    @property
    def path(self) -> str:
        """Path of the request relative to the API base URL."""
        return self._path

    @property
    def code(self) -> int | str | None:
        """Error code reported in the upstream payload."""
        return self._code

    @property
    def http_status(self) -> int:
        return self._http_status

    @property
    def request_data(self) -> RequestData:
        return self._request_data

    @property
    def retries(self) -> int:
        """Number of times the request had been retried."""
        return self._retries

    @property
    def captcha(self) -> Mapping[str, Any] | None:
        """The original payload when the request needs a captcha solved first."""
        return self._captcha

    @property
    def details(self) -> list[ErrorDetail]:
        """Flattened field-level issues, one per rendered message line."""
        return list(self._details)

    @property
    def is_blocked_by_edge_network(self) -> bool:
        """Whether an edge protection layer rejected the request.

        The upstream signals this with a normal error body such as
        ``{"message": "internal network error", "code": 40333}``, usually
        after a malformed request or an unexpected user agent.
        """
        return self._code == EDGE_NETWORK_BLOCK_CODE

    def to_response(self) -> ErrorResponse:
        """Render this error in the shared JSON error envelope."""
        if self.is_blocked_by_edge_network:
            code = "upstream_blocked"
        elif self._captcha is not None:
            code = "captcha_required"
        else:
            code = "upstream_error"

        return ErrorResponse(
            error=ErrorObject(
                code=code,
                message=self._message or "Upstream request failed",
                upstream_code=self._code,
                details=self.details or None,
            )
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(method={self._method!r}, path={self._path!r}, "
            f"http_status={self._http_status!r}, code={self._code!r})"
        )


async def upstream_api_error_handler(_: Request, exc: UpstreamAPIError) -> JSONResponse:
    """Return failed upstream calls in the shared envelope."""

    settings = get_error_settings()
    logger.warning(
        "Upstream request %s %s failed status=%s code=%s retries=%s headers=%s",
        exc.method,
        exc.path,
        exc.http_status,
        exc.code,
        exc.retries,
        redact_headers(exc.request_data.headers, settings.redacted_headers),
    )

    payload = exc.to_response()
    return JSONResponse(
        status_code=settings.upstream_status_code,
        content=payload.model_dump(exclude_none=True),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach upstream error handlers to a FastAPI app instance."""

    app.add_exception_handler(UpstreamAPIError, upstream_api_error_handler)


def _rebuild_upstream_api_error(
    cls: type[UpstreamAPIError],
    error: Mapping[str, Any],
    status: int,
    request: RequestContext,
    max_depth: int,
) -> UpstreamAPIError:
    return cls(error, status, request, max_depth=max_depth)
