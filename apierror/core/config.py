"""Application configuration helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
import os

DEFAULT_MAX_FLATTEN_DEPTH = 32
DEFAULT_UPSTREAM_STATUS_CODE = 502
DEFAULT_REDACTED_HEADERS = ("authorization", "cookie", "x-api-key")


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _get_csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


def redact_secret(secret: str) -> str:
    """Return a non-recoverable placeholder for sensitive values."""
    if not secret:
        return "<empty>"
    return "<redacted>"


def redact_headers(
    headers: Mapping[str, Any] | None,
    sensitive: tuple[str, ...] = DEFAULT_REDACTED_HEADERS,
) -> dict[str, Any]:
    """Return a copy of request headers with credential-bearing values redacted."""
    if not headers:
        return {}
    return {
        name: redact_secret(str(value)) if name.lower() in sensitive else value
        for name, value in headers.items()
    }


@dataclass(frozen=True)
class ErrorSettings:
    """Runtime settings for upstream API error normalization."""

    max_flatten_depth: int
    upstream_status_code: int
    redacted_headers: tuple[str, ...]

    def safe_for_logging(self) -> dict[str, str | int]:
        """Return error settings safe for logs."""
        return {
            "max_flatten_depth": self.max_flatten_depth,
            "upstream_status_code": self.upstream_status_code,
            "redacted_headers": ",".join(self.redacted_headers),
        }


@lru_cache(maxsize=1)
def get_error_settings() -> ErrorSettings:
    """Load error settings from the environment."""
    max_depth = _get_int_env("APIERROR_MAX_FLATTEN_DEPTH", DEFAULT_MAX_FLATTEN_DEPTH)
    if max_depth <= 0:
        raise ValueError("APIERROR_MAX_FLATTEN_DEPTH must be positive")

    return ErrorSettings(
        max_flatten_depth=max_depth,
        upstream_status_code=_get_int_env("APIERROR_UPSTREAM_STATUS_CODE", DEFAULT_UPSTREAM_STATUS_CODE),
        redacted_headers=_get_csv_env("APIERROR_REDACTED_HEADERS", DEFAULT_REDACTED_HEADERS),
    )
