"""Unit tests for environment-driven error settings."""

from __future__ import annotations

import pytest

from apierror.core.config import DEFAULT_MAX_FLATTEN_DEPTH
from apierror.core.config import get_error_settings
from apierror.core.config import redact_headers
from apierror.core.config import redact_secret
from apierror.flatten import ErrorPayloadDepthError
from apierror.flatten import flatten


def test_defaults_apply_without_environment_overrides() -> None:
    settings = get_error_settings()

    assert settings.max_flatten_depth == DEFAULT_MAX_FLATTEN_DEPTH
    assert settings.upstream_status_code == 502
    assert settings.redacted_headers == ("authorization", "cookie", "x-api-key")


def test_environment_overrides_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APIERROR_MAX_FLATTEN_DEPTH", "4")
    monkeypatch.setenv("APIERROR_UPSTREAM_STATUS_CODE", "500")
    monkeypatch.setenv("APIERROR_REDACTED_HEADERS", "Authorization, X-Super-Properties ,")

    settings = get_error_settings()

    assert settings.max_flatten_depth == 4
    assert settings.upstream_status_code == 500
    assert settings.redacted_headers == ("authorization", "x-super-properties")
    assert settings.safe_for_logging() == {
        "max_flatten_depth": 4,
        "upstream_status_code": 500,
        "redacted_headers": "authorization,x-super-properties",
    }


def test_non_positive_depth_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APIERROR_MAX_FLATTEN_DEPTH", "0")

    with pytest.raises(ValueError):
        get_error_settings()


def test_flatten_uses_configured_depth_guard(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APIERROR_MAX_FLATTEN_DEPTH", "1")

    with pytest.raises(ErrorPayloadDepthError):
        flatten({"a": {"b": {"c": "too deep"}}})


def test_redaction_helpers_hide_credentials() -> None:
    assert redact_secret("") == "<empty>"
    assert redact_secret("token") == "<redacted>"
    assert redact_headers(None) == {}
    assert redact_headers({"Authorization": "Bot abc", "Accept": "application/json"}) == {
        "Authorization": "<redacted>",
        "Accept": "application/json",
    }
