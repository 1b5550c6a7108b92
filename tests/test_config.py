"""Tests for specrun.config and the settings models."""

from __future__ import annotations

import pytest

from specrun.config import api_root_for, normalize_base_url, resolve_settings
from specrun.exceptions import InvalidArgumentError
from specrun.models import DEFAULT_BASE_URL, ResolvedSettings, RetryPolicy


class TestResolveSettings:
    def test_defaults(self) -> None:
        settings = resolve_settings()
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.timeout_seconds == 60.0
        assert settings.retry_policy == RetryPolicy(max_attempts=3, base_delay_seconds=1.0)
        assert settings.credentials is None

    def test_explicit_values(self) -> None:
        settings = resolve_settings(
            base_url=" https://api.example.com/v2 ",
            timeout_seconds=5,
            max_attempts=1,
            base_delay_seconds=0.25,
        )
        assert settings.base_url == "https://api.example.com/v2/"
        assert settings.timeout_seconds == 5
        assert settings.retry_policy.max_attempts == 1
        assert settings.retry_policy.base_delay_seconds == 0.25

    def test_clamping(self) -> None:
        settings = resolve_settings(timeout_seconds=0.1, max_attempts=-2, base_delay_seconds=-1)
        assert settings.timeout_seconds == 1.0
        assert settings.retry_policy.max_attempts == 0
        assert settings.retry_policy.base_delay_seconds == 0

    def test_credentials_from_path(self) -> None:
        settings = resolve_settings(issuer_id="iss", key_id="KEY", private_key_path="~/AuthKey.p8")
        assert settings.credentials is not None
        assert settings.credentials.private_key.kind == "file"
        assert settings.credentials.private_key.value == "~/AuthKey.p8"

    def test_partial_credentials(self) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            resolve_settings(issuer_id="iss")
        assert exc_info.value.details == {"missing": ["keyId", "privateKey"]}

    def test_two_key_sources(self) -> None:
        with pytest.raises(InvalidArgumentError, match="only one"):
            resolve_settings(issuer_id="i", key_id="k", private_key_pem="pem", private_key_path="p")


class TestUrls:
    def test_normalize_adds_slash(self) -> None:
        assert normalize_base_url("https://api.example.com/v1") == "https://api.example.com/v1/"

    def test_normalize_rejects_non_http(self) -> None:
        with pytest.raises(InvalidArgumentError):
            normalize_base_url("ftp://example.com/")

    @pytest.mark.parametrize(
        "base_url, root",
        [
            ("https://api.appstoreconnect.apple.com/v1/", "https://api.appstoreconnect.apple.com/"),
            ("https://api.appstoreconnect.apple.com/v1", "https://api.appstoreconnect.apple.com/"),
            ("https://proxy.example.com/asc/v1/", "https://proxy.example.com/asc/"),
        ],
    )
    def test_api_root(self, base_url: str, root: str) -> None:
        assert api_root_for(base_url) == root


class TestSettingsModels:
    def test_retry_policy_clamps_on_construction(self) -> None:
        policy = RetryPolicy(max_attempts=-1, base_delay_seconds=-0.5)
        assert policy.max_attempts == 0
        assert policy.base_delay_seconds == 0

    def test_resolved_settings_normalizes_directly(self) -> None:
        settings = ResolvedSettings(base_url="https://h/v1", timeout_seconds=0)
        assert settings.base_url == "https://h/v1/"
        assert settings.timeout_seconds == 1.0
