"""Tests for application settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[call-arg]


class TestCorsOrigins:
    def test_csv_string_is_split_and_trimmed(self) -> None:
        settings = _settings(CORS_ORIGINS="https://a.dev, https://b.dev ,")
        assert settings.CORS_ORIGINS == ["https://a.dev", "https://b.dev"]

    def test_json_array_string_is_parsed(self) -> None:
        settings = _settings(CORS_ORIGINS='["https://a.dev"]')
        assert settings.CORS_ORIGINS == ["https://a.dev"]

    def test_malformed_json_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _settings(CORS_ORIGINS='["https://a.dev"')

    def test_wildcard_with_credentials_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="ALLOW_CREDENTIALS"):
            _settings(CORS_ORIGINS=["*"], ALLOW_CREDENTIALS=True)

    def test_wildcard_without_credentials_is_allowed(self) -> None:
        settings = _settings(CORS_ORIGINS=["*"], ALLOW_CREDENTIALS=False)
        assert settings.CORS_ORIGINS == ["*"]


class TestEstimationSettings:
    def test_defaults(self) -> None:
        settings = _settings()
        assert settings.LLM_PROVIDER == "gemini"
        assert settings.ESTIMATION_MAX_CONCURRENT == 8
        assert settings.ESTIMATION_CLEANUP_INTERVAL_MINUTES == 15

    def test_retention_seconds_derived_from_minutes(self) -> None:
        settings = _settings(ESTIMATION_RETENTION_MINUTES=5)
        assert settings.estimation_retention_seconds == 300

    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            _settings(ESTIMATION_MAX_CONCURRENT=0)

    def test_unknown_provider_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _settings(LLM_PROVIDER="anthropic")


class TestGetSettings:
    def test_rejects_unknown_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        get_settings.cache_clear()
        monkeypatch.setenv("ENVIRONMENT", "staging")
        try:
            with pytest.raises(ValueError, match="ENVIRONMENT"):
                get_settings()
        finally:
            monkeypatch.setenv("ENVIRONMENT", "test")
            get_settings.cache_clear()

    def test_reads_values_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        get_settings.cache_clear()
        monkeypatch.setenv("ESTIMATION_MODEL", "gpt-5-mini")
        try:
            assert get_settings().ESTIMATION_MODEL == "gpt-5-mini"
        finally:
            monkeypatch.delenv("ESTIMATION_MODEL")
            get_settings.cache_clear()
