"""Tests for observability configuration."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from core.observability import configure_observability, get_tracer


@pytest.fixture(autouse=True)
def _fresh_configuration():
    configure_observability.cache_clear()
    yield
    configure_observability.cache_clear()


def test_disabled_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENABLE_OBSERVABILITY", raising=False)

    assert configure_observability() is False


def test_enabled_without_connection_string_is_skipped(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ENABLE_OBSERVABILITY", "true")
    monkeypatch.delenv("APPLICATIONINSIGHTS_CONNECTION_STRING", raising=False)

    assert configure_observability() is False


def test_enabled_with_connection_string_configures_azure_monitor(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ENABLE_OBSERVABILITY", "1")
    monkeypatch.setenv("APPLICATIONINSIGHTS_CONNECTION_STRING", "InstrumentationKey=x")
    monkeypatch.setenv("OTEL_SERVICE_NAME", "estimation-test")
    azure_module = MagicMock()

    with patch.dict(sys.modules, {"azure.monitor.opentelemetry": azure_module}):
        assert configure_observability() is True

    azure_module.configure_azure_monitor.assert_called_once_with(
        connection_string="InstrumentationKey=x"
    )


def test_get_tracer_works_without_sdk() -> None:
    tracer = get_tracer("tests")

    with tracer.start_as_current_span("estimation.test") as span:
        span.set_attribute("estimation.chunks", 3)
