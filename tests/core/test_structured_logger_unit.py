import logging

from core.error_handler import (
    StructuredLogger,
    get_correlation_id,
    set_correlation_id,
)


def test_structured_logger_redacts_sensitive_keys(monkeypatch):
    logger = StructuredLogger("tests")
    monkeypatch.setenv("ENVIRONMENT", "development")

    # use non-sensitive placeholder values to avoid secret-detection false positives
    data = {
        "api_key": "placeholder_key",  # pragma: allowlist secret
        "email": "me@example.com",
        "project_type": "residential",
    }
    sanitized = logger._sanitize_data(data)

    assert sanitized["api_key"] == "[REDACTED]"
    assert sanitized["email"] == "[REDACTED]"
    assert sanitized["project_type"] == "residential"


def test_structured_logger_keeps_length_fields_but_hides_prompt_text():
    logger = StructuredLogger("tests")

    sanitized = logger._sanitize_data({"prompt_text": "You are...", "prompt_chars": 10})

    assert sanitized["prompt_text"] == "[REDACTED]"
    assert sanitized["prompt_chars"] == 10


def test_structured_logger_recurses_into_containers():
    logger = StructuredLogger("tests")

    sanitized = logger._sanitize_data(
        {"upstream": {"token": "placeholder", "status": 503}, "items": [{"key": "x"}]}
    )

    assert sanitized["upstream"] == {"token": "[REDACTED]", "status": 503}
    assert sanitized["items"] == [{"key": "[REDACTED]"}]


def test_structured_logger_header_like_redaction():
    logger = StructuredLogger("tests")

    # header value uses a benign placeholder token
    header = {"name": "Authorization", "value": "Bearer placeholder_token"}
    redacted = logger._redact_header_like(header)

    assert redacted is not None
    assert redacted["value"] == "[REDACTED]"
    assert redacted["name"] == "Authorization"


def test_structured_logger_attaches_correlation_id(caplog):
    set_correlation_id("corr-test")
    logger = StructuredLogger("tests.structured")

    with caplog.at_level(logging.INFO, logger="tests.structured"):
        logger.info("Estimation started", estimation_id="e-1")

    record = caplog.records[-1]
    assert "[corr-test] Estimation started" in record.getMessage()
    assert record.structured_data == {
        "correlation_id": "corr-test",
        "estimation_id": "e-1",
    }
    set_correlation_id(None)


def test_get_correlation_id_creates_one_when_unset():
    set_correlation_id(None)
    first = get_correlation_id()
    assert first
    assert get_correlation_id() == first
    set_correlation_id(None)
