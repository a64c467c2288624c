"""Redaction and error-exposure rules shared by logging and error handling.

Keys listed here are masked by `StructuredLogger` before anything is written
to the logs. Project specifications (type, size, location, requirements) are
not secrets, but prompts and generated text are never logged verbatim either;
only their lengths are.
"""

SENSITIVE_KEYS: set[str] = {
    # Credentials
    "password",
    "secret",
    "token",
    "access_token",
    "refresh_token",
    "authorization",
    "api_key",
    "key",
    "jwt",
    "session_id",
    "bearer",
    "connection_string",
    # Personal data
    "email",
    "phone",
    "address",
    # Headers
    "set-cookie",
    "cookie",
    "x-api-key",
    "x-auth-token",
    # Free text that may carry user content
    "prompt_text",
}

# In production, error responses only contain these fields
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
    "error_code",
}

DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
    "validation_errors",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Return the error envelope fields that may be exposed in `environment`."""
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
