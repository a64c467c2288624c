"""Centralized error handling and logging for the estimation API.

This module provides:
- Correlation id tracking across async calls
- A structured logger that redacts sensitive keys
- The global exception handler and its normalization middleware
- Logging setup (JSON in production, human-readable elsewhere)
"""

import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from typing import Any

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pythonjsonlogger.json import JsonFormatter
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from core.config import get_settings
from core.exceptions import EstimationNotFoundError
from core.security_config import get_allowed_error_fields, is_sensitive_key
from schemas.api import ErrorResponse
from services.ai.exceptions import AIGenerationError


_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

logger = logging.getLogger(__name__)


def get_correlation_id() -> str:
    """Get or create a correlation ID for request tracing."""
    correlation_id = _correlation_id_var.get()
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        _correlation_id_var.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id_var.set(correlation_id)


class StructuredLogger:
    """Logger wrapper that attaches the correlation id and redacts secrets.

    Keyword arguments become structured fields. In production they travel in
    `extra["structured_data"]` so the JSON formatter emits them as keys; in
    development the correlation id is also prefixed to the message.
    """

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)

    def _log_with_context(
        self,
        level: int,
        message: str,
        extra_data: dict[str, Any] | None = None,
        exc_info: bool = False,
    ) -> None:
        correlation_id = get_correlation_id()
        log_data = {
            "correlation_id": correlation_id,
            **self._sanitize_data(extra_data or {}),
        }

        if get_settings().ENVIRONMENT == "production":
            self.logger.log(
                level, message, extra={"structured_data": log_data}, exc_info=exc_info
            )
        else:
            self.logger.log(
                level,
                f"[{correlation_id}] {message}",
                extra={"structured_data": log_data},
                exc_info=exc_info,
            )

    def _sanitize_data(self, data: dict[str, Any]) -> dict[str, Any]:
        """Mask values whose key looks sensitive, recursing into containers."""
        if not isinstance(data, dict) or not data:
            return {}

        header_redaction = self._redact_header_like(data)
        if header_redaction is not None:
            return header_redaction

        return {
            key: "[REDACTED]" if is_sensitive_key(key) else self._sanitize_value(value)
            for key, value in data.items()
        }

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self._sanitize_data(value)
        if isinstance(value, list):
            return [self._sanitize_value(item) for item in value]
        return value

    def _redact_header_like(self, data: dict[str, Any]) -> dict[str, Any] | None:
        """Redact `{"name": ..., "value": ...}` pairs whose name is sensitive."""
        if "value" not in data or not ("name" in data or "key" in data):
            return None

        header_name = data.get("name") or data.get("key")
        if not isinstance(header_name, str) or not is_sensitive_key(header_name):
            return None

        return {
            sub_k: "[REDACTED]" if sub_k.lower() in {"value", "val", "v"} else sub_v
            for sub_k, sub_v in data.items()
        }

    def info(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.ERROR, message, kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at error level with the active traceback."""
        self._log_with_context(logging.ERROR, message, kwargs, exc_info=True)


structured_logger = StructuredLogger(__name__)


class ExceptionNormalizationMiddleware(BaseHTTPMiddleware):
    """Catch any uncaught Exception and delegate to global_exception_handler."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            return await global_exception_handler(request, exc)


def _build_error_response(
    *,
    correlation_id: str,
    error_type: str,
    message: str,
    environment: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    error_code: str | None = None,
    details: dict[str, Any] | None = None,
    traceback_str: str | None = None,
    exception_type: str | None = None,
    validation_errors: Any | None = None,
) -> JSONResponse:
    """Construct a sanitized JSON error response respecting environment rules."""
    allowed_fields = get_allowed_error_fields(environment)
    optional_fields = {
        "error_code": error_code,
        "details": details,
        "traceback": traceback_str,
        "exception_type": exception_type,
        "validation_errors": validation_errors,
    }

    error_body: dict[str, Any] = {"correlation_id": correlation_id, "type": error_type}
    for field_name, value in optional_fields.items():
        if field_name in allowed_fields and value is not None:
            error_body[field_name] = value

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, error=error_body).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map any exception to the shared error envelope.

    Generation failures become 502 (the upstream model let us down), unknown
    estimation ids become 404, validation errors 422, everything else 500.
    """
    environment = get_settings().ENVIRONMENT
    correlation_id = get_correlation_id()
    verbose = environment != "production"

    if isinstance(exc, StarletteHTTPException):
        http_error_body: dict[str, Any] = {
            "correlation_id": correlation_id,
            "type": "http_error",
        }
        if verbose:
            http_error_body["details"] = {"detail": exc.detail}
            http_error_body["exception_type"] = exc.__class__.__name__
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                message="An HTTP error occurred", error=http_error_body
            ).model_dump(),
            headers=getattr(exc, "headers", None),
        )

    if isinstance(exc, ValidationError | RequestValidationError):
        validation_details = jsonable_encoder(exc.errors())
        structured_logger.warning(
            "Validation error", validation_errors=validation_details
        )
        return _build_error_response(
            correlation_id=correlation_id,
            error_type="validation_error",
            message="Invalid request data provided",
            environment=environment,
            validation_errors=validation_details,
            status_code=422,
        )

    if isinstance(exc, AIGenerationError):
        structured_logger.error(
            "Generation failed",
            error_code=exc.error_code,
            exception_type=exc.__class__.__name__,
        )
        return _build_error_response(
            correlation_id=correlation_id,
            error_type="generation_error",
            message=exc.message,
            environment=environment,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=exc.error_code,
            exception_type=exc.__class__.__name__ if verbose else None,
        )

    if isinstance(exc, EstimationNotFoundError):
        structured_logger.warning("Estimation not found", domain_message=str(exc))
        return _build_error_response(
            correlation_id=correlation_id,
            error_type="domain_error",
            message="The requested estimation was not found",
            environment=environment,
            status_code=status.HTTP_404_NOT_FOUND,
        )

    structured_logger.exception(
        "Unhandled exception", exception_type=exc.__class__.__name__, error=str(exc)
    )
    return _build_error_response(
        correlation_id=correlation_id,
        error_type="internal_server_error",
        message="An internal error occurred",
        environment=environment,
        traceback_str="".join(traceback.format_exception(exc)).strip()
        if verbose
        else None,
        exception_type=exc.__class__.__name__ if verbose else None,
    )


def setup_logging() -> None:
    """Configure root logging once; repeated calls are no-ops."""
    settings = get_settings()
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    log_level = logging.DEBUG if settings.ENVIRONMENT == "development" else logging.INFO

    formatter: logging.Formatter
    if settings.ENVIRONMENT == "production":
        formatter = JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level)

    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    if settings.ENVIRONMENT == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
