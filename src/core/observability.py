"""Observability setup: Azure Monitor export and OpenTelemetry tracers.

Call `configure_observability()` before the FastAPI app is created so the
instrumentation sees every request. Export is opt-in:

    ENABLE_OBSERVABILITY=true
    APPLICATIONINSIGHTS_CONNECTION_STRING=<connection string>
    OTEL_SERVICE_NAME=material-estimation   # optional

`azure-monitor-opentelemetry` ships in the `observability` extra. Without it
(or with export disabled) `get_tracer()` still works: the OpenTelemetry API
hands out non-recording tracers until an SDK is configured.

Span attributes must never hold prompt text, generated estimations or other
user-entered project details; record sizes and counts instead.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from opentelemetry import trace


logger = logging.getLogger(__name__)

_ENV_ENABLE_OBSERVABILITY = "ENABLE_OBSERVABILITY"
_ENV_APP_INSIGHTS_CONN_STRING = "APPLICATIONINSIGHTS_CONNECTION_STRING"
_ENV_OTEL_SERVICE_NAME = "OTEL_SERVICE_NAME"

_DEFAULT_SERVICE_NAME = "material-estimation"

# Health checks are excluded from automatic tracing
EXCLUDED_URLS = "api/v1/health,favicon.ico"


def _is_observability_enabled() -> bool:
    value = os.getenv(_ENV_ENABLE_OBSERVABILITY, "false").lower()
    return value in {"true", "1", "yes", "on"}


@lru_cache
def configure_observability() -> bool:
    """Configure Azure Monitor export once.

    Returns:
        True if export was configured, False if disabled or unavailable.
    """
    if not _is_observability_enabled():
        logger.info(
            "Observability disabled. Set %s=true to enable Azure Monitor.",
            _ENV_ENABLE_OBSERVABILITY,
        )
        return False

    connection_string = os.getenv(_ENV_APP_INSIGHTS_CONN_STRING)
    if not connection_string:
        logger.warning(
            "Observability enabled but %s not set. Skipping Azure Monitor setup.",
            _ENV_APP_INSIGHTS_CONN_STRING,
        )
        return False

    try:
        from azure.monitor.opentelemetry import configure_azure_monitor
    except ImportError:
        logger.warning(
            "azure-monitor-opentelemetry is not installed. "
            "Install the 'observability' extra to export telemetry."
        )
        return False

    os.environ.setdefault("OTEL_PYTHON_FASTAPI_EXCLUDED_URLS", EXCLUDED_URLS)
    service_name = os.getenv(_ENV_OTEL_SERVICE_NAME, _DEFAULT_SERVICE_NAME)
    os.environ.setdefault(_ENV_OTEL_SERVICE_NAME, service_name)
    configure_azure_monitor(connection_string=connection_string)
    logger.info("Azure Monitor observability configured for service '%s'", service_name)
    return True


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer for custom spans, typically `get_tracer(__name__)`."""
    return trace.get_tracer(name)
