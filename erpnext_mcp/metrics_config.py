"""ERPNext MCP Metrics Configuration.

Local-only metrics collection using OpenTelemetry with a Prometheus reader.
Metrics are disabled in test/CI environments unless explicitly enabled.
"""

from __future__ import annotations

import logging
import os
import socket
import time
from typing import Any

from opentelemetry import metrics
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import start_http_server

logger = logging.getLogger(__name__)

# =============================================================================
# SERVICE CONFIGURATION
# =============================================================================

SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "erpnext-mcp")
SERVICE_VERSION = os.getenv("OTEL_SERVICE_VERSION", "1.0.0")
DEPLOYMENT_ENVIRONMENT = os.getenv("DEPLOYMENT_ENVIRONMENT", "local")
METRICS_PORT = int(os.getenv("MCP_METRICS_PORT", "8001"))


def is_test_environment() -> bool:
    """Detect if running in test environment."""
    return "PYTEST_CURRENT_TEST" in os.environ or "CI" in os.environ or "GITHUB_ACTIONS" in os.environ


default_metrics_enabled = "false" if is_test_environment() else "true"
METRICS_ENABLED = os.getenv("MCP_METRICS_ENABLED", default_metrics_enabled).lower() == "true"

# Metrics instances
meter = None
tool_calls_counter = None
tool_call_duration = None
bulk_operations_counter = None
bulk_rollbacks_counter = None
prometheus_reader = None

_metrics_initialized = False


def get_resource() -> Resource:
    """Create OpenTelemetry resource with service information."""
    return Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.version": SERVICE_VERSION,
            "deployment.environment": DEPLOYMENT_ENVIRONMENT,
            "host.name": socket.gethostname(),
        }
    )


def initialize_metrics(port: int = METRICS_PORT):
    """Initialize local metrics collection and serve it on a Prometheus endpoint."""
    global meter, tool_calls_counter, tool_call_duration
    global bulk_operations_counter, bulk_rollbacks_counter, prometheus_reader

    if not METRICS_ENABLED:
        logger.debug("Metrics disabled")
        return

    try:
        prometheus_reader = PrometheusMetricReader()
        meter_provider = MeterProvider(resource=get_resource(), metric_readers=[prometheus_reader])
        metrics.set_meter_provider(meter_provider)
        start_http_server(port)
        meter = metrics.get_meter(__name__)

        tool_calls_counter = meter.create_counter(
            name="mcp_tool_calls_total",
            description="Total number of MCP tool calls",
            unit="1",
        )
        tool_call_duration = meter.create_histogram(
            name="mcp_tool_call_duration_ms",
            description="MCP tool call latency",
            unit="ms",
        )
        bulk_operations_counter = meter.create_counter(
            name="erp_bulk_operations_total",
            description="Bulk operations dispatched to ERPNext, by type and status",
            unit="1",
        )
        bulk_rollbacks_counter = meter.create_counter(
            name="erp_bulk_rollbacks_total",
            description="Bulk runs that triggered compensating rollback",
            unit="1",
        )
        logger.info("Metrics initialized: %s v%s, endpoint http://localhost:%d/metrics", SERVICE_NAME, SERVICE_VERSION, port)
    except Exception as e:
        logger.warning("Metrics initialization failed: %s", e)


def is_metrics_enabled() -> bool:
    """Check if metrics collection is enabled."""
    return METRICS_ENABLED and meter is not None


def record_tool_call_start() -> float | None:
    """Record start of tool call, return start time."""
    if not is_metrics_enabled():
        return None
    return time.time()


def record_tool_call_success(tool_name: str, start_time: float | None):
    """Record successful tool call."""
    if is_metrics_enabled() and tool_calls_counter:
        tool_calls_counter.add(1, {"tool_name": tool_name, "status": "success"})
    _record_duration(tool_name, start_time)


def record_tool_call_error(tool_name: str, start_time: float | None, error: Exception):
    """Record failed tool call."""
    if is_metrics_enabled() and tool_calls_counter:
        tool_calls_counter.add(
            1, {"tool_name": tool_name, "status": "error", "error_type": type(error).__name__}
        )
    _record_duration(tool_name, start_time)


def _record_duration(tool_name: str, start_time: float | None):
    if start_time is not None and tool_call_duration:
        tool_call_duration.record((time.time() - start_time) * 1000, {"tool_name": tool_name})


def record_bulk_operation(operation_type: str, success: bool):
    """Record one dispatched bulk operation."""
    if is_metrics_enabled() and bulk_operations_counter:
        bulk_operations_counter.add(
            1, {"operation_type": operation_type, "status": "success" if success else "failed"}
        )


def record_bulk_rollback(compensations: int):
    """Record a rollback and how many compensations it replayed."""
    if is_metrics_enabled() and bulk_rollbacks_counter:
        bulk_rollbacks_counter.add(1, {"has_compensations": str(compensations > 0).lower()})


def get_metrics_summary() -> dict[str, Any]:
    """Get metrics summary for debugging."""
    if not is_metrics_enabled():
        return {"status": "disabled"}

    return {
        "status": "active",
        "service_name": SERVICE_NAME,
        "service_version": SERVICE_VERSION,
        "environment": DEPLOYMENT_ENVIRONMENT,
        "prometheus_enabled": prometheus_reader is not None,
    }


def ensure_metrics_initialized():
    """Initialize metrics when server starts."""
    global _metrics_initialized
    if _metrics_initialized:
        return

    if METRICS_ENABLED and not is_test_environment():
        initialize_metrics()
    _metrics_initialized = True
