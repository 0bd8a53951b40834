"""OpenTelemetry tracing configuration for FileVault.

Environment Variables:
    FILEVAULT_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    FILEVAULT_REQUIRE_OTEL: Set to "1" to fail startup if tracing cannot initialize
    FILEVAULT_OTEL_SERVICE_NAME: Service name for spans (default: "filevault")
    FILEVAULT_OTEL_EXPORTER: Exporter type - "otlp" or "console" (default: "otlp")
    FILEVAULT_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (optional)
    FILEVAULT_OTEL_TEST_CAPTURE: Set to "1" to use in-memory exporter for tests

Never export request bodies, file content, absolute paths or the
encryption passphrase.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

if TYPE_CHECKING:
    from fastapi import FastAPI
    from opentelemetry.sdk.trace import ReadableSpan

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None
_test_exporter: InMemorySpanExporter | None = None


class TracingConfigError(Exception):
    """Raised when tracing configuration fails and FILEVAULT_REQUIRE_OTEL=1."""

    pass


def _get_env_bool(key: str, default: bool = False) -> bool:
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    return default


def _get_env_str(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _create_otlp_exporter(endpoint: str | None) -> Any:
    """Create an OTLP/HTTP exporter (needs the ``telemetry`` extra)."""
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing for FileVault.

    Idempotent - safe to call multiple times. The global tracer provider
    can only be installed once per process.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        TracingConfigError: If FILEVAULT_REQUIRE_OTEL=1 and configuration fails.
    """
    global _tracer_provider, _test_exporter

    if not _get_env_bool("FILEVAULT_OTEL_ENABLED", False):
        logger.debug("OpenTelemetry tracing disabled (FILEVAULT_OTEL_ENABLED not set)")
        return False

    if _tracer_provider is not None:
        return True

    require_otel = _get_env_bool("FILEVAULT_REQUIRE_OTEL", False)
    test_capture = _get_env_bool("FILEVAULT_OTEL_TEST_CAPTURE", False)
    service_name = _get_env_str("FILEVAULT_OTEL_SERVICE_NAME", "filevault")
    exporter_type = _get_env_str("FILEVAULT_OTEL_EXPORTER", "otlp")

    try:
        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

        if test_capture:
            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        elif exporter_type == "console":
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        else:
            endpoint = _get_env_str("FILEVAULT_OTEL_EXPORTER_OTLP_ENDPOINT") or None
            provider.add_span_processor(BatchSpanProcessor(_create_otlp_exporter(endpoint)))

        trace.set_tracer_provider(provider)
        _tracer_provider = provider
    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if require_otel:
            raise TracingConfigError(
                f"OpenTelemetry tracing required but configuration failed: {e}"
            ) from e
        return False

    logger.info(
        "OpenTelemetry tracing configured: service=%s, exporter=%s",
        service_name,
        "in-memory" if test_capture else exporter_type,
    )
    return True


def instrument_fastapi(app: FastAPI) -> None:
    """Instrument a FastAPI application (needs the ``telemetry`` extra)."""
    if not _get_env_bool("FILEVAULT_OTEL_ENABLED", False):
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
        logger.debug("FastAPI instrumented with OpenTelemetry")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def get_current_trace_id() -> str | None:
    """Hex trace ID of the current span, or None outside a recorded span."""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def get_test_spans() -> list[ReadableSpan]:
    """Spans captured by the in-memory exporter (FILEVAULT_OTEL_TEST_CAPTURE=1)."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    """Clear captured spans from the in-memory exporter."""
    if _test_exporter is not None:
        _test_exporter.clear()
