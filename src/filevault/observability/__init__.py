"""FileVault observability: OpenTelemetry tracing."""

from filevault.observability.tracing import configure_tracing, get_current_trace_id

__all__ = ["configure_tracing", "get_current_trace_id"]
