"""OpenTelemetry tracing for vault storage operations.

Span attributes carry the logical bucket and a SHA-256 of the object name.
Absolute filesystem paths, file content and key material are never
exported.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
import os
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from filevault.storage.models import ServedObject

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    return default


def _is_otel_enabled() -> bool:
    return _get_env_bool("FILEVAULT_OTEL_ENABLED", False)


def _name_sha256(name: str) -> str:
    return hashlib.sha256(name.encode("utf-8")).hexdigest()


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace async vault operations with OpenTelemetry.

    The wrapped method must take ``bucket`` and may take ``name``; both are
    looked up by parameter name.

    Args:
        operation: Operation name (e.g., "save", "open", "delete").

    Returns:
        Decorated coroutine function that emits a span when tracing is enabled.
    """

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not _is_otel_enabled():
                return await func(self, *args, **kwargs)

            bound = signature.bind(self, *args, **kwargs)
            bucket = bound.arguments.get("bucket")
            name = bound.arguments.get("name")

            tracer = trace.get_tracer("filevault.storage")
            with tracer.start_as_current_span(f"filevault.storage.{operation}") as span:
                span.set_attribute("filevault.bucket", str(bucket))
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                if name:
                    span.set_attribute("filevault.object_name_sha256", _name_sha256(name))

                try:
                    result = await func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add result-based attributes to span safely."""
    if operation == "save" and isinstance(result, str):
        span.set_attribute("filevault.object_name_sha256", _name_sha256(result))
    elif operation == "open":
        span.set_attribute("filevault.object_found", result is not None)
        if isinstance(result, ServedObject):
            if result.meta.mime_type:
                span.set_attribute("filevault.object_content_type", result.meta.mime_type)
            if result.meta.file_size is not None:
                span.set_attribute("filevault.object_size_bytes", result.meta.file_size)
