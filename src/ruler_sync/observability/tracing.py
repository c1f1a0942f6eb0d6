"""OpenTelemetry tracing for rule loads.

A load is one trace: ``rules.load`` wraps the run and every rule group gets a
``rules.reconcile_group`` child span. Spans always feed the log correlation
ids; they leave the process only when an OTLP collector is configured.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcOTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpOTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.trace import SpanKind

from ruler_sync.observability.context import bind_context, span_ids


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span, Tracer

    from ruler_sync.config import ObservabilityCollectorConfig

logger = logging.getLogger(__name__)

SERVICE_NAME = "ruler-sync"


@dataclass
class _TracingState:
    provider: TracerProvider | None = None
    tracer: Tracer | None = None


_state = _TracingState()


def init_tracing(
    service_name: str = SERVICE_NAME,
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Create the process tracer provider."""
    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _state.provider = provider
    _state.tracer = provider.get_tracer("ruler_sync")
    logger.debug("tracer provider ready for %s", service_name)
    return provider


def _build_exporter(config: ObservabilityCollectorConfig) -> SpanExporter:
    if config.otlp_protocol == "grpc":
        return GrpcOTLPSpanExporter(
            endpoint=config.collector_endpoint,
            timeout=config.timeout_seconds,
            insecure=config.grpc_insecure,
        )
    return HttpOTLPSpanExporter(endpoint=config.collector_endpoint, timeout=config.timeout_seconds)


def configure_trace_exporter(
    config: ObservabilityCollectorConfig | None,
    provider: TracerProvider | None = None,
) -> bool:
    """Attach an OTLP span exporter when trace collection is enabled.

    Returns:
        True when spans will be exported
    """
    if config is None or not config.enabled:
        return False

    target = provider or _state.provider or init_tracing(resource_attributes=dict(config.resource_attributes))
    try:
        exporter = _build_exporter(config)
    except Exception as exc:
        logger.error(
            "unable to configure OTLP/%s exporter for %s: %s",
            config.otlp_protocol,
            config.collector_endpoint,
            exc,
            exc_info=True,
        )
        return False

    target.add_span_processor(BatchSpanProcessor(exporter))
    logger.info("exporting traces over OTLP/%s to %s", config.otlp_protocol, config.collector_endpoint)
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and drop the provider."""
    if _state.provider is not None:
        _state.provider.shutdown()
    _state.provider = None
    _state.tracer = None


def get_tracer() -> Tracer:
    if _state.tracer is None:
        init_tracing()
    return _state.tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Start a span and bind its ids to the log context for the block.

    An exception leaving the block is recorded on the span and marks it failed.
    """
    with get_tracer().start_as_current_span(name, kind=kind, attributes=attributes) as span:
        with bind_context(**span_ids(span)):
            yield span
