from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
import logging
import os
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.trace import Span

from metadata_resolver.core.config import Settings
from metadata_resolver.core.references import normalize_gateway_base

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"
EMPTY_TRACE_ID = "0" * 32
EMPTY_SPAN_ID = "0" * 16
DIRECT_SOURCE = "direct"

RequestHook = Callable[[Span, Any], Awaitable[None]]
ResponseHook = Callable[[Span, Any, Any], Awaitable[None]]

logger = logging.getLogger(__name__)

_base_record_factory = logging.getLogRecordFactory()
_correlation_installed = False
_httpx_instrumentor = HTTPXClientInstrumentor()


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None = None
    gateway_bases: tuple[str, ...] = ()


def configure_logging(level: str = "INFO") -> None:
    """Install trace-correlated log records and a root handler if none exists."""
    _install_log_correlation()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def setup_telemetry(settings: Settings) -> TelemetryRuntime:
    """Export resolver spans and tag outbound gateway requests.

    Every httpx request span is labelled with the configured gateway base it
    hit, or ``direct`` for plain http(s) metadata URLs, and flagged when the
    gateway answered with an error status.
    """
    if not settings.otel_enabled:
        return TelemetryRuntime(enabled=False)

    if settings.otel_log_correlation:
        _install_log_correlation()

    gateway_bases = tuple(dict.fromkeys(normalize_gateway_base(base) for base in settings.gateway_bases))
    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: settings.otel_service_name,
                DEPLOYMENT_ENVIRONMENT: settings.environment,
                "metadata.gateway_count": len(gateway_bases),
                "metadata.primary_gateway": normalize_gateway_base(settings.primary_gateway),
            }
        ),
        sampler=TraceIdRatioBased(settings.otel_trace_sample_ratio),
    )
    exporter = _build_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    on_request, on_response = build_gateway_hooks(gateway_bases)
    _httpx_instrumentor.instrument(
        tracer_provider=provider,
        async_request_hook=on_request,
        async_response_hook=on_response,
    )
    return TelemetryRuntime(enabled=True, provider=provider, gateway_bases=gateway_bases)


def shutdown_telemetry(runtime: TelemetryRuntime) -> None:
    if not runtime.enabled:
        return
    _httpx_instrumentor.uninstrument()
    if runtime.provider is not None:
        runtime.provider.force_flush()
        runtime.provider.shutdown()


def gateway_for_url(url: str, gateway_bases: Sequence[str]) -> str:
    for base in gateway_bases:
        if url.startswith(f"{base}/"):
            return base
    return DIRECT_SOURCE


def build_gateway_hooks(gateway_bases: Sequence[str]) -> tuple[RequestHook, ResponseHook]:
    bases = tuple(gateway_bases)

    async def on_request(span: Span, request: Any) -> None:
        if span.is_recording():
            span.set_attribute("gateway.base", gateway_for_url(str(request.url), bases))

    async def on_response(span: Span, request: Any, response: Any) -> None:
        if span.is_recording() and response.status_code >= 400:
            span.set_attribute("gateway.failed", True)

    return on_request, on_response


def _build_exporter(settings: Settings) -> OTLPSpanExporter | None:
    endpoint = settings.otel_exporter_otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
    if not endpoint:
        logger.info("no OTLP endpoint configured; resolver spans stay in-process")
        return None
    headers = parse_headers(settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS"))
    return OTLPSpanExporter(endpoint=endpoint, headers=headers or None)


def parse_headers(raw: str | None) -> dict[str, str]:
    pairs = (item.partition("=") for item in (raw or "").split(","))
    return {key.strip(): value.strip() for key, separator, value in pairs if separator and key.strip()}


def _install_log_correlation() -> None:
    global _correlation_installed
    if _correlation_installed:
        return

    def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = _base_record_factory(*args, **kwargs)
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else EMPTY_TRACE_ID
        record.span_id = format(context.span_id, "016x") if context.is_valid else EMPTY_SPAN_ID
        return record

    logging.setLogRecordFactory(record_factory)
    _correlation_installed = True
