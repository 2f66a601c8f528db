"""OpenTelemetry wiring: OTLP export of traces, metrics and logs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from dashboard.config import AppSettings

logger = logging.getLogger(__name__)

SERVICE_NAMESPACE = "restaurant-dashboard"
METRIC_EXPORT_INTERVAL_MS = 15000


@dataclass
class _Providers:
    tracer: TracerProvider
    meter: MeterProvider
    logs: LoggerProvider


_providers: _Providers | None = None


def _otlp_kwargs(settings: AppSettings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        kwargs["endpoint"] = settings.telemetry_otlp_endpoint
    return kwargs


def _install_providers(settings: AppSettings) -> _Providers:
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_NAMESPACE: SERVICE_NAMESPACE,
        }
    )
    otlp = _otlp_kwargs(settings)

    tracer = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    tracer.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**otlp)))
    trace.set_tracer_provider(tracer)

    reader = PeriodicExportingMetricReader(OTLPMetricExporter(**otlp), export_interval_millis=METRIC_EXPORT_INTERVAL_MS)
    meter = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter)

    logs = LoggerProvider(resource=resource)
    logs.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**otlp)))
    set_logger_provider(logs)

    return _Providers(tracer=tracer, meter=meter, logs=logs)


def setup_telemetry(app: FastAPI, settings: AppSettings, engine: AsyncEngine | None = None) -> bool:
    """Export telemetry over OTLP and instrument the app, httpx and SQLAlchemy.

    Providers are process-global, so only the first enabled call installs
    them. Returns whether telemetry is active.
    """

    global _providers  # noqa: PLW0603

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False
    if _providers is not None:
        return True

    providers = _install_providers(settings)
    FastAPIInstrumentor.instrument_app(app, tracer_provider=providers.tracer, meter_provider=providers.meter)
    # OnlinePOS calls become client spans under the request span
    HTTPXClientInstrumentor().instrument(tracer_provider=providers.tracer)
    LoggingInstrumentor().instrument(set_logging_format=False)
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=providers.tracer)

    _providers = providers
    logger.info("Telemetry exporting to %s", settings.telemetry_otlp_endpoint or "the default OTLP endpoint")
    return True


def shutdown_telemetry() -> None:
    """Flush pending spans, metrics and log records before exit."""

    global _providers  # noqa: PLW0603

    if _providers is None:
        return
    _providers.tracer.shutdown()
    _providers.meter.shutdown()
    _providers.logs.shutdown()
    _providers = None


__all__ = ["setup_telemetry", "shutdown_telemetry"]
