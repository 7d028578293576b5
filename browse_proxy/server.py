from contextlib import asynccontextmanager
from typing import Sequence

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from browse_proxy.forwarding import build_http_client
from browse_proxy.vars import ENABLE_METRICS, OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME
from .routes import router


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streaming responses.
    Pass-through bodies are streamed chunk by chunk and would otherwise produce
    one span per chunk.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the pooled outbound client for the lifetime of the process."""
    async with build_http_client() as client:
        app.state.http_client = client
        yield


# Every path belongs to the proxy, so no generated docs routes
app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
tracer_provider = trace.get_tracer_provider()
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=OTLP_HEADERS or None,
    )

    # Wrap exporter with filtering to remove noisy ASGI body spans
    filtering_exporter = FilteringSpanExporter(otlp_exporter)
    span_processor = BatchSpanProcessor(filtering_exporter)
    tracer_provider.add_span_processor(span_processor)

FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics")

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})

if ENABLE_METRICS:
    instrumentator = Instrumentator()
    instrumentator.instrument(app).expose(app, include_in_schema=False)


app.include_router(router)
