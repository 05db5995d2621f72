"""
OpenTelemetry Configuration

Sets up distributed tracing and structured logging for the relief request API.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'relief-request-api'

LOG_LEVELS = {
    'production': logging.WARNING,
    'staging': logging.INFO,
    'development': logging.DEBUG,
    'test': logging.WARNING,
}

SAMPLING_RATIOS = {
    'production': 0.1,
    'staging': 0.5,
}


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON with trace correlation."""

    def __init__(self, environment: str = 'development'):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'service': SERVICE_NAME,
            'environment': self.environment,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            entry['trace_id'] = format(span_context.trace_id, '032x')
            entry['span_id'] = format(span_context.span_id, '016x')

        extra_fields = getattr(record, 'extra_fields', None)
        if isinstance(extra_fields, dict):
            entry.update(extra_fields)

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_observability(config: Optional[Mapping[str, Any]] = None) -> bool:
    """
    Initialize OpenTelemetry tracing and structured logging.

    Args:
        config: Application config with ENVIRONMENT, OTEL_ENABLED, SERVICE_VERSION
            and OTEL_EXPORTER_OTLP_ENDPOINT

    Returns:
        True if a tracer provider was installed
    """
    config = config or {}
    environment = config.get('ENVIRONMENT', 'development')
    otel_enabled = bool(config.get('OTEL_ENABLED', True))
    service_version = config.get('SERVICE_VERSION', '1.0.0')

    setup_structured_logging(environment)

    if not otel_enabled:
        # Spans stay no-op without a tracer provider
        return False

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=TraceIdRatioBased(SAMPLING_RATIOS.get(environment, 1.0)),
        resource=resource
    )

    if environment in ('production', 'staging'):
        otlp_endpoint = config.get('OTEL_EXPORTER_OTLP_ENDPOINT') or 'http://localhost:4317'
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint), max_export_batch_size=512)
        )
    else:
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    return True


def setup_structured_logging(environment: str):
    """Configure structured JSON logging with trace correlation."""
    root = logging.getLogger()

    # Replace a handler installed by an earlier app factory call
    for existing in list(root.handlers):
        if isinstance(existing.formatter, StructuredFormatter):
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(environment))
    root.addHandler(handler)
    root.setLevel(LOG_LEVELS.get(environment, logging.INFO))

    # Reduce driver noise outside development
    if environment != 'development':
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
