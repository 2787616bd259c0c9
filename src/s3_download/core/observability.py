"""Structured logging and tracing for s3-download.

Log records are rendered as JSON on stderr, keeping stdout free for command
output such as key listings. Tracing is off unless
``S3_DOWNLOAD_OTEL_ENABLED`` is set.
"""

import logging
import sys
from typing import Any, ContextManager

import structlog
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .config import settings
from .exceptions import ValidationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_tracing() -> None:
    """Install a console span exporter when tracing is enabled."""
    if not settings.otel_enabled:
        return

    from s3_download import __version__

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)
    # Restore runs are short-lived; spans are flushed to the console
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)


def _level_number(level: str) -> int:
    name = level.upper()
    if name not in LOG_LEVELS:
        raise ValidationError(
            f"Unknown log level '{level}', expected one of {', '.join(LOG_LEVELS)}"
        )
    return getattr(logging, name)


def setup_logging() -> None:
    """Route structlog through the stdlib root logger as JSON on stderr."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=_level_number(settings.log_level),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def set_log_level(level: str) -> None:
    """Change the level after import, e.g. from a ``--log-level`` option."""
    logging.getLogger().setLevel(_level_number(level))


def log_context(**values: Any) -> ContextManager:
    """Bind key/value pairs to every log record emitted inside the block."""
    return structlog.contextvars.bound_contextvars(**values)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer; spans are no-ops unless tracing is enabled."""
    return trace.get_tracer(name)


setup_logging()
setup_tracing()
