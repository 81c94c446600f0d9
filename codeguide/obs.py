"""Observability utilities providing OpenTelemetry spans.

A tracer provider is installed once on first use. Spans are exported to the console only
when settings.OTEL_CONSOLE_EXPORT is enabled; otherwise they are recorded but not exported,
so an external exporter can be plugged into the global provider instead.

Spans wrap the corpus build, each embedding batch, query embedding, ranking and the chat call.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from codeguide.config import settings

logger = logging.getLogger(__name__)

_otel_inited: bool = False


def _init_otel() -> None:
    """Initialize the global tracer provider once."""
    global _otel_inited
    if _otel_inited:
        return
    tp = TracerProvider()
    if settings.OTEL_CONSOLE_EXPORT:
        tp.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tp)
    _otel_inited = True


@contextmanager
def span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[trace.Span]:
    """Context manager for an OpenTelemetry span.

    Exceptions raised inside the block are recorded on the span and re-raised.
    """
    _init_otel()
    tracer = trace.get_tracer("codeguide")
    with tracer.start_as_current_span(name, attributes=attributes or {}) as otel_span:
        yield otel_span
