"""Observability helpers."""

from backend.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_gateway_call,
    record_transcript_read,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_gateway_call",
    "record_transcript_read",
]
