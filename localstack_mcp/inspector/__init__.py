"""Application inspector: span API client and trace views."""

from .client import (
    ApplicationInspectorApiClient,
    EventStudioApiClient,
    InspectorEvent,
    InspectorSpan,
    SpanFilters,
    SpanPage,
)
from .reporter import format_detailed_trace_view, format_span_details, format_trace_summary_table

__all__ = [
    "ApplicationInspectorApiClient",
    "EventStudioApiClient",
    "InspectorEvent",
    "InspectorSpan",
    "SpanFilters",
    "SpanPage",
    "format_detailed_trace_view",
    "format_span_details",
    "format_trace_summary_table",
]
