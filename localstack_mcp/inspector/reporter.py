"""Markdown renderings of application inspector spans."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from .client import STATUS_ERROR, InspectorSpan, SpanPage

TABLE_HEADER = "| Trace Start Time | Root Operation | Services | Duration | Status | Trace ID |"


def _ns_to_ms(ns: int) -> str:
    return f"{ns / 1_000_000:.2f} ms"


def _ns_to_iso(ns: int) -> str:
    ms = ns // 1_000_000
    moment = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms % 1000:03d}Z"


def format_trace_summary_table(page: SpanPage) -> str:
    """One table row per trace, in the order traces first appear."""
    if not page.spans:
        return "No spans found."

    by_trace: dict[str, list[InspectorSpan]] = {}
    for span in page.spans:
        by_trace.setdefault(span.trace_id, []).append(span)

    lines = [TABLE_HEADER, "|---|---|---|---|---|---|"]

    for trace_id, spans in by_trace.items():
        root = next((s for s in spans if not s.parent_span_id), spans[0])
        earliest = min(s.start_time_unix_nano for s in spans)
        latest = max(s.end_time_unix_nano for s in spans)
        has_error = any(s.status_code == STATUS_ERROR for s in spans)

        duration = _ns_to_ms(latest - earliest) if latest > earliest else "0.00 ms"
        services = ", ".join(sorted({s.service_name for s in spans}))
        status = "❌" if has_error else "✅"

        lines.append(
            f"| {_ns_to_iso(root.start_time_unix_nano)} | {root.service_name}:{root.operation_name} "
            f"| {services} | {duration} | {status} | {trace_id} |"
        )

    return "\n".join(lines)


def format_detailed_trace_view(spans: list[InspectorSpan]) -> str:
    """Render the spans of one trace as an indented tree with their events.

    Spans whose parent is not in ``spans`` are treated as roots. Siblings
    are ordered by start time.
    """
    if not spans:
        return "No spans for this trace."

    children: dict[str, list[InspectorSpan]] = {s.span_id: [] for s in spans}
    roots: list[InspectorSpan] = []
    for span in spans:
        if span.parent_span_id and span.parent_span_id in children:
            children[span.parent_span_id].append(span)
        else:
            roots.append(span)

    def by_start(span: InspectorSpan) -> int:
        return span.start_time_unix_nano

    lines: list[str] = []

    def render(span: InspectorSpan, indent: int) -> None:
        pad = "  " * indent
        emoji = "❌" if span.status_code == STATUS_ERROR else "✅"
        duration = _ns_to_ms(max(0, span.end_time_unix_nano - span.start_time_unix_nano))
        parent = f" (parent: {span.parent_span.service_name})" if span.parent_span else ""

        lines.append(f"{pad}- [{emoji} {span.service_name}:{span.operation_name}] - {duration}{parent}")

        event_pad = "  " * (indent + 1)
        for event in span.events:
            lines.append(f"{event_pad}- event: {event.name} @ {_ns_to_iso(event.timestamp_unix_nano)}")
            if event.attributes:
                lines.append(f"{event_pad}\n{event_pad}```json")
                for line in json.dumps(event.attributes, indent=2).split("\n"):
                    lines.append(f"{event_pad}{line}")
                lines.append(f"{event_pad}```")

        for child in sorted(children[span.span_id], key=by_start):
            render(child, indent + 1)

    for root in sorted(roots, key=by_start):
        render(root, 0)

    return "\n".join(lines)


def format_span_details(response: dict[str, Any]) -> str:
    """One attribute table per raw EventStudio span, followed by its JSON payloads."""
    spans = response.get("spans") or []
    if not spans:
        return "No spans found matching the criteria."

    lines = [f"Found **{len(spans)}** span(s).\n"]

    for span in spans:
        start = span.get("start_time_unix_nano") or 0
        end = span.get("end_time_unix_nano")
        duration = _ns_to_ms(end - start) if end else "In Progress"
        status = f"{span.get('status_code')} {span.get('status_message') or ''}".strip()
        parent_id = span.get("parent_span_id")

        lines.extend([
            "---",
            f"### {span.get('service_name')}: {span.get('operation_name')}",
            "",
            "| Attribute | Value |",
            "|---|---|",
            f"| **Resource** | `{span.get('resource_name') or 'N/A'}` |",
            f"| **Status** | {status} |",
            f"| **Duration** | {duration} |",
            f"| **Write Op** | {'Yes' if span.get('is_write_operation') else 'No'} |",
            f"| **Trace ID** | `{span.get('trace_id')}` |",
            f"| **Span ID** | `{span.get('span_id')}` |",
            f"| **Parent Span ID** | {f'`{parent_id}`' if parent_id else 'None'} |",
        ])
        if span.get("parent_service_name"):
            lines.append(f"| **Parent Service** | {span['parent_service_name']} |")
        lines.append("")

        for title, key in (("Attributes", "attributes"), ("Events", "events")):
            if span.get(key):
                lines.append(f"**{title}**")
                lines.append(f"```json\n{json.dumps(span[key], indent=2)}\n```")
                lines.append("")

    if response.get("next_token"):
        lines.append("---")
        lines.append(f"**Next Page Token:** `{response['next_token']}`")

    return "\n".join(lines)
