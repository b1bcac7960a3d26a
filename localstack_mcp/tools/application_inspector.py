"""localstack-application-inspector: list, inspect and clear traced request flows."""

from __future__ import annotations

from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.http_client import HttpClient, HttpError
from ..core.responses import ResponseBuilder
from ..inspector.client import ApplicationInspectorApiClient, SpanFilters
from ..inspector.reporter import format_detailed_trace_view, format_trace_summary_table

NAME = "localstack-application-inspector"
DESCRIPTION = (
    "Inspects and visualizes end-to-end request flows within your application. Use this tool "
    "to trace a single request's journey across multiple AWS services, understand performance "
    "bottlenecks, and debug complex, distributed workflows."
)
ANNOTATIONS = ToolAnnotations(title="LocalStack Application Inspector")


class Params(BaseModel):
    action: Literal["list-traces", "get-trace", "clear-traces"]

    service_name: str | None = None
    operation_name: str | None = None
    errors_only: bool | None = None
    limit: int | None = None
    pagination_token: str | None = None
    trace_id: str | None = Field(
        default=None, description="Filter for 'list-traces'; required for 'get-trace'."
    )
    account_id: str | None = None
    region: str | None = None
    start_time_unix_nano: int | None = None
    end_time_unix_nano: int | None = None
    format: Literal["table", "json"] = "table"

    span_ids: list[str] | None = Field(
        default=None, description="Spans to delete with 'clear-traces'; all spans when omitted."
    )


async def handle(
    params: Params,
    settings: Settings | None = None,
    client: ApplicationInspectorApiClient | None = None,
) -> list[TextContent]:
    client = client or ApplicationInspectorApiClient(HttpClient(settings))

    try:
        if params.action == "list-traces":
            page = await client.get_spans(
                SpanFilters(
                    limit=params.limit,
                    pagination_token=params.pagination_token,
                    service_name=params.service_name,
                    operation_name=params.operation_name,
                    errors_only=params.errors_only,
                    trace_id=params.trace_id,
                    account_id=params.account_id,
                    region=params.region,
                    start_time_unix_nano=params.start_time_unix_nano,
                    end_time_unix_nano=params.end_time_unix_nano,
                )
            )
            if params.format == "json":
                return ResponseBuilder.json(page.model_dump())
            return ResponseBuilder.markdown(format_trace_summary_table(page))

        if params.action == "get-trace":
            if not params.trace_id:
                return ResponseBuilder.error(
                    "Missing Required Parameter",
                    "The 'get-trace' action requires the 'trace_id' parameter.",
                )
            spans = await client.get_trace_spans(params.trace_id)
            return ResponseBuilder.markdown(format_detailed_trace_view(spans))

        deleted = await client.clear_events(params.span_ids)
        return ResponseBuilder.success(f"Successfully deleted {deleted} event(s).")

    except HttpError as e:
        return ResponseBuilder.error(
            "Application Inspector API Error", f"Status {e.status}: {e.status_text}\n\n{e.body}"
        )
    except (ConnectionError, TimeoutError) as e:
        return ResponseBuilder.error("Application Inspector Error", str(e))
