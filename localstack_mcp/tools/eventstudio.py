"""localstack-eventstudio: query and manage spans recorded by EventStudio."""

from __future__ import annotations

from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.http_client import HttpClient, HttpError
from ..core.preflight import require_localstack_running, run_preflights
from ..core.responses import ResponseBuilder
from ..inspector.client import EventStudioApiClient, SpanFilters
from ..inspector.reporter import format_span_details

NAME = "localstack-eventstudio"
DESCRIPTION = (
    "Query, analyze, and manage distributed tracing spans from LocalStack's EventStudio service."
)
ANNOTATIONS = ToolAnnotations(title="LocalStack EventStudio")


class Params(BaseModel):
    action: Literal["status", "get_spans", "get_spans_human_readable", "delete_spans"]

    limit: int | None = Field(default=None, description="Maximum number of spans to return (default 2000)")
    pagination_token: str | None = None
    service_name: str | None = Field(default=None, description="Filter by AWS service (e.g., 's3', 'lambda')")
    operation_name: str | None = Field(default=None, description="Filter by API operation (e.g., 'CreateBucket')")
    is_write_operation: bool = Field(default=True, description="Focus on state-changing operations")
    errors_only: bool = Field(default=False, description="Return only spans with error status codes")
    account_id: str | None = None
    region: str | None = None
    status_code: int | None = None
    trace_id: str | None = None
    parent_span_id: str | None = None
    span_id: str | None = None
    arn: str | None = None
    resource_name: str | None = None
    start_time_unix_nano: int | None = None
    end_time_unix_nano: int | None = None
    version: int | None = None

    span_ids: list[str] | None = Field(
        default=None, description="Spans to delete with 'delete_spans'; all spans when omitted."
    )

    def to_filters(self) -> SpanFilters:
        return SpanFilters.model_validate(self.model_dump(exclude={"action", "span_ids"}))


async def handle(
    params: Params,
    settings: Settings | None = None,
    client: EventStudioApiClient | None = None,
) -> list[TextContent]:
    preflight_error = await run_preflights([require_localstack_running()])
    if preflight_error:
        return preflight_error

    client = client or EventStudioApiClient(HttpClient(settings))

    try:
        if params.action == "status":
            status = await client.get_status()
            return ResponseBuilder.markdown(f"EventStudio Status: **{status}**")

        if params.action == "get_spans":
            return ResponseBuilder.json(await client.get_spans(params.to_filters()))

        if params.action == "get_spans_human_readable":
            return ResponseBuilder.markdown(format_span_details(await client.get_spans(params.to_filters())))

        deleted = await client.delete_spans(params.span_ids)
        return ResponseBuilder.markdown(f"Successfully deleted {deleted} span(s).")

    except HttpError as e:
        return ResponseBuilder.error("EventStudio API Error", f"{e}\n\n{e.body}")
    except (ConnectionError, TimeoutError) as e:
        return ResponseBuilder.error("Execution Error", str(e))
