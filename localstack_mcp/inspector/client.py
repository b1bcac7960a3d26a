"""Client for the application inspector span API (``/_localstack/eventstudio``)."""

from typing import Any

from pydantic import BaseModel

from ..core.http_client import HttpClient

SPANS_ENDPOINT = "/_localstack/eventstudio/v1/spans"

# OpenTelemetry status codes: 0=UNSET, 1=OK, 2=ERROR
STATUS_ERROR = 2


class InspectorEvent(BaseModel):
    event_id: str
    name: str
    timestamp_unix_nano: int
    attributes: dict[str, Any] | None = None


class ParentSpanInfo(BaseModel):
    service_name: str


class InspectorSpan(BaseModel):
    """One span of a traced request as returned by the API."""

    span_id: str
    trace_id: str
    parent_span_id: str | None = None
    start_time_unix_nano: int
    end_time_unix_nano: int
    status_code: int = 0
    status_message: str | None = None
    service_name: str
    operation_name: str
    is_write_operation: bool = False
    events: list[InspectorEvent] = []
    attributes: dict[str, Any] | None = None
    parent_span: ParentSpanInfo | None = None


class SpanPage(BaseModel):
    spans: list[InspectorSpan] = []
    next_token: str | None = None


class SpanFilters(BaseModel):
    """Query filters for ``get_spans``; unset fields are not sent."""

    limit: int | None = None
    pagination_token: str | None = None
    service_name: str | None = None
    operation_name: str | None = None
    trace_id: str | None = None
    errors_only: bool | None = None
    is_write_operation: bool | None = None
    account_id: str | None = None
    region: str | None = None
    status_code: int | None = None
    parent_span_id: str | None = None
    span_id: str | None = None
    arn: str | None = None
    resource_name: str | None = None
    start_time_unix_nano: int | None = None
    end_time_unix_nano: int | None = None
    version: int | None = None

    def to_query(self) -> dict[str, str]:
        query = {
            key: str(value).lower() if isinstance(value, bool) else str(value)
            for key, value in self.model_dump(exclude_none=True).items()
            if key != "errors_only"
        }
        if self.errors_only:
            query["status_code"] = str(STATUS_ERROR)
        return query


class ApplicationInspectorApiClient:
    """Lists and clears recorded spans.

    Errors from the HTTP layer (``HttpError``, ``TimeoutError``,
    ``ConnectionError``) propagate to the caller.
    """

    def __init__(self, http: HttpClient | None = None):
        self.http = http or HttpClient()

    async def get_spans(self, filters: SpanFilters | None = None) -> SpanPage:
        filters = filters or SpanFilters()
        data = await self.http.request("GET", SPANS_ENDPOINT, params=filters.to_query())
        return SpanPage.model_validate(data or {})

    async def get_trace_spans(self, trace_id: str, max_pages: int = 50) -> list[InspectorSpan]:
        """Follow pagination to collect every span of one trace."""
        spans: list[InspectorSpan] = []
        token: str | None = None

        for _ in range(max_pages):
            page = await self.get_spans(
                SpanFilters(trace_id=trace_id, limit=1000, pagination_token=token)
            )
            spans.extend(page.spans)
            token = page.next_token
            if not token:
                break

        return spans

    async def clear_events(self, span_ids: list[str] | None = None) -> int:
        """Delete the given spans, or all of them when no ids are passed.

        Returns:
            Number of deleted events reported by LocalStack
        """
        if span_ids:
            data = await self.http.request(
                "DELETE",
                SPANS_ENDPOINT,
                json={"span_ids": span_ids},
                headers={"Content-Type": "application/json"},
            )
        else:
            data = await self.http.request("DELETE", SPANS_ENDPOINT)

        if isinstance(data, dict):
            return int(data.get("deleted_count", 0))
        return 0


EVENTSTUDIO_STATUS_ENDPOINT = "/_eventstudio/status"
EVENTSTUDIO_SPANS_ENDPOINT = "/_eventstudio/v1/spans"

DEFAULT_EVENTSTUDIO_LIMIT = 2000


class EventStudioApiClient:
    """Raw access to the EventStudio span store.

    Unlike ``ApplicationInspectorApiClient`` responses are returned as
    decoded JSON, so fields outside the span model survive.
    """

    def __init__(self, http: HttpClient | None = None):
        self.http = http or HttpClient()

    async def get_status(self) -> str:
        data = await self.http.request("GET", EVENTSTUDIO_STATUS_ENDPOINT)
        if isinstance(data, dict):
            return str(data.get("status", "unknown"))
        return str(data)

    async def get_spans(self, filters: SpanFilters | None = None) -> dict[str, Any]:
        filters = filters or SpanFilters()
        if filters.limit is None:
            filters = filters.model_copy(update={"limit": DEFAULT_EVENTSTUDIO_LIMIT})
        data = await self.http.request("GET", EVENTSTUDIO_SPANS_ENDPOINT, params=filters.to_query())
        return data if isinstance(data, dict) else {}

    async def delete_spans(self, span_ids: list[str] | None = None) -> int:
        if span_ids:
            data = await self.http.request(
                "DELETE",
                EVENTSTUDIO_SPANS_ENDPOINT,
                json={"span_ids": span_ids},
                headers={"Content-Type": "application/json"},
            )
        else:
            data = await self.http.request("DELETE", EVENTSTUDIO_SPANS_ENDPOINT)

        if isinstance(data, dict):
            return int(data.get("deleted_count", 0))
        return 0
