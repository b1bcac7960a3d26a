"""Tests for the application inspector client and renderings."""

import json

import httpx
import pytest

from localstack_mcp.config import Settings
from localstack_mcp.core.http_client import HttpClient
from localstack_mcp.inspector.client import (
    DEFAULT_EVENTSTUDIO_LIMIT,
    EVENTSTUDIO_SPANS_ENDPOINT,
    SPANS_ENDPOINT,
    ApplicationInspectorApiClient,
    EventStudioApiClient,
    InspectorSpan,
    SpanFilters,
    SpanPage,
)
from localstack_mcp.inspector.reporter import (
    TABLE_HEADER,
    format_detailed_trace_view,
    format_span_details,
    format_trace_summary_table,
)

# 2023-11-14T22:13:20.000Z
BASE_NS = 1_700_000_000_000 * 1_000_000
MS = 1_000_000


def span(span_id, trace_id="t1", parent=None, start=0, end=120, status=0, service="s3", op="PutObject", **extra):
    return InspectorSpan(
        span_id=span_id,
        trace_id=trace_id,
        parent_span_id=parent,
        start_time_unix_nano=BASE_NS + start * MS,
        end_time_unix_nano=BASE_NS + end * MS,
        status_code=status,
        service_name=service,
        operation_name=op,
        **extra,
    )


def make_client(handler) -> ApplicationInspectorApiClient:
    http = HttpClient(Settings(), transport=httpx.MockTransport(handler))
    return ApplicationInspectorApiClient(http)


class TestSpanFilters:
    """Tests for SpanFilters.to_query."""

    def test_unset_fields_are_omitted(self):
        assert SpanFilters().to_query() == {}

    def test_values_are_stringified(self):
        query = SpanFilters(limit=10, service_name="lambda", start_time_unix_nano=5).to_query()
        assert query == {"limit": "10", "service_name": "lambda", "start_time_unix_nano": "5"}

    def test_errors_only_becomes_status_filter(self):
        assert SpanFilters(errors_only=True).to_query() == {"status_code": "2"}
        assert SpanFilters(errors_only=False).to_query() == {}


class TestApplicationInspectorApiClient:
    """Tests for the HTTP side of the inspector client."""

    @pytest.mark.asyncio
    async def test_get_spans_sends_filters(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"spans": [span("a").model_dump()], "next_token": "n1"})

        page = await make_client(handler).get_spans(SpanFilters(service_name="s3", errors_only=True))

        assert seen[0].method == "GET"
        assert seen[0].url.path == SPANS_ENDPOINT
        assert dict(seen[0].url.params) == {"service_name": "s3", "status_code": "2"}
        assert page.next_token == "n1"
        assert page.spans[0].span_id == "a"

    @pytest.mark.asyncio
    async def test_get_trace_spans_follows_pagination(self):
        pages = {
            None: {"spans": [span("a").model_dump()], "next_token": "p2"},
            "p2": {"spans": [span("b", parent="a").model_dump()], "next_token": None},
        }
        tokens = []

        def handler(request: httpx.Request) -> httpx.Response:
            token = request.url.params.get("pagination_token")
            tokens.append(token)
            assert request.url.params["trace_id"] == "t1"
            assert request.url.params["limit"] == "1000"
            return httpx.Response(200, json=pages[token])

        spans = await make_client(handler).get_trace_spans("t1")

        assert [s.span_id for s in spans] == ["a", "b"]
        assert tokens == [None, "p2"]

    @pytest.mark.asyncio
    async def test_clear_specific_spans(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"deleted_count": 2})

        deleted = await make_client(handler).clear_events(["a", "b"])

        assert deleted == 2
        assert seen[0].method == "DELETE"
        assert json.loads(seen[0].content) == {"span_ids": ["a", "b"]}
        assert seen[0].headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_clear_all_sends_no_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"deleted_count": 7})

        assert await make_client(handler).clear_events() == 7
        assert seen[0].content == b""

    @pytest.mark.asyncio
    async def test_clear_with_empty_response(self):
        assert await make_client(lambda request: httpx.Response(204)).clear_events() == 0


class TestTraceSummaryTable:
    """Tests for format_trace_summary_table."""

    def test_one_row_per_trace(self):
        page = SpanPage(
            spans=[
                span("b", parent="a", start=10, end=80, service="lambda", op="Invoke"),
                span("a", start=0, end=120, service="apigateway", op="Invoke"),
                span("c", trace_id="t2", start=0, end=0, status=2, service="sqs", op="SendMessage"),
            ]
        )

        lines = format_trace_summary_table(page).split("\n")

        assert lines[0] == TABLE_HEADER
        assert lines[1] == "|---|---|---|---|---|---|"
        assert lines[2] == (
            "| 2023-11-14T22:13:20.000Z | apigateway:Invoke | apigateway, lambda | 120.00 ms | ✅ | t1 |"
        )
        assert lines[3] == "| 2023-11-14T22:13:20.000Z | sqs:SendMessage | sqs | 0.00 ms | ❌ | t2 |"

    def test_empty(self):
        assert format_trace_summary_table(SpanPage()) == "No spans found."


class TestDetailedTraceView:
    """Tests for format_detailed_trace_view."""

    def test_tree_with_events(self):
        spans = [
            span(
                "child-late",
                parent="root",
                start=50,
                end=60,
                service="sqs",
                op="SendMessage",
                parent_span={"service_name": "lambda"},
            ),
            span("root", start=0, end=120, service="lambda", op="Invoke"),
            span(
                "child-early",
                parent="root",
                start=5,
                end=25,
                status=2,
                op="PutObject",
                events=[
                    {
                        "event_id": "e1",
                        "name": "exception",
                        "timestamp_unix_nano": BASE_NS + 20 * MS,
                        "attributes": {"code": "NoSuchBucket"},
                    }
                ],
            ),
        ]

        view = format_detailed_trace_view(spans)

        assert view.split("\n") == [
            "- [✅ lambda:Invoke] - 120.00 ms",
            "  - [❌ s3:PutObject] - 20.00 ms",
            "    - event: exception @ 2023-11-14T22:13:20.020Z",
            "    ",
            "    ```json",
            "    {",
            '      "code": "NoSuchBucket"',
            "    }",
            "    ```",
            "  - [✅ sqs:SendMessage] - 10.00 ms (parent: lambda)",
        ]

    def test_orphans_become_roots(self):
        view = format_detailed_trace_view([span("x", parent="missing")])
        assert view == "- [✅ s3:PutObject] - 120.00 ms"

    def test_empty(self):
        assert format_detailed_trace_view([]) == "No spans for this trace."


class TestEventStudioApiClient:
    """Tests for EventStudioApiClient."""

    @staticmethod
    def client(handler) -> EventStudioApiClient:
        return EventStudioApiClient(HttpClient(Settings(), transport=httpx.MockTransport(handler)))

    @pytest.mark.asyncio
    async def test_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/_eventstudio/status"
            return httpx.Response(200, json={"status": "ready"})

        assert await self.client(handler).get_status() == "ready"

    @pytest.mark.asyncio
    async def test_get_spans_defaults_limit(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"spans": [{"span_id": "a", "resource_name": "bucket"}]})

        data = await self.client(handler).get_spans(SpanFilters(is_write_operation=True))

        assert seen[0].url.path == EVENTSTUDIO_SPANS_ENDPOINT
        assert dict(seen[0].url.params) == {
            "limit": str(DEFAULT_EVENTSTUDIO_LIMIT),
            "is_write_operation": "true",
        }
        assert data["spans"][0]["resource_name"] == "bucket"

    @pytest.mark.asyncio
    async def test_explicit_limit_is_kept(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"spans": []})

        await self.client(handler).get_spans(SpanFilters(limit=5))
        assert seen[0].url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_delete_spans(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"deleted_count": 1})

        client = self.client(handler)
        assert await client.delete_spans(["a"]) == 1
        assert await client.delete_spans() == 1
        assert json.loads(seen[0].content) == {"span_ids": ["a"]}
        assert seen[1].content == b""
        assert {r.method for r in seen} == {"DELETE"}


class TestSpanDetails:
    """Tests for format_span_details."""

    SPAN = {
        "service_name": "s3",
        "operation_name": "PutObject",
        "resource_name": "my-bucket",
        "start_time_unix_nano": BASE_NS,
        "end_time_unix_nano": BASE_NS + 12 * MS,
        "status_code": 2,
        "status_message": "Error",
        "is_write_operation": True,
        "trace_id": "t1",
        "span_id": "s1",
        "parent_span_id": "p1",
        "parent_service_name": "lambda",
        "attributes": {"bucket": "my-bucket"},
    }

    def test_empty(self):
        assert format_span_details({"spans": []}) == "No spans found matching the criteria."

    def test_attribute_table(self):
        markdown = format_span_details({"spans": [self.SPAN], "next_token": "nt"})

        assert markdown.startswith("Found **1** span(s).\n")
        assert "### s3: PutObject" in markdown
        assert "| **Resource** | `my-bucket` |" in markdown
        assert "| **Status** | 2 Error |" in markdown
        assert "| **Duration** | 12.00 ms |" in markdown
        assert "| **Write Op** | Yes |" in markdown
        assert "| **Parent Span ID** | `p1` |" in markdown
        assert "| **Parent Service** | lambda |" in markdown
        assert '**Attributes**\n```json\n{\n  "bucket": "my-bucket"\n}\n```' in markdown
        assert "**Events**" not in markdown
        assert markdown.endswith("**Next Page Token:** `nt`")

    def test_in_progress_and_defaults(self):
        markdown = format_span_details(
            {"spans": [{"service_name": "sqs", "operation_name": "ReceiveMessage", "status_code": 0}]}
        )

        assert "| **Duration** | In Progress |" in markdown
        assert "| **Resource** | `N/A` |" in markdown
        assert "| **Parent Span ID** | None |" in markdown
        assert "Parent Service" not in markdown
