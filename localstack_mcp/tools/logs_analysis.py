"""localstack-logs-analysis: summaries, error groups and API call views of recent logs."""

from __future__ import annotations

from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.preflight import require_localstack_cli
from ..core.responses import ResponseBuilder
from ..logs.reporter import format_errors, format_raw_logs, format_requests, format_summary
from ..logs.retriever import LocalStackLogRetriever

NAME = "localstack-logs-analysis"
DESCRIPTION = (
    "LocalStack log analyzer that helps developers quickly diagnose issues and understand "
    "their LocalStack interactions"
)
ANNOTATIONS = ToolAnnotations(
    title="LocalStack Logs Analysis",
    readOnlyHint=True,
    destructiveHint=False,
    idempotentHint=True,
)


class Params(BaseModel):
    analysis_type: Literal["summary", "errors", "requests", "logs"] = Field(
        default="summary",
        description=(
            "The analysis to perform: 'summary' (default), 'errors', 'requests', "
            "or 'logs' for raw output."
        ),
    )
    lines: int = Field(
        default=2000, gt=0, description="Number of recent log lines to fetch and analyze."
    )
    service: str | None = Field(
        default=None,
        description=(
            "Filter by AWS service (e.g., 's3', 'lambda'). Used with 'errors' and "
            "'requests' modes."
        ),
    )
    operation: str | None = Field(
        default=None,
        description=(
            "Filter by a specific API operation (e.g., 'CreateBucket'). Requires 'service'. "
            "Used with 'requests' mode."
        ),
    )
    filter: str | None = Field(
        default=None, description="Raw keyword filter. Only used with 'logs' mode."
    )


async def analyze(
    params: Params,
    retriever: LocalStackLogRetriever | None = None,
    settings: Settings | None = None,
) -> str:
    """Retrieve logs and render the requested analysis as markdown."""
    retriever = retriever or LocalStackLogRetriever(settings=settings)
    keyword_filter = params.filter if params.analysis_type == "logs" else None
    result = await retriever.retrieve_logs(params.lines, keyword_filter)

    if not result.success:
        return f"❌ {result.error_message}"

    if params.analysis_type == "errors":
        return format_errors(result.logs, params.service)
    if params.analysis_type == "requests":
        return format_requests(result.logs, params.service, params.operation)
    if params.analysis_type == "logs":
        return format_raw_logs(
            result.logs, result.total_lines, result.filtered_lines, params.filter
        )
    return format_summary(result.logs, result.total_lines)


async def handle(params: Params, settings: Settings | None = None) -> list[TextContent]:
    cli_error = await require_localstack_cli()
    if cli_error:
        return cli_error

    return ResponseBuilder.markdown(await analyze(params, settings=settings))
