"""localstack-cloud-scanner: Scout Suite misconfiguration scan of the emulated account."""

from __future__ import annotations

import json
from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.preflight import require_localstack_running, run_preflights
from ..core.responses import ResponseBuilder
from ..scoutsuite.reporter import format_scan_results
from ..scoutsuite.runner import ScanError, run_scan

NAME = "localstack-cloud-scanner"
DESCRIPTION = (
    "Runs a Scout Suite security scan against the LocalStack environment to find cloud "
    "misconfigurations and security risks."
)
ANNOTATIONS = ToolAnnotations(
    title="LocalStack Cloud Scanner",
    readOnlyHint=False,
    destructiveHint=False,
    idempotentHint=False,
)


class Params(BaseModel):
    action: Literal["scan"] = Field(description="The action to perform.")
    services: list[str] | None = Field(
        default=None,
        description="AWS services to scan (e.g., ['s3', 'iam']). All services when omitted.",
    )
    report_format: Literal["summary", "json"] = Field(
        default="summary",
        description="'summary' for a human-readable report, 'json' for raw data.",
    )


async def handle(params: Params, settings: Settings | None = None) -> list[TextContent]:
    preflight_error = await run_preflights([require_localstack_running()])
    if preflight_error:
        return preflight_error

    try:
        report = await run_scan(params.services, settings)
    except ScanError as e:
        return ResponseBuilder.error("Scan Failed", str(e))

    if params.report_format == "json":
        return ResponseBuilder.markdown(f"```json\n{json.dumps(report, indent=2)}\n```")
    return ResponseBuilder.markdown(format_scan_results(report))
