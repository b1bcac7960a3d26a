"""check-localstack-cli: report whether the LocalStack CLI is installed."""

from __future__ import annotations

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel

from ..config import Settings
from ..core.responses import ResponseBuilder
from ..localstack.cli import check_localstack_cli

NAME = "check-localstack-cli"
DESCRIPTION = "Check if LocalStack CLI is installed and available in the system PATH"
ANNOTATIONS = ToolAnnotations(
    title="Check LocalStack CLI Installation",
    readOnlyHint=True,
    destructiveHint=False,
    idempotentHint=True,
)


class Params(BaseModel):
    pass


async def handle(params: Params, settings: Settings | None = None) -> list[TextContent]:
    check = await check_localstack_cli()
    if check.is_available:
        return ResponseBuilder.markdown(
            f"✅ LocalStack CLI is installed and available!\nVersion: {check.version}"
        )
    return ResponseBuilder.markdown(check.error_message or "LocalStack CLI is not available.")
