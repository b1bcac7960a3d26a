"""Shared pre-flight checks run before a tool does its work.

Each check returns ``None`` when it passes or a ready-made error response.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable

from ..config import Settings
from ..localstack.cli import check_localstack_cli, get_localstack_status
from ..localstack.license import ProFeature, check_pro_feature
from .http_client import HttpClient
from .responses import ResponseBuilder, ToolResponse


async def require_localstack_cli() -> ToolResponse | None:
    check = await check_localstack_cli()
    if not check.is_available:
        return ResponseBuilder.markdown(check.error_message or "LocalStack CLI is not available.")
    return None


async def require_localstack_running() -> ToolResponse | None:
    status = await get_localstack_status()
    if not status.is_running:
        return ResponseBuilder.error(
            "LocalStack Not Running",
            "LocalStack is not running. Please start LocalStack "
            "(e.g., 'localstack start') and try again.",
        )
    return None


async def require_pro_feature(
    feature: ProFeature, settings: Settings | None = None
) -> ToolResponse | None:
    check = await check_pro_feature(feature, HttpClient(settings))
    if not check.is_supported:
        return ResponseBuilder.error("Feature Not Available", check.error_message)
    return None


async def run_preflights(checks: list[Awaitable[ToolResponse | None]]) -> ToolResponse | None:
    """Run checks concurrently and return the first failure in list order."""
    results = await asyncio.gather(*checks)
    return next((r for r in results if r is not None), None)
