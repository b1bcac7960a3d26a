"""MCP tools, one module per tool.

Each module exposes ``NAME``, ``DESCRIPTION``, ``ANNOTATIONS``, a pydantic
``Params`` model and ``async def handle(params, settings=None)``.
"""

from . import (
    application_inspector,
    aws_client,
    chaos_injector,
    check_cli,
    cloud_pods,
    cloud_scanner,
    deployer,
    eventstudio,
    iam_policy_analyzer,
    logs_analysis,
    management,
)

TOOL_MODULES = [
    management,
    deployer,
    aws_client,
    logs_analysis,
    iam_policy_analyzer,
    chaos_injector,
    cloud_pods,
    application_inspector,
    eventstudio,
    cloud_scanner,
    check_cli,
]

TOOLS = {module.NAME: module for module in TOOL_MODULES}

__all__ = ["TOOLS", "TOOL_MODULES"]
