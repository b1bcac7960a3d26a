"""MCP server exposing the LocalStack tools over stdio.

Run directly or through the CLI:
  localstack-mcp serve
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError
from rich.console import Console

from .config import Settings
from .core.responses import ResponseBuilder
from .tools import TOOL_MODULES, TOOLS

SERVER_NAME = "localstack-mcp"

# stdout carries the protocol
console = Console(stderr=True)

app = Server(SERVER_NAME)

# Set by `localstack-mcp --config`; re-read on every tool call
config_path: Path | None = None


def resolve_settings() -> Settings:
    if config_path is not None:
        return Settings.from_yaml(config_path)
    return Settings.from_env()


@app.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name=module.NAME,
            description=module.DESCRIPTION,
            inputSchema=module.Params.model_json_schema(),
            annotations=module.ANNOTATIONS,
        )
        for module in TOOL_MODULES
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict | None) -> list[TextContent]:
    module = TOOLS.get(name)
    if module is None:
        return ResponseBuilder.error("Unknown Tool", f"No tool named '{name}' is registered.")

    try:
        params = module.Params.model_validate(arguments or {})
    except ValidationError as e:
        return ResponseBuilder.error("Invalid Parameters", str(e))

    console.print(f"[dim]→ {name}[/dim]")
    try:
        return await module.handle(params, resolve_settings())
    except Exception as e:
        console.print(f"[red]{name} failed:[/red] {e!r}")
        return ResponseBuilder.error("Execution Error", str(e) or e.__class__.__name__)


async def main(config: str | Path | None = None) -> None:
    global config_path
    config_path = Path(config) if config else None

    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


if __name__ == "__main__":
    asyncio.run(main())
