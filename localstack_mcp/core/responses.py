"""Uniform MCP text responses."""

import json
from typing import Any

from mcp.types import TextContent

ToolResponse = list[TextContent]


class ResponseBuilder:
    """Builds the ``TextContent`` lists returned by tool handlers."""

    @staticmethod
    def success(message: str) -> ToolResponse:
        return [TextContent(type="text", text=f"✅ {message}")]

    @staticmethod
    def error(title: str, details: str | None = None) -> ToolResponse:
        text = f"❌ **{title}**"
        if details:
            text += f"\n\n{details}"
        return [TextContent(type="text", text=text)]

    @staticmethod
    def markdown(content: str) -> ToolResponse:
        return [TextContent(type="text", text=content)]

    @staticmethod
    def json(data: Any) -> ToolResponse:
        return [TextContent(type="text", text=f"```json\n{json.dumps(data, indent=2)}\n```")]
