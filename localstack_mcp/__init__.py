"""LocalStack MCP - tools for operating a LocalStack emulator from AI agents."""

__version__ = "0.1.0"
