"""Process execution, HTTP access and response helpers shared by all tools."""

from .command_runner import (
    CommandBufferExceededError,
    CommandError,
    CommandFailedError,
    CommandResult,
    CommandTimeoutError,
    run_command,
    strip_ansi_codes,
)
from .http_client import HttpClient, HttpError
from .responses import ResponseBuilder, ToolResponse

__all__ = [
    "CommandBufferExceededError",
    "CommandError",
    "CommandFailedError",
    "CommandResult",
    "CommandTimeoutError",
    "run_command",
    "strip_ansi_codes",
    "HttpClient",
    "HttpError",
    "ResponseBuilder",
    "ToolResponse",
]
