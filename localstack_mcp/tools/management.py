"""localstack-management: start, stop, restart and inspect the emulator."""

from __future__ import annotations

import asyncio
from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.command_runner import run_command
from ..core.preflight import require_localstack_cli
from ..core.responses import ResponseBuilder
from ..localstack.cli import get_localstack_status

NAME = "localstack-management"
DESCRIPTION = "Manage LocalStack lifecycle: start, stop, restart, or check status"
ANNOTATIONS = ToolAnnotations(
    title="LocalStack Management",
    readOnlyHint=False,
    destructiveHint=False,
    idempotentHint=False,
)

RESTART_TIMEOUT = 30.0
RESTART_SETTLE_DELAY = 2.0


class Params(BaseModel):
    action: Literal["start", "stop", "restart", "status"] = Field(
        description="The LocalStack management action to perform"
    )
    enable_pro: bool = Field(
        default=False, description="Enable LocalStack Pro services (only for start action)"
    )
    auth_token: str | None = Field(
        default=None, description="LocalStack Pro auth token (only for start action)"
    )
    env_vars: dict[str, str] | None = Field(
        default=None,
        description="Additional environment variables as key-value pairs (only for start action)",
    )


async def handle(params: Params, settings: Settings | None = None) -> list[TextContent]:
    settings = settings or Settings.from_env()

    cli_error = await require_localstack_cli()
    if cli_error:
        return cli_error

    if params.action == "start":
        return await _start(params, settings)
    if params.action == "stop":
        return await _stop()
    if params.action == "restart":
        return await _restart()
    return await _status()


async def _start(params: Params, settings: Settings) -> list[TextContent]:
    status = await get_localstack_status()
    if status.is_running:
        return ResponseBuilder.markdown(
            "⚠️  LocalStack is already running. Use the restart action if you want to "
            "restart it with new configuration."
        )

    env: dict[str, str] = {}
    wants_pro = params.enable_pro or bool(params.auth_token)
    if wants_pro:
        token = params.auth_token or settings.auth_token
        if not token:
            return ResponseBuilder.markdown(
                "❌ LocalStack Pro was requested but no auth token provided. Please provide an "
                "auth token or set LOCALSTACK_AUTH_TOKEN environment variable."
            )
        env["LOCALSTACK_AUTH_TOKEN"] = token

    if params.env_vars:
        env.update(params.env_vars)

    result = await run_command(
        "localstack", ["start", "--detached"], timeout=settings.command_timeout_s, env=env
    )
    if result.error and not result.stdout:
        return ResponseBuilder.markdown(f"❌ Failed to start LocalStack: {result.error}")

    after = await get_localstack_status()
    if after.error_message:
        message = "⚠️  LocalStack start command executed, but status check failed.\n\n"
        if result.stdout:
            message += f"Output:\n{result.stdout}\n"
        if result.stderr:
            message += f"Error output:\n{result.stderr}\n"
        message += (
            "\nLocalStack may still be starting up. You can check the status manually "
            "using the status action."
        )
        return ResponseBuilder.markdown(message)

    message = "🚀 LocalStack start command executed!\n\n"
    if wants_pro:
        message += "✅ LocalStack Pro services enabled\n"
    if params.env_vars:
        message += f"✅ Custom environment variables applied: {', '.join(params.env_vars)}\n"
    message += f"\nStatus check:\n{after.status_output}"
    if result.stdout:
        message += f"\n\nOutput:\n{result.stdout}"
    return ResponseBuilder.markdown(message)


async def _stop() -> list[TextContent]:
    result = await run_command("localstack", ["stop"])
    if result.error:
        return ResponseBuilder.markdown(
            f"❌ Failed to stop LocalStack: {result.error}\n\n"
            "This could happen if:\n"
            "- LocalStack is not currently running\n"
            "- There was an error executing the stop command\n"
            "- Permission issues\n\n"
            "You can try checking the LocalStack status first to see if it's running."
        )

    message = "🛑 LocalStack stop command executed successfully!\n"
    if result.stdout.strip():
        message += f"\nOutput:\n{result.stdout}"
    if result.stderr.strip():
        message += f"\nMessages:\n{result.stderr}"

    status = await get_localstack_status()
    if status.error_message:
        message += "\n\n✅ LocalStack appears to be stopped."
    elif status.is_running:
        message += "\n\n⚠️  LocalStack may still be running. Check the status manually if needed."
    else:
        message += "\n\n✅ LocalStack has been stopped successfully."
    return ResponseBuilder.markdown(message)


async def _restart() -> list[TextContent]:
    result = await run_command("localstack", ["restart"], timeout=RESTART_TIMEOUT)
    if result.error:
        return ResponseBuilder.markdown(
            f"❌ Failed to restart LocalStack: {result.error}\n\n"
            "This could happen if:\n"
            "- LocalStack is not currently installed properly\n"
            "- There was an error executing the restart command\n"
            "- The restart process timed out (LocalStack can take time to restart)\n"
            "- Permission issues\n\n"
            "You can try stopping and starting LocalStack manually using separate actions if "
            "the restart action continues to fail."
        )

    message = "🔄 LocalStack restart command executed!\n\n"
    if result.stdout.strip():
        message += f"Output:\n{result.stdout}\n"
    if result.stderr.strip():
        message += f"Messages:\n{result.stderr}\n"

    await asyncio.sleep(RESTART_SETTLE_DELAY)

    status = await get_localstack_status()
    if status.error_message:
        message += (
            "\n\n⚠️  Restart completed but unable to verify status. LocalStack may still be "
            "starting up."
        )
        return ResponseBuilder.markdown(message)

    message += f"\nStatus after restart:\n{status.status_output}"
    if status.is_running:
        message += (
            "\n\n✅ LocalStack has been restarted successfully and is now running with a "
            "fresh state."
        )
    else:
        message += (
            "\n\n⚠️  LocalStack restart completed but may still be starting up. Check status "
            "again in a few moments."
        )
    return ResponseBuilder.markdown(message)


async def _status() -> list[TextContent]:
    result = await run_command("localstack", ["status"])
    if result.error:
        return ResponseBuilder.markdown(
            f"❌ Failed to get LocalStack status: {result.error}\n\n"
            "This could happen if:\n"
            "- LocalStack is not installed properly\n"
            "- There was an error executing the status command\n"
            "- LocalStack services are not accessible\n\n"
            "Try running the CLI check tool first to verify your LocalStack installation."
        )

    message = f"📊 LocalStack Status:\n\n{result.stdout}"
    if result.stderr.strip():
        message += f"\n\nMessages:\n{result.stderr}"

    if "running" in result.stdout:
        message += "\n\n✅ LocalStack is currently running and ready to accept requests."
    elif "stopped" in result.stdout or "not running" in result.stdout:
        message += "\n\n⚠️  LocalStack is not currently running. Use the start action to start it."
    return ResponseBuilder.markdown(message)
