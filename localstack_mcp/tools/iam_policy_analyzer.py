"""localstack-iam-policy-analyzer: IAM enforcement mode and policy generation from denials."""

from __future__ import annotations

from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.http_client import HttpClient, HttpError
from ..core.preflight import require_localstack_cli
from ..core.responses import ResponseBuilder
from ..iam.policy import analyze_denials
from ..logs.retriever import LocalStackLogRetriever

NAME = "localstack-iam-policy-analyzer"
DESCRIPTION = (
    "Configures LocalStack's IAM enforcement and analyzes logs to automatically generate "
    "missing IAM policies."
)
ANNOTATIONS = ToolAnnotations(
    title="LocalStack IAM Policy Analyzer",
    readOnlyHint=False,
    destructiveHint=False,
    idempotentHint=False,
)

IAM_CONFIG_ENDPOINT = "/_aws/iam/config"
ANALYSIS_LINES = 5000

Mode = Literal["ENFORCED", "SOFT_MODE", "DISABLED"]

MODE_DESCRIPTIONS = {
    "ENFORCED": ("🔒", "Strict IAM enforcement is active. Unauthorized actions will be blocked."),
    "SOFT_MODE": (
        "📝",
        "IAM violations are logged but not blocked. Good for testing and policy development.",
    ),
    "DISABLED": ("🔓", "IAM enforcement is disabled. All actions are permitted."),
}

MODE_GUIDANCE = {
    "ENFORCED": (
        "🔒",
        """
**🎯 Next Step:** Now, run your application, deployment, or tests that are failing due to permissions.

Once you have triggered the errors, ask me to "**analyze the IAM policies**" to automatically generate the required permissions.

**Example workflow:**
1. Deploy your CDK/Terraform stack
2. Run your application tests
3. Use `analyze-policies` action to generate missing IAM policies""",
    ),
    "SOFT_MODE": (
        "📝",
        """
**🎯 Next Step:** Run your application to log IAM violations without blocking them.

This mode is perfect for:
- Understanding what permissions your app needs
- Testing policy changes safely
- Gradual migration to stricter IAM enforcement""",
    ),
    "DISABLED": (
        "🔓",
        """
**Note:** IAM enforcement is now disabled. All AWS actions will be permitted regardless of policies.""",
    ),
}

NO_DENIALS_MESSAGE = """✅ **Analysis Complete - No IAM Denials Found**

No IAM permission errors were found in the recent logs.

**This means either:**
- Your application has all necessary permissions
- IAM enforcement is not active (check with `get-status`)
- No recent activity has triggered permission checks
- IAM denials occurred outside the analyzed log window

**Next steps:**
- If you expected to see denials, ensure IAM enforcement is in `ENFORCED` or `SOFT_MODE`
- Try running your application again to generate fresh logs
- Increase the log analysis window if needed"""


class Params(BaseModel):
    action: Literal["set-mode", "analyze-policies", "get-status"] = Field(
        description=(
            "The action to perform: 'set-mode' to configure enforcement, 'analyze-policies' "
            "to generate a policy from logs, or 'get-status' to check the current mode."
        )
    )
    mode: Mode | None = Field(
        default=None,
        description="The enforcement mode to set. This is required only when the action is 'set-mode'.",
    )


async def handle(
    params: Params,
    settings: Settings | None = None,
    retriever: LocalStackLogRetriever | None = None,
) -> list[TextContent]:
    settings = settings or Settings.from_env()

    cli_error = await require_localstack_cli()
    if cli_error:
        return cli_error

    http = HttpClient(settings)

    if params.action == "get-status":
        return await _get_status(http)

    if params.action == "set-mode":
        if not params.mode:
            return ResponseBuilder.error(
                "Missing Required Parameter",
                "The 'mode' parameter is required when using 'set-mode' action.\n\n"
                "Valid modes:\n"
                "- **ENFORCED**: Strict IAM enforcement (blocks unauthorized actions)\n"
                "- **SOFT_MODE**: Log IAM violations without blocking\n"
                "- **DISABLED**: Turn off IAM enforcement completely",
            )
        return await _set_mode(http, params.mode)

    return await _analyze_policies(retriever or LocalStackLogRetriever(settings=settings))


async def _get_status(http: HttpClient) -> list[TextContent]:
    try:
        config = await http.request("GET", IAM_CONFIG_ENDPOINT)
    except HttpError as e:
        if e.status == 404:
            return ResponseBuilder.markdown(
                "⚠️ **LocalStack IAM Configuration Not Available**\n\n"
                "This could mean:\n"
                "- LocalStack is not running\n"
                "- LocalStack version doesn't support IAM configuration\n"
                "- IAM enforcement is not available in your LocalStack version\n\n"
                "Please ensure LocalStack is running and supports IAM enforcement."
            )
        return _status_failure(f"HTTP {e.status}: {e.status_text}")
    except (ConnectionError, TimeoutError) as e:
        return _status_failure(str(e))

    state = config.get("state") if isinstance(config, dict) else None
    state = state or "UNKNOWN"
    emoji, description = MODE_DESCRIPTIONS.get(state, ("⚠️", f"Unknown state: {state}"))

    return ResponseBuilder.markdown(
        f"{emoji} **LocalStack IAM Enforcement Status**\n\n"
        f"**Current Mode:** `{state}`\n\n"
        f"{description}\n\n"
        "**Available Actions:**\n"
        "- Use `set-mode` to change enforcement mode\n"
        "- Use `analyze-policies` to generate policies from recent IAM denials"
    )


def _status_failure(error: str) -> list[TextContent]:
    return ResponseBuilder.error(
        "Failed to Get IAM Status",
        f"Error: {error}\n\n"
        "**Troubleshooting:**\n"
        "- Ensure LocalStack is running on port 4566\n"
        "- Check if your LocalStack version supports IAM enforcement\n"
        "- Verify network connectivity to LocalStack",
    )


async def _set_mode(http: HttpClient, mode: str) -> list[TextContent]:
    try:
        await http.request(
            "POST",
            IAM_CONFIG_ENDPOINT,
            json={"state": mode},
            headers={"Content-Type": "application/json"},
        )
    except HttpError as e:
        return _set_mode_failure(f"HTTP {e.status}: {e.status_text}")
    except (ConnectionError, TimeoutError) as e:
        return _set_mode_failure(str(e))

    emoji, guidance = MODE_GUIDANCE[mode]
    return ResponseBuilder.markdown(
        f"{emoji} **IAM Enforcement Mode Updated**\n\n"
        f"✅ IAM enforcement mode has been set to `{mode}`.\n\n"
        f"{guidance}"
    )


def _set_mode_failure(error: str) -> list[TextContent]:
    return ResponseBuilder.error(
        "Failed to Set IAM Mode",
        f"Error: {error}\n\n"
        "**Troubleshooting:**\n"
        "- Ensure LocalStack is running on port 4566\n"
        "- Check if your LocalStack version supports IAM configuration\n"
        "- Verify you have permission to modify LocalStack settings",
    )


async def _analyze_policies(retriever: LocalStackLogRetriever) -> list[TextContent]:
    result = await retriever.retrieve_logs(ANALYSIS_LINES)
    if not result.success:
        return ResponseBuilder.error(
            "Failed to Retrieve Logs",
            f"{result.error_message}\n\nPlease ensure LocalStack is running and generating logs.",
        )

    analysis = await analyze_denials(result.logs)
    if not analysis.denials:
        return ResponseBuilder.markdown(NO_DENIALS_MESSAGE)

    return ResponseBuilder.markdown(analysis.report())
