"""localstack-chaos-injector: fault rules and network latency for resilience testing."""

from __future__ import annotations

import json
from collections.abc import Awaitable
from typing import Any, Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings
from ..core.http_client import HttpClient
from ..core.preflight import require_pro_feature
from ..core.responses import ResponseBuilder
from ..localstack.clients import ApiResult, ChaosApiClient
from ..localstack.license import ProFeature

NAME = "localstack-chaos-injector"
DESCRIPTION = (
    "Injects, manages, and clears chaos faults and network effects in LocalStack to test "
    "system resilience."
)
ANNOTATIONS = ToolAnnotations(
    title="LocalStack Chaos Injector",
    readOnlyHint=False,
    destructiveHint=True,
    idempotentHint=False,
)

Action = Literal[
    "inject-faults",
    "add-fault-rule",
    "remove-fault-rule",
    "get-faults",
    "clear-all-faults",
    "inject-latency",
    "get-latency",
    "clear-latency",
]

RULE_ACTIONS = {"inject-faults", "add-fault-rule", "remove-fault-rule"}


class FaultError(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status_code: int | None = Field(
        default=None, alias="statusCode", description="The HTTP status code to return (e.g., 503)."
    )
    code: str | None = Field(
        default=None, description="The AWS error code to return (e.g., 'ServiceUnavailable')."
    )


class FaultRule(BaseModel):
    """A single rule defining a chaos fault."""

    service: str | None = Field(
        default=None, description="Name of the AWS service to affect (e.g., 's3', 'lambda')."
    )
    region: str | None = Field(
        default=None, description="Name of the AWS region to affect (e.g., 'us-east-1')."
    )
    operation: str | None = Field(
        default=None,
        description="Name of the specific service operation to affect (e.g., 'CreateBucket').",
    )
    probability: float | None = Field(
        default=None, ge=0, le=1, description="The probability (0.0 to 1.0) of the fault occurring."
    )
    error: FaultError | None = Field(default=None, description="The custom error to return.")

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Params(BaseModel):
    action: Action = Field(description="The specific chaos engineering action to perform.")
    rules: list[FaultRule] | None = Field(
        default=None,
        description=(
            "An array of fault rules. Required for 'inject-faults', 'add-fault-rule', and "
            "'remove-fault-rule' actions."
        ),
    )
    latency_ms: int | None = Field(
        default=None,
        ge=0,
        description="Network latency in milliseconds. Required for the 'inject-latency' action.",
    )


def format_fault_rules(rules: Any) -> str:
    if not rules:
        return "✅ No chaos faults are currently active."
    return f"```json\n{json.dumps(rules, indent=2)}\n```"


def with_workflow_guidance(message: str) -> str:
    return (
        f"{message}\n\n"
        "**Next Step:** Now, run your application or tests to observe the system's behavior "
        "under these conditions.\n\n"
        'Once you are done, ask me to "**analyze the logs for errors**" to see the impact of '
        "this chaos experiment."
    )


async def handle(
    params: Params, settings: Settings | None = None, client: ChaosApiClient | None = None
) -> list[TextContent]:
    settings = settings or Settings.from_env()

    license_error = await require_pro_feature(ProFeature.CHAOS_ENGINEERING, settings)
    if license_error:
        return license_error

    client = client or ChaosApiClient(HttpClient(settings))
    action = params.action

    if action in RULE_ACTIONS and not params.rules:
        return ResponseBuilder.markdown(
            f"❌ **Error:** The `{action}` action requires the `rules` parameter to be specified."
        )
    rules = [rule.to_api() for rule in params.rules or []]

    if action == "get-faults":
        result = await client.get_faults()
        return _fail(result) or ResponseBuilder.markdown(format_fault_rules(result.data))

    if action == "clear-all-faults":
        result = await client.set_faults([])
        return _fail(result) or ResponseBuilder.markdown(
            "✅ All chaos faults have been cleared. The system is now operating normally."
        )

    if action == "inject-faults":
        return await _change_faults(
            client.set_faults(rules),
            client,
            "✅ New chaos faults have been injected (overwriting any previous rules). "
            "The current active faults are:",
        )

    if action == "add-fault-rule":
        return await _change_faults(
            client.add_fault_rules(rules),
            client,
            "✅ New fault rule(s) have been added. The current active faults are:",
        )

    if action == "remove-fault-rule":
        return await _remove_rules(client, rules)

    if action == "get-latency":
        result = await client.get_effects()
        if not result.success:
            return ResponseBuilder.markdown(result.message)
        latency = result.data.get("latency", 0) if isinstance(result.data, dict) else 0
        return ResponseBuilder.markdown(f"The current network latency is {latency or 0}ms.")

    if action == "clear-latency":
        return await _change_latency(
            client, 0, "✅ Network latency has been cleared. The current effects are:", False
        )

    if params.latency_ms is None:
        return ResponseBuilder.markdown(
            "❌ **Error:** The `inject-latency` action requires the `latency_ms` parameter "
            "to be specified."
        )
    return await _change_latency(
        client,
        params.latency_ms,
        f"✅ Latency of {params.latency_ms}ms has been injected. The current network effects are:",
        True,
    )


def _fail(result: ApiResult) -> list[TextContent] | None:
    if result.success:
        return None
    return ResponseBuilder.markdown(result.message)


async def _change_faults(
    change: Awaitable[ApiResult], client: ChaosApiClient, headline: str
) -> list[TextContent]:
    result = await change
    if not result.success:
        return ResponseBuilder.markdown(result.message)

    current = await client.get_faults()
    if not current.success:
        return ResponseBuilder.markdown(current.message)

    message = f"{headline}\n\n{format_fault_rules(current.data)}"
    return ResponseBuilder.markdown(with_workflow_guidance(message))


async def _remove_rules(client: ChaosApiClient, rules: list[dict[str, Any]]) -> list[TextContent]:
    current = await client.get_faults()
    if not current.success:
        return ResponseBuilder.markdown(current.message)

    active = current.data if isinstance(current.data, list) else []
    # Only exact matches are removed; a partial match leaves the config untouched
    for rule in rules:
        if rule not in active:
            return ResponseBuilder.markdown(
                "⚠️ The specified rule was not found in the current configuration. "
                "No changes were made.\n\n"
                f"Current configuration:\n{format_fault_rules(active)}"
            )

    removed = await client.remove_fault_rules(rules)
    if not removed.success:
        return ResponseBuilder.markdown(removed.message)

    updated = await client.get_faults()
    if not updated.success:
        return ResponseBuilder.markdown(updated.message)

    return ResponseBuilder.markdown(
        "✅ The specified fault rule(s) have been removed. The current active faults are:\n\n"
        f"{format_fault_rules(updated.data)}"
    )


async def _change_latency(
    client: ChaosApiClient, latency: int, headline: str, guidance: bool
) -> list[TextContent]:
    result = await client.set_effects({"latency": latency})
    if not result.success:
        return ResponseBuilder.markdown(result.message)

    current = await client.get_effects()
    if not current.success:
        return ResponseBuilder.markdown(current.message)

    message = f"{headline}\n\n```json\n{json.dumps(current.data, indent=2)}\n```"
    return ResponseBuilder.markdown(with_workflow_guidance(message) if guidance else message)
