"""localstack-cloud-pods: save, load, delete and reset emulator state snapshots."""

from __future__ import annotations

from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.preflight import require_localstack_cli, require_pro_feature, run_preflights
from ..core.responses import ResponseBuilder
from ..localstack.clients import CloudPodsApiClient
from ..localstack.license import ProFeature

NAME = "localstack-cloud-pods"
DESCRIPTION = "Manages LocalStack Cloud Pods with following actions: save, load, delete, reset"
ANNOTATIONS = ToolAnnotations(
    title="LocalStack Cloud Pods",
    readOnlyHint=False,
    destructiveHint=True,
    idempotentHint=False,
)


class Params(BaseModel):
    action: Literal["save", "load", "delete", "reset"] = Field(
        description="The Cloud Pods action to perform."
    )
    pod_name: str | None = Field(
        default=None,
        description="The name of the Cloud Pod. This is required for 'save', 'load', and 'delete' actions.",
    )


async def handle(
    params: Params, settings: Settings | None = None, client: CloudPodsApiClient | None = None
) -> list[TextContent]:
    # Auth token is read from the environment on every call
    settings = settings or Settings.from_env()

    preflight_error = await run_preflights(
        [require_localstack_cli(), require_pro_feature(ProFeature.CLOUD_PODS, settings)]
    )
    if preflight_error:
        return preflight_error

    client = client or CloudPodsApiClient(settings=settings)

    if params.action == "reset":
        result = await client.reset_state()
        if not result.success:
            return ResponseBuilder.error("Cloud Pods Error", result.message)
        return ResponseBuilder.markdown(
            "⚠️ LocalStack state has been reset successfully. "
            "**All unsaved state has been permanently lost.**"
        )

    pod_name = (params.pod_name or "").strip()
    if not pod_name:
        return ResponseBuilder.error(
            "Missing Required Parameter",
            f"The `{params.action}` action requires the `pod_name` parameter to be specified.",
        )

    if params.action == "save":
        result = await client.save_pod(pod_name)
        if result.status_code == 409:
            return ResponseBuilder.error(
                "Cloud Pods Error",
                f"A Cloud Pod named '**{pod_name}**' already exists. Please choose a different "
                "name or delete the existing pod first.",
            )
        success = f"Cloud Pod '**{pod_name}**' was saved successfully."
    elif params.action == "load":
        result = await client.load_pod(pod_name)
        success = (
            f"Cloud Pod '**{pod_name}**' was loaded. Your LocalStack instance has been "
            "restored to this snapshot."
        )
    else:
        result = await client.delete_pod(pod_name)
        success = f"Cloud Pod '**{pod_name}**' has been permanently deleted."

    if not result.success:
        if result.status_code == 404 and params.action != "save":
            return ResponseBuilder.error(
                "Cloud Pods Error", f"A Cloud Pod named '**{pod_name}**' could not be found."
            )
        return ResponseBuilder.error("Cloud Pods Error", result.message)

    return ResponseBuilder.success(success)
