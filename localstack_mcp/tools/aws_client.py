"""localstack-aws-client: run ``awslocal`` commands inside the LocalStack container."""

from __future__ import annotations

import re

from docker.errors import DockerException
from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field, field_validator

from ..aws.sanitizer import sanitize_aws_cli_command, split_args
from ..config import Settings
from ..containers.docker_client import ContainerNotFoundError, DockerApiClient
from ..core.command_runner import CommandError
from ..core.preflight import require_localstack_running, run_preflights
from ..core.responses import ResponseBuilder

NAME = "localstack-aws-client"
DESCRIPTION = (
    "Executes an AWS CLI command against the running LocalStack container using the "
    "'awslocal' wrapper."
)
ANNOTATIONS = ToolAnnotations(title="LocalStack AWS Client")

COVERAGE_URL = "https://docs.localstack.cloud/references/coverage"

UNSUPPORTED_ACTION = re.compile(
    r"The API action '([^']+)' for service '([^']+)' is either not available in your current "
    r"license plan or has not yet been emulated by LocalStack",
    re.IGNORECASE,
)
UNSUPPORTED_SERVICE = re.compile(
    r"The API for service '([^']+)' is either not included in your current license plan or "
    r"has not yet been emulated by LocalStack",
    re.IGNORECASE,
)


class Params(BaseModel):
    command: str = Field(
        description=(
            "The AWS CLI command to execute (e.g., 's3 ls', 'dynamodb list-tables'). "
            "Do not include 'awslocal' or 'aws'."
        )
    )

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("The command string cannot be empty.")
        return value


async def handle(
    params: Params, settings: Settings | None = None, docker_client: DockerApiClient | None = None
) -> list[TextContent]:
    settings = settings or Settings.from_env()

    preflight_error = await run_preflights([require_localstack_running()])
    if preflight_error:
        return preflight_error

    try:
        command = sanitize_aws_cli_command(params.command)
        client = docker_client or DockerApiClient()
        container_id = await client.find_named_container(settings.container_name)
        result = await client.exec_in_container(
            container_id,
            ["awslocal", *split_args(command)],
            timeout=settings.command_timeout_s,
            max_buffer=settings.command_max_buffer,
        )
    except (ValueError, ContainerNotFoundError, CommandError, DockerException) as e:
        return ResponseBuilder.error("Execution Error", str(e))

    if result.exit_code == 0:
        return ResponseBuilder.markdown(result.stdout)

    stderr = result.stderr
    action_match = UNSUPPORTED_ACTION.search(stderr)
    if action_match:
        link = f"{COVERAGE_URL}/coverage_{action_match.group(2)}"
        return ResponseBuilder.error(
            "Service Not Implemented in LocalStack",
            f"The requested API action may not be implemented. Check coverage: {link}\n\n{stderr}",
        )

    if UNSUPPORTED_SERVICE.search(stderr):
        return ResponseBuilder.error(
            "Service Not Implemented in LocalStack",
            f"The requested service may not be implemented. Check coverage: {COVERAGE_URL}\n\n{stderr}",
        )

    return ResponseBuilder.error("Command Failed", stderr or "Unknown error")
