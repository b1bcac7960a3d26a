"""localstack-deployer: deploy or destroy CDK and Terraform projects."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from mcp.types import TextContent, ToolAnnotations
from pydantic import BaseModel, Field

from ..config import Settings
from ..core.command_runner import CommandResult, run_command, strip_ansi_codes
from ..core.preflight import require_localstack_cli
from ..core.responses import ResponseBuilder
from ..deployment.reporter import DeploymentEvent, format_deployment_report
from ..deployment.utils import (
    check_dependencies,
    infer_project_type,
    parse_cdk_outputs,
    parse_terraform_outputs,
    validate_variables,
)

NAME = "localstack-deployer"
DESCRIPTION = "Deploys or destroys AWS infrastructure on LocalStack using CDK or Terraform."
ANNOTATIONS = ToolAnnotations(
    title="LocalStack Deployer",
    readOnlyHint=False,
    destructiveHint=True,
    idempotentHint=False,
)

# Keeps cdklocal from prompting
CDK_ENV = {"CI": "true"}


class Params(BaseModel):
    action: Literal["deploy", "destroy"] = Field(
        description=(
            "The deployment action to perform: 'deploy' to create/update resources, "
            "or 'destroy' to remove them."
        )
    )
    project_type: Literal["cdk", "terraform", "auto"] = Field(
        default="auto",
        description=(
            "The type of project. 'auto' (default) infers from files. "
            "Specify 'cdk' or 'terraform' to override."
        ),
    )
    directory: str = Field(
        description="The required path to the project directory containing your infrastructure-as-code files."
    )
    variables: dict[str, str] | None = Field(
        default=None,
        description=(
            "Key-value pairs for parameterization. Used for Terraform variables (-var) "
            "or CDK context (--context)."
        ),
    )


async def handle(params: Params, settings: Settings | None = None) -> list[TextContent]:
    settings = settings or Settings.from_env()

    cli_error = await require_localstack_cli()
    if cli_error:
        return cli_error

    project_type = params.project_type
    if project_type == "auto":
        inferred = infer_project_type(params.directory)
        if inferred == "ambiguous":
            return ResponseBuilder.error(
                "Ambiguous Project Type",
                f'The directory "{params.directory}" contains both CDK and Terraform files. '
                "Please specify the project type explicitly:\n\n"
                "- Use `project_type: 'cdk'` to deploy as a CDK project\n"
                "- Use `project_type: 'terraform'` to deploy as a Terraform project",
            )
        if inferred == "unknown":
            return ResponseBuilder.error(
                "Unknown Project Type",
                f'The directory "{params.directory}" does not appear to contain recognizable '
                "infrastructure-as-code files.\n\n"
                "Expected files:\n"
                "- **CDK**: `cdk.json`, `app.py`, `app.js`, or `app.ts`\n"
                "- **Terraform**: `*.tf` or `*.tf.json` files\n\n"
                "Please check the directory path or specify the project type explicitly.",
            )
        project_type = inferred

    dependency = await check_dependencies(project_type)
    if not dependency.is_available:
        return ResponseBuilder.error("Dependency Not Available", dependency.error_message)

    errors = validate_variables(params.variables)
    if errors:
        bullet_list = "\n".join(f"- {error}" for error in errors)
        return ResponseBuilder.error(
            "Security Violation Detected",
            "🛡️ **Security Violation Detected**\n\n"
            "Command injection attempt prevented. The following issues were found:\n\n"
            f"{bullet_list}\n\n"
            "Please review your variables and ensure they don't contain shell metacharacters "
            "or invalid identifiers.",
        )

    directory = Path(params.directory).resolve()
    verb = "Deployment" if params.action == "deploy" else "Destruction"
    title = f"🚀 LocalStack {project_type.upper()} {verb}"

    if project_type == "terraform":
        events = await _terraform(params.action, directory, params.variables, settings)
    else:
        events = await _cdk(params.action, directory, params.variables, settings)

    return ResponseBuilder.markdown(format_deployment_report(title, events))


def _record(events: list[DeploymentEvent], result: CommandResult, step: str) -> bool:
    """Append a step's output; return False when the step failed."""
    events.append(DeploymentEvent("output", strip_ansi_codes(result.stdout)))
    if result.stderr:
        events.append(DeploymentEvent("warning", strip_ansi_codes(result.stderr)))
    if result.error:
        events.append(DeploymentEvent("error", str(result.error), f"Error during `{step}`"))
        return False
    return True


async def _terraform(
    action: str, directory: Path, variables: dict[str, str] | None, settings: Settings
) -> list[DeploymentEvent]:
    events: list[DeploymentEvent] = []
    var_args = [arg for k, v in (variables or {}).items() for arg in ("-var", f"{k}={v}")]

    async def tflocal(*args: str) -> CommandResult:
        return await run_command(
            "tflocal",
            list(args),
            cwd=directory,
            timeout=settings.command_timeout_s,
            max_buffer=settings.command_max_buffer,
        )

    if action == "deploy":
        events.append(DeploymentEvent("header", title="📦 Initializing Terraform"))
        if not _record(events, await tflocal("init"), "tflocal init"):
            return events

        events.append(DeploymentEvent("header", title="🔨 Applying Terraform Configuration"))
        if not _record(events, await tflocal("apply", "-auto-approve", *var_args), "tflocal apply"):
            return events

        outputs = await tflocal("output", "-json")
        if outputs.stdout.strip():
            events.append(DeploymentEvent("output", parse_terraform_outputs(outputs.stdout)))
        events.append(DeploymentEvent("success", "Terraform deployment completed successfully!"))
    else:
        events.append(DeploymentEvent("header", title="💥 Destroying Terraform Resources"))
        if not _record(
            events, await tflocal("destroy", "-auto-approve", *var_args), "tflocal destroy"
        ):
            return events
        events.append(
            DeploymentEvent("success", f"Terraform resources in {directory} have been destroyed.")
        )

    return events


async def _cdk(
    action: str, directory: Path, variables: dict[str, str] | None, settings: Settings
) -> list[DeploymentEvent]:
    events: list[DeploymentEvent] = []
    context_args = [arg for k, v in (variables or {}).items() for arg in ("--context", f"{k}={v}")]

    async def cdklocal(*args: str) -> CommandResult:
        return await run_command(
            "cdklocal",
            list(args),
            cwd=directory,
            env=CDK_ENV,
            timeout=settings.command_timeout_s,
            max_buffer=settings.command_max_buffer,
        )

    if action == "deploy":
        events.append(DeploymentEvent("header", title="🥾 Bootstrapping CDK for LocalStack"))
        if not _record(events, await cdklocal("bootstrap"), "cdklocal bootstrap"):
            return events

        events.append(DeploymentEvent("header", title="🚀 Deploying CDK Stack"))
        deploy = await cdklocal("deploy", "--require-approval", "never", "--all", *context_args)
        clean_output = strip_ansi_codes(deploy.stdout)
        events.append(DeploymentEvent("output", clean_output))
        if deploy.stderr:
            events.append(DeploymentEvent("warning", strip_ansi_codes(deploy.stderr)))

        outputs = parse_cdk_outputs(clean_output)
        if "No outputs defined" not in outputs:
            events.append(DeploymentEvent("output", outputs))

        if deploy.error:
            events.append(
                DeploymentEvent("error", str(deploy.error), "Error during `cdklocal deploy`")
            )
            return events
        events.append(DeploymentEvent("success", "CDK stack deployed successfully!"))
    else:
        events.append(DeploymentEvent("header", title="💥 Destroying CDK Stack"))
        if not _record(
            events, await cdklocal("destroy", "--force", "--all", *context_args), "cdklocal destroy"
        ):
            return events
        events.append(DeploymentEvent("success", f"CDK stack in {directory} has been destroyed."))

    return events
