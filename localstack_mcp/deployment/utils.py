"""Helpers for deploying CDK and Terraform projects onto LocalStack."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ..core.command_runner import run_command

ProjectType = Literal["cdk", "terraform", "ambiguous", "unknown"]

DEPENDENCY_CHECK_TIMEOUT = 10.0

CDK_FILES = ("app.py", "app.js", "app.ts")

# Forbidden in variable keys and values
DANGEROUS_PATTERNS = [";", "&&", "||", "$(", "`", "|", ">", "<", "&", "\n", "\r"]

VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*$")
CDK_OUTPUT_LINE = re.compile(r"^([^=]+)\s*=\s*(.+)$")
SECTION_HEADER = re.compile(r"^[A-Z].*:$")

INSTALL_HINTS = {
    "cdk": """❌ cdklocal is not installed or not available in PATH.

Please install aws-cdk-local by following the official documentation:
https://github.com/localstack/aws-cdk-local

Installation:
npm install -g aws-cdk-local aws-cdk

After installation, make sure the 'cdklocal' command is available in your PATH.""",
    "terraform": """❌ tflocal is not installed or not available in PATH.

Please install terraform-local by following the official documentation:
https://github.com/localstack/terraform-local

Installation:
pip install terraform-local

After installation, make sure the 'tflocal' command is available in your PATH.""",
}


@dataclass
class DependencyCheckResult:
    is_available: bool
    tool: str
    version: str | None = None
    error_message: str | None = None


def deployment_tool(project_type: str) -> str:
    return "cdklocal" if project_type == "cdk" else "tflocal"


async def check_dependencies(project_type: Literal["cdk", "terraform"]) -> DependencyCheckResult:
    """Check that ``cdklocal`` or ``tflocal`` is installed."""
    tool = deployment_tool(project_type)
    result = await run_command(tool, ["--version"], timeout=DEPENDENCY_CHECK_TIMEOUT)

    if result.error:
        return DependencyCheckResult(
            is_available=False, tool=tool, error_message=INSTALL_HINTS[project_type]
        )
    return DependencyCheckResult(is_available=True, tool=tool, version=result.stdout.strip())


def infer_project_type(directory: str | Path) -> ProjectType:
    """Guess the IaC flavour of a project directory from its files."""
    path = Path(directory)
    if not path.is_dir():
        return "unknown"

    files = [p.name for p in path.iterdir()]

    is_cdk = "cdk.json" in files or any(
        name.startswith("cdk.") or name in CDK_FILES for name in files
    )
    is_terraform = any(name.endswith(".tf") or name.endswith(".tf.json") for name in files)

    if is_cdk and is_terraform:
        return "ambiguous"
    if is_cdk:
        return "cdk"
    if is_terraform:
        return "terraform"
    return "unknown"


def validate_variables(variables: dict[str, str] | None) -> list[str]:
    """Return one message per variable that could inject shell syntax."""
    if not variables:
        return []

    errors = []
    for key, value in variables.items():
        for pattern in DANGEROUS_PATTERNS:
            if pattern in key:
                errors.append(f'Variable key "{key}" contains forbidden character: {pattern}')
            if pattern in value:
                errors.append(
                    f'Variable value for "{key}" contains forbidden character: {pattern}'
                )

        if not VALID_IDENTIFIER.match(key):
            errors.append(f'Variable key "{key}" is not a valid identifier')

    return errors


def parse_terraform_outputs(output_json: str) -> str:
    """Render ``terraform output -json`` as a markdown table."""
    try:
        outputs = json.loads(output_json)
    except json.JSONDecodeError as e:
        return f"Error parsing Terraform outputs: {e}"

    if not outputs:
        return "No outputs defined in this Terraform configuration."

    result = "## 📋 Terraform Outputs\n\n"
    result += "| Name | Value | Description |\n"
    result += "|------|-------|-------------|\n"

    for name, config in outputs.items():
        value = config.get("value", "N/A")
        description = config.get("description") or ""
        display = value if isinstance(value, str) else json.dumps(value)
        result += f"| **{name}** | `{display}` | {description} |\n"

    return result


def parse_cdk_outputs(stdout: str) -> str:
    """Extract the ``Outputs:`` section of ``cdklocal deploy`` as a table."""
    output_lines: list[str] = []
    in_outputs = False

    for line in stdout.split("\n"):
        if line.strip().startswith("Outputs:"):
            in_outputs = True
            continue

        if in_outputs:
            if not line.strip() or SECTION_HEADER.match(line):
                break
            if CDK_OUTPUT_LINE.match(line):
                output_lines.append(line.strip())

    if not output_lines:
        return "No outputs defined in this CDK stack."

    result = "## 📋 CDK Stack Outputs\n\n"
    result += "| Output | Value |\n"
    result += "|--------|-------|\n"

    for line in output_lines:
        name, _, value = line.partition(" = ")
        result += f"| **{name.strip()}** | `{value.strip()}` |\n"

    return result
