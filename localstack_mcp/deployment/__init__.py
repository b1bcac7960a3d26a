"""CDK / Terraform deployment helpers."""

from .reporter import DeploymentEvent, format_deployment_report
from .utils import (
    DependencyCheckResult,
    check_dependencies,
    infer_project_type,
    parse_cdk_outputs,
    parse_terraform_outputs,
    validate_variables,
)

__all__ = [
    "DeploymentEvent",
    "format_deployment_report",
    "DependencyCheckResult",
    "check_dependencies",
    "infer_project_type",
    "parse_cdk_outputs",
    "parse_terraform_outputs",
    "validate_variables",
]
