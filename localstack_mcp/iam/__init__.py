"""IAM denial analysis and policy generation."""

from .policy import (
    PolicyAnalysis,
    UniquePermission,
    analyze_denials,
    deduplicate_permissions,
    enrich_with_resource_data,
    format_policy_report,
    generate_iam_policy,
)

__all__ = [
    "PolicyAnalysis",
    "UniquePermission",
    "analyze_denials",
    "deduplicate_permissions",
    "enrich_with_resource_data",
    "format_policy_report",
    "generate_iam_policy",
]
