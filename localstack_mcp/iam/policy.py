"""IAM denial correlation and least-privilege policy synthesis.

The pipeline is composed in this order:

    enriched = await enrich_with_resource_data(denials, all_logs)
    permissions = deduplicate_permissions(enriched)
    policy = generate_iam_policy(permissions)
    report = format_policy_report(enriched, permissions, policy)

``analyze_denials`` runs the pipeline over a list of parsed log entries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ..logs.models import LogEntry

# Max distance between a denial and a resource-bearing line, in milliseconds
CORRELATION_WINDOW_MS = 5000

POLICY_VERSION = "2012-10-17"


@dataclass(frozen=True)
class UniquePermission:
    principal: str
    action: str
    resource: str = "*"

    @property
    def key(self) -> str:
        return f"{self.principal}|{self.action}|{self.resource}"


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


async def enrich_with_resource_data(
    denials: list[LogEntry], all_logs: list[LogEntry]
) -> list[LogEntry]:
    """Attach resources to denials from nearby log lines with the same action.

    A candidate must share the denial's ``iam_action``, carry an
    ``iam_resource`` and be within 5 seconds of the denial. When several
    candidates qualify, the first one in ``all_logs`` order is used, not the
    closest in time.

    Returns:
        Copies of the denials; the inputs are not modified.
    """
    enriched: list[LogEntry] = []

    for denial in denials:
        copy = replace(denial)
        denial_time = _parse_timestamp(denial.timestamp) if denial.timestamp else None

        if denial_time is not None and denial.iam_action:
            for log in all_logs:
                if not log.timestamp or not log.iam_resource:
                    continue
                if log.iam_action != denial.iam_action:
                    continue
                log_time = _parse_timestamp(log.timestamp)
                if log_time is None:
                    continue
                diff_ms = abs((log_time - denial_time).total_seconds()) * 1000
                if diff_ms <= CORRELATION_WINDOW_MS:
                    copy.iam_resource = log.iam_resource
                    break

        enriched.append(copy)

    return enriched


def deduplicate_permissions(denials: list[LogEntry]) -> dict[str, UniquePermission]:
    """Collapse denials into unique (principal, action, resource) triples.

    Denials missing a principal or action are skipped, a missing resource
    becomes ``*`` and the first occurrence of each triple is kept.
    """
    permissions: dict[str, UniquePermission] = {}

    for denial in denials:
        if not denial.iam_principal or not denial.iam_action:
            continue

        permission = UniquePermission(
            principal=denial.iam_principal,
            action=denial.iam_action,
            resource=denial.iam_resource or "*",
        )
        permissions.setdefault(permission.key, permission)

    return permissions


def generate_iam_policy(permissions: dict[str, UniquePermission]) -> dict[str, Any]:
    """Build an identity-based policy with one statement per resource.

    Statements carry no ``Principal``; the document is meant to be attached
    to the role or user that made the calls.
    """
    actions_by_resource: dict[str, set[str]] = {}
    for permission in permissions.values():
        actions_by_resource.setdefault(permission.resource or "*", set()).add(permission.action)

    statements = [
        {
            "Sid": f"GeneratedStatement{i}",
            "Effect": "Allow",
            "Action": sorted(actions),
            "Resource": resource,
        }
        for i, (resource, actions) in enumerate(actions_by_resource.items(), start=1)
    ]

    return {"Version": POLICY_VERSION, "Statement": statements}


def format_policy_report(
    denials: list[LogEntry],
    permissions: dict[str, UniquePermission],
    policy: dict[str, Any],
) -> str:
    """Render the analysis summary, missing permissions and the policy."""
    principals = list(dict.fromkeys(p.principal for p in permissions.values()))

    result = "# 🔍 IAM Policy Analysis Report\n\n"
    result += "**Analysis Summary:**\n"
    result += f"- Found **{len(denials)}** IAM permission errors.\n"
    result += f"- Identified **{len(permissions)}** unique missing permissions.\n"
    result += (
        f"- This affects **{len(principals)}** principal(s): `{'`, `'.join(principals)}`\n\n"
    )

    result += "## 📋 Missing Permissions\n\n"
    for permission in permissions.values():
        if permission.resource == "*":
            resource_display = "any resource"
        else:
            resource_display = f"resource `{permission.resource}`"
        result += (
            f"- **Principal** `{permission.principal}` is missing action "
            f"`{permission.action}` on {resource_display}\n"
        )

    result += "\n## 📝 Generated IAM Identity Policy\n\n"
    result += (
        "This policy should be attached to the IAM user, role, or group that is "
        "making the calls.\n\n"
    )
    result += f"```json\n{json.dumps(policy, indent=2)}\n```\n\n"

    result += "## 🚀 How to Apply This Policy\n\n"
    result += "**For CDK/CloudFormation:**\n"
    result += (
        "1. Add these statements to the IAM Role or User resource's inline policies "
        "or a managed policy.\n"
    )
    result += "2. **Do not add a 'Principal' block** to this policy statement.\n"
    result += "3. Deploy your stack with the updated permissions.\n\n"

    result += "**For Terraform:**\n"
    result += "1. Create an `aws_iam_policy` resource using this policy document.\n"
    result += (
        "2. Attach it to your IAM role, user, or group using an attachment resource "
        "(e.g., `aws_iam_role_policy_attachment`).\n"
    )
    result += "3. Apply your Terraform configuration.\n\n"

    result += "## ⚠️ Important Notes\n\n"
    result += (
        "- **Review Carefully:** This policy is generated from observed failures. "
        "Always follow the principle of least privilege.\n"
    )
    result += (
        "- **Refine Resources:** Consider refining resource ARNs to be more specific "
        "than wildcards (`*`) where possible.\n"
    )

    return result


@dataclass
class PolicyAnalysis:
    denials: list[LogEntry]
    permissions: dict[str, UniquePermission]
    policy: dict[str, Any]

    def report(self) -> str:
        return format_policy_report(self.denials, self.permissions, self.policy)


async def analyze_denials(logs: list[LogEntry]) -> PolicyAnalysis:
    """Run the full pipeline over parsed logs.

    Returns:
        PolicyAnalysis; ``denials`` is empty when the logs hold no IAM denials.
    """
    denials = await enrich_with_resource_data(
        [log for log in logs if log.is_iam_denial], logs
    )
    permissions = deduplicate_permissions(denials)
    return PolicyAnalysis(denials, permissions, generate_iam_policy(permissions))
