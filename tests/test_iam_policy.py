"""Tests for IAM denial correlation and policy synthesis."""

import json

import pytest

from localstack_mcp.iam.policy import (
    UniquePermission,
    analyze_denials,
    deduplicate_permissions,
    enrich_with_resource_data,
    format_policy_report,
    generate_iam_policy,
)
from localstack_mcp.logs.models import LogEntry
from localstack_mcp.logs.parser import parse_log_line

USER = "arn:aws:iam::000000000000:user/dev"
ROLE = "arn:aws:iam::000000000000:role/worker"
TABLE = "arn:aws:dynamodb:us-east-1:000000000000:table/Orders"


def denial(timestamp, action, principal=USER, resource=None) -> LogEntry:
    return LogEntry(
        message="denied",
        full_line="denied",
        timestamp=timestamp,
        is_error=True,
        is_iam_denial=True,
        iam_principal=principal,
        iam_action=action,
        iam_resource=resource,
    )


def resource_line(timestamp, action, resource) -> LogEntry:
    return LogEntry(
        message="resource",
        full_line="resource",
        timestamp=timestamp,
        iam_action=action,
        iam_resource=resource,
    )


class TestEnrichWithResourceData:
    """Tests for enrich_with_resource_data."""

    @pytest.mark.asyncio
    async def test_attaches_resource_within_window(self):
        d = denial("2025-07-23T10:00:00.000", "dynamodb:PutItem")
        logs = [d, resource_line("2025-07-23T10:00:04.900", "dynamodb:PutItem", TABLE)]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched.iam_resource == TABLE

    @pytest.mark.asyncio
    async def test_ignores_lines_outside_window(self):
        d = denial("2025-07-23T10:00:00.000", "dynamodb:PutItem")
        logs = [resource_line("2025-07-23T10:00:05.001", "dynamodb:PutItem", TABLE)]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched.iam_resource is None

    @pytest.mark.asyncio
    async def test_window_applies_before_the_denial_too(self):
        d = denial("2025-07-23T10:00:05.000", "dynamodb:PutItem")
        logs = [resource_line("2025-07-23T10:00:00.000", "dynamodb:PutItem", TABLE)]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched.iam_resource == TABLE

    @pytest.mark.asyncio
    async def test_requires_matching_action(self):
        d = denial("2025-07-23T10:00:00.000", "dynamodb:PutItem")
        logs = [resource_line("2025-07-23T10:00:01.000", "dynamodb:GetItem", TABLE)]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched.iam_resource is None

    @pytest.mark.asyncio
    async def test_first_match_in_log_order_wins(self):
        d = denial("2025-07-23T10:00:00.000", "s3:PutObject")
        logs = [
            resource_line("2025-07-23T10:00:04.000", "s3:PutObject", "arn:aws:s3:::far/*"),
            resource_line("2025-07-23T10:00:00.100", "s3:PutObject", "arn:aws:s3:::near/*"),
        ]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched.iam_resource == "arn:aws:s3:::far/*"

    @pytest.mark.asyncio
    async def test_does_not_mutate_inputs(self):
        d = denial("2025-07-23T10:00:00.000", "dynamodb:PutItem")
        logs = [resource_line("2025-07-23T10:00:01.000", "dynamodb:PutItem", TABLE)]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched is not d
        assert d.iam_resource is None

    @pytest.mark.asyncio
    async def test_denial_without_timestamp_is_copied_unchanged(self):
        d = denial(None, "dynamodb:PutItem")
        logs = [resource_line("2025-07-23T10:00:01.000", "dynamodb:PutItem", TABLE)]

        [enriched] = await enrich_with_resource_data([d], logs)

        assert enriched == d


class TestDeduplicatePermissions:
    """Tests for deduplicate_permissions."""

    def test_collapses_repeats_and_defaults_resource(self):
        denials = [
            denial("2025-07-23T10:00:00.000", "sqs:SendMessage"),
            denial("2025-07-23T10:00:01.000", "sqs:SendMessage"),
            denial("2025-07-23T10:00:02.000", "sqs:SendMessage", resource="arn:aws:sqs:us-east-1:000000000000:q"),
        ]

        permissions = deduplicate_permissions(denials)

        assert list(permissions) == [
            f"{USER}|sqs:SendMessage|*",
            f"{USER}|sqs:SendMessage|arn:aws:sqs:us-east-1:000000000000:q",
        ]
        assert permissions[f"{USER}|sqs:SendMessage|*"] == UniquePermission(USER, "sqs:SendMessage", "*")

    def test_skips_incomplete_denials(self):
        denials = [
            denial("2025-07-23T10:00:00.000", None),
            denial("2025-07-23T10:00:00.000", "s3:GetObject", principal=None),
        ]
        assert deduplicate_permissions(denials) == {}

    def test_is_idempotent(self):
        denials = [denial("2025-07-23T10:00:00.000", "s3:GetObject", resource="arn:aws:s3:::b/*")]
        first = deduplicate_permissions(denials)
        assert deduplicate_permissions(denials + denials) == first


class TestGenerateIamPolicy:
    """Tests for generate_iam_policy."""

    def test_one_statement_per_resource_with_sorted_actions(self):
        permissions = deduplicate_permissions(
            [
                denial("t", "dynamodb:PutItem", resource=TABLE),
                denial("t", "dynamodb:GetItem", principal=ROLE, resource=TABLE),
                denial("t", "sqs:SendMessage"),
                denial("t", "dynamodb:GetItem", resource=TABLE),
            ]
        )

        policy = generate_iam_policy(permissions)

        assert policy == {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "GeneratedStatement1",
                    "Effect": "Allow",
                    "Action": ["dynamodb:GetItem", "dynamodb:PutItem"],
                    "Resource": TABLE,
                },
                {
                    "Sid": "GeneratedStatement2",
                    "Effect": "Allow",
                    "Action": ["sqs:SendMessage"],
                    "Resource": "*",
                },
            ],
        }
        assert all("Principal" not in statement for statement in policy["Statement"])

    def test_empty(self):
        assert generate_iam_policy({}) == {"Version": "2012-10-17", "Statement": []}


class TestAnalyzeDenials:
    """Tests for the full pipeline over parsed log lines."""

    LINES = [
        "2025-07-23T10:58:58.700  INFO --- [   asgi_gw_2] localstack.services.iam.policy_engine : "
        "Request for service 'dynamodb' by principal 'arn:aws:iam::000000000000:user/dev' "
        "for operation 'PutItem' denied.",
        "2025-07-23T10:58:58.701 DEBUG Action 'dynamodb:PutItem' for "
        "'arn:aws:dynamodb:us-east-1:000000000000:table/Orders'",
        "2025-07-23T10:58:58.710 INFO AWS dynamodb.PutItem => 400 (AccessDeniedException)",
    ]

    @pytest.mark.asyncio
    async def test_pipeline(self):
        analysis = await analyze_denials([parse_log_line(line) for line in self.LINES])

        assert len(analysis.denials) == 1
        assert list(analysis.permissions.values()) == [UniquePermission(USER, "dynamodb:PutItem", TABLE)]
        assert analysis.policy["Statement"][0]["Resource"] == TABLE

    @pytest.mark.asyncio
    async def test_no_denials(self):
        analysis = await analyze_denials([parse_log_line(self.LINES[-1])])

        assert analysis.denials == []
        assert analysis.permissions == {}
        assert analysis.policy["Statement"] == []

    @pytest.mark.asyncio
    async def test_report(self):
        analysis = await analyze_denials([parse_log_line(line) for line in self.LINES])
        report = analysis.report()

        assert report.startswith("# 🔍 IAM Policy Analysis Report")
        assert "- Found **1** IAM permission errors." in report
        assert "- Identified **1** unique missing permissions." in report
        assert f"principal(s): `{USER}`" in report
        assert f"is missing action `dynamodb:PutItem` on resource `{TABLE}`" in report
        assert json.dumps(analysis.policy, indent=2) in report
        assert "**Do not add a 'Principal' block**" in report


class TestFormatPolicyReport:
    """Tests for format_policy_report."""

    def test_wildcard_resource_and_multiple_principals(self):
        permissions = deduplicate_permissions(
            [denial("t", "sqs:SendMessage"), denial("t", "sqs:SendMessage", principal=ROLE)]
        )
        report = format_policy_report([], permissions, generate_iam_policy(permissions))

        assert f"principal(s): `{USER}`, `{ROLE}`" in report
        assert "- This affects **2** principal(s)" in report
        assert "`sqs:SendMessage` on any resource" in report
