"""Tests for the Scout Suite runner and report formatter."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from localstack_mcp.config import Settings
from localstack_mcp.core.command_runner import CommandResult, CommandTimeoutError
from localstack_mcp.scoutsuite.reporter import escape_markdown, format_scan_results
from localstack_mcp.scoutsuite.runner import (
    SCAN_TIMEOUT,
    ScanError,
    build_scan_args,
    read_scan_report,
    run_scan,
)

MIXED_REPORT = {
    "last_run": {
        "summary": {
            "s3": {"checked_items": 10, "flagged_items": 2},
            "iam": {"checked_items": 8, "flagged_items": 0},
            "ec2": {"checked_items": 5, "flagged_items": 1},
            "kms": {"checked_items": 0, "flagged_items": 0},
        }
    },
    "services": {
        "s3": {
            "findings": {
                "s3_public_buckets": {
                    "description": "S3 buckets allow public read access",
                    "level": "danger",
                    "rationale": "Public buckets can expose sensitive data.",
                    "remediation": "Block public access and update bucket policies.",
                    "items": ["bucket-a", "bucket-b"],
                },
                "s3_no_versioning": {
                    "description": "Versioning disabled",
                    "level": "warning",
                    "items": ["bucket_a"],
                },
            }
        },
        "iam": {"findings": {}},
        "ec2": {
            "findings": {
                "ec2_open_security_groups": {
                    "level": "danger",
                    "items": ["sg-123"],
                }
            }
        },
    },
}


def write_results(report_dir: Path, name: str, content: str) -> None:
    results = report_dir / "scoutsuite-results"
    results.mkdir(parents=True, exist_ok=True)
    (results / name).write_text(content)


def mounted_dir(args: list[str]) -> Path:
    volume = args[args.index("-v") + 1]
    return Path(volume.rsplit(":", 1)[0])


class TestFormatScanResults:
    """Tests for format_scan_results."""

    def test_summary_table_skips_unchecked_services(self):
        markdown = format_scan_results(MIXED_REPORT)

        assert markdown.startswith("# Scout Suite Scan Summary\n")
        assert "| s3 | 10 | 2 |" in markdown
        assert "| iam | 8 | 0 |" in markdown
        assert "| kms |" not in markdown

    def test_findings_only_for_flagged_services(self):
        markdown = format_scan_results(MIXED_REPORT)

        assert "## ⚠️ S3 Findings" in markdown
        assert "## ⚠️ EC2 Findings" in markdown
        assert "IAM Findings" not in markdown

    def test_finding_details(self):
        markdown = format_scan_results(MIXED_REPORT)

        assert "### S3 buckets allow public read access\n- **Severity**: ❌ Danger" in markdown
        assert "- **Flagged Items**:\n  - `bucket-a`\n  - `bucket-b`" in markdown
        assert "- **Rationale**:\n  Public buckets can expose sensitive data." in markdown
        assert "### Versioning disabled\n- **Severity**: ⚠️ Warning" in markdown
        assert "  - `bucket\\_a`" in markdown

    def test_finding_key_used_without_description(self):
        assert "### ec2\\_open\\_security\\_groups" in format_scan_results(MIXED_REPORT)

    def test_missing_summary(self):
        assert format_scan_results({"services": {}}) == "No summary data available in report."
        assert format_scan_results(None) == "No summary data available in report."

    def test_escape_markdown(self):
        assert escape_markdown("a|b*c") == "a\\|b\\*c"


class TestBuildScanArgs:
    """Tests for build_scan_args."""

    def test_endpoint_and_mount(self):
        args = build_scan_args("/tmp/scan", None, Settings(localstack_port=4600))

        assert args[:2] == ["run", "--rm"]
        assert "AWS_ENDPOINT_URL=http://host.docker.internal:4600" in args
        assert "/tmp/scan:/root/scout-report" in args
        assert "--services" not in args
        assert args[-2:] == ["--report-dir", "/root/scout-report"]

    def test_services_are_normalized(self):
        args = build_scan_args("/tmp/scan", [" S3 ", "", "IAM"], Settings())
        assert args[-2:] == ["--services", "s3,iam"]

    def test_blank_services_are_dropped(self):
        assert "--services" not in build_scan_args("/tmp/scan", ["  "], Settings())


class TestReadScanReport:
    """Tests for read_scan_report."""

    def test_results_js_is_unwrapped(self, tmp_path):
        write_results(tmp_path, "scoutsuite_results_aws-000000000000.js", 'scoutsuite_results =\n{"a": {"b": 1}}\n')
        assert read_scan_report(tmp_path) == {"a": {"b": 1}}

    def test_falls_back_to_errors_file(self, tmp_path):
        write_results(tmp_path, "scoutsuite_errors_aws-000000000000.json", '{"errors": ["denied"]}')
        assert read_scan_report(tmp_path) == {"errors": ["denied"]}

    def test_unreadable_errors_file(self, tmp_path):
        write_results(tmp_path, "scoutsuite_errors_aws-000000000000.json", "not json")
        assert read_scan_report(tmp_path) is None

    def test_undecodable_results(self, tmp_path):
        write_results(tmp_path, "scoutsuite_results_aws-000000000000.js", "x = {broken}")
        with pytest.raises(ScanError, match="Could not decode"):
            read_scan_report(tmp_path)

    def test_no_results_directory(self, tmp_path):
        assert read_scan_report(tmp_path) is None


class TestRunScan:
    """Tests for run_scan with the docker command replaced."""

    @pytest.mark.asyncio
    async def test_returns_report_written_by_scan(self):
        seen = {}

        async def fake_run(command, args, **kwargs):
            seen.update(command=command, args=args, kwargs=kwargs)
            write_results(mounted_dir(args), "scoutsuite_results_aws-1.js", json.dumps(MIXED_REPORT))
            return CommandResult("", "", 0)

        with patch("localstack_mcp.scoutsuite.runner.run_command", side_effect=fake_run):
            report = await run_scan(["s3"], Settings())

        assert report == MIXED_REPORT
        assert seen["command"] == "docker"
        assert seen["kwargs"]["timeout"] == SCAN_TIMEOUT == 600.0
        assert not mounted_dir(seen["args"]).exists()

    @pytest.mark.asyncio
    async def test_report_wins_over_command_error(self):
        async def fake_run(command, args, **kwargs):
            write_results(mounted_dir(args), "scoutsuite_results_aws-1.js", '{"ok": true}')
            return CommandResult("", "", 1, RuntimeError("exit 1"))

        with patch("localstack_mcp.scoutsuite.runner.run_command", side_effect=fake_run):
            assert await run_scan(settings=Settings()) == {"ok": True}

    @pytest.mark.asyncio
    async def test_command_error_without_report(self):
        async def fake_run(command, args, **kwargs):
            return CommandResult("", "", None, CommandTimeoutError(600.0))

        with patch("localstack_mcp.scoutsuite.runner.run_command", side_effect=fake_run):
            with pytest.raises(ScanError, match="Command timed out after 600000ms"):
                await run_scan(settings=Settings())

    @pytest.mark.asyncio
    async def test_clean_exit_without_report(self):
        async def fake_run(command, args, **kwargs):
            return CommandResult("", "", 0)

        with patch("localstack_mcp.scoutsuite.runner.run_command", side_effect=fake_run):
            with pytest.raises(ScanError, match="report not found"):
                await run_scan(settings=Settings())
