"""Checks against the ``localstack`` command line tool."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.command_runner import run_command

CLI_CHECK_TIMEOUT = 10.0

CLI_NOT_INSTALLED_MESSAGE = """❌ LocalStack CLI is not installed or not available in PATH.

Please install LocalStack by following the official documentation:
https://docs.localstack.cloud/aws/getting-started/installation/

Installation options:
- Using pip: pip install localstack
- Using Docker: Use the LocalStack Docker image
- Using Homebrew (macOS): brew install localstack/tap/localstack-cli

After installation, make sure the 'localstack' command is available in your PATH."""


@dataclass
class CliCheckResult:
    is_available: bool
    version: str | None = None
    error_message: str | None = None


@dataclass
class StatusResult:
    is_running: bool
    is_ready: bool = False
    status_output: str | None = None
    error_message: str | None = None


async def check_localstack_cli() -> CliCheckResult:
    """Check that ``localstack`` is on PATH and report its version."""
    help_result = await run_command("localstack", ["--help"], timeout=CLI_CHECK_TIMEOUT)
    if help_result.error:
        return CliCheckResult(is_available=False, error_message=CLI_NOT_INSTALLED_MESSAGE)

    version_result = await run_command("localstack", ["--version"], timeout=CLI_CHECK_TIMEOUT)
    if version_result.error:
        return CliCheckResult(is_available=False, error_message=CLI_NOT_INSTALLED_MESSAGE)

    return CliCheckResult(is_available=True, version=version_result.stdout.strip())


async def get_localstack_status() -> StatusResult:
    """Run ``localstack status`` and interpret its output."""
    result = await run_command("localstack", ["status"], timeout=CLI_CHECK_TIMEOUT)
    if result.error:
        return StatusResult(
            is_running=False,
            error_message=f"Failed to get LocalStack status: {result.error}",
        )

    stdout = result.stdout
    return StatusResult(
        is_running="running" in stdout,
        is_ready="Ready" in stdout or "ready" in stdout,
        status_output=stdout.strip(),
    )
