"""Retrieval of LocalStack logs and the aggregate views built on them."""

from __future__ import annotations

import re

from ..config import LOG_RETRIEVAL_TIMEOUT, Settings
from ..core.command_runner import (
    CommandBufferExceededError,
    CommandResult,
    CommandTimeoutError,
    run_command,
)
from .models import ApiCallStats, LogEntry, LogRetrievalResult
from .parser import LogLineParser

TIMEOUT_MESSAGE = (
    "Log retrieval timed out. LocalStack may be generating large amounts of logs. "
    "Try reducing the number of lines or check if LocalStack is experiencing issues."
)

CLI_FAILURE_MESSAGE = (
    "Unable to execute 'localstack logs' command. Please ensure LocalStack CLI is "
    "installed and LocalStack is running."
)

# Applied in order to non-API error messages when building group keys
VOLATILE_SUBSTITUTIONS: list[tuple[re.Pattern, str]] = [
    # Skips ISO timestamps, which the next rule handles
    (re.compile(r"\b(?!\d{4}-\d{2}-\d{2}T)[a-fA-F0-9-]{8,}\b"), "[ID]"),
    (re.compile(r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}\b"), "[TIMESTAMP]"),
    (re.compile(r"\b\d+\.\d+\.\d+\.\d+\b"), "[IP]"),
    (re.compile(r"\bport\s+\d+\b"), "port [PORT]"),
    (re.compile(r"\b\d{3,}\b"), "[NUMBER]"),
]


class LocalStackLogRetriever:
    """Fetches recent LocalStack logs and parses them into ``LogEntry`` records.

    Example:
        retriever = LocalStackLogRetriever()
        result = await retriever.retrieve_logs(2000)
        if result.success:
            groups = group_logs_by_error(result.logs)
    """

    def __init__(
        self,
        parser: LogLineParser | None = None,
        command: str = "localstack",
        settings: Settings | None = None,
    ):
        self.parser = parser or LogLineParser()
        self.command = command
        self.settings = settings or Settings.from_env()

    async def retrieve_logs(
        self, lines: int = 10000, keyword_filter: str | None = None
    ) -> LogRetrievalResult:
        """Fetch up to ``lines`` recent lines and parse them.

        Args:
            lines: Number of most recent lines to request
            keyword_filter: Case-insensitive substring matched against the raw
                lines before parsing

        Returns:
            LogRetrievalResult; on failure ``error_message`` explains why.
        """
        result = await run_command(
            self.command,
            ["logs", "--tail", str(lines)],
            timeout=LOG_RETRIEVAL_TIMEOUT,
            max_buffer=self.settings.command_max_buffer,
        )

        failure = self._classify_failure(result)
        if failure:
            return LogRetrievalResult(success=False, error_message=failure)

        raw_lines = [line for line in result.stdout.split("\n") if line.strip()]
        selected = raw_lines
        if keyword_filter:
            needle = keyword_filter.lower()
            selected = [line for line in raw_lines if needle in line.lower()]

        return LogRetrievalResult(
            success=True,
            logs=[self.parser.parse(line) for line in selected],
            total_lines=len(raw_lines),
            filtered_lines=len(selected) if keyword_filter else None,
        )

    @staticmethod
    def _classify_failure(result: CommandResult) -> str | None:
        error = result.error
        error_text = str(error) if error else ""

        if isinstance(error, CommandTimeoutError) or "timed out" in error_text or "timeout" in error_text:
            return TIMEOUT_MESSAGE

        if isinstance(error, CommandBufferExceededError):
            return f"Failed to retrieve logs: {error_text}. Try reducing the number of lines."

        if not result.stdout and result.stderr:
            return f"Failed to retrieve logs: {result.stderr}"

        if error and not result.stdout:
            if (
                isinstance(error, FileNotFoundError)
                or "Command failed" in error_text
                or "not found" in error_text
            ):
                return CLI_FAILURE_MESSAGE
            return f"Failed to retrieve logs: {error_text}"

        return None


def _group_key(entry: LogEntry) -> str:
    if entry.is_api_call and entry.service and entry.operation and entry.status_code:
        return f"{entry.service}.{entry.operation} => {entry.status_code}"

    key = entry.message
    for pattern, replacement in VOLATILE_SUBSTITUTIONS:
        key = pattern.sub(replacement, key)
    return key


def group_logs_by_error(logs: list[LogEntry]) -> dict[str, list[LogEntry]]:
    """Group error and warning entries so that repeats collapse together.

    API failures group exactly by ``service.operation => status``; other
    messages group after volatile values (ids, timestamps, IPs, ports, large
    numbers) are replaced by placeholders. Groups keep first-seen order.
    """
    groups: dict[str, list[LogEntry]] = {}
    for entry in logs:
        if not entry.is_error and not entry.is_warning:
            continue
        groups.setdefault(_group_key(entry), []).append(entry)
    return groups


def analyze_api_calls(logs: list[LogEntry]) -> ApiCallStats:
    """Count API calls by service, operation and status.

    Calls without a status code count toward the total and the breakdowns
    but toward neither successes nor failures.
    """
    api_logs = [entry for entry in logs if entry.is_api_call]
    stats = ApiCallStats(total_calls=len(api_logs))

    for entry in api_logs:
        if entry.service:
            stats.calls_by_service[entry.service] = stats.calls_by_service.get(entry.service, 0) + 1

        if entry.operation:
            stats.calls_by_operation[entry.operation] = (
                stats.calls_by_operation.get(entry.operation, 0) + 1
            )

        if entry.status_code:
            stats.calls_by_status[entry.status_code] = (
                stats.calls_by_status.get(entry.status_code, 0) + 1
            )
            if entry.status_code >= 400:
                stats.failed_calls += 1
                stats.failed_call_details.append(entry)
            else:
                stats.successful_calls += 1

    return stats
