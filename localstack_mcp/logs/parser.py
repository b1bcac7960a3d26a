"""Heuristic parser for LocalStack log lines.

Every field is extracted by an ordered table of patterns; the first pattern
that yields an acceptable value wins. New formats are supported by adding
rows to the tables, not by changing control flow.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from .models import LogEntry

LEVELS = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR", "FATAL", "TRACE")
ERROR_LEVELS = ("ERROR", "FATAL")
WARNING_LEVELS = ("WARN", "WARNING")

KNOWN_SERVICES = (
    "s3", "lambda", "dynamodb", "sqs", "sns", "apigateway", "cloudformation", "iam",
    "sts", "ec2", "rds", "kinesis", "elasticsearch", "cloudwatch", "logs", "events",
    "secretsmanager", "ssm", "kms", "route53", "cloudfront", "acm", "cognito",
    "stepfunctions", "batch", "ecs", "eks", "fargate",
)

HTTP_REASONS = (
    "OK", "Created", "Accepted", "Bad Request", "Unauthorized", "Forbidden", "Not Found",
    "Method Not Allowed", "Conflict", "Internal Server Error", "Bad Gateway",
    "Service Unavailable",
)


def _service_name(match: re.Match) -> str:
    return match.group(1).lower().replace("_", "")


def _last_numeric_group(match: re.Match) -> int | None:
    for group in reversed(match.groups()):
        if group and group.isdigit():
            return int(group)
    return None


class LogLineParser:
    """Turns raw LocalStack log lines into ``LogEntry`` records.

    Parsing is total: any string yields an entry, at worst one with only
    ``message`` and ``full_line`` populated.
    """

    # LocalStack timestamp format: 2025-07-23T10:58:58.710
    TIMESTAMP = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3})")

    LEVEL = re.compile(r"\s+(" + "|".join(LEVELS) + r")\s+")

    # "AWS s3.PutObject => 404 (NoSuchBucket)"
    LOCALSTACK_API_CALL = re.compile(
        r"AWS\s+([a-z0-9_-]+)\.([A-Za-z]+)\s*=>\s*(\d{3})\s*(?:\(([^)]+)\))?"
    )

    # Tried only when the LocalStack format did not match
    FALLBACK_API_CALLS: list[re.Pattern] = [
        re.compile(r"(GET|POST|PUT|DELETE|HEAD|PATCH|OPTIONS)\s+[^\s]+\s+(\d{3})"),
        re.compile(r"(\d{3})\s+(" + "|".join(HTTP_REASONS) + r")", re.IGNORECASE),
    ]

    SERVICE_RULES: list[tuple[re.Pattern, Callable[[re.Match], str]]] = [
        (re.compile(r"localstack\.services\.([a-z0-9_]+)", re.IGNORECASE), _service_name),
        (re.compile(r"localstack\.request\.aws.*?([a-z0-9_]+)\.", re.IGNORECASE), _service_name),
        (
            re.compile(r"\b(" + "|".join(KNOWN_SERVICES) + r")\b", re.IGNORECASE),
            _service_name,
        ),
    ]

    OPERATION_RULES: list[re.Pattern] = [
        # PascalCase API operation, e.g. CreateBucket
        re.compile(r"\b([A-Z][a-z]+[A-Z][a-zA-Z]*)\b"),
        re.compile(r"[?&]Action=([A-Za-z]+)"),
        re.compile(r"operation[:\s=]+([A-Za-z]+)", re.IGNORECASE),
    ]

    IAM_DENIAL = re.compile(
        r"Request for service '([^']*)' by principal '([^']*)' "
        r"for operation '([^']*)' denied\."
    )

    IAM_RESOURCE = re.compile(r"Action '([^']*)' for '([^']*)'")

    LEADING_PUNCTUATION = re.compile(r"^[:\-\s]*")
    LEADING_BRACKET_TAG = re.compile(r"^\[.*?\]\s*")

    def parse(self, line: str) -> LogEntry:
        entry = LogEntry(message=line, full_line=line)
        message_rewritten = False

        ts_match = self.TIMESTAMP.search(line)
        if ts_match:
            entry.timestamp = ts_match.group(1)

        level_match = self.LEVEL.search(line)
        if level_match:
            entry.level = level_match.group(1)
            entry.is_error = entry.level in ERROR_LEVELS
            entry.is_warning = entry.level in WARNING_LEVELS

        api_match = self.LOCALSTACK_API_CALL.search(line)
        if api_match:
            service, operation, status, detail = api_match.groups()
            entry.is_api_call = True
            entry.service = service.lower()
            entry.operation = operation
            entry.status_code = int(status)
            entry.is_error = entry.is_error or entry.status_code >= 400
            if detail:
                entry.message = f"{operation} failed: {detail} ({entry.status_code})"
                message_rewritten = True
        else:
            self._apply_fallback_api_call(entry, line)

        if not entry.service:
            entry.service = self._first_service(line)

        if not entry.operation:
            entry.operation = self._first_operation(line)

        if entry.status_code is not None and entry.status_code >= 400:
            entry.is_error = True

        iam_match = self.IAM_DENIAL.search(line)
        if iam_match:
            service, principal, operation = iam_match.groups()
            entry.is_iam_denial = True
            entry.service = service.lower()
            entry.iam_principal = principal
            entry.iam_action = f"{service.lower()}:{operation}"
            entry.is_error = True

        # Last occurrence in the line wins
        for resource_match in self.IAM_RESOURCE.finditer(line):
            entry.iam_action, entry.iam_resource = resource_match.groups()

        if not message_rewritten:
            entry.message = self._clean_message(line, entry.timestamp, entry.level)

        return entry

    def _apply_fallback_api_call(self, entry: LogEntry, line: str) -> None:
        for pattern in self.FALLBACK_API_CALLS:
            match = pattern.search(line)
            if not match:
                continue
            entry.is_api_call = True
            status = _last_numeric_group(match)
            if status is not None:
                entry.status_code = status
                entry.is_error = entry.is_error or status >= 400
            return

    def _first_service(self, line: str) -> str | None:
        for pattern, extract in self.SERVICE_RULES:
            match = pattern.search(line)
            if match:
                return extract(match)
        return None

    def _first_operation(self, line: str) -> str | None:
        for pattern in self.OPERATION_RULES:
            match = pattern.search(line)
            if match and len(match.group(1)) > 2 and match.group(1) not in LEVELS:
                return match.group(1)
        return None

    def _clean_message(self, line: str, timestamp: str | None, level: str | None) -> str:
        cleaned = line
        if timestamp:
            cleaned = cleaned.replace(timestamp, "", 1).strip()
        if level:
            cleaned = re.sub(rf"(?:^|\s+){level}\s+", " ", cleaned, count=1).strip()

        cleaned = self.LEADING_PUNCTUATION.sub("", cleaned).strip()
        cleaned = self.LEADING_BRACKET_TAG.sub("", cleaned).strip()

        if not cleaned or cleaned == line:
            return line
        return cleaned


_default_parser = LogLineParser()


def parse_log_line(line: str) -> LogEntry:
    """Parse one line with the shared default parser."""
    return _default_parser.parse(line)
