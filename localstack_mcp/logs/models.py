"""Data structures produced by log retrieval and analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LogEntry:
    """One parsed LocalStack log line.

    ``full_line`` is the untouched source line; ``message`` is the cleaned,
    human-readable form.
    """

    message: str
    full_line: str
    is_api_call: bool = False
    is_error: bool = False
    is_warning: bool = False
    timestamp: str | None = None
    level: str | None = None
    service: str | None = None
    operation: str | None = None
    status_code: int | None = None
    is_iam_denial: bool = False
    iam_principal: str | None = None
    iam_action: str | None = None
    iam_resource: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "service": self.service,
            "operation": self.operation,
            "status_code": self.status_code,
            "message": self.message,
            "full_line": self.full_line,
            "is_api_call": self.is_api_call,
            "is_error": self.is_error,
            "is_warning": self.is_warning,
            "is_iam_denial": self.is_iam_denial,
            "iam_principal": self.iam_principal,
            "iam_action": self.iam_action,
            "iam_resource": self.iam_resource,
        }


@dataclass
class LogRetrievalResult:
    """Outcome of one ``retrieve_logs`` call."""

    success: bool
    logs: list[LogEntry] = field(default_factory=list)
    total_lines: int = 0
    filtered_lines: int | None = None
    error_message: str | None = None


@dataclass
class ApiCallStats:
    """Aggregate view over the API-call entries of a log set."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    calls_by_service: dict[str, int] = field(default_factory=dict)
    calls_by_operation: dict[str, int] = field(default_factory=dict)
    calls_by_status: dict[int, int] = field(default_factory=dict)
    failed_call_details: list[LogEntry] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.successful_calls / self.total_calls * 100
