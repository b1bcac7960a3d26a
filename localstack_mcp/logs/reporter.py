"""Markdown reports for the logs-analysis tool."""

from __future__ import annotations

from .models import LogEntry
from .retriever import analyze_api_calls, group_logs_by_error

MAX_CALL_TRACES = 10
RECENT_FAILURES = 5
EXAMPLES_PER_GROUP = 2


def _same(a: str | None, b: str) -> bool:
    return (a or "").lower() == b.lower()


def format_summary(logs: list[LogEntry], total_lines: int) -> str:
    """High-level dashboard: volume, recent failures and per-service activity."""
    errors = [log for log in logs if log.is_error]
    warnings = [log for log in logs if log.is_warning]
    stats = analyze_api_calls(logs)

    result = "# 📊 LocalStack Summary\n\n"
    result += f"**Lines Analyzed:** {total_lines}\n"
    result += f"**API Calls:** {stats.total_calls}\n"
    result += f"**Errors:** {len(errors)} | **Warnings:** {len(warnings)}\n\n"

    if stats.failed_calls > 0:
        result += f"## ❌ Recent Failures ({stats.failed_calls})\n\n"
        for call in reversed(stats.failed_call_details[-RECENT_FAILURES:]):
            service = call.service or "unknown"
            operation = call.operation or "unknown"
            status = call.status_code or "N/A"
            result += f"- **{service}.{operation}** → {status} {call.message}\n"
        result += "\n💡 Use `errors` mode for detailed analysis\n\n"

    if stats.calls_by_service:
        result += "## 🔧 Service Activity\n\n"
        for svc, count in sorted(stats.calls_by_service.items(), key=lambda kv: kv[1], reverse=True):
            failed = sum(1 for call in stats.failed_call_details if call.service == svc)
            result += f"- **{svc}**: {count} calls {'✅' if failed == 0 else '❌'}"
            if failed:
                result += f" ({failed} failed)"
            result += "\n"
        result += "\n"

    if not errors and stats.failed_calls == 0:
        result += "## ✅ All Clear\n\nNo errors detected in recent LocalStack activity.\n\n"

    result += "**Drill down:** `errors` | `requests` | `logs`\n"
    return result


def format_errors(logs: list[LogEntry], service: str | None = None) -> str:
    """Error groups, most frequent first, with the latest examples of each."""
    error_logs = [log for log in logs if log.is_error or log.is_warning]
    if service:
        error_logs = [log for log in error_logs if _same(log.service, service)]

    if not error_logs:
        suffix = f" for {service}" if service else ""
        return f"✅ No errors found{suffix} in the analyzed logs."

    groups = group_logs_by_error(error_logs)
    service_label = f" ({service})" if service else ""

    result = f"# 🚨 LocalStack Errors{service_label}\n\n"
    result += f"**Found:** {len(error_logs)} issues ({len(groups)} unique types)\n\n"

    # sorted() is stable so equally frequent groups keep first-seen order
    for pattern, instances in sorted(groups.items(), key=lambda kv: len(kv[1]), reverse=True):
        first = instances[0]
        icon = "🔴" if first.is_api_call and first.status_code else "⚠️"
        result += f"## {icon} {pattern}\n"
        result += f"**Occurrences:** {len(instances)}\n\n"

        for instance in instances[-EXAMPLES_PER_GROUP:]:
            if instance.timestamp:
                result += f"**{instance.timestamp}**\n"
            result += f"```\n{instance.full_line}\n```\n\n"

        if len(instances) > EXAMPLES_PER_GROUP:
            result += f"*... and {len(instances) - EXAMPLES_PER_GROUP} more occurrences*\n\n"

    if any(log.is_api_call for log in error_logs):
        result += "💡 **Next:** Use `requests` mode to analyze API call patterns\n"

    return result


def format_requests(
    logs: list[LogEntry], service: str | None = None, operation: str | None = None
) -> str:
    """API call analysis at three zoom levels depending on the filters given."""
    stats = analyze_api_calls(logs)
    if stats.total_calls == 0:
        return "🔍 No API calls detected in the analyzed logs."

    if service and operation:
        return _format_call_traces(logs, service, operation)
    if service:
        return _format_service_operations(logs, service)

    result = "# 🌐 API Activity\n\n"
    result += f"**Total:** {stats.total_calls} calls\n"
    result += f"**Failed:** {stats.failed_calls}\n"
    result += f"**Success Rate:** {stats.success_rate:.1f}%\n\n"

    if stats.calls_by_service:
        result += "## Services\n\n"
        for svc, total in sorted(stats.calls_by_service.items(), key=lambda kv: kv[1], reverse=True):
            failed = sum(1 for call in stats.failed_call_details if call.service == svc)
            result += f"- **{svc}** {'✅' if failed == 0 else '❌'} ({total} calls"
            if failed:
                result += f", {failed} failed"
            result += ")\n"
        result += "\n💡 Add `service` parameter to focus on specific service\n"

    return result


def _format_call_traces(logs: list[LogEntry], service: str, operation: str) -> str:
    calls = [
        log for log in logs
        if log.is_api_call and _same(log.service, service) and _same(log.operation, operation)
    ]
    if not calls:
        return f"🔍 No calls found for {service}.{operation}"

    result = f"# 🔍 {service}.{operation} Calls\n\n"
    result += f"**Total:** {len(calls)}\n\n"

    for i, call in enumerate(calls[:MAX_CALL_TRACES], start=1):
        failed = call.status_code is not None and call.status_code >= 400
        result += f"### {'❌' if failed else '✅'} Call {i}\n"
        if call.timestamp:
            result += f"**{call.timestamp}**\n"
        result += f"**Status:** {call.status_code if call.status_code else 'N/A'}\n"
        result += f"```\n{call.full_line}\n```\n\n"

    if len(calls) > MAX_CALL_TRACES:
        result += f"*... and {len(calls) - MAX_CALL_TRACES} more calls*\n"

    return result


def _format_service_operations(logs: list[LogEntry], service: str) -> str:
    calls = [log for log in logs if log.is_api_call and _same(log.service, service)]
    if not calls:
        return f"🔍 No {service} API calls found."

    operations: dict[str, dict[str, int]] = {}
    for call in calls:
        op_stats = operations.setdefault(call.operation or "Unknown", {"total": 0, "failed": 0})
        op_stats["total"] += 1
        if call.status_code and call.status_code >= 400:
            op_stats["failed"] += 1

    result = f"# 🔧 {service.upper()} API Calls\n\n"
    result += f"**Total:** {len(calls)}\n\n"

    for op, op_stats in sorted(operations.items(), key=lambda kv: kv[1]["total"], reverse=True):
        result += f"- **{op}** {'✅' if op_stats['failed'] == 0 else '❌'} ({op_stats['total']} calls"
        if op_stats["failed"]:
            result += f", {op_stats['failed']} failed"
        result += ")\n"

    result += "\n💡 Add `operation` parameter to see detailed traces\n"
    return result


def format_raw_logs(
    logs: list[LogEntry],
    total_lines: int,
    filtered_lines: int | None = None,
    keyword_filter: str | None = None,
) -> str:
    """Raw log lines in a code block with a short stats footer."""
    shown = filtered_lines if filtered_lines is not None else len(logs)

    result = "# 📜 Raw Logs\n\n"
    if keyword_filter:
        result += f'**Filter:** "{keyword_filter}" → {shown}/{total_lines} lines\n\n'
    else:
        result += f"**Lines:** {shown}\n\n"

    if not logs:
        return result + "No matching logs found.\n"

    result += "```\n"
    result += "".join(f"{log.full_line}\n" for log in logs)
    result += "```\n\n"

    errors = sum(1 for log in logs if log.is_error)
    api_calls = sum(1 for log in logs if log.is_api_call)
    if errors or api_calls:
        result += f"**Quick stats:** {errors} errors, {api_calls} API calls\n"

    return result
