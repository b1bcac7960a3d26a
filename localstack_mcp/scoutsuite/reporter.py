"""Markdown summary of a Scout Suite report."""

from __future__ import annotations

import re
from typing import Any

MARKDOWN_SPECIAL = re.compile(r"([|`*_~])")


def escape_markdown(text: Any) -> str:
    return MARKDOWN_SPECIAL.sub(r"\\\1", str(text))


def format_scan_results(report: dict[str, Any] | None) -> str:
    """Service summary table followed by findings for every flagged service."""
    summary = ((report or {}).get("last_run") or {}).get("summary")
    if not summary:
        return "No summary data available in report."

    lines = [
        "# Scout Suite Scan Summary\n",
        "| Service | Checked Items | Flagged Items |",
        "|---|---:|---:|",
    ]
    for name, counts in summary.items():
        checked = (counts or {}).get("checked_items")
        if not isinstance(checked, int) or checked <= 0:
            continue
        lines.append(f"| {escape_markdown(name)} | {checked} | {counts.get('flagged_items') or 0} |")

    for name, service in (report.get("services") or {}).items():
        flagged = (summary.get(name) or {}).get("flagged_items") or 0
        if flagged <= 0:
            continue

        lines.append("\n")
        lines.append(f"## ⚠️ {name.upper()} Findings")

        for key, finding in ((service or {}).get("findings") or {}).items():
            if not finding:
                continue
            level = str(finding.get("level") or "warning").lower()
            items = finding.get("items") if isinstance(finding.get("items"), list) else []

            lines.append(f"\n### {escape_markdown(finding.get('description') or key)}")
            lines.append(f"- **Severity**: {'❌ Danger' if level == 'danger' else '⚠️ Warning'}")
            if items:
                lines.append("- **Flagged Items**:")
                lines.extend(f"  - `{escape_markdown(item)}`" for item in items)
            if finding.get("rationale"):
                lines.append("- **Rationale**:")
                lines.append(f"  {escape_markdown(finding['rationale'])}")
            if finding.get("remediation"):
                lines.append("- **Remediation**:")
                lines.append(f"  {escape_markdown(finding['remediation'])}")

    return "\n".join(lines)
