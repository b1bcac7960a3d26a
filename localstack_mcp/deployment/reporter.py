"""Deployment event log and its markdown rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

EventType = Literal["header", "command", "output", "warning", "error", "success"]


@dataclass
class DeploymentEvent:
    type: EventType
    content: str = ""
    title: str | None = None


def format_deployment_report(base_title: str, events: list[DeploymentEvent]) -> str:
    report = f"# {base_title}\n\n"

    for event in events:
        if event.type == "header":
            report += f"## {event.title}\n\n"
        elif event.type == "command":
            report += f"**Executing:** `{event.content}`\n\n"
        elif event.type == "output":
            if event.content.strip():
                report += f"```\n{event.content.strip()}\n```\n\n"
        elif event.type == "warning":
            report += f"**⚠️ Message:**\n```\n{event.content.strip()}\n```\n\n"
        elif event.type == "error":
            report += f"❌ **{event.title or 'Error'}**\n\n```\n{event.content.strip()}\n```\n"
        elif event.type == "success":
            report += f"✅ **{event.content}**\n"

    return report
