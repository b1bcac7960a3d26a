"""Run a Scout Suite scan against LocalStack in a throwaway Docker container.

The scanner writes its report into a bind-mounted temporary directory. The
report is a ``.js`` file wrapping one JSON object, which is cut out and
decoded here.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any

from ..config import Settings
from ..core.command_runner import run_command

SCOUTSUITE_IMAGE = "rossja/ncc-scoutsuite"

# Full-account scans are slow
SCAN_TIMEOUT = 600.0

CONTAINER_REPORT_DIR = "/root/scout-report"


class ScanError(Exception):
    """The scan produced no readable report."""


def build_scan_args(report_dir: str | Path, services: list[str] | None, settings: Settings) -> list[str]:
    """Docker arguments for one scan; ``services`` are trimmed and lower-cased."""
    args = [
        "run",
        "--rm",
        "--platform",
        "linux/amd64",
        "--add-host=host.docker.internal:host-gateway",
        "--add-host=000000000000.host.docker.internal:host-gateway",
        "-e", "AWS_ACCESS_KEY_ID=test",
        "-e", "AWS_SECRET_ACCESS_KEY=test",
        "-e", "AWS_DEFAULT_REGION=us-east-1",
        "-e", f"AWS_ENDPOINT_URL=http://host.docker.internal:{settings.localstack_port}",
        "-e", "AWS_EC2_METADATA_DISABLED=true",
        "-v", f"{report_dir}:{CONTAINER_REPORT_DIR}",
        SCOUTSUITE_IMAGE,
        "scout",
        "aws",
        "--no-browser",
        "--report-dir",
        CONTAINER_REPORT_DIR,
    ]

    selected = [s.strip().lower() for s in services or [] if s.strip()]
    if selected:
        args.extend(["--services", ",".join(selected)])
    return args


def read_scan_report(report_dir: str | Path) -> dict[str, Any] | None:
    """Load the results file, falling back to the errors file, from ``report_dir``."""
    results_dir = Path(report_dir) / "scoutsuite-results"
    if not results_dir.is_dir():
        return None

    names = sorted(p.name for p in results_dir.iterdir())

    results_js = next(
        (n for n in names if n.startswith("scoutsuite_results_aws-") and n.endswith(".js")), None
    )
    if results_js:
        content = (results_dir / results_js).read_text(encoding="utf-8")
        first, last = content.find("{"), content.rfind("}")
        if first != -1 and last > first:
            try:
                return json.loads(content[first:last + 1])
            except json.JSONDecodeError as e:
                raise ScanError(f"Could not decode {results_js}: {e}") from e

    errors_json = next(
        (n for n in names if n.startswith("scoutsuite_errors_aws-") and n.endswith(".json")), None
    )
    if errors_json:
        try:
            return json.loads((results_dir / errors_json).read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            pass

    return None


async def run_scan(services: list[str] | None = None, settings: Settings | None = None) -> dict[str, Any]:
    """Scan the emulator and return the decoded report.

    Raises:
        ScanError: when no readable report was written; a command failure is the cause
    """
    settings = settings or Settings.from_env()

    with tempfile.TemporaryDirectory(prefix="scout-report-", ignore_cleanup_errors=True) as report_dir:
        result = await run_command(
            "docker",
            build_scan_args(report_dir, services, settings),
            timeout=SCAN_TIMEOUT,
            max_buffer=settings.command_max_buffer,
        )

        report = read_scan_report(report_dir)
        if report is not None:
            return report

    if result.error is not None:
        raise ScanError(str(result.error)) from result.error
    raise ScanError("Scout Suite report not found after execution")
