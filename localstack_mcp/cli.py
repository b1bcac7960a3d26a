"""CLI commands for localstack-mcp."""

import asyncio
import json

import click
import yaml
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from .config import Settings
from .iam.policy import analyze_denials
from .logs.retriever import LocalStackLogRetriever
from .tools.logs_analysis import Params as LogsParams
from .tools.logs_analysis import analyze

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML settings file")
@click.pass_context
def main(ctx: click.Context, config_path: str | None) -> None:
    """LocalStack MCP - Operate a LocalStack emulator from AI agents and the terminal."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["settings"] = Settings.from_yaml(config_path) if config_path else Settings.from_env()


@main.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the MCP server over stdio."""
    from .server import main as serve_stdio

    asyncio.run(serve_stdio(ctx.obj["config_path"]))


@main.command()
@click.pass_context
def settings(ctx: click.Context) -> None:
    """Show the resolved settings."""
    resolved: Settings = ctx.obj["settings"]

    table = Table(title="LocalStack MCP Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in resolved.model_dump().items():
        if name == "auth_token" and value:
            value = value[:4] + "…"
        table.add_row(name, str(value))
    table.add_row("base_url", resolved.base_url)

    console.print(table)


@main.command()
@click.option("-n", "--lines", default=2000, show_default=True, help="Recent log lines to analyze")
@click.option(
    "-t",
    "--type",
    "analysis_type",
    type=click.Choice(["summary", "errors", "requests", "logs"]),
    default="summary",
    show_default=True,
    help="Analysis to perform",
)
@click.option("-s", "--service", help="Filter by AWS service (errors, requests)")
@click.option("-o", "--operation", help="Filter by API operation (requests)")
@click.option("--filter", "keyword", help="Keyword filter (logs)")
@click.pass_context
def logs(
    ctx: click.Context,
    lines: int,
    analysis_type: str,
    service: str | None,
    operation: str | None,
    keyword: str | None,
) -> None:
    """Analyze recent LocalStack logs."""
    params = LogsParams(
        analysis_type=analysis_type,
        lines=lines,
        service=service,
        operation=operation,
        filter=keyword,
    )
    report = asyncio.run(analyze(params, settings=ctx.obj["settings"]))
    console.print(Markdown(report))


@main.command("iam-policy")
@click.option("-n", "--lines", default=5000, show_default=True, help="Recent log lines to scan for IAM denials")
@click.option("-f", "--format", "fmt", type=click.Choice(["json", "yaml"]), default="json", help="Output format (json, yaml)")
@click.pass_context
def iam_policy(ctx: click.Context, lines: int, fmt: str) -> None:
    """Generate an IAM policy from recent IAM denials."""
    retriever = LocalStackLogRetriever(settings=ctx.obj["settings"])
    result = asyncio.run(retriever.retrieve_logs(lines))
    if not result.success:
        err_console.print(f"[red]{result.error_message}[/red]")
        raise SystemExit(1)

    analysis = asyncio.run(analyze_denials(result.logs))
    if not analysis.denials:
        err_console.print("[yellow]No IAM denials found in the analyzed logs.[/yellow]")
        return

    err_console.print(
        f"[dim]{len(analysis.denials)} denials, {len(analysis.permissions)} unique permissions[/dim]",
        highlight=False,
    )
    if fmt == "yaml":
        click.echo(yaml.dump(analysis.policy, default_flow_style=False, sort_keys=False))
    else:
        click.echo(json.dumps(analysis.policy, indent=2))


if __name__ == "__main__":
    main()
