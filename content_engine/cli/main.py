"""
CLI interface for the content engine.

Generates content from a brief file and exposes the pricing and
configuration used to do it.
"""

import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from content_engine.config.loader import load_brief, load_pipeline_config
from content_engine.core.guardrails import BudgetExceeded
from content_engine.core.pipeline import (
    EventType,
    PipelineConfig,
    PipelineEvent,
    PipelineResult,
    create_pipeline,
)
from content_engine.core.pricing import PRICING_TABLE, calculate_cost, resolve_model
from content_engine.core.token_counter import TokenUsage
from content_engine.logging_config import setup_logging

app = typer.Typer()
console = Console()

# Exit codes - a quality shortfall is a non-failing warning unless enforced
EXIT_CODE_PASS = 0
EXIT_CODE_WARN = 0
EXIT_CODE_FAIL = 1


def _result_to_exit_code(result: PipelineResult, enforced: bool) -> int:
    if result.success:
        return EXIT_CODE_PASS
    return EXIT_CODE_FAIL if enforced else EXIT_CODE_WARN


def _load_config(config_path: Optional[str]) -> PipelineConfig:
    if config_path is None:
        return PipelineConfig()
    return load_pipeline_config(config_path)


def _format_currency(amount: Decimal) -> str:
    return f"${amount:,.4f}"


def _print_event(event: PipelineEvent) -> None:
    data = event.data
    if event.type == EventType.DRAFT_START:
        console.print(f"[dim]Drafting {data.get('type')} content...[/]")
    elif event.type == EventType.QUALITY_COMPLETE:
        console.print(f"[dim]Quality score: {data.get('score')}/100[/]")
    elif event.type == EventType.REWRITE_START:
        console.print(f"[dim]Rewrite attempt {data.get('attempt')}...[/]")
    elif event.type == EventType.REWRITE_COMPLETE:
        console.print(f"[dim]Rewrite {data.get('attempt')} scored {data.get('score')}/100[/]")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Content Engine CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Content Engine - Use --help to see available commands")


@app.command()
def generate(
    brief_path: str = typer.Argument(..., metavar="BRIEF", help="Path to a YAML content brief"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML pipeline configuration"
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the generated markdown to this file"
    ),
    enforced: bool = typer.Option(
        False,
        "--enforced",
        "-e",
        help="Exit with error code if the content does not pass the quality bar"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    ),
):
    """
    Generate content for a brief.

    The draft is assessed and rewritten until it passes the quality threshold
    or the rewrite budget runs out.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, json_output=False)

    try:
        config = _load_config(config_path)
        brief = load_brief(brief_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    try:
        pipeline = create_pipeline(config)
        pipeline.on_event(_print_event)
        result = pipeline.generate(brief)
    except BudgetExceeded as e:
        console.print(f"[red]Budget exceeded:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    _display_result(result)

    if output:
        Path(output).write_text(result.content.content, encoding='utf-8')
        console.print(f"[green]✓[/] Wrote content to {output}")

    sys.exit(_result_to_exit_code(result, enforced))


def _display_result(result: PipelineResult) -> None:
    content = result.content
    assessment = content.quality_assessment

    console.print("\n[bold]Content Generation Result[/bold]")
    console.print("-" * 40)
    console.print(f"[bold]Title:[/bold] {escape(content.title)}")
    console.print(f"[bold]Slug:[/bold] {content.slug}")
    console.print(f"[bold]Status:[/bold] {content.status.value}")
    console.print(f"Version: {content.version} ({content.rewrite_count} rewrites)")
    console.print(f"Tokens used: {content.tokens_used:,}")
    console.print(f"Estimated cost: {_format_currency(content.estimated_cost)}")

    if assessment is not None:
        table = Table(title=f"Quality score {assessment.overall_score}/100")
        table.add_column("Category")
        table.add_column("Score", justify="right")
        for name, score in assessment.breakdown.as_dict().items():
            table.add_row(name.replace("_", " "), str(score))
        console.print(table)

        for issue in assessment.issues:
            console.print(
                escape(f"  [{issue.severity.value}] {issue.type.value}: {issue.description}")
            )

    if result.success:
        console.print("\n[bold]Verdict:[/bold] [green]PASS[/]")
    else:
        console.print(f"\n[bold]Verdict:[/bold] [yellow]WARN[/] ({escape(result.error or '')})")


@app.command()
def estimate(
    model: str = typer.Option("haiku", "--model", "-m", help="Model id or tier alias"),
    input_tokens: int = typer.Option(..., "--input-tokens", "-i", min=0, help="Estimated input tokens"),
    output_tokens: int = typer.Option(..., "--output-tokens", "-t", min=0, help="Estimated output tokens"),
):
    """Estimate the cost of one call without making it."""
    model_id = resolve_model(model)
    if not PRICING_TABLE.is_known(model_id):
        console.print(
            f"[yellow]Unknown model {escape(model_id)}; using {PRICING_TABLE.default_model} pricing[/]"
        )
    cost = calculate_cost(model_id, TokenUsage(input_tokens, output_tokens))
    console.print(f"{escape(model_id)}: {_format_currency(cost)}")
    sys.exit(EXIT_CODE_PASS)


@app.command("show-config")
def show_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML pipeline configuration"
    ),
):
    """Show the effective pipeline configuration."""
    try:
        config = _load_config(config_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title="Pipeline configuration")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("provider", config.provider)
    table.add_row("draft model", resolve_model(config.draft_model))
    table.add_row("quality model", resolve_model(config.quality_model))
    table.add_row("rewrite model", resolve_model(config.rewrite_model))
    table.add_row("quality threshold", str(config.quality_threshold))
    table.add_row("auto-publish threshold", str(config.auto_publish_threshold))
    table.add_row("max rewrites", str(config.max_rewrites))
    table.add_row("max cost per content", f"${config.max_cost_per_content:,.2f}")
    table.add_row("daily cost limit", f"${config.daily_cost_limit:,.2f}")
    table.add_row("requests per minute", str(config.requests_per_minute))
    table.add_row("max concurrent", str(config.max_concurrent))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
