"""
Click command definitions for the chartlens CLI.

This module contains the Click command group and the analyze / describe
commands.
"""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from chartlens import __version__
from chartlens.cli import progress
from chartlens.cli.handlers import run_with_error_handling
from chartlens.cli.utils import load_chart
from chartlens.core.analyzer import ChartAnalyzer
from chartlens.core.config import KNOWN_PROVIDERS, Config
from chartlens.core.workflow import TimeframeReport, run_timeframe_analysis
from chartlens.logging_config import configure_logging, get_verbosity_from_env
from chartlens.utils.exceptions import TimeframeAnalysisError

F = TypeVar("F", bound=Callable[..., Any])

_CHART_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


def _build_config(
    provider: str | None,
    model: str | None,
    api_key: str | None,
    debug_api: bool,
) -> Config:
    """Load config from the environment and apply command-line overrides."""
    config = Config.from_env()
    if provider is not None:
        config.provider = provider.lower()
    if model is not None:
        config.model = model
    if api_key is not None:
        if config.provider == "gemini":
            config.gemini_api_key = api_key
        elif config.provider == "openrouter":
            config.openrouter_api_key = api_key
    if debug_api:
        config.debug_api = True
    config.validate()
    return config


def _report_to_dict(report: TimeframeReport) -> dict[str, Any]:
    return {
        "analyses": dict(report.analyses),
        "final_suggestion": report.final_suggestion,
        "progress": report.progress,
    }


def _common_options(fn: F) -> F:
    """Options shared by every analysis command."""
    fn = click.option(
        "--debug-api",
        is_flag=True,
        help="Log raw API request payload and response (image data truncated).",
    )(fn)
    fn = click.option(
        "--verbose",
        "-v",
        "verbose_count",
        count=True,
        help="Increase verbosity: -v also show prompts, -vv show API/queue detail.",
    )(fn)
    fn = click.option(
        "--quiet",
        "-q",
        is_flag=True,
        help="Only print the result text or errors.",
    )(fn)
    fn = click.option(
        "--api-key",
        help="API key for the selected provider (overrides GEMINI_API_KEY / OPENROUTER_API_KEY).",
    )(fn)
    fn = click.option("--model", "-m", help="Model ID (default from config).")(fn)
    fn = click.option(
        "--provider",
        type=click.Choice(list(KNOWN_PROVIDERS), case_sensitive=False),
        default=None,
        help="Inference provider (default from config: gemini).",
    )(fn)
    return fn


@click.group(
    help=f"""AI analysis of trading-chart screenshots across timeframes.

\b
Version: {__version__}
"""
)
@click.version_option(version=__version__, package_name="chartlens")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.option("--chart-4h", "chart_4h", type=_CHART_PATH, help="4-hour chart image.")
@click.option("--chart-1h", "chart_1h", type=_CHART_PATH, help="1-hour chart image.")
@click.option("--chart-15m", "chart_15m", type=_CHART_PATH, help="15-minute chart image.")
@click.option("--chart-5m", "chart_5m", type=_CHART_PATH, help="5-minute chart image.")
@click.option("--json", "as_json", is_flag=True, help="Print the full report as JSON.")
@_common_options
def analyze(
    chart_4h: Path | None,
    chart_1h: Path | None,
    chart_15m: Path | None,
    chart_5m: Path | None,
    as_json: bool,
    provider: str | None,
    model: str | None,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
    debug_api: bool,
) -> None:
    """Analyze charts from 4h down to 5min and print a trade recommendation."""
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_analyze() -> None:
        config = _build_config(provider, model, api_key, debug_api)
        analyzer = ChartAnalyzer(config)
        charts = {
            "4h": load_chart(chart_4h),
            "1h": load_chart(chart_1h),
            "15min": load_chart(chart_15m),
            "5min": load_chart(chart_5m),
        }

        try:
            if quiet:
                report = asyncio.run(run_timeframe_analysis(charts, analyzer))
            else:
                with progress.analysis_progress(model=config.model) as bar:

                    def on_step(step: str, percent: int) -> None:
                        bar.update(bar.task_ids[0], completed=percent)

                    report = asyncio.run(run_timeframe_analysis(charts, analyzer, on_step))
        except TimeframeAnalysisError as e:
            if not quiet:
                progress.print_report(e.report)
            raise

        if as_json:
            click.echo(json.dumps(_report_to_dict(report), indent=2))
            return
        if not quiet:
            progress.print_report(report)
        click.echo(report.final_suggestion or "")

    run_with_error_handling(do_analyze, quiet=quiet)


@cli.command()
@click.argument("image", type=_CHART_PATH)
@click.option("--prompt", "-p", required=True, help="Instructions for the model.")
@_common_options
def describe(
    image: Path,
    prompt: str,
    provider: str | None,
    model: str | None,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
    debug_api: bool,
) -> None:
    """Run a single analysis of one chart image."""
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_describe() -> None:
        config = _build_config(provider, model, api_key, debug_api)
        analyzer = ChartAnalyzer(config)
        chart = load_chart(image)
        if quiet:
            text = asyncio.run(analyzer.analyze(chart, prompt))
        else:
            with progress.single_progress(f"Analyzing {image.name}"):
                text = asyncio.run(analyzer.analyze(chart, prompt))
        click.echo(text)

    run_with_error_handling(do_describe, quiet=quiet)


__all__ = ["cli", "analyze", "describe"]
