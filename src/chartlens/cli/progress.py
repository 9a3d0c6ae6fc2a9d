"""
Rich progress displays for CLI operations.

All decoration goes to stderr; analysis text is printed to stdout by the
commands so it can be piped.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from chartlens.core.workflow import FINAL_STEP, STEPS, TimeframeReport

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)

STEP_TITLES = {
    "4h": "4H Analysis",
    "1h": "1H Analysis",
    "15min": "15min Analysis",
    "5min": "5min Analysis",
    FINAL_STEP: "Overall Recommendation",
}


@contextmanager
def analysis_progress(model: str | None = None) -> Iterator[Progress]:
    """
    Display a progress bar for the timeframe workflow.

    Yields:
        The Progress; callers advance the task with on_step()
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    desc = "Analyzing charts"
    if model:
        model_display = model if len(model) <= 40 else f"{model[:37]}..."
        desc = f"{desc} [dim]({model_display})[/dim]"
    with progress:
        progress.add_task(desc, total=100)
        yield progress


@contextmanager
def single_progress(description: str) -> Iterator[None]:
    """Display a spinner while one analysis runs."""
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[cyan]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    with progress:
        task = progress.add_task(description, total=None)
        yield
        progress.update(task, completed=True)


def print_report(report: TimeframeReport) -> None:
    """Print each completed section of a report as a markdown panel."""
    for step in STEPS:
        text = report.get(step)
        if text is None:
            continue
        style = "green" if step == FINAL_STEP else "cyan"
        console.print(
            Panel(
                Markdown(text),
                title=f"[bold {style}]{STEP_TITLES[step]}[/bold {style}]",
                border_style=style,
                padding=(1, 2),
            )
        )


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")
