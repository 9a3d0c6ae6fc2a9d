"""
Sequential multi-timeframe chart analysis.

Charts are analysed from the highest timeframe down (4h, 1h, 15min, 5min),
each prompt carrying the previous step's analysis as context. A final step
combines all four analyses into a trade recommendation. Every step goes
through the shared ChartAnalyzer, so repeated runs are served from the cache.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from chartlens.core.analyzer import ChartAnalyzer, get_analyzer
from chartlens.core.models import ChartImage
from chartlens.core.prompts_loader import (
    TIMEFRAMES,
    get_final_prompt,
    get_missing_chart_text,
    get_timeframe_prompt,
)
from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import ChartlensError, TimeframeAnalysisError, ValidationError

logger = get_logger(__name__)

FINAL_STEP = "final"
STEPS = (*TIMEFRAMES, FINAL_STEP)
# Progress reported after each step completes.
STEP_PROGRESS = {"4h": 20, "1h": 40, "15min": 60, "5min": 80, FINAL_STEP: 100}

StepCallback = Callable[[str, int], None]


@dataclass
class TimeframeReport:
    """Results of a timeframe analysis run; steps not reached stay None."""

    analyses: dict[str, str] = field(default_factory=dict)
    final_suggestion: str | None = None
    progress: int = 0

    def get(self, step: str) -> str | None:
        """Return the text for a timeframe or 'final'."""
        if step == FINAL_STEP:
            return self.final_suggestion
        return self.analyses.get(step)

    @property
    def completed(self) -> bool:
        return self.final_suggestion is not None


def first_available_chart(charts: dict[str, ChartImage | None]) -> ChartImage | None:
    """Return the highest-timeframe chart that was provided."""
    for tf in TIMEFRAMES:
        chart = charts.get(tf)
        if chart is not None:
            return chart
    return None


async def run_timeframe_analysis(
    charts: dict[str, ChartImage | None],
    analyzer: ChartAnalyzer | None = None,
    on_step: StepCallback | None = None,
) -> TimeframeReport:
    """
    Analyse up to four timeframe charts and produce a final recommendation.

    Args:
        charts: Mapping of timeframe ("4h", "1h", "15min", "5min") to chart or None
        analyzer: Analyzer to use (defaults to the process-wide one)
        on_step: Called with (step, progress percent) after each step

    Returns:
        The completed report

    Raises:
        ValidationError: If no chart is given or a timeframe is unknown
        TimeframeAnalysisError: If a step fails; carries the partial report
    """
    unknown = sorted(set(charts) - set(TIMEFRAMES))
    if unknown:
        raise ValidationError(f"Unknown timeframes: {', '.join(unknown)}", field="charts")
    summary_chart = first_available_chart(charts)
    if summary_chart is None:
        raise ValidationError("No image provided for analysis.", field="charts")

    analyzer = analyzer if analyzer is not None else get_analyzer()
    report = TimeframeReport()
    context = ""

    for tf in TIMEFRAMES:
        chart = charts.get(tf)
        if chart is None:
            text = get_missing_chart_text(tf)
        else:
            logger.info("Analysing %s chart %s", tf, chart.name)
            try:
                text = await analyzer.analyze(chart, get_timeframe_prompt(tf, context))
            except ChartlensError as e:
                raise TimeframeAnalysisError(tf, report, e) from e
        report.analyses[tf] = text
        report.progress = STEP_PROGRESS[tf]
        context = text
        if on_step is not None:
            on_step(tf, report.progress)

    logger.info("Requesting final recommendation")
    try:
        report.final_suggestion = await analyzer.analyze(
            summary_chart, get_final_prompt(report.analyses)
        )
    except ChartlensError as e:
        raise TimeframeAnalysisError(FINAL_STEP, report, e) from e
    report.progress = STEP_PROGRESS[FINAL_STEP]
    if on_step is not None:
        on_step(FINAL_STEP, report.progress)
    return report
