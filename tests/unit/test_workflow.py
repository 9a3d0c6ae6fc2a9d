"""Unit tests for the multi-timeframe analysis workflow."""

import asyncio

import pytest

from chartlens.core.models import ChartImage
from chartlens.core.workflow import (
    FINAL_STEP,
    TimeframeReport,
    first_available_chart,
    run_timeframe_analysis,
)
from chartlens.utils.exceptions import (
    TerminalRemoteError,
    TimeframeAnalysisError,
    ValidationError,
)


class RecordingAnalyzer:
    """Analyzer double: answers each call and fails on a chosen chart/prompt."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    async def analyze(self, image, prompt):
        self.calls.append((image, prompt))
        if self.fail_on is not None and self.fail_on(image, prompt):
            raise TerminalRemoteError("Model not found", status_code=404)
        return f"analysis of {image.name} #{len(self.calls)}"


def _chart(name: str) -> ChartImage:
    return ChartImage.from_bytes(b"\x89PNG\r\n\x1a\n" + name.encode(), name=name, last_modified=1.0)


def _all_charts():
    return {tf: _chart(f"{tf}.png") for tf in ("4h", "1h", "15min", "5min")}


@pytest.mark.unit
class TestRunTimeframeAnalysis:
    def test_full_run(self):
        analyzer = RecordingAnalyzer()
        steps = []
        report = asyncio.run(
            run_timeframe_analysis(_all_charts(), analyzer, lambda s, p: steps.append((s, p)))
        )
        assert steps == [("4h", 20), ("1h", 40), ("15min", 60), ("5min", 80), (FINAL_STEP, 100)]
        assert len(analyzer.calls) == 5
        assert report.analyses["4h"] == "analysis of 4h.png #1"
        assert report.final_suggestion == "analysis of 4h.png #5"
        assert report.progress == 100
        assert report.completed

    def test_each_prompt_carries_previous_analysis(self):
        analyzer = RecordingAnalyzer()
        asyncio.run(run_timeframe_analysis(_all_charts(), analyzer))
        prompts = [prompt for _, prompt in analyzer.calls]
        assert "analysis of 4h.png #1" in prompts[1]
        assert "analysis of 1h.png #2" in prompts[2]
        assert "analysis of 15min.png #3" in prompts[3]
        for text in ("#1", "#2", "#3", "#4"):
            assert text in prompts[4]

    def test_missing_charts_use_placeholder_text(self):
        analyzer = RecordingAnalyzer()
        charts = {"4h": None, "1h": None, "15min": _chart("15.png"), "5min": None}
        report = asyncio.run(run_timeframe_analysis(charts, analyzer))
        assert report.analyses["4h"] == "No 4h chart uploaded."
        assert report.analyses["1h"] == "No 1h chart uploaded."
        assert report.analyses["5min"] == "No 5min chart uploaded."
        assert len(analyzer.calls) == 2
        assert "No 1h chart uploaded." in analyzer.calls[0][1]
        # final step falls back to the highest timeframe provided
        assert analyzer.calls[1][0].name == "15.png"

    def test_no_charts_raises(self):
        with pytest.raises(ValidationError, match="No image provided"):
            asyncio.run(run_timeframe_analysis({"4h": None}, RecordingAnalyzer()))

    def test_unknown_timeframe_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(run_timeframe_analysis({"1d": _chart("d.png")}, RecordingAnalyzer()))
        assert exc_info.value.field == "charts"

    def test_failing_step_keeps_partial_report(self):
        analyzer = RecordingAnalyzer(fail_on=lambda image, prompt: image.name == "1h.png")
        steps = []
        with pytest.raises(TimeframeAnalysisError) as exc_info:
            asyncio.run(
                run_timeframe_analysis(_all_charts(), analyzer, lambda s, p: steps.append(s))
            )
        err = exc_info.value
        assert err.step == "1h"
        assert isinstance(err.cause, TerminalRemoteError)
        assert err.report.analyses == {"4h": "analysis of 4h.png #1"}
        assert err.report.progress == 20
        assert not err.report.completed
        assert steps == ["4h"]

    def test_failing_final_step(self):
        analyzer = RecordingAnalyzer(fail_on=lambda image, prompt: "Trade Action" in prompt)
        with pytest.raises(TimeframeAnalysisError) as exc_info:
            asyncio.run(run_timeframe_analysis(_all_charts(), analyzer))
        assert exc_info.value.step == FINAL_STEP
        assert len(exc_info.value.report.analyses) == 4
        assert exc_info.value.report.progress == 80


@pytest.mark.unit
class TestTimeframeReport:
    def test_get(self):
        report = TimeframeReport(analyses={"4h": "a"}, final_suggestion="buy")
        assert report.get("4h") == "a"
        assert report.get("1h") is None
        assert report.get(FINAL_STEP) == "buy"

    def test_first_available_chart(self):
        c = _chart("5.png")
        assert first_available_chart({"4h": None, "5min": c}) is c
        assert first_available_chart({}) is None
