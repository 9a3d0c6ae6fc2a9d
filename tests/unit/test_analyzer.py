"""Unit tests for ChartAnalyzer: caching, de-duplication and error sharing."""

import asyncio
import io

import pytest
from PIL import Image

from chartlens.core import analyzer as analyzer_module
from chartlens.core.analyzer import ChartAnalyzer, analyze_chart, get_analyzer, set_analyzer
from chartlens.core.cache_key import build_cache_key
from chartlens.core.config import Config
from chartlens.core.models import AnalysisRequest, ChartImage
from chartlens.core.providers.ollama import OllamaProvider
from chartlens.utils.cache import ResponseCache
from chartlens.utils.exceptions import ConfigurationError, TransientRemoteError, ValidationError

_MINIMAL_PNG_BUF = io.BytesIO()
Image.new("RGB", (1, 1), color=(0, 0, 0)).save(_MINIMAL_PNG_BUF, format="PNG")
MINIMAL_PNG = _MINIMAL_PNG_BUF.getvalue()


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class GatedInvoker:
    """Invoker double that blocks until released and counts calls."""

    def __init__(self, result="Bullish above 100.", error=None):
        self.result = result
        self.error = error
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def invoke(self, request):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return f"{self.result} [{request.prompt}]"


def _chart(name: str = "btc_4h.png") -> ChartImage:
    return ChartImage.from_bytes(MINIMAL_PNG, name=name, last_modified=1.0)


def _analyzer(invoker, cache=None) -> ChartAnalyzer:
    config = Config(provider="ollama", interval_cap=100)
    return ChartAnalyzer(config, invoker=invoker, cache=cache)


@pytest.mark.unit
class TestChartAnalyzerDedup:
    def test_concurrent_identical_requests_share_one_call(self):
        invoker = GatedInvoker()

        async def run():
            invoker.gate = asyncio.Event()
            analyzer = _analyzer(invoker)
            chart = _chart()
            first = asyncio.ensure_future(analyzer.analyze(chart, "trend?"))
            second = asyncio.ensure_future(analyzer.analyze(chart, "trend?"))
            await asyncio.sleep(0.01)
            assert len(analyzer.inflight) == 1
            invoker.gate.set()
            results = await asyncio.gather(first, second)
            assert len(analyzer.inflight) == 0
            assert analyzer.cache.size() == 1
            return results

        results = asyncio.run(run())
        assert results[0] == results[1] == "Bullish above 100. [trend?]"
        assert invoker.calls == 1

    def test_different_prompts_are_separate_calls(self):
        invoker = GatedInvoker()

        async def run():
            analyzer = _analyzer(invoker)
            chart = _chart()
            return await asyncio.gather(
                analyzer.analyze(chart, "trend?"),
                analyzer.analyze(chart, "levels?"),
            )

        a, b = asyncio.run(run())
        assert a != b
        assert invoker.calls == 2

    def test_shared_failure_reaches_every_caller_and_is_not_cached(self):
        error = TransientRemoteError("Rate limit exceeded.", status_code=429)
        invoker = GatedInvoker(error=error)

        async def run():
            invoker.gate = asyncio.Event()
            analyzer = _analyzer(invoker)
            chart = _chart()
            first = asyncio.ensure_future(analyzer.analyze(chart, "p"))
            second = asyncio.ensure_future(analyzer.analyze(chart, "p"))
            await asyncio.sleep(0.01)
            invoker.gate.set()
            outcomes = await asyncio.gather(first, second, return_exceptions=True)
            assert analyzer.cache.size() == 0
            assert len(analyzer.inflight) == 0

            invoker.error = None
            retried = await analyzer.analyze(chart, "p")
            return outcomes, retried

        outcomes, retried = asyncio.run(run())
        assert outcomes[0] is error
        assert outcomes[1] is error
        assert retried.endswith("[p]")
        assert invoker.calls == 2

    def test_abandoning_caller_does_not_cancel_shared_call(self):
        invoker = GatedInvoker()

        async def run():
            invoker.gate = asyncio.Event()
            analyzer = _analyzer(invoker)
            chart = _chart()
            first = asyncio.ensure_future(analyzer.analyze(chart, "p"))
            second = asyncio.ensure_future(analyzer.analyze(chart, "p"))
            await asyncio.sleep(0.01)
            first.cancel()
            await asyncio.sleep(0)
            invoker.gate.set()
            result = await second
            assert first.cancelled()
            return result

        assert asyncio.run(run()).endswith("[p]")
        assert invoker.calls == 1

    def test_cancelled_shared_call_is_deregistered(self):
        invoker = GatedInvoker()

        async def run():
            invoker.gate = asyncio.Event()
            analyzer = _analyzer(invoker)
            chart = _chart()
            caller = asyncio.ensure_future(analyzer.analyze(chart, "p"))
            await asyncio.sleep(0.01)
            key = await build_cache_key(AnalysisRequest(image=chart, prompt="p"))
            analyzer.inflight.lookup(key).cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller
            assert len(analyzer.inflight) == 0
            assert analyzer.cache.size() == 0

            invoker.gate.set()
            return await analyzer.analyze(chart, "p")

        assert asyncio.run(run()).endswith("[p]")
        assert invoker.calls == 2


@pytest.mark.unit
class TestChartAnalyzerCache:
    def test_cache_hit_skips_remote_call(self):
        invoker = GatedInvoker()

        async def run():
            analyzer = _analyzer(invoker)
            chart = _chart()
            first = await analyzer.analyze(chart, "p")
            second = await analyzer.analyze(_chart(), "p")
            return first, second

        first, second = asyncio.run(run())
        assert first == second
        assert invoker.calls == 1

    def test_expired_entry_triggers_new_call(self):
        invoker = GatedInvoker()
        clock = FakeClock()
        cache = ResponseCache(max_entries=10, ttl=60, clock=clock)

        async def run():
            analyzer = _analyzer(invoker, cache=cache)
            await analyzer.analyze(_chart(), "p")
            clock.now = 30
            await analyzer.analyze(_chart(), "p")
            clock.now = 61
            await analyzer.analyze(_chart(), "p")

        asyncio.run(run())
        assert invoker.calls == 2

    def test_none_image_raises_validation_error(self):
        analyzer = _analyzer(GatedInvoker())
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(analyzer.analyze(None, "p"))
        assert exc_info.value.field == "image"


@pytest.mark.unit
class TestChartAnalyzerConstruction:
    def test_builds_components_from_config(self):
        config = Config(
            provider="ollama",
            max_concurrency=3,
            interval_cap=7,
            interval_seconds=2.0,
            cache_max_entries=5,
            cache_ttl_seconds=10,
        )
        analyzer = ChartAnalyzer(config)
        assert isinstance(analyzer.invoker.provider, OllamaProvider)
        assert analyzer.dispatcher.concurrency == 3
        assert analyzer.dispatcher.interval_cap == 7
        assert analyzer.dispatcher.interval == 2.0
        assert analyzer.cache.max_entries == 5

    def test_unknown_provider_raises(self):
        with pytest.raises(ConfigurationError):
            ChartAnalyzer(Config(provider="nope"))

    def test_global_analyzer(self):
        invoker = GatedInvoker()
        custom = _analyzer(invoker)
        try:
            set_analyzer(custom)
            assert get_analyzer() is custom
            result = asyncio.run(analyze_chart(_chart(), "p"))
            assert result.endswith("[p]")
            assert invoker.calls == 1
        finally:
            set_analyzer(None)
        assert analyzer_module._global_analyzer is None
