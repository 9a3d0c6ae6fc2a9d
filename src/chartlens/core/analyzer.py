"""
Chart analysis entry point: cache, de-duplication, rate limiting, retries.

ChartAnalyzer.analyze() is the whole contract used by front ends:

    caller -> cache key -> cache hit? return
           -> already in flight? await the same task
           -> dispatcher -> retrying invoker -> provider -> cache write

One analyzer is meant to be shared process-wide (see get_analyzer()); tests
build their own instances so state never leaks between them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from chartlens.core.cache_key import build_cache_key
from chartlens.core.config import Config, get_config
from chartlens.core.dispatcher import RateLimitedDispatcher
from chartlens.core.inflight import InFlightTable
from chartlens.core.invoker import RetryingInvoker
from chartlens.core.models import AnalysisRequest, ChartImage
from chartlens.core.providers import get_registry
from chartlens.core.providers.base import VisionProvider
from chartlens.logging_config import get_logger
from chartlens.utils.cache import ResponseCache
from chartlens.utils.exceptions import ValidationError

logger = get_logger(__name__)


class ChartAnalyzer:
    """Owns the response cache, in-flight table, dispatcher and invoker."""

    def __init__(
        self,
        config: Config | None = None,
        provider: VisionProvider | None = None,
        *,
        cache: ResponseCache | None = None,
        inflight: InFlightTable | None = None,
        dispatcher: RateLimitedDispatcher | None = None,
        invoker: RetryingInvoker | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Build an analyzer from config; any component may be injected.

        Args:
            config: Settings (defaults to the global config)
            provider: Vision provider (defaults to the registry entry for config.provider)
            cache: Response cache (defaults to one sized from config)
            inflight: In-flight table
            dispatcher: Rate-limited dispatcher (defaults to one built from config)
            invoker: Retrying invoker (defaults to one wrapping provider)
            sleep: Backoff sleep used by the default invoker

        Raises:
            ConfigurationError: If config.provider is not registered
        """
        self.config = config if config is not None else get_config()
        if invoker is None:
            if provider is None:
                provider = get_registry().require(self.config.provider)
            invoker = RetryingInvoker(provider, self.config, sleep=sleep)
        self.invoker = invoker
        self.cache = cache if cache is not None else ResponseCache(
            max_entries=self.config.cache_max_entries,
            ttl=self.config.cache_ttl_seconds,
        )
        self.inflight = inflight if inflight is not None else InFlightTable()
        self.dispatcher = dispatcher if dispatcher is not None else RateLimitedDispatcher(
            concurrency=self.config.max_concurrency,
            interval=self.config.interval_seconds,
            interval_cap=self.config.interval_cap,
            carryover=self.config.carryover,
            admission_timeout=self.config.admission_timeout,
        )

    async def analyze(self, image: ChartImage | None, prompt: str) -> str:
        """
        Analyze one chart image with a prompt.

        Args:
            image: The uploaded chart
            prompt: Instructions for the model

        Returns:
            Analysis text from the model (or from the cache)

        Raises:
            ValidationError: If no image is given
            EncodingError: If the image cannot be read
            QueueTimeoutError: If the dispatcher does not admit the call in time
            TransientRemoteError: If retries were exhausted
            TerminalRemoteError: On a non-retryable API failure
        """
        if image is None:
            raise ValidationError("No image provided for analysis.", field="image")

        request = AnalysisRequest(image=image, prompt=prompt)
        key = await build_cache_key(request)

        # No await from here until the task is registered.
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Returning cached response for %s", key[:24])
            return cached

        pending = self.inflight.lookup(key)
        if pending is not None:
            logger.info("Request already in progress for %s; joining it", key[:24])
        else:
            logger.info("Starting new analysis request for %s (%s)", key[:24], image.name)
            pending = asyncio.ensure_future(self._fetch(key, request))
            pending.add_done_callback(self._log_outcome)
            self.inflight.register(key, pending)

        # shield: a caller giving up must not cancel the shared call
        return await asyncio.shield(pending)

    async def _fetch(self, key: str, request: AnalysisRequest) -> str:
        try:
            text = await self.dispatcher.submit(lambda: self.invoker.invoke(request))
            self.cache.set(key, text)
            return text
        finally:
            self.inflight.deregister(key, asyncio.current_task())

    @staticmethod
    def _log_outcome(task: asyncio.Future[str]) -> None:
        if task.cancelled():
            logger.warning("Analysis request was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Analysis request failed: %s", exc)


_global_analyzer: ChartAnalyzer | None = None


def get_analyzer() -> ChartAnalyzer:
    """
    Get the process-wide analyzer, building it from the global config on first use.

    Returns:
        The shared ChartAnalyzer instance
    """
    global _global_analyzer
    if _global_analyzer is None:
        _global_analyzer = ChartAnalyzer()
    return _global_analyzer


def set_analyzer(analyzer: ChartAnalyzer | None) -> None:
    """Replace (or with None, reset) the process-wide analyzer."""
    global _global_analyzer
    _global_analyzer = analyzer


async def analyze_chart(image: ChartImage | None, prompt: str) -> str:
    """Analyze a chart with the process-wide analyzer."""
    return await get_analyzer().analyze(image, prompt)
