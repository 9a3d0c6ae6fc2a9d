"""
Retrying invoker: one logical analysis call against the provider.

Transient failures (HTTP 429 or 5xx) are retried with exponential backoff:
retry number ``attempt`` (1-based) waits ``2 ** attempt * retry_base_delay``
seconds. Anything else is raised on the first failure.
"""

import asyncio
from collections.abc import Awaitable, Callable

from chartlens.core.config import Config
from chartlens.core.image import encode_image
from chartlens.core.models import AnalysisRequest
from chartlens.core.providers.base import VisionProvider
from chartlens.logging_config import get_logger, log_prompts, truncate_for_log
from chartlens.utils.exceptions import RemoteError, is_transient_status

logger = get_logger(__name__)

EMPTY_RESPONSE_PLACEHOLDER = "No analysis returned from the model."


def is_transient(exc: BaseException) -> bool:
    """Return True if exc is a remote failure worth retrying."""
    return isinstance(exc, RemoteError) and is_transient_status(exc.status_code)


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Seconds to wait before retry number attempt (1-based)."""
    return float(2**attempt) * base_delay


class RetryingInvoker:
    """Encodes the chart, calls the provider and retries transient failures."""

    def __init__(
        self,
        provider: VisionProvider,
        config: Config,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.config = config
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    async def invoke(self, request: AnalysisRequest) -> str:
        """
        Run one logical analysis call.

        Returns:
            The generated text, or EMPTY_RESPONSE_PLACEHOLDER when the model
            returned none

        Raises:
            EncodingError: If the image cannot be read
            TransientRemoteError: When every attempt failed transiently
            TerminalRemoteError: On the first non-retryable failure
        """
        inline = await encode_image(request.image)
        model = self.config.model
        if log_prompts():
            logger.info("Prompt (%s): %s", request.image.name, truncate_for_log(request.prompt))

        attempt = 0
        while True:
            try:
                text = await asyncio.to_thread(
                    self.provider.generate, request.prompt, inline, model, self.config
                )
            except Exception as e:
                if not is_transient(e) or attempt >= self.max_retries:
                    if attempt:
                        logger.error("Giving up after %d attempts: %s", attempt + 1, e)
                    raise
                attempt += 1
                delay = backoff_delay(attempt, self.config.retry_base_delay)
                logger.warning(
                    "Rate limited or server error. Retrying in %.1fs (attempt %d/%d)",
                    delay,
                    attempt,
                    self.max_retries,
                )
                await self._sleep(delay)
                continue
            return text or EMPTY_RESPONSE_PLACEHOLDER
