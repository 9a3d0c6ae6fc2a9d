"""
OpenRouter vision provider.

Sends an OpenAI-style chat/completions request whose user message carries the
prompt text and the chart as an image_url data URL.
"""

from typing import Any

from chartlens.core.config import Config
from chartlens.core.image import InlineImage, create_image_data_url
from chartlens.core.providers.base import post_json, require_api_key
from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import TerminalRemoteError

logger = get_logger(__name__)


class OpenRouterProvider:
    """Vision provider for the OpenRouter API."""

    requires_api_key: bool = True

    def _build_payload(self, prompt: str, image: InlineImage, model: str) -> dict[str, Any]:
        content_parts: list[dict[str, Any]] = [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": create_image_data_url(image)}},
        ]
        return {
            "model": model,
            "messages": [{"role": "user", "content": content_parts}],
        }

    def _parse_response(self, result: Any) -> str | None:
        try:
            content = result["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError) as e:
            raise TerminalRemoteError(
                f"Failed to extract text from OpenRouter response: {e}",
                response=str(result),
            ) from e
        if isinstance(content, list):
            # some models return content parts instead of a plain string
            content = "".join(
                p.get("text", "") for p in content if isinstance(p, dict)
            )
        return content or None

    def generate(
        self,
        prompt: str,
        image: InlineImage,
        model: str,
        config: Config,
    ) -> str | None:
        """Generate analysis text via OpenRouter."""
        api_key = require_api_key(config, "openrouter")
        url = f"{config.openrouter_base_url.rstrip('/')}/chat/completions"
        logger.debug("Calling OpenRouter model=%s", model)
        result = post_json(
            url,
            self._build_payload(prompt, image, model),
            service="OpenRouter",
            timeout=config.request_timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            debug=config.debug_api,
        )
        return self._parse_response(result)
