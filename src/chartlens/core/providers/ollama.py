"""
Ollama vision provider.

Uses Ollama's /api/generate endpoint with a vision model (e.g. llava) and the
chart passed in ``images``. Local deployment; no API key.
"""

from typing import Any

from chartlens.core.config import DEFAULT_OLLAMA_BASE_URL, Config
from chartlens.core.image import InlineImage
from chartlens.core.providers.base import post_json
from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import TerminalRemoteError

logger = get_logger(__name__)


class OllamaProvider:
    """Vision provider for a local Ollama server."""

    requires_api_key: bool = False

    def _base_url(self, config: Config) -> str:
        base_url = (config.ollama_base_url or "").strip() or DEFAULT_OLLAMA_BASE_URL
        return base_url.rstrip("/")

    def generate(
        self,
        prompt: str,
        image: InlineImage,
        model: str,
        config: Config,
    ) -> str | None:
        """Generate analysis text via Ollama."""
        url = f"{self._base_url(config)}/api/generate"
        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "images": [image.data_b64],
            "stream": False,
        }
        logger.debug("Calling Ollama model=%s", model)
        result = post_json(
            url,
            payload,
            service="Ollama",
            timeout=config.request_timeout,
            debug=config.debug_api,
        )
        if not isinstance(result, dict):
            raise TerminalRemoteError("Unexpected Ollama response shape.", response=str(result))
        text = result.get("response")
        return text if isinstance(text, str) and text else None
