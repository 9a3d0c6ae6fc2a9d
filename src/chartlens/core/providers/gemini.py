"""
Gemini vision provider.

Calls the Generative Language REST API (models/<model>:generateContent) with
the prompt and the chart as an inline_data part.
"""

from typing import Any

from chartlens.core.config import Config
from chartlens.core.image import InlineImage
from chartlens.core.providers.base import post_json, require_api_key
from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import TerminalRemoteError

logger = get_logger(__name__)


def _extract_text(result: Any) -> str | None:
    """Join the text parts of the first candidate; None if there are none."""
    if not isinstance(result, dict):
        raise TerminalRemoteError("Unexpected Gemini response shape.", response=str(result))
    candidates = result.get("candidates") or []
    if not candidates:
        feedback = result.get("promptFeedback")
        block = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block:
            raise TerminalRemoteError(f"Prompt blocked by Gemini: {block}", response=str(result))
        return None
    if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
        raise TerminalRemoteError("Unexpected Gemini response shape.", response=str(result))
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        raise TerminalRemoteError("Unexpected Gemini response shape.", response=str(result))
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise TerminalRemoteError("Unexpected Gemini response shape.", response=str(result))
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "".join(texts) or None


class GeminiProvider:
    """Vision provider for Google's Gemini models."""

    requires_api_key: bool = True

    def _build_payload(self, prompt: str, image: InlineImage) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": image.mime_type, "data": image.data_b64}},
                    ],
                }
            ]
        }

    def generate(
        self,
        prompt: str,
        image: InlineImage,
        model: str,
        config: Config,
    ) -> str | None:
        """Generate analysis text via the Gemini API."""
        api_key = require_api_key(config, "gemini")
        url = f"{config.gemini_base_url.rstrip('/')}/models/{model}:generateContent"
        logger.debug("Calling Gemini model=%s", model)
        result = post_json(
            url,
            self._build_payload(prompt, image),
            service="Gemini",
            timeout=config.request_timeout,
            headers={"x-goog-api-key": api_key},
            debug=config.debug_api,
        )
        return _extract_text(result)
