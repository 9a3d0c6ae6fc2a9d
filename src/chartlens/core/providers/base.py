"""
Provider protocol for vision analysis, plus the shared HTTP call.

A provider turns (prompt, inline image, model) into generated text with one
blocking HTTP request. Status codes are mapped to the remote error taxonomy
here so that every provider classifies failures the same way.
"""

from __future__ import annotations

import json
import time
from typing import Any, Protocol

import requests

from chartlens.core.config import Config
from chartlens.core.image import InlineImage
from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import (
    NetworkError,
    RequestTimeoutError,
    ValidationError,
    remote_error_for_status,
)

logger = get_logger(__name__)

_DEBUG_TRUNCATE_THRESHOLD = 200
_DEBUG_NEVER_TRUNCATE_KEYS = frozenset({"text", "content", "response"})


class VisionProvider(Protocol):
    """Protocol for inference backends that accept a prompt and one image."""

    @property
    def requires_api_key(self) -> bool:
        """Whether an API key must be configured. Read-only."""
        ...

    def generate(
        self,
        prompt: str,
        image: InlineImage,
        model: str,
        config: Config,
    ) -> str | None:
        """Return the generated text (None or '' when the model returned none).

        May raise ValidationError, TransientRemoteError, TerminalRemoteError,
        NetworkError or RequestTimeoutError.
        """
        ...


def require_api_key(config: Config, provider: str) -> str:
    """Return the provider's API key or raise ValidationError if it is missing."""
    api_key = config.api_key_for(provider)
    if not api_key:
        raise ValidationError(
            f"{provider} API key is required. Set it via config or environment variable.",
            field="api_key",
        )
    return api_key


def truncate_image_data_for_log(obj: Any, parent_key: str | None = None) -> Any:
    """Recursively replace long base64 strings with placeholders for safe logging."""
    if isinstance(obj, dict):
        return {k: truncate_image_data_for_log(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [truncate_image_data_for_log(v, None) for v in obj]
    if isinstance(obj, str) and len(obj) >= _DEBUG_TRUNCATE_THRESHOLD:
        if parent_key in _DEBUG_NEVER_TRUNCATE_KEYS:
            return obj
        if obj.startswith("data:"):
            return f"<data URL, {len(obj)} chars>"
        return f"<string, {len(obj)} chars>"
    return obj


def post_json(
    url: str,
    payload: dict[str, Any],
    *,
    service: str,
    timeout: int,
    headers: dict[str, str] | None = None,
    debug: bool = False,
) -> Any:
    """
    POST a JSON payload and return the decoded JSON body.

    Raises:
        TransientRemoteError: HTTP 429 or 5xx
        TerminalRemoteError: Any other non-2xx status or an undecodable body
        RequestTimeoutError: The request timed out
        NetworkError: The service could not be reached
    """
    all_headers = {"Content-Type": "application/json"}
    if headers:
        all_headers.update(headers)
    logger.debug("%s request url=%s timeout=%s", service, url, timeout)
    if debug:
        logger.info(
            "%s request payload (image data truncated): %s",
            service,
            json.dumps(truncate_image_data_for_log(payload), indent=2, default=str),
        )

    start_time = time.time()
    try:
        response = requests.post(url, headers=all_headers, json=payload, timeout=timeout)
    except requests.exceptions.Timeout as e:
        raise RequestTimeoutError(f"{service} request timed out after {timeout} seconds.") from e
    except requests.exceptions.ConnectionError as e:
        raise NetworkError(
            f"Failed to connect to {service}. Please check your network connection.",
            original_error=e,
        ) from e
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"Network error during {service} request: {e}", original_error=e) from e
    elapsed = time.time() - start_time
    logger.debug("%s response status=%s time=%.2fs", service, response.status_code, elapsed)

    if response.status_code == 401 or response.status_code == 403:
        raise remote_error_for_status(
            f"Authentication failed. Please check your {service} API key.",
            response.status_code,
            response.text,
        )
    if response.status_code == 404:
        raise remote_error_for_status(
            f"Model not found or endpoint unavailable ({service}).",
            404,
            response.text,
        )
    if response.status_code == 429:
        raise remote_error_for_status(
            "Rate limit exceeded. Please wait before making more requests.",
            429,
            response.text,
        )
    if response.status_code >= 500:
        raise remote_error_for_status(
            f"{service} service error: {response.status_code}",
            response.status_code,
            response.text,
        )
    if response.status_code < 200 or response.status_code >= 300:
        raise remote_error_for_status(
            f"{service} request failed with status {response.status_code}: {response.text}",
            response.status_code,
            response.text,
        )

    try:
        result = response.json()
    except ValueError as e:
        raise remote_error_for_status(
            f"Failed to parse {service} response as JSON: {e}",
            response.status_code,
            response.text,
        ) from e
    if debug:
        logger.info(
            "%s response: %s",
            service,
            json.dumps(truncate_image_data_for_log(result), indent=2, default=str),
        )
    return result
