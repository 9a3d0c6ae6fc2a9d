"""
Configuration management for chartlens.

This module handles the provider and model choice, API keys, and the tuning
knobs of the request pipeline (rate limits, cache, retries).
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"

# Provider ids accepted by validate(); do not import from chartlens.core.providers (circular import)
KNOWN_PROVIDERS = ("gemini", "openrouter", "ollama")


@dataclass
class Config:
    """Configuration for the chart analysis pipeline."""

    # Provider / model
    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL

    # API keys (excluded from repr to avoid leaking secrets)
    gemini_api_key: str = field(default="", repr=False)
    openrouter_api_key: str = field(default="", repr=False)

    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    openrouter_base_url: str = DEFAULT_OPENROUTER_BASE_URL
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL

    request_timeout: int = 120  # seconds per HTTP call

    # Dispatcher
    max_concurrency: int = 1
    interval_cap: int = 5  # calls started per interval
    interval_seconds: float = 1.0
    carryover: bool = True
    admission_timeout: float | None = None  # None = wait forever

    # Response cache
    cache_max_entries: int = 100
    cache_ttl_seconds: float = 60 * 60

    # Retrying invoker
    max_retries: int = 3
    retry_base_delay: float = 1.0  # seconds; delay = 2**attempt * base

    debug_api: bool = False

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            CHARTLENS_PROVIDER: gemini (default), openrouter or ollama
            CHARTLENS_MODEL: Model id for the provider
            GEMINI_API_KEY / OPENROUTER_API_KEY: Provider credentials
            OLLAMA_BASE_URL: Local Ollama endpoint
            CHARTLENS_MAX_CONCURRENCY, CHARTLENS_INTERVAL_CAP,
            CHARTLENS_INTERVAL_SECONDS, CHARTLENS_CARRYOVER,
            CHARTLENS_ADMISSION_TIMEOUT: Dispatcher limits
            CHARTLENS_CACHE_MAX_ENTRIES, CHARTLENS_CACHE_TTL: Response cache
            CHARTLENS_MAX_RETRIES, CHARTLENS_RETRY_BASE_DELAY: Retry policy
            CHARTLENS_REQUEST_TIMEOUT: HTTP timeout in seconds

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """

        def _raw(name: str) -> str | None:
            val = os.getenv(name)
            if val is None or val.strip() == "":
                return None
            return val.strip()

        def _int_env(name: str, default: int) -> int:
            val = _raw(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError as e:
                raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from e

        def _float_env(name: str, default: float) -> float:
            val = _raw(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError as e:
                raise ConfigurationError(f"{name} must be a number, got {val!r}.") from e

        def _bool_env(name: str, default: bool) -> bool:
            val = _raw(name)
            if val is None:
                return default
            return val.lower() in ("1", "true", "yes")

        return cls(
            provider=os.getenv("CHARTLENS_PROVIDER", DEFAULT_PROVIDER).strip().lower(),
            model=os.getenv("CHARTLENS_MODEL", DEFAULT_MODEL),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            gemini_base_url=os.getenv("CHARTLENS_GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL),
            openrouter_base_url=os.getenv(
                "CHARTLENS_OPENROUTER_BASE_URL", DEFAULT_OPENROUTER_BASE_URL
            ),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL,
            request_timeout=_int_env("CHARTLENS_REQUEST_TIMEOUT", 120),
            max_concurrency=_int_env("CHARTLENS_MAX_CONCURRENCY", 1),
            interval_cap=_int_env("CHARTLENS_INTERVAL_CAP", 5),
            interval_seconds=_float_env("CHARTLENS_INTERVAL_SECONDS", 1.0),
            carryover=_bool_env("CHARTLENS_CARRYOVER", True),
            admission_timeout=_float_env("CHARTLENS_ADMISSION_TIMEOUT", 0.0) or None,
            cache_max_entries=_int_env("CHARTLENS_CACHE_MAX_ENTRIES", 100),
            cache_ttl_seconds=_float_env("CHARTLENS_CACHE_TTL", 3600.0),
            max_retries=_int_env("CHARTLENS_MAX_RETRIES", 3),
            retry_base_delay=_float_env("CHARTLENS_RETRY_BASE_DELAY", 1.0),
            debug_api=_bool_env("CHARTLENS_DEBUG_API", False),
        )

    def api_key_for(self, provider: str) -> str:
        """Return the configured API key for a provider ('' when none is needed)."""
        if provider == "gemini":
            return self.gemini_api_key
        if provider == "openrouter":
            return self.openrouter_api_key
        return ""

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config provider=%s model=%s", self.provider, self.model)

        if self.provider not in KNOWN_PROVIDERS:
            raise ConfigurationError(
                f"Unknown provider: {self.provider!r}. "
                f"Must be one of: {', '.join(KNOWN_PROVIDERS)}."
            )
        if not self.model:
            raise ConfigurationError("Model ID cannot be empty.")
        if self.provider == "gemini" and not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key is required. Set GEMINI_API_KEY or provide it explicitly."
            )
        if self.provider == "openrouter" and not self.openrouter_api_key:
            raise ConfigurationError(
                "OpenRouter API key is required. Set OPENROUTER_API_KEY or provide it explicitly."
            )

        for name in (
            "max_concurrency",
            "interval_cap",
            "interval_seconds",
            "cache_max_entries",
            "cache_ttl_seconds",
            "request_timeout",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}.")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must not be negative, got {self.max_retries}.")
        if self.retry_base_delay < 0:
            raise ConfigurationError(
                f"retry_base_delay must not be negative, got {self.retry_base_delay}."
            )
        if self.admission_timeout is not None and self.admission_timeout <= 0:
            raise ConfigurationError(
                f"admission_timeout must be positive when set, got {self.admission_timeout}."
            )

        self._validated = True

    def is_valid(self) -> bool:
        """
        Check if configuration has been validated.

        Returns:
            True if validate() has been called successfully
        """
        return self._validated


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        The global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: The Config instance to use globally
    """
    global _global_config
    _global_config = config
