"""
Vision providers: protocol, registry, and built-in implementations.

Built-in providers are registered lazily on first get_registry() call.
"""

from chartlens.core.providers.base import VisionProvider as VisionProvider
from chartlens.core.providers.registry import (
    ProviderRegistry,
)
from chartlens.core.providers.registry import (
    get_registry as _get_registry_impl,
)

PROVIDER_GEMINI = "gemini"
PROVIDER_OPENROUTER = "openrouter"
PROVIDER_OLLAMA = "ollama"
KNOWN_PROVIDERS = (PROVIDER_GEMINI, PROVIDER_OPENROUTER, PROVIDER_OLLAMA)

_builtins_registered = False


def _register_builtins(reg: ProviderRegistry) -> None:
    """Register built-in providers. Called once when registry is first used."""
    global _builtins_registered
    if _builtins_registered:
        return
    from chartlens.core.providers.gemini import GeminiProvider
    from chartlens.core.providers.ollama import OllamaProvider
    from chartlens.core.providers.openrouter import OpenRouterProvider

    reg.register(PROVIDER_GEMINI, GeminiProvider())
    reg.register(PROVIDER_OPENROUTER, OpenRouterProvider())
    reg.register(PROVIDER_OLLAMA, OllamaProvider())
    _builtins_registered = True


def get_registry() -> ProviderRegistry:
    """Return the global provider registry and ensure built-ins are registered."""
    reg = _get_registry_impl()
    _register_builtins(reg)
    return reg


__all__ = [
    "KNOWN_PROVIDERS",
    "PROVIDER_GEMINI",
    "PROVIDER_OLLAMA",
    "PROVIDER_OPENROUTER",
    "ProviderRegistry",
    "VisionProvider",
    "get_registry",
]
