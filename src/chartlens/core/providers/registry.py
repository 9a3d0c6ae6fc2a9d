"""
Registry for vision providers.

Maps provider ids (e.g. "gemini", "openrouter", "ollama") to implementations.
"""

from chartlens.core.providers.base import VisionProvider
from chartlens.utils.exceptions import ConfigurationError


class ProviderRegistry:
    """Registry mapping provider id to VisionProvider implementation."""

    def __init__(self) -> None:
        self._impls: dict[str, VisionProvider] = {}

    def register(self, provider_id: str, impl: VisionProvider) -> None:
        """Register a provider implementation. Idempotent for the same id."""
        self._impls[provider_id] = impl

    def get(self, provider_id: str) -> VisionProvider | None:
        """Return the registered implementation for provider_id, or None if unknown."""
        return self._impls.get(provider_id)

    def require(self, provider_id: str) -> VisionProvider:
        """Return the implementation for provider_id or raise ConfigurationError."""
        impl = self._impls.get(provider_id)
        if impl is None:
            known = ", ".join(sorted(self._impls)) or "none"
            raise ConfigurationError(f"Unknown provider: {provider_id!r} (registered: {known}).")
        return impl

    def provider_ids(self) -> list[str]:
        """Return the list of registered provider ids."""
        return list(self._impls.keys())


_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    """Return the global provider registry. Creates it on first call."""
    global _registry
    if _registry is None:
        _registry = ProviderRegistry()
    return _registry
