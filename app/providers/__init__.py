"""Registry of provider clients, keyed by slug."""

from typing import Dict, List

from app.core.exceptions import NotFoundError
from app.providers.base import ProviderClient


class ProviderRegistry:
    """Holds one client per catalog.

    Registration order is the merge order of aggregated search results.
    """

    _providers: Dict[str, ProviderClient] = {}

    @classmethod
    def register(cls, provider: ProviderClient) -> None:
        cls._providers[provider.name] = provider

    @classmethod
    def get(cls, name: str) -> ProviderClient | None:
        return cls._providers.get(name)

    @classmethod
    def require(cls, name: str) -> ProviderClient:
        """Look up a provider, raising NotFoundError for unknown slugs."""
        provider = cls._providers.get(name)
        if provider is None:
            raise NotFoundError(f"Unknown provider: {name}")
        return provider

    @classmethod
    def require_poster_source(cls, name: str) -> ProviderClient:
        """Look up a provider that publishes a homepage poster listing."""
        provider = cls.require(name)
        if not provider.config.homepage_url:
            raise NotFoundError(f"{provider.config.name} has no poster listing")
        return provider

    @classmethod
    def all(cls) -> List[ProviderClient]:
        return list(cls._providers.values())

    @classmethod
    def names(cls) -> List[str]:
        return list(cls._providers.keys())


def register_provider(provider: ProviderClient) -> None:
    """Register a provider with the global registry."""
    ProviderRegistry.register(provider)
