"""Provider registry for codexusage."""

from codexusage.providers.base import Provider
from codexusage.providers.base import ProviderMetadata
from codexusage.providers.codex import CodexProvider

# Provider registry
_PROVIDERS: dict[str, type[Provider]] = {}


def register_provider(cls: type[Provider]) -> type[Provider]:
    """Register a provider class under its metadata id."""
    if not hasattr(cls, "metadata"):
        raise ValueError(f"Provider {cls.__name__} must define metadata ClassVar")

    _PROVIDERS[cls.metadata.id] = cls
    return cls


def get_provider(provider_id: str) -> type[Provider] | None:
    """Get a provider class by ID.

    Returns:
        Provider class or None if not found
    """
    return _PROVIDERS.get(provider_id)


def list_provider_ids() -> list[str]:
    """List all registered provider IDs."""
    return list(_PROVIDERS.keys())


def create_provider(provider_id: str) -> Provider:
    """Create an instance of a provider.

    Raises:
        ValueError: If provider not found
    """
    provider_cls = get_provider(provider_id)
    if provider_cls is None:
        raise ValueError(f"Unknown provider: {provider_id}")
    return provider_cls()


register_provider(CodexProvider)

__all__ = [
    "Provider",
    "ProviderMetadata",
    "CodexProvider",
    "register_provider",
    "get_provider",
    "list_provider_ids",
    "create_provider",
]
