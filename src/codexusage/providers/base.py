"""Base provider class and metadata for codexusage."""

from abc import ABC, abstractmethod
from typing import ClassVar

from msgspec import Struct

from codexusage.strategies.base import FetchStrategy


class ProviderMetadata(Struct, frozen=True):
    """Metadata about a provider."""

    id: str
    name: str
    description: str
    homepage: str
    dashboard_url: str | None = None


class Provider(ABC):
    """Abstract base class for the tools whose quota can be looked up.

    Each provider must:
    1. Define metadata as a ClassVar
    2. Implement fetch_strategies() to return ordered list of strategies
    """

    # Subclasses must define this
    metadata: ClassVar[ProviderMetadata]

    @property
    def id(self) -> str:
        """Get provider ID (also the cache key)."""
        return self.metadata.id

    @property
    def name(self) -> str:
        """Get provider name."""
        return self.metadata.name

    @abstractmethod
    def fetch_strategies(self) -> list[FetchStrategy]:
        """Return ordered list of fetch strategies to try.

        Strategies are tried in order until one succeeds.
        """
