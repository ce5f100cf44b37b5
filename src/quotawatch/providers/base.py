"""Base provider class and metadata for quotawatch."""

from abc import ABC, abstractmethod
from typing import ClassVar

from msgspec import Struct

from quotawatch.strategies.base import FetchStrategy


class ProviderMetadata(Struct, frozen=True):
    """Metadata about a provider."""

    id: str
    name: str
    description: str
    homepage: str
    dashboard_url: str | None = None


class Provider(ABC):
    """Abstract base class for all providers.

    A provider is a composition of generic strategies; it owns no fetch
    logic of its own. Each provider must:
    1. Define metadata as a ClassVar
    2. Implement fetch_strategies() to return ordered list of strategies
    """

    # Subclasses must define this
    metadata: ClassVar[ProviderMetadata]

    @property
    def id(self) -> str:
        """Get provider ID."""
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

    def is_enabled(self) -> bool:
        """Check if this provider is enabled in configuration."""
        from quotawatch.config.settings import get_config

        return get_config().is_provider_enabled(self.id)
