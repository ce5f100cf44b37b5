"""Provider registry for quotawatch."""

# Provider registry
_PROVIDERS: dict[str, type] = {}


def register_provider(cls: type) -> type:
    """Decorator to register a provider class.

    Usage:
        @register_provider
        class OllamaProvider(Provider):
            ...
    """
    if not hasattr(cls, "metadata"):
        raise ValueError(f"Provider {cls.__name__} must define metadata ClassVar")

    _PROVIDERS[cls.metadata.id] = cls
    return cls


def get_provider(provider_id: str) -> type | None:
    """Get a provider class by ID.

    Returns:
        Provider class or None if not found
    """
    return _PROVIDERS.get(provider_id)


def get_all_providers() -> dict[str, type]:
    """Get all registered providers."""
    return dict(_PROVIDERS)


def list_provider_ids() -> list[str]:
    """List all registered provider IDs."""
    return list(_PROVIDERS.keys())


def create_provider(provider_id: str):
    """Create an instance of a provider.

    Raises:
        ValueError: If provider not found
    """
    provider_cls = get_provider(provider_id)
    if provider_cls is None:
        raise ValueError(f"Unknown provider: {provider_id}")
    return provider_cls()


# Import and register providers
from quotawatch.providers.base import Provider, ProviderMetadata  # noqa: E402
from quotawatch.providers.claude import ClaudeProvider  # noqa: E402
from quotawatch.providers.codex import CodexProvider  # noqa: E402
from quotawatch.providers.ollama import OllamaProvider  # noqa: E402
from quotawatch.providers.openrouter import OpenRouterProvider  # noqa: E402

register_provider(CodexProvider)
register_provider(ClaudeProvider)
register_provider(OllamaProvider)
register_provider(OpenRouterProvider)

__all__ = [
    "Provider",
    "ProviderMetadata",
    "register_provider",
    "get_provider",
    "get_all_providers",
    "list_provider_ids",
    "create_provider",
]
