"""Provider registry mapping path prefixes to upstream hosts."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class CredentialStyle(str, Enum):
    """Wire convention a provider uses to carry its API key.

    GOOGLE_API_KEY: ``x-goog-api-key`` header, or ``key`` query parameter
    ANTHROPIC_API_KEY: ``x-api-key`` header
    BEARER: ``Authorization: Bearer <key>``
    """

    GOOGLE_API_KEY = "google_api_key"
    ANTHROPIC_API_KEY = "anthropic_api_key"
    BEARER = "bearer"


@dataclass(frozen=True)
class Provider:
    """One upstream LLM vendor, addressed by the first path segment."""

    name: str
    host: str
    credential_style: CredentialStyle = CredentialStyle.BEARER

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Provider name is required")
        if not self.host:
            raise ValueError(f"Upstream host is required for provider '{self.name}'")


DEFAULT_PROVIDERS = MappingProxyType(
    {
        "cerebras": Provider("cerebras", "api.cerebras.ai"),
        "claude": Provider("claude", "api.anthropic.com", CredentialStyle.ANTHROPIC_API_KEY),
        "gemini": Provider(
            "gemini", "generativelanguage.googleapis.com", CredentialStyle.GOOGLE_API_KEY
        ),
        "groq": Provider("groq", "api.groq.com"),
        "openai": Provider("openai", "api.openai.com"),
    }
)


class ProviderRegistry:
    """Immutable lookup of providers by path prefix.

    Responsibilities:
    - Resolve the first path segment of an inbound request to a Provider
    - List the configured providers

    Built once at startup; there is no registration after construction.
    """

    def __init__(self, providers: Iterable[Provider] | None = None) -> None:
        """Initialize the registry.

        Args:
            providers: Providers to serve. Defaults to DEFAULT_PROVIDERS.
        """
        if providers is None:
            providers = DEFAULT_PROVIDERS.values()
        self._providers: dict[str, Provider] = {p.name: p for p in providers}

    def resolve(self, segment: str | None) -> Provider | None:
        """Resolve a path segment to its Provider.

        Matching is exact; prefixes are lowercase identifiers.

        Returns:
            The Provider if known, None otherwise.
        """
        if not segment:
            return None
        return self._providers.get(segment)

    def get(self, provider_name: str) -> Provider | None:
        return self._providers.get(provider_name)

    def exists(self, provider_name: str) -> bool:
        return provider_name in self._providers

    def names(self) -> list[str]:
        return sorted(self._providers)

    def list_all(self) -> dict[str, Provider]:
        """Return a copy of all registered providers."""
        return self._providers.copy()
