"""Provider routing, credential conventions and key rotation."""

from ai_gateway.core.provider.credentials import extract_credential, inject_credential
from ai_gateway.core.provider.provider_registry import (
    DEFAULT_PROVIDERS,
    CredentialStyle,
    Provider,
    ProviderRegistry,
)

__all__ = [
    "DEFAULT_PROVIDERS",
    "CredentialStyle",
    "Provider",
    "ProviderRegistry",
    "extract_credential",
    "inject_credential",
]
