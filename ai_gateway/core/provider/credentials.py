"""Provider-specific credential extraction and injection.

Each CredentialStyle has one reader and one writer. Readers are pure lookups
over the inbound headers and URL; writers mutate an outbound header set and
return the (possibly rewritten) URL.
"""

from collections.abc import Mapping

import httpx

from ai_gateway.core.provider.provider_registry import CredentialStyle, Provider

GOOGLE_API_KEY_HEADER = "x-goog-api-key"
GOOGLE_API_KEY_PARAM = "key"
ANTHROPIC_API_KEY_HEADER = "x-api-key"
AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "Bearer "


def _read_google_api_key(headers: Mapping[str, str], url: str) -> str | None:
    header_key = headers.get(GOOGLE_API_KEY_HEADER)
    if header_key:
        return header_key

    try:
        query_key = httpx.URL(url).params.get(GOOGLE_API_KEY_PARAM)
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    return query_key or None


def _read_anthropic_api_key(headers: Mapping[str, str], url: str) -> str | None:
    return headers.get(ANTHROPIC_API_KEY_HEADER) or None


def _read_bearer_token(headers: Mapping[str, str], url: str) -> str | None:
    authorization = headers.get(AUTHORIZATION_HEADER)
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX) :]
    return None


_READERS = {
    CredentialStyle.GOOGLE_API_KEY: _read_google_api_key,
    CredentialStyle.ANTHROPIC_API_KEY: _read_anthropic_api_key,
    CredentialStyle.BEARER: _read_bearer_token,
}


def extract_credential(provider: Provider, headers: Mapping[str, str], url: str) -> str | None:
    """Return the credential the caller supplied for this provider, or None.

    Args:
        provider: The provider the request is addressed to.
        headers: Case-insensitive inbound headers.
        url: The full inbound URL, used for the gemini ``key`` query parameter.
    """
    return _READERS[provider.credential_style](headers, url)


def inject_credential(
    provider: Provider, headers: httpx.Headers, url: httpx.URL, credential: str
) -> httpx.URL:
    """Write a pool credential into an outbound request.

    Any credential already present in the same header is replaced. For gemini
    the ``key`` query parameter is dropped so the header is the only source.

    Returns:
        The URL to send to.
    """
    style = provider.credential_style
    if style is CredentialStyle.GOOGLE_API_KEY:
        headers[GOOGLE_API_KEY_HEADER] = credential
        if GOOGLE_API_KEY_PARAM in url.params:
            url = url.copy_remove_param(GOOGLE_API_KEY_PARAM)
    elif style is CredentialStyle.ANTHROPIC_API_KEY:
        headers[ANTHROPIC_API_KEY_HEADER] = credential
    else:
        headers[AUTHORIZATION_HEADER] = f"{BEARER_PREFIX}{credential}"
    return url
