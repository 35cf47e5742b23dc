"""Factory for creating provider adapters.

Adapters are looked up in a provider -> class registry, so adding a provider
means writing one RelayAdapter subclass and registering it here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from widgetforge.observability.logging import get_logger
from widgetforge.providers.anthropic import AnthropicAdapter
from widgetforge.providers.base import Provider, ProviderError
from widgetforge.providers.gemini import GeminiAdapter
from widgetforge.providers.openai_provider import OpenAIAdapter
from widgetforge.providers.relay import DEFAULT_RELAY_URL, DEFAULT_TIMEOUT

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    import httpx

    from widgetforge.providers.base import ProviderAdapter
    from widgetforge.providers.credentials import CredentialResolver
    from widgetforge.providers.relay import RelayAdapter

log = get_logger(__name__)

_ADAPTER_REGISTRY: dict[Provider, type[RelayAdapter]] = {
    Provider.GEMINI: GeminiAdapter,
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.OPENAI: OpenAIAdapter,
}


def register_adapter(provider: Provider, adapter_cls: type[RelayAdapter]) -> None:
    """Register (or replace) the adapter class for a provider."""
    _ADAPTER_REGISTRY[provider] = adapter_cls


def get_adapter_class(provider: Provider) -> type[RelayAdapter]:
    """Return the adapter class registered for a provider.

    Raises:
        ProviderError: If no adapter is registered.
    """
    adapter_cls = _ADAPTER_REGISTRY.get(provider)
    if adapter_cls is None:
        log.error("provider_unknown", provider=provider.value)
        raise ProviderError(provider, f"No adapter registered for {provider.value}")
    return adapter_cls


def create_adapter(
    provider: Provider,
    credentials: CredentialResolver,
    *,
    relay_url: str = DEFAULT_RELAY_URL,
    timeout: float = DEFAULT_TIMEOUT,
    max_output_tokens: int | None = None,
    models: Iterable[str] | None = None,
    client: httpx.AsyncClient | None = None,
) -> ProviderAdapter:
    """Create an adapter for a provider.

    Args:
        provider: Provider to create the adapter for.
        credentials: Resolver consulted on every call.
        relay_url: Base URL of the relay.
        timeout: Request timeout in seconds.
        max_output_tokens: Token limit; None keeps the adapter default.
        models: Extra model ids to accept (e.g. from configuration).
        client: Optional shared HTTP client.

    Returns:
        Configured adapter.
    """
    adapter_cls = get_adapter_class(provider)
    kwargs: dict[str, object] = {"timeout": timeout, "models": models, "client": client}
    if max_output_tokens is not None:
        kwargs["max_output_tokens"] = max_output_tokens

    adapter = adapter_cls(credentials, relay_url, **kwargs)  # type: ignore[arg-type]
    log.debug("adapter_created", provider=provider.value, relay_url=relay_url)
    return adapter


def create_adapters(
    credentials: CredentialResolver,
    *,
    relay_url: str = DEFAULT_RELAY_URL,
    timeout: float = DEFAULT_TIMEOUT,
    max_output_tokens: int | None = None,
    models: Mapping[Provider, Iterable[str]] | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict[Provider, ProviderAdapter]:
    """Create one adapter per registered provider.

    When ``client`` is given every adapter shares it and none of them closes it.
    """
    models = models or {}
    return {
        provider: create_adapter(
            provider,
            credentials,
            relay_url=relay_url,
            timeout=timeout,
            max_output_tokens=max_output_tokens,
            models=models.get(provider),
            client=client,
        )
        for provider in _ADAPTER_REGISTRY
    }
