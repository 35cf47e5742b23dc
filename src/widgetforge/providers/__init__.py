"""LLM provider adapters, credentials and fallback policy."""

from widgetforge.providers.anthropic import AnthropicAdapter
from widgetforge.providers.base import (
    DEFAULT_PROVIDER,
    AuthenticationFailureError,
    ErrorKind,
    InvalidRequestError,
    MalformedResponseError,
    MissingCredentialError,
    Provider,
    ProviderAdapter,
    ProviderError,
    TransportFailureError,
    UnsupportedModalityError,
    parse_provider,
)
from widgetforge.providers.credentials import (
    Credential,
    CredentialResolver,
    CredentialSource,
    CredentialStore,
    InMemoryCredentialStore,
    YAMLCredentialStore,
)
from widgetforge.providers.factory import (
    create_adapter,
    create_adapters,
    get_adapter_class,
    register_adapter,
)
from widgetforge.providers.fallback import CallResult, FallbackPolicy
from widgetforge.providers.gemini import GeminiAdapter
from widgetforge.providers.model_info import (
    KNOWN_MODELS,
    ModelProperties,
    ModelSelection,
    get_model_properties,
)
from widgetforge.providers.openai_provider import OpenAIAdapter
from widgetforge.providers.relay import RelayAdapter, RelayRequest

__all__ = [
    "DEFAULT_PROVIDER",
    "KNOWN_MODELS",
    "AnthropicAdapter",
    "AuthenticationFailureError",
    "CallResult",
    "Credential",
    "CredentialResolver",
    "CredentialSource",
    "CredentialStore",
    "ErrorKind",
    "FallbackPolicy",
    "GeminiAdapter",
    "InMemoryCredentialStore",
    "InvalidRequestError",
    "MalformedResponseError",
    "MissingCredentialError",
    "ModelProperties",
    "ModelSelection",
    "OpenAIAdapter",
    "Provider",
    "ProviderAdapter",
    "ProviderError",
    "RelayAdapter",
    "RelayRequest",
    "TransportFailureError",
    "UnsupportedModalityError",
    "YAMLCredentialStore",
    "create_adapter",
    "create_adapters",
    "get_adapter_class",
    "get_model_properties",
    "parse_provider",
    "register_adapter",
]
