"""Base protocol, provider identifiers and error taxonomy for LLM providers."""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class Provider(str, Enum):
    """LLM providers reachable through the relay.

    GEMINI is the default provider and must always be credentialed.
    ANTHROPIC and OPENAI are optional and only used for code generation.
    """

    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"

    @property
    def display_name(self) -> str:
        """Human-readable provider name."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[Provider, str] = {
    Provider.GEMINI: "Gemini",
    Provider.ANTHROPIC: "Claude",
    Provider.OPENAI: "OpenAI",
}

DEFAULT_PROVIDER = Provider.GEMINI


def parse_provider(value: str | Provider) -> Provider:
    """Parse a provider name, case-insensitively.

    Raises:
        ValueError: If the name is not a known provider.
    """
    if isinstance(value, Provider):
        return value
    try:
        return Provider(value.strip().lower())
    except ValueError:
        known = ", ".join(p.value for p in Provider)
        raise ValueError(f"Unknown provider '{value}'. Expected one of: {known}") from None


class ErrorKind(Enum):
    """Categories of provider failure surfaced to callers."""

    MISSING_CREDENTIAL = "MissingCredential"
    AUTHENTICATION_FAILURE = "AuthenticationFailure"
    UNSUPPORTED_MODALITY = "UnsupportedModality"
    TRANSPORT_FAILURE = "TransportFailure"
    MALFORMED_RESPONSE = "MalformedResponse"
    INVALID_REQUEST = "InvalidRequest"

    @property
    def description(self) -> str:
        """Human-readable category description."""
        return _KIND_DESCRIPTIONS[self]


_KIND_DESCRIPTIONS: dict[ErrorKind, str] = {
    ErrorKind.MISSING_CREDENTIAL: "API key not configured",
    ErrorKind.AUTHENTICATION_FAILURE: "API key rejected by provider",
    ErrorKind.UNSUPPORTED_MODALITY: "Model cannot process the requested content",
    ErrorKind.TRANSPORT_FAILURE: "Network or upstream server error",
    ErrorKind.MALFORMED_RESPONSE: "Provider response missing expected content",
    ErrorKind.INVALID_REQUEST: "Request rejected before sending",
}


class ProviderAdapter(Protocol):
    """Protocol for provider adapters.

    An adapter hides the provider's request envelope, auth placement and
    response shape behind a single call. Adapters keep no state between
    calls and resolve the credential on every invocation.
    """

    provider: Provider

    async def invoke(self, prompt: str, system_instruction: str, model: str) -> str:
        """Send one prompt and return the first text payload of the response.

        Args:
            prompt: User prompt text. Must be non-empty.
            system_instruction: System instruction. Must be non-empty.
            model: Model identifier recognized for this provider.

        Returns:
            Extracted response text.

        Raises:
            ProviderError: One of the typed subclasses below.
        """
        ...

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...


class ProviderError(Exception):
    """Base exception for provider errors.

    Attributes:
        provider: Provider that produced the error.
        kind: Error category.
        status_code: HTTP status from the relay, if a response was received.
        detail: Best-effort upstream message (never contains credentials).
    """

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE

    def __init__(
        self,
        provider: Provider,
        message: str,
        *,
        status_code: int | None = None,
        detail: str = "",
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"[{provider.value}] {message}")


class MissingCredentialError(ProviderError):
    """Raised when no key is configured for a provider. No request is sent."""

    kind = ErrorKind.MISSING_CREDENTIAL


class AuthenticationFailureError(ProviderError):
    """Raised when the provider rejects the configured key."""

    kind = ErrorKind.AUTHENTICATION_FAILURE


class UnsupportedModalityError(ProviderError):
    """Raised when the provider cannot process the requested content."""

    kind = ErrorKind.UNSUPPORTED_MODALITY


class TransportFailureError(ProviderError):
    """Raised on connection errors, timeouts and non-success upstream statuses."""

    kind = ErrorKind.TRANSPORT_FAILURE


class MalformedResponseError(ProviderError):
    """Raised when a successful response lacks the expected text field."""

    kind = ErrorKind.MALFORMED_RESPONSE


class InvalidRequestError(ProviderError):
    """Raised when call arguments are rejected before any network attempt."""

    kind = ErrorKind.INVALID_REQUEST
