"""Shared HTTP plumbing for adapters that talk to providers through the relay.

Every provider is reached through a same-origin path (``/api/<provider>/...``)
that a separate relay forwards to the real host. The relay's status code and
body are read unmodified: any non-2xx status is an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from widgetforge.observability.logging import get_logger
from widgetforge.providers.base import (
    AuthenticationFailureError,
    InvalidRequestError,
    MalformedResponseError,
    MissingCredentialError,
    Provider,
    ProviderError,
    TransportFailureError,
    UnsupportedModalityError,
)
from widgetforge.providers.model_info import DEFAULT_MAX_OUTPUT_TOKENS, known_models

if TYPE_CHECKING:
    from collections.abc import Iterable

    from widgetforge.providers.credentials import CredentialResolver

log = get_logger(__name__)

DEFAULT_RELAY_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 90.0

# Upstream bodies are quoted in error messages up to this length
_DETAIL_LIMIT = 500


@dataclass
class RelayRequest:
    """A provider-specific request envelope ready to send."""

    path: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


def dig(data: Any, path: tuple[str | int, ...]) -> Any:
    """Walk a nested JSON structure, returning None if any step is missing."""
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or len(current) <= step:
                return None
        elif not isinstance(current, dict) or step not in current:
            return None
        current = current[step]
    return current


def _redact(text: str, secret: str | None) -> str:
    if secret:
        text = text.replace(secret, "***")
    return text


class RelayAdapter:
    """Base adapter: validation, credential lookup, HTTP call, error mapping.

    Subclasses set ``provider``, ``text_path`` and the failure markers, and
    implement ``build_request``.

    Attributes:
        relay_url: Base URL of the relay (scheme + host).
        max_output_tokens: Token limit written into every envelope.
    """

    provider: Provider
    # Key path of the first text payload in a successful response
    text_path: tuple[str | int, ...] = ()
    # Lowercase body substrings meaning the model rejected the input modality
    modality_markers: tuple[str, ...] = ()
    # Body substrings meaning the key was rejected (in addition to HTTP 401)
    auth_markers: tuple[str, ...] = ()

    def __init__(
        self,
        credentials: CredentialResolver,
        relay_url: str = DEFAULT_RELAY_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        models: Iterable[str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            credentials: Resolver consulted on every call.
            relay_url: Base URL of the relay.
            timeout: Request timeout in seconds.
            max_output_tokens: Token limit for responses.
            models: Additional model ids to accept besides the known registry.
            client: Shared HTTP client. The caller keeps ownership and closes it.
        """
        self._credentials = credentials
        self.relay_url = relay_url.rstrip("/")
        self.max_output_tokens = max_output_tokens
        self._models = known_models(self.provider) | frozenset(models or ())
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def models(self) -> frozenset[str]:
        """Model ids this adapter accepts."""
        return self._models

    def build_request(
        self,
        prompt: str,
        system_instruction: str,
        model: str,
        api_key: str,
    ) -> RelayRequest:
        """Build the provider-specific envelope."""
        raise NotImplementedError

    async def invoke(self, prompt: str, system_instruction: str, model: str) -> str:
        """Send one prompt through the relay and return the extracted text.

        Raises:
            InvalidRequestError: Empty prompt/system instruction or unknown model.
            MissingCredentialError: No key configured; nothing is sent.
            TransportFailureError: Connection error, timeout or non-2xx status.
            AuthenticationFailureError: Key rejected (HTTP 401 or auth marker).
            UnsupportedModalityError: Model cannot process the content.
            MalformedResponseError: Success status but no text payload.
        """
        self._validate(prompt, system_instruction, model)

        credential = self._credentials.resolve(self.provider)
        if not credential.is_present or credential.key is None:
            raise MissingCredentialError(
                self.provider,
                f"{self.provider.display_name} API key not found",
            )
        api_key = credential.key

        request = self.build_request(prompt, system_instruction, model, api_key)
        url = f"{self.relay_url}{request.path}"

        try:
            response = await self._client.post(
                url,
                json=request.payload,
                headers=request.headers,
                params=request.params or None,
            )
        except httpx.TimeoutException as e:
            raise TransportFailureError(
                self.provider,
                f"Request to {self.provider.display_name} timed out",
                detail=_redact(str(e), api_key),
            ) from None
        except httpx.HTTPError as e:
            raise TransportFailureError(
                self.provider,
                f"Failed to reach {self.provider.display_name} relay at {self.relay_url}",
                detail=_redact(str(e), api_key),
            ) from None

        status = response.status_code
        if not 200 <= status < 300:
            body = _redact(response.text or "", api_key)
            log.warning(
                "provider_http_error",
                provider=self.provider.value,
                model=model,
                status=status,
                body=body[:_DETAIL_LIMIT],
            )
            raise self.classify_failure(status, body)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                self.provider,
                f"{self.provider.display_name} returned a non-JSON body",
                status_code=status,
                detail=_redact(response.text or "", api_key)[:_DETAIL_LIMIT],
            ) from e

        text = dig(data, self.text_path)
        if not isinstance(text, str) or not text.strip():
            path = ".".join(str(step) for step in self.text_path)
            raise MalformedResponseError(
                self.provider,
                f"{self.provider.display_name} response has no text at '{path}'",
                status_code=status,
            )
        return text

    def classify_failure(self, status: int, body: str) -> ProviderError:
        """Map a non-2xx relay response to a typed error.

        Modality markers are checked first, then authentication, and
        everything else is a transport failure carrying the status.
        """
        detail = body[:_DETAIL_LIMIT]
        lowered = body.lower()
        name = self.provider.display_name

        if any(marker in lowered for marker in self.modality_markers):
            return UnsupportedModalityError(
                self.provider,
                f"{name} API error: this model doesn't support image input",
                status_code=status,
                detail=detail,
            )
        if status == 401 or any(marker in body for marker in self.auth_markers):
            return AuthenticationFailureError(
                self.provider,
                f"{name} API authentication failed (status {status})",
                status_code=status,
                detail=detail,
            )
        return TransportFailureError(
            self.provider,
            f"{name} API failed: {status}",
            status_code=status,
            detail=detail,
        )

    def _validate(self, prompt: str, system_instruction: str, model: str) -> None:
        if not prompt or not prompt.strip():
            raise InvalidRequestError(self.provider, "prompt must be a non-empty string")
        if not system_instruction or not system_instruction.strip():
            raise InvalidRequestError(
                self.provider, "system instruction must be a non-empty string"
            )
        if model not in self._models:
            raise InvalidRequestError(
                self.provider,
                f"Unknown model '{model}' for {self.provider.display_name}",
            )

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> RelayAdapter:
        """Enter async context."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context and close client."""
        await self.close()
