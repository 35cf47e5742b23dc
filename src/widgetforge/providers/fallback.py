"""Bounded fallback around provider adapter calls.

Two single-hop rules, never combined and never repeated:

- Model fallback: a TransportFailureError from the default provider is
  retried once with the selection's fallback model of the same provider.
- Provider fallback: an AuthenticationFailureError from an explicitly chosen
  non-default provider is retried once against the default provider's
  primary model.

Every other error propagates unchanged, so each call site makes at most two
attempts. Attempts are issued sequentially.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from widgetforge.observability.logging import get_logger
from widgetforge.providers.base import (
    DEFAULT_PROVIDER,
    AuthenticationFailureError,
    Provider,
    ProviderError,
    TransportFailureError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from widgetforge.observability.llm_logger import LLMLogger
    from widgetforge.providers.base import ProviderAdapter
    from widgetforge.providers.model_info import ModelSelection

log = get_logger(__name__)


@dataclass
class CallResult:
    """Outcome of a call site, including which hop produced the text."""

    text: str
    provider: Provider
    model: str
    attempts: int = 1
    fell_back: bool = False


class FallbackPolicy:
    """Wrap adapter calls with the bounded fallback rules.

    Attributes:
        default_provider: Provider used for model fallback and as the
            provider-fallback target.
    """

    def __init__(
        self,
        adapters: Mapping[Provider, ProviderAdapter],
        default_provider: Provider = DEFAULT_PROVIDER,
        llm_logger: LLMLogger | None = None,
    ) -> None:
        self._adapters = adapters
        self.default_provider = default_provider
        self._llm_logger = llm_logger

    def _adapter(self, provider: Provider) -> ProviderAdapter:
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise ProviderError(provider, f"No adapter configured for {provider.value}")
        return adapter

    async def call(
        self,
        selection: ModelSelection,
        prompt: str,
        system_instruction: str,
        *,
        stage: str = "",
    ) -> CallResult:
        """Call the selection's provider with same-provider model fallback.

        Raises:
            ProviderError: The primary error when no fallback applies, or the
                fallback attempt's error.
        """
        adapter = self._adapter(selection.provider)
        try:
            text = await self._attempt(
                adapter, selection.primary, prompt, system_instruction, stage, "primary"
            )
            return CallResult(text, selection.provider, selection.primary)
        except TransportFailureError as e:
            if (
                selection.provider is not self.default_provider
                or not selection.fallback
                or selection.fallback == selection.primary
            ):
                raise
            log.warning(
                "model_fallback",
                stage=stage,
                provider=selection.provider.value,
                failed_model=selection.primary,
                fallback_model=selection.fallback,
                error=str(e),
            )

        text = await self._attempt(
            adapter, selection.fallback, prompt, system_instruction, stage, "model_fallback"
        )
        return CallResult(text, selection.provider, selection.fallback, attempts=2, fell_back=True)

    async def call_with_provider_fallback(
        self,
        selection: ModelSelection,
        default_selection: ModelSelection,
        prompt: str,
        system_instruction: str,
        *,
        stage: str = "",
        fallback_system_instruction: str | None = None,
    ) -> CallResult:
        """Call a caller-chosen provider, falling back to the default on auth failure.

        When the selection already targets the default provider this is
        ``call`` with model fallback.

        Args:
            selection: The caller-chosen provider and model.
            default_selection: Default provider selection; only its primary
                model is used as the fallback target.
            prompt: User prompt.
            system_instruction: System instruction for the chosen provider.
            stage: Stage name for logging.
            fallback_system_instruction: System instruction for the default
                provider. Defaults to ``system_instruction``.

        Raises:
            ProviderError: The chosen provider's error if it is not an
                authentication failure, otherwise the fallback's error chained
                to the original.
        """
        if selection.provider is self.default_provider:
            return await self.call(selection, prompt, system_instruction, stage=stage)

        adapter = self._adapter(selection.provider)
        try:
            text = await self._attempt(
                adapter, selection.primary, prompt, system_instruction, stage, "primary"
            )
            return CallResult(text, selection.provider, selection.primary)
        except AuthenticationFailureError as e:
            original = e
            log.warning(
                "provider_fallback",
                stage=stage,
                failed_provider=selection.provider.value,
                fallback_provider=self.default_provider.value,
                fallback_model=default_selection.primary,
                error=str(e),
            )

        default_adapter = self._adapter(self.default_provider)
        try:
            text = await self._attempt(
                default_adapter,
                default_selection.primary,
                prompt,
                fallback_system_instruction or system_instruction,
                stage,
                "provider_fallback",
            )
        except ProviderError as fallback_error:
            log.error(
                "provider_fallback_failed",
                stage=stage,
                original_error=str(original),
                fallback_error=str(fallback_error),
            )
            raise fallback_error from original
        return CallResult(
            text,
            self.default_provider,
            default_selection.primary,
            attempts=2,
            fell_back=True,
        )

    async def _attempt(
        self,
        adapter: ProviderAdapter,
        model: str,
        prompt: str,
        system_instruction: str,
        stage: str,
        attempt: str,
    ) -> str:
        start = time.perf_counter()
        log.debug(
            "provider_call_start",
            stage=stage,
            provider=adapter.provider.value,
            model=model,
            attempt=attempt,
        )
        try:
            text = await adapter.invoke(prompt, system_instruction, model)
        except ProviderError as e:
            duration = time.perf_counter() - start
            log.info(
                "provider_call_failed",
                stage=stage,
                provider=adapter.provider.value,
                model=model,
                attempt=attempt,
                kind=e.kind.value,
                status=e.status_code,
                duration=f"{duration:.2f}s",
            )
            self._record(adapter, model, prompt, system_instruction, stage, attempt, "", duration, e)
            raise

        duration = time.perf_counter() - start
        log.debug(
            "provider_call_complete",
            stage=stage,
            provider=adapter.provider.value,
            model=model,
            attempt=attempt,
            chars=len(text),
            duration=f"{duration:.2f}s",
        )
        self._record(adapter, model, prompt, system_instruction, stage, attempt, text, duration)
        return text

    def _record(
        self,
        adapter: ProviderAdapter,
        model: str,
        prompt: str,
        system_instruction: str,
        stage: str,
        attempt: str,
        content: str,
        duration: float,
        error: ProviderError | None = None,
    ) -> None:
        if self._llm_logger is None:
            return
        entry = self._llm_logger.create_entry(
            stage=stage,
            provider=adapter.provider.value,
            model=model,
            system_instruction=system_instruction,
            prompt=prompt,
            content=content,
            duration_seconds=duration,
            attempt=attempt,
            error=str(error) if error else None,
            error_kind=error.kind.value if error else None,
        )
        self._llm_logger.log(entry)
