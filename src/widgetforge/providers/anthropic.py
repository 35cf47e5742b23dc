"""Anthropic (Claude) adapter."""

from __future__ import annotations

from widgetforge.providers.base import Provider
from widgetforge.providers.relay import RelayAdapter, RelayRequest

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(RelayAdapter):
    """Adapter for the Anthropic Messages API.

    The system instruction travels in the top-level ``system`` field and the
    key in the ``x-api-key`` header.
    """

    provider = Provider.ANTHROPIC
    text_path = ("content", 0, "text")
    modality_markers = ("image", "media")

    def build_request(
        self,
        prompt: str,
        system_instruction: str,
        model: str,
        api_key: str,
    ) -> RelayRequest:
        return RelayRequest(
            path="/api/anthropic/v1/messages",
            payload={
                "model": model,
                "max_tokens": self.max_output_tokens,
                "system": system_instruction,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )
