"""OpenAI chat completions adapter."""

from __future__ import annotations

from widgetforge.providers.base import Provider
from widgetforge.providers.relay import RelayAdapter, RelayRequest

# Code generation wants near-deterministic output
OPENAI_TEMPERATURE = 0.1


class OpenAIAdapter(RelayAdapter):
    """Adapter for the OpenAI chat completions API.

    The system instruction is sent as a leading system-role message and the
    key as a bearer token.
    """

    provider = Provider.OPENAI
    text_path = ("choices", 0, "message", "content")
    modality_markers = ("image", "vision", "media")

    def build_request(
        self,
        prompt: str,
        system_instruction: str,
        model: str,
        api_key: str,
    ) -> RelayRequest:
        return RelayRequest(
            path="/api/openai/v1/chat/completions",
            payload={
                "model": model,
                "messages": [
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": self.max_output_tokens,
                "temperature": OPENAI_TEMPERATURE,
            },
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
        )
