"""Gemini adapter (default provider).

Gemini takes the key as a query parameter and nests the prompt and system
instruction under ``contents`` / ``systemInstruction``.
"""

from __future__ import annotations

from widgetforge.providers.base import Provider
from widgetforge.providers.relay import RelayAdapter, RelayRequest


class GeminiAdapter(RelayAdapter):
    """Adapter for the Gemini generateContent API."""

    provider = Provider.GEMINI
    text_path = ("candidates", 0, "content", "parts", 0, "text")
    # Gemini answers an invalid key with 400 rather than 401
    auth_markers = ("API_KEY_INVALID", "API key not valid")

    def build_request(
        self,
        prompt: str,
        system_instruction: str,
        model: str,
        api_key: str,
    ) -> RelayRequest:
        return RelayRequest(
            path=f"/api/gemini/v1beta/models/{model}:generateContent",
            payload={
                "contents": [{"parts": [{"text": prompt}]}],
                "systemInstruction": {"parts": [{"text": system_instruction}]},
                "generationConfig": {"maxOutputTokens": self.max_output_tokens},
            },
            headers={"Content-Type": "application/json"},
            params={"key": api_key},
        )
