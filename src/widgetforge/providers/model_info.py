"""Model information and per-stage model selection."""

from __future__ import annotations

from dataclasses import dataclass

from widgetforge.providers.base import Provider

# Output limit used when a model's limit is unknown.
DEFAULT_MAX_OUTPUT_TOKENS = 16_384


@dataclass(frozen=True)
class ModelProperties:
    """Known properties for a specific model.

    Attributes:
        supports_vision: Whether the model can process images.
        max_output_tokens: Largest response the model may produce.
    """

    supports_vision: bool = False
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS


# Known model properties by provider and model name.
KNOWN_MODELS: dict[Provider, dict[str, ModelProperties]] = {
    Provider.GEMINI: {
        "gemini-3-flash-preview": ModelProperties(supports_vision=True, max_output_tokens=65_536),
        "gemini-3.0-pro-preview": ModelProperties(supports_vision=True, max_output_tokens=65_536),
        "gemini-2.5-flash-preview-09-2025": ModelProperties(
            supports_vision=True, max_output_tokens=65_536
        ),
        "gemini-2.5-flash": ModelProperties(supports_vision=True, max_output_tokens=65_536),
        "gemini-2.5-pro": ModelProperties(supports_vision=True, max_output_tokens=65_536),
    },
    Provider.ANTHROPIC: {
        "claude-opus-4-5-20251101": ModelProperties(max_output_tokens=32_000),
        "claude-sonnet-4-5-20250929": ModelProperties(max_output_tokens=64_000),
        "claude-sonnet-4-20250514": ModelProperties(max_output_tokens=64_000),
    },
    Provider.OPENAI: {
        "gpt-5.2-codex": ModelProperties(max_output_tokens=128_000),
        "gpt-5-mini": ModelProperties(max_output_tokens=128_000),
        "gpt-4.1": ModelProperties(max_output_tokens=32_768),
    },
}

# Stage 1 and 3 always talk to the default provider.
SPEC_DRAFT_MODEL = "gemini-3-flash-preview"
AUDIT_MODEL = "gemini-3-flash-preview"
FALLBACK_MODEL = "gemini-2.5-flash-preview-09-2025"

CODE_GENERATION_MODELS: dict[Provider, str] = {
    Provider.GEMINI: "gemini-3.0-pro-preview",
    Provider.ANTHROPIC: "claude-opus-4-5-20251101",
    Provider.OPENAI: "gpt-5.2-codex",
}


@dataclass(frozen=True)
class ModelSelection:
    """Primary model for a call site plus an optional same-provider fallback.

    The fallback is only consulted for the default provider.

    Attributes:
        provider: Provider the models belong to.
        primary: Model tried first.
        fallback: Model tried once after a transport failure, if any.
    """

    provider: Provider
    primary: str
    fallback: str | None = None

    def models(self) -> list[str]:
        """Return the model ids this selection may use."""
        return [m for m in (self.primary, self.fallback) if m]


def known_models(provider: Provider) -> frozenset[str]:
    """Model ids registered for a provider."""
    return frozenset(KNOWN_MODELS.get(provider, {}))


def get_model_properties(provider: Provider, model: str) -> ModelProperties:
    """Get model properties from known values or defaults.

    Args:
        provider: Provider the model belongs to.
        model: Model identifier.

    Returns:
        Registered ModelProperties, or conservative defaults for unknown models.
    """
    return KNOWN_MODELS.get(provider, {}).get(model) or ModelProperties()
