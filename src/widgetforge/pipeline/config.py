"""Pipeline configuration loading.

Configuration is read from ``widgetforge.yaml`` in the working directory when
present; every field has a default, so the file is optional.

Resolution order for scalar settings (highest priority first):
1. Environment variable (WF_RELAY_URL, WF_TIMEOUT)
2. Config file
3. Built-in default
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from widgetforge.providers.base import DEFAULT_PROVIDER, Provider, parse_provider
from widgetforge.providers.model_info import (
    AUDIT_MODEL,
    CODE_GENERATION_MODELS,
    DEFAULT_MAX_OUTPUT_TOKENS,
    FALLBACK_MODEL,
    SPEC_DRAFT_MODEL,
    ModelSelection,
)
from widgetforge.providers.relay import DEFAULT_RELAY_URL, DEFAULT_TIMEOUT

CONFIG_FILENAME = "widgetforge.yaml"


def _default_code_generation() -> dict[Provider, ModelSelection]:
    return {
        provider: ModelSelection(
            provider,
            model,
            FALLBACK_MODEL if provider is DEFAULT_PROVIDER else None,
        )
        for provider, model in CODE_GENERATION_MODELS.items()
    }


@dataclass
class PipelineConfig:
    """Configuration for the three-stage pipeline.

    Attributes:
        relay_url: Base URL of the relay forwarding ``/api/<provider>/...``.
        timeout: Per-request timeout in seconds.
        max_output_tokens: Response token limit sent to every provider.
        spec_draft: Model selection for stage 1 (default provider).
        audit: Model selection for stage 3 (default provider).
        code_generation: Model selection per provider for stage 2.
    """

    relay_url: str = DEFAULT_RELAY_URL
    timeout: float = DEFAULT_TIMEOUT
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    spec_draft: ModelSelection = field(
        default_factory=lambda: ModelSelection(DEFAULT_PROVIDER, SPEC_DRAFT_MODEL, FALLBACK_MODEL)
    )
    audit: ModelSelection = field(
        default_factory=lambda: ModelSelection(DEFAULT_PROVIDER, AUDIT_MODEL, FALLBACK_MODEL)
    )
    code_generation: dict[Provider, ModelSelection] = field(
        default_factory=_default_code_generation
    )

    def code_generation_selection(self, provider: Provider) -> ModelSelection:
        """Model selection for stage 2 with the given provider.

        Raises:
            ConfigError: If no model is configured for the provider.
        """
        selection = self.code_generation.get(provider)
        if selection is None:
            raise ConfigError(
                Path(CONFIG_FILENAME), f"No code_generation model for provider '{provider.value}'"
            )
        return selection

    def configured_models(self) -> dict[Provider, set[str]]:
        """All model ids named by this config, grouped by provider."""
        models: dict[Provider, set[str]] = {provider: set() for provider in Provider}
        selections = [self.spec_draft, self.audit, *self.code_generation.values()]
        for selection in selections:
            models[selection.provider].update(selection.models())
        return models

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary with optional keys relay_url, timeout,
                max_output_tokens and models.

        Returns:
            PipelineConfig instance.

        Raises:
            ValueError: If a provider name or model entry is invalid.
        """
        defaults = cls()
        models_data = dict(data.get("models") or {})

        code_generation = dict(defaults.code_generation)
        for name, entry in dict(models_data.get("code_generation") or {}).items():
            provider = parse_provider(str(name))
            code_generation[provider] = _parse_selection(
                provider, entry, default_fallback=code_generation[provider].fallback
            )

        return cls(
            relay_url=str(data.get("relay_url", defaults.relay_url)),
            timeout=float(data.get("timeout", defaults.timeout)),
            max_output_tokens=int(data.get("max_output_tokens", defaults.max_output_tokens)),
            spec_draft=_parse_selection(
                DEFAULT_PROVIDER, models_data.get("spec_draft"), base=defaults.spec_draft
            ),
            audit=_parse_selection(DEFAULT_PROVIDER, models_data.get("audit"), base=defaults.audit),
            code_generation=code_generation,
        )

    def apply_env_overrides(self) -> PipelineConfig:
        """Apply WF_* environment overrides in place and return self."""
        relay_url = os.getenv("WF_RELAY_URL")
        if relay_url:
            self.relay_url = relay_url
        timeout = os.getenv("WF_TIMEOUT")
        if timeout:
            try:
                self.timeout = float(timeout)
            except ValueError as e:
                raise ConfigError(Path("WF_TIMEOUT"), f"not a number: {timeout!r}") from e
        return self


def _parse_selection(
    provider: Provider,
    entry: Any,
    *,
    base: ModelSelection | None = None,
    default_fallback: str | None = None,
) -> ModelSelection:
    """Parse a ``{primary, fallback}`` mapping or a bare model string."""
    if entry is None:
        if base is None:
            raise ValueError(f"Missing model selection for {provider.value}")
        return base
    if isinstance(entry, str):
        fallback = base.fallback if base is not None else default_fallback
        return ModelSelection(provider, entry, fallback if provider is DEFAULT_PROVIDER else None)
    if isinstance(entry, dict):
        primary = entry.get("primary") or (base.primary if base else None)
        if not primary:
            raise ValueError(f"Model selection for {provider.value} needs a 'primary' model")
        fallback = entry.get("fallback", base.fallback if base else default_fallback)
        if provider is not DEFAULT_PROVIDER:
            # Model fallback only exists for the default provider
            fallback = None
        return ModelSelection(provider, str(primary), str(fallback) if fallback else None)
    raise ValueError(f"Invalid model selection for {provider.value}: {entry!r}")


class ConfigError(Exception):
    """Raised when pipeline configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


def load_config(path: Path | None = None) -> PipelineConfig:
    """Load pipeline configuration.

    Args:
        path: Explicit config file. If None, ``widgetforge.yaml`` in the
            current directory is used when it exists, otherwise defaults.

    Returns:
        PipelineConfig with environment overrides applied.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    if path is None:
        candidate = Path.cwd() / CONFIG_FILENAME
        if not candidate.exists():
            return PipelineConfig().apply_env_overrides()
        path = candidate
    elif not path.exists():
        raise ConfigError(path, "File not found")

    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise ConfigError(path, "Empty file")
        if not isinstance(data, dict):
            raise ConfigError(path, "Top level must be a mapping")

        config = PipelineConfig.from_dict(dict(data))
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(path, str(e)) from e

    return config.apply_env_overrides()
