"""Tests for pipeline configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from widgetforge.pipeline import ConfigError, PipelineConfig, load_config
from widgetforge.providers import ModelSelection, Provider
from widgetforge.providers.relay import DEFAULT_RELAY_URL


def test_defaults() -> None:
    """Default config uses the built-in model catalog."""
    config = PipelineConfig()

    assert config.relay_url == DEFAULT_RELAY_URL
    assert config.max_output_tokens == 16384
    assert config.spec_draft == ModelSelection(
        Provider.GEMINI, "gemini-3-flash-preview", "gemini-2.5-flash-preview-09-2025"
    )
    assert config.code_generation_selection(Provider.GEMINI).primary == "gemini-3.0-pro-preview"
    assert config.code_generation_selection(Provider.ANTHROPIC).primary == (
        "claude-opus-4-5-20251101"
    )
    assert config.code_generation_selection(Provider.OPENAI).fallback is None


def test_from_dict_overrides_models() -> None:
    """Model entries accept a mapping or a bare string."""
    config = PipelineConfig.from_dict(
        {
            "relay_url": "http://relay:8080",
            "timeout": 30,
            "models": {
                "spec_draft": {"primary": "gemini-2.5-pro", "fallback": "gemini-2.5-flash"},
                "audit": "gemini-2.5-flash",
                "code_generation": {"openai": "gpt-4.1"},
            },
        }
    )

    assert config.relay_url == "http://relay:8080"
    assert config.timeout == 30.0
    assert config.spec_draft.primary == "gemini-2.5-pro"
    assert config.spec_draft.fallback == "gemini-2.5-flash"
    assert config.audit.primary == "gemini-2.5-flash"
    assert config.audit.fallback == "gemini-2.5-flash-preview-09-2025"
    assert config.code_generation_selection(Provider.OPENAI).primary == "gpt-4.1"
    # Untouched providers keep their defaults
    assert config.code_generation_selection(Provider.ANTHROPIC).primary == (
        "claude-opus-4-5-20251101"
    )


def test_non_default_provider_never_gets_model_fallback() -> None:
    """A fallback configured for a non-default provider is dropped."""
    config = PipelineConfig.from_dict(
        {"models": {"code_generation": {"anthropic": {"primary": "x", "fallback": "y"}}}}
    )

    assert config.code_generation_selection(Provider.ANTHROPIC).fallback is None


def test_from_dict_rejects_unknown_provider() -> None:
    """Unknown provider names under code_generation are rejected."""
    with pytest.raises(ValueError, match="mistral"):
        PipelineConfig.from_dict({"models": {"code_generation": {"mistral": "m"}}})


def test_configured_models_groups_by_provider() -> None:
    """configured_models lists every model the config may call."""
    config = PipelineConfig.from_dict({"models": {"code_generation": {"openai": "gpt-custom"}}})

    models = config.configured_models()

    assert "gpt-custom" in models[Provider.OPENAI]
    assert "gemini-2.5-flash-preview-09-2025" in models[Provider.GEMINI]


def test_load_config_without_file_uses_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """No widgetforge.yaml means defaults."""
    monkeypatch.chdir(tmp_path)

    assert load_config() == PipelineConfig()


def test_load_config_reads_working_directory_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """widgetforge.yaml in the working directory is picked up."""
    (tmp_path / "widgetforge.yaml").write_text("relay_url: http://from-file\n")
    monkeypatch.chdir(tmp_path)

    assert load_config().relay_url == "http://from-file"


def test_environment_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """WF_RELAY_URL and WF_TIMEOUT win over the file."""
    path = tmp_path / "custom.yaml"
    path.write_text("relay_url: http://from-file\ntimeout: 10\n")
    monkeypatch.setenv("WF_RELAY_URL", "http://from-env")
    monkeypatch.setenv("WF_TIMEOUT", "5")

    config = load_config(path)

    assert config.relay_url == "http://from-env"
    assert config.timeout == 5.0


def test_invalid_timeout_env_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """A non-numeric WF_TIMEOUT is reported as a config error."""
    monkeypatch.setenv("WF_TIMEOUT", "soon")

    with pytest.raises(ConfigError, match="WF_TIMEOUT"):
        PipelineConfig().apply_env_overrides()


def test_load_config_missing_explicit_file(tmp_path: Path) -> None:
    """An explicit path that does not exist is an error."""
    with pytest.raises(ConfigError, match="File not found"):
        load_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    ("content", "reason"),
    [
        ("", "Empty file"),
        ("- a\n- b\n", "mapping"),
        ("relay_url: [unclosed\n", ""),
        ("timeout: soon\n", ""),
    ],
)
def test_load_config_invalid_file(tmp_path: Path, content: str, reason: str) -> None:
    """Invalid files raise ConfigError carrying the path."""
    path = tmp_path / "widgetforge.yaml"
    path.write_text(content)

    with pytest.raises(ConfigError, match=reason) as exc_info:
        load_config(path)

    assert exc_info.value.path == path
