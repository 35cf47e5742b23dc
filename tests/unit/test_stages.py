"""Tests for the three stage wrappers."""

from __future__ import annotations

import pytest

from tests.fixtures.fake_providers import scripted_adapters
from widgetforge.pipeline import PipelineConfig, StageError
from widgetforge.pipeline.stages import (
    audit_stage,
    code_generation_stage,
    get_stage,
    list_stages,
    spec_draft_stage,
)
from widgetforge.prompts import PromptLoader
from widgetforge.providers import (
    AuthenticationFailureError,
    ErrorKind,
    FallbackPolicy,
    Provider,
    TransportFailureError,
    UnsupportedModalityError,
)


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def loader() -> PromptLoader:
    return PromptLoader()


def test_stages_registered_in_order() -> None:
    """Stages are registered and listed in execution order."""
    assert list_stages() == ["spec_draft", "code_generation", "audit"]
    assert get_stage("audit") is audit_stage


@pytest.mark.asyncio
async def test_spec_draft_uses_default_provider(
    config: PipelineConfig, loader: PromptLoader
) -> None:
    """Stage 1 always calls the default provider, whatever was selected."""
    adapters = scripted_adapters(gemini=["master prompt"])
    policy = FallbackPolicy(adapters)

    result = await spec_draft_stage.execute(
        "a circular gauge 0-100", policy, config, loader, provider=Provider.OPENAI
    )

    assert result.text == "master prompt"
    call = adapters[Provider.GEMINI].calls[0]
    assert "a circular gauge 0-100" in call.prompt
    assert call.model == "gemini-3-flash-preview"
    assert adapters[Provider.OPENAI].calls == []


@pytest.mark.asyncio
async def test_code_generation_prompt_is_stage1_output(
    config: PipelineConfig, loader: PromptLoader
) -> None:
    """Stage 2 sends the specification verbatim to the chosen provider."""
    adapters = scripted_adapters(anthropic=["```dart\nclass A {}\n```"])
    policy = FallbackPolicy(adapters)

    result = await code_generation_stage.execute(
        "SPEC TEXT", policy, config, loader, provider=Provider.ANTHROPIC
    )

    call = adapters[Provider.ANTHROPIC].calls[0]
    assert call.prompt == "SPEC TEXT"
    assert call.model == "claude-opus-4-5-20251101"
    assert result.provider is Provider.ANTHROPIC
    assert not result.fell_back


@pytest.mark.asyncio
async def test_code_generation_system_instruction_varies_by_provider(
    config: PipelineConfig, loader: PromptLoader
) -> None:
    """Each provider gets its own system instruction wording."""
    adapters = scripted_adapters(gemini=["a"], openai=["b"])
    policy = FallbackPolicy(adapters)

    await code_generation_stage.execute("SPEC", policy, config, loader, provider=Provider.GEMINI)
    await code_generation_stage.execute("SPEC", policy, config, loader, provider=Provider.OPENAI)

    gemini_system = adapters[Provider.GEMINI].calls[0].system_instruction
    openai_system = adapters[Provider.OPENAI].calls[0].system_instruction
    assert gemini_system != openai_system
    assert openai_system.startswith(gemini_system)


@pytest.mark.asyncio
async def test_code_generation_auth_fallback_uses_default_wording(
    config: PipelineConfig, loader: PromptLoader
) -> None:
    """After an auth failure the default provider gets its own system instruction."""
    auth = AuthenticationFailureError(Provider.OPENAI, "bad key", status_code=401)
    adapters = scripted_adapters(openai=[auth], gemini=["gemini code"])
    policy = FallbackPolicy(adapters)

    result = await code_generation_stage.execute(
        "SPEC", policy, config, loader, provider=Provider.OPENAI
    )

    assert result.provider is Provider.GEMINI
    assert result.model == "gemini-3.0-pro-preview"
    fallback_call = adapters[Provider.GEMINI].calls[0]
    assert fallback_call.system_instruction == loader.load("code_generation").system


@pytest.mark.asyncio
async def test_audit_wraps_code_in_prompt(config: PipelineConfig, loader: PromptLoader) -> None:
    """Stage 3 embeds the code in the audit prompt."""
    adapters = scripted_adapters(gemini=["Score: 90/100"])
    policy = FallbackPolicy(adapters)

    result = await audit_stage.execute(
        "class A {}", policy, config, loader, provider=Provider.ANTHROPIC
    )

    assert result.text == "Score: 90/100"
    assert "class A {}" in adapters[Provider.GEMINI].calls[0].prompt


@pytest.mark.asyncio
async def test_provider_error_is_tagged_with_stage(
    config: PipelineConfig, loader: PromptLoader
) -> None:
    """Errors leave a stage as StageError carrying index, name and cause."""
    modality = UnsupportedModalityError(Provider.ANTHROPIC, "no images", status_code=400)
    adapters = scripted_adapters(anthropic=[modality])
    policy = FallbackPolicy(adapters)

    with pytest.raises(StageError) as exc_info:
        await code_generation_stage.execute(
            "SPEC", policy, config, loader, provider=Provider.ANTHROPIC
        )

    error = exc_info.value
    assert error.stage_index == 2
    assert error.stage_name == "code_generation"
    assert error.cause is modality
    assert error.kind is ErrorKind.UNSUPPORTED_MODALITY


@pytest.mark.asyncio
async def test_stage_error_after_exhausted_fallback(
    config: PipelineConfig, loader: PromptLoader
) -> None:
    """The error after the model fallback hop is tagged, not retried further."""
    adapters = scripted_adapters(
        gemini=[
            TransportFailureError(Provider.GEMINI, "down", status_code=503),
            TransportFailureError(Provider.GEMINI, "still down", status_code=502),
        ]
    )
    policy = FallbackPolicy(adapters)

    with pytest.raises(StageError) as exc_info:
        await spec_draft_stage.execute("gauge", policy, config, loader, provider=Provider.GEMINI)

    assert exc_info.value.stage_index == 1
    assert exc_info.value.cause.status_code == 502
    assert len(adapters[Provider.GEMINI].calls) == 2
