"""Stage 2: generate Dart code from the drafted specification.

This is the only stage where the caller picks the provider. The prompt is the
same for every provider; the system instruction gets a per-provider hint.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from widgetforge.observability.logging import get_logger
from widgetforge.pipeline.stages.base import TemplateStage
from widgetforge.providers.base import DEFAULT_PROVIDER, ProviderError

if TYPE_CHECKING:
    from widgetforge.pipeline.config import PipelineConfig
    from widgetforge.prompts import PromptLoader
    from widgetforge.providers.base import Provider
    from widgetforge.providers.fallback import CallResult, FallbackPolicy
    from widgetforge.providers.model_info import ModelSelection

log = get_logger(__name__)


class CodeGenerationStage(TemplateStage):
    """CODE_GENERATION stage - write the widget code.

    An authentication failure on a non-default provider falls back once to
    the default provider's primary model.

    Attributes:
        name: Stage identifier ("code_generation").
    """

    name = "code_generation"
    index = 2
    input_field = "specification"

    def selection(self, config: PipelineConfig) -> ModelSelection:
        return config.code_generation_selection(DEFAULT_PROVIDER)

    async def execute(
        self,
        stage_input: str,
        policy: FallbackPolicy,
        config: PipelineConfig,
        loader: PromptLoader,
        *,
        provider: Provider,
    ) -> CallResult:
        """Execute the CODE_GENERATION stage with the selected provider.

        Args:
            stage_input: Stage 1 output, used as the prompt.
            policy: Fallback policy wrapping the provider adapters.
            config: Pipeline configuration.
            loader: Prompt template loader.
            provider: Provider chosen by the caller.

        Returns:
            Call result; its provider and model record where the code came from.

        Raises:
            StageError: If the provider call (and any fallback) fails.
        """
        template = loader.load(self.name)
        prompt = template.render_user(specification=stage_input)
        selection = config.code_generation_selection(provider)
        default_selection = self.selection(config)

        try:
            result = await policy.call_with_provider_fallback(
                selection,
                default_selection,
                prompt,
                template.system_for(provider.value),
                stage=self.name,
                fallback_system_instruction=template.system_for(policy.default_provider.value),
            )
        except ProviderError as e:
            raise self.tag(e) from e

        if result.fell_back and result.provider is not provider:
            log.warning(
                "code_generation_provider_switched",
                selected=provider.value,
                used=result.provider.value,
                model=result.model,
            )
        return result


code_generation_stage = CodeGenerationStage()
