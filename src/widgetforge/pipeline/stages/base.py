"""Base types and registry for pipeline stages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from widgetforge.observability.logging import get_logger
from widgetforge.pipeline.errors import StageError
from widgetforge.providers.base import ProviderError

if TYPE_CHECKING:
    from widgetforge.pipeline.config import PipelineConfig
    from widgetforge.prompts import PromptLoader
    from widgetforge.providers.base import Provider
    from widgetforge.providers.fallback import CallResult, FallbackPolicy
    from widgetforge.providers.model_info import ModelSelection

log = get_logger(__name__)


class Stage(Protocol):
    """Protocol for pipeline stage implementations.

    A stage builds its prompt and system instruction, calls the provider
    through the fallback policy, and returns the text. Provider errors leave
    a stage only as StageError.
    """

    name: str
    index: int

    async def execute(
        self,
        stage_input: str,
        policy: FallbackPolicy,
        config: PipelineConfig,
        loader: PromptLoader,
        *,
        provider: Provider,
    ) -> CallResult:
        """Execute the stage.

        Args:
            stage_input: User text for stage 1, previous stage output otherwise.
            policy: Fallback policy wrapping the provider adapters.
            config: Pipeline configuration (model selections).
            loader: Prompt template loader.
            provider: Provider selected for code generation.

        Returns:
            The call result with the stage output text.

        Raises:
            StageError: If the provider call fails.
        """
        ...


class TemplateStage:
    """Stage backed by a prompt template and a fixed model selection.

    Subclasses set ``name``, ``index`` and ``input_field`` and implement
    ``selection``.
    """

    name: str
    index: int
    input_field: str

    def selection(self, config: PipelineConfig) -> ModelSelection:
        raise NotImplementedError

    async def execute(
        self,
        stage_input: str,
        policy: FallbackPolicy,
        config: PipelineConfig,
        loader: PromptLoader,
        *,
        provider: Provider,  # noqa: ARG002
    ) -> CallResult:
        template = loader.load(self.name)
        prompt = template.render_user(**{self.input_field: stage_input})
        selection = self.selection(config)
        try:
            return await policy.call(selection, prompt, template.system, stage=self.name)
        except ProviderError as e:
            raise self.tag(e) from e

    def tag(self, error: ProviderError) -> StageError:
        """Wrap a provider error with this stage's identity."""
        log.debug("stage_error", stage=self.name, kind=error.kind.value)
        return StageError(self.index, self.name, error)


# Stage registry - populated by stage modules
_STAGE_REGISTRY: dict[str, Stage] = {}


def register_stage(stage: Stage) -> None:
    """Register a stage implementation.

    Args:
        stage: Stage instance to register.
    """
    _STAGE_REGISTRY[stage.name] = stage


def get_stage(name: str) -> Stage | None:
    """Get a registered stage by name.

    Args:
        name: Stage name.

    Returns:
        Stage instance or None if not found.
    """
    return _STAGE_REGISTRY.get(name)


def list_stages() -> list[str]:
    """List registered stage names in execution order."""
    return [stage.name for stage in sorted(_STAGE_REGISTRY.values(), key=lambda s: s.index)]
