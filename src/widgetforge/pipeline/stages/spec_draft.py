"""Stage 1: draft a structured widget specification from free text.

The output is passed on verbatim as the code generation prompt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from widgetforge.pipeline.stages.base import TemplateStage

if TYPE_CHECKING:
    from widgetforge.pipeline.config import PipelineConfig
    from widgetforge.providers.model_info import ModelSelection


class SpecDraftStage(TemplateStage):
    """SPEC_DRAFT stage - turn a widget request into a master prompt.

    Always runs on the default provider.

    Attributes:
        name: Stage identifier ("spec_draft").
    """

    name = "spec_draft"
    index = 1
    input_field = "user_input"

    def selection(self, config: PipelineConfig) -> ModelSelection:
        return config.spec_draft


spec_draft_stage = SpecDraftStage()
