"""Stage 3: audit generated Dart code.

The report text is captured verbatim; splitting it into sections is left to
``widgetforge.models.audit``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from widgetforge.pipeline.stages.base import TemplateStage

if TYPE_CHECKING:
    from widgetforge.pipeline.config import PipelineConfig
    from widgetforge.providers.model_info import ModelSelection


class AuditStage(TemplateStage):
    """AUDIT stage - review the generated code on the default provider.

    Attributes:
        name: Stage identifier ("audit").
    """

    name = "audit"
    index = 3
    input_field = "code"

    def selection(self, config: PipelineConfig) -> ModelSelection:
        return config.audit


audit_stage = AuditStage()
