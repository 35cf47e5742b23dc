"""Pipeline stage implementations."""

from __future__ import annotations

from widgetforge.pipeline.stages.audit import AuditStage, audit_stage
from widgetforge.pipeline.stages.base import (
    Stage,
    TemplateStage,
    get_stage,
    list_stages,
    register_stage,
)
from widgetforge.pipeline.stages.code_generation import (
    CodeGenerationStage,
    code_generation_stage,
)
from widgetforge.pipeline.stages.spec_draft import SpecDraftStage, spec_draft_stage

# Register built-in stages
register_stage(spec_draft_stage)
register_stage(code_generation_stage)
register_stage(audit_stage)

__all__ = [
    "AuditStage",
    "CodeGenerationStage",
    "SpecDraftStage",
    "Stage",
    "TemplateStage",
    "audit_stage",
    "code_generation_stage",
    "get_stage",
    "list_stages",
    "register_stage",
    "spec_draft_stage",
]
