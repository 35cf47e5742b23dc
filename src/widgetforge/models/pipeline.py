"""Serializable summary of a pipeline run."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - pydantic needs it at runtime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from widgetforge.pipeline.run import PipelineRun


class FailureSummary(BaseModel):
    """Where and why a run failed."""

    stage: int = Field(ge=1, le=3)
    stage_name: str = Field(min_length=1)
    category: str
    message: str
    provider: str | None = None
    status_code: int | None = None


class RunSummary(BaseModel):
    """Metadata written next to the artifacts of a run.

    Carries no credentials and no stage text; the outputs are written to
    their own files.
    """

    run_id: str = Field(min_length=1)
    status: str
    input: str
    selected_provider: str
    stage2_provider: str | None = None
    stage2_model: str | None = None
    completed_stages: int = Field(default=0, ge=0, le=3)
    failure: FailureSummary | None = None
    audit_score: int | None = Field(default=None, ge=0, le=100)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def from_run(cls, run: PipelineRun, audit_score: int | None = None) -> RunSummary:
        failure = None
        if run.failure is not None:
            failure = FailureSummary(
                stage=run.failure.stage,
                stage_name=run.failure.stage_name,
                category=run.failure.category,
                message=run.failure.message,
                provider=run.failure.provider.value if run.failure.provider else None,
                status_code=run.failure.status_code,
            )
        return cls(
            run_id=run.run_id,
            status=run.status.value,
            input=run.input,
            selected_provider=run.selected_provider.value,
            stage2_provider=run.stage2_provider.value if run.stage2_provider else None,
            stage2_model=run.stage2_model,
            completed_stages=run.completed_stages,
            failure=failure,
            audit_score=audit_score,
            started_at=run.started_at,
            finished_at=run.finished_at,
        )
