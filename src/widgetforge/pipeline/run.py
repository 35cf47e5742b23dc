"""Pipeline run state.

A PipelineRun is a plain value object owned by the orchestrator for the
duration of a run. Stage outputs are strictly ordered: output N can only be
set once outputs 1..N-1 exist, and never overwritten.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from widgetforge.providers.base import DEFAULT_PROVIDER, Provider

if TYPE_CHECKING:
    from widgetforge.pipeline.errors import StageError
    from widgetforge.providers.base import ErrorKind

STAGE_NAMES: dict[int, str] = {
    1: "spec_draft",
    2: "code_generation",
    3: "audit",
}


class RunStatus(Enum):
    """Orchestrator state for a run."""

    IDLE = "idle"
    RUNNING_STAGE1 = "running_stage1"
    RUNNING_STAGE2 = "running_stage2"
    RUNNING_STAGE3 = "running_stage3"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_running(self) -> bool:
        return self in _RUNNING

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED)

    @classmethod
    def running(cls, stage: int) -> RunStatus:
        """Status for a stage in progress."""
        return _RUNNING[stage - 1]


_RUNNING = (RunStatus.RUNNING_STAGE1, RunStatus.RUNNING_STAGE2, RunStatus.RUNNING_STAGE3)


@dataclass
class StageFailure:
    """Why and where a run failed.

    Attributes:
        stage: 1-based index of the failing stage.
        stage_name: Stage identifier.
        kind: Error category, or None for unexpected errors.
        message: Human-readable message including the upstream detail.
        provider: Provider that produced the error, if any.
        status_code: Upstream HTTP status, if any.
    """

    stage: int
    stage_name: str
    kind: ErrorKind | None
    message: str
    provider: Provider | None = None
    status_code: int | None = None

    @property
    def category(self) -> str:
        """Error category name for display."""
        return self.kind.value if self.kind is not None else "UnexpectedError"

    @classmethod
    def from_stage_error(cls, error: StageError) -> StageFailure:
        cause = error.cause
        message = str(cause)
        if cause.detail:
            message = f"{message}: {cause.detail}"
        return cls(
            stage=error.stage_index,
            stage_name=error.stage_name,
            kind=cause.kind,
            message=message,
            provider=cause.provider,
            status_code=cause.status_code,
        )


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PipelineRun:
    """One end-to-end execution of the three stages."""

    input: str
    selected_provider: Provider = DEFAULT_PROVIDER
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: RunStatus = RunStatus.IDLE
    stage1_output: str | None = None
    stage2_output: str | None = None
    stage3_output: str | None = None
    failed_stage: int | None = None
    failure: StageFailure | None = None
    # Where the stage 2 text actually came from (differs after a provider fallback)
    stage2_provider: Provider | None = None
    stage2_model: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def output(self, stage: int) -> str | None:
        """Output of a stage, or None if it has not completed."""
        _check_stage(stage)
        value: str | None = getattr(self, f"stage{stage}_output")
        return value

    def set_output(self, stage: int, text: str) -> None:
        """Record a stage's output.

        Raises:
            ValueError: If an earlier output is missing or this one is already set.
        """
        _check_stage(stage)
        for earlier in range(1, stage):
            if self.output(earlier) is None:
                raise ValueError(f"Cannot set stage {stage} output before stage {earlier}")
        if self.output(stage) is not None:
            raise ValueError(f"Stage {stage} output is already set")
        setattr(self, f"stage{stage}_output", text)

    def start(self) -> None:
        self.started_at = _now()

    def begin_stage(self, stage: int) -> None:
        _check_stage(stage)
        self.status = RunStatus.running(stage)

    def complete(self) -> None:
        self.status = RunStatus.COMPLETED
        self.finished_at = _now()

    def fail(self, failure: StageFailure) -> None:
        self.status = RunStatus.FAILED
        self.failed_stage = failure.stage
        self.failure = failure
        self.finished_at = _now()

    def cancel(self) -> None:
        self.status = RunStatus.CANCELLED
        self.finished_at = _now()

    @property
    def current_stage(self) -> int | None:
        """Stage being executed, or None when not running."""
        if not self.status.is_running:
            return None
        return _RUNNING.index(self.status) + 1

    @property
    def completed_stages(self) -> int:
        """Number of stages with an output."""
        return sum(1 for stage in STAGE_NAMES if self.output(stage) is not None)

    @property
    def used_fallback_provider(self) -> bool:
        """Whether stage 2 output came from a provider other than the one selected."""
        return self.stage2_provider is not None and self.stage2_provider is not self.selected_provider


def _check_stage(stage: int) -> None:
    if stage not in STAGE_NAMES:
        raise ValueError(f"Unknown stage index {stage}")
