"""Tests for pipeline run state."""

from __future__ import annotations

import pytest

from widgetforge.pipeline import PipelineRun, RunStatus, StageError, StageFailure
from widgetforge.providers import ErrorKind, Provider, TransportFailureError


def test_new_run_is_idle() -> None:
    """A fresh run has no outputs and default provider."""
    run = PipelineRun(input="gauge")

    assert run.status is RunStatus.IDLE
    assert run.selected_provider is Provider.GEMINI
    assert run.completed_stages == 0
    assert run.current_stage is None
    assert len(run.run_id) == 12


def test_outputs_must_be_set_in_order() -> None:
    """Stage N output needs outputs 1..N-1."""
    run = PipelineRun(input="gauge")

    with pytest.raises(ValueError, match="before stage 1"):
        run.set_output(2, "code")

    run.set_output(1, "spec")
    run.set_output(2, "code")
    assert run.output(2) == "code"


def test_outputs_are_never_overwritten() -> None:
    """Setting an output twice is rejected."""
    run = PipelineRun(input="gauge")
    run.set_output(1, "spec")

    with pytest.raises(ValueError, match="already set"):
        run.set_output(1, "other")

    assert run.stage1_output == "spec"


def test_unknown_stage_index() -> None:
    """Only stages 1-3 exist."""
    with pytest.raises(ValueError, match="Unknown stage"):
        PipelineRun(input="gauge").output(4)


def test_status_transitions() -> None:
    """begin_stage sets the running status; fail records the stage."""
    run = PipelineRun(input="gauge")
    run.begin_stage(2)
    assert run.status is RunStatus.RUNNING_STAGE2
    assert run.current_stage == 2
    assert run.status.is_running

    error = StageError(2, "code_generation", TransportFailureError(Provider.GEMINI, "down"))
    run.fail(StageFailure.from_stage_error(error))

    assert run.status is RunStatus.FAILED
    assert run.status.is_terminal
    assert run.failed_stage == 2
    assert run.failure is not None
    assert run.failure.kind is ErrorKind.TRANSPORT_FAILURE
    assert run.current_stage is None


def test_failure_message_includes_upstream_detail() -> None:
    """The upstream body excerpt is appended to the failure message."""
    cause = TransportFailureError(
        Provider.GEMINI, "Gemini API failed: 500", status_code=500, detail="Internal error"
    )

    failure = StageFailure.from_stage_error(StageError(1, "spec_draft", cause))

    assert failure.message == "[gemini] Gemini API failed: 500: Internal error"
    assert failure.category == "TransportFailure"
    assert failure.status_code == 500


def test_used_fallback_provider() -> None:
    """Stage 2 sourced from another provider is visible on the run."""
    run = PipelineRun(input="gauge", selected_provider=Provider.ANTHROPIC)
    run.stage2_provider = Provider.GEMINI

    assert run.used_fallback_provider
