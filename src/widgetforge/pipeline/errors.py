"""Pipeline-level error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from widgetforge.providers.base import ErrorKind, ProviderError


class PipelineError(Exception):
    """Base class for orchestrator and stage errors."""


class EmptyInputError(PipelineError):
    """Raised when a run is requested with blank input."""

    def __init__(self) -> None:
        super().__init__("Please describe your FlutterFlow widget first (input is empty)")


class NoPreviousRunError(PipelineError):
    """Raised when retry is requested before any run has been started."""

    def __init__(self) -> None:
        super().__init__("Nothing to retry: no previous pipeline run")


class StageError(PipelineError):
    """A provider error tagged with the stage it came from.

    Stages raise this and nothing else; the orchestrator turns it into the
    run's terminal failure.

    Attributes:
        stage_index: 1-based stage position.
        stage_name: Stage identifier.
        cause: The underlying provider error.
    """

    def __init__(self, stage_index: int, stage_name: str, cause: ProviderError) -> None:
        self.stage_index = stage_index
        self.stage_name = stage_name
        self.cause = cause
        super().__init__(f"Stage {stage_index} ({stage_name}) failed: {cause}")

    @property
    def kind(self) -> ErrorKind:
        """Error category of the underlying provider error."""
        return self.cause.kind
