"""Pipeline orchestration: config, run state, gates and stages."""

from widgetforge.pipeline.config import (
    CONFIG_FILENAME,
    ConfigError,
    PipelineConfig,
    load_config,
)
from widgetforge.pipeline.errors import (
    EmptyInputError,
    NoPreviousRunError,
    PipelineError,
    StageError,
)
from widgetforge.pipeline.gates import (
    IMAGE_KEYWORDS,
    AutoContinueGate,
    ImageReferenceGate,
    PreflightGate,
    mentions_images,
)
from widgetforge.pipeline.orchestrator import PipelineOrchestrator, run_pipeline
from widgetforge.pipeline.run import STAGE_NAMES, PipelineRun, RunStatus, StageFailure

__all__ = [
    "CONFIG_FILENAME",
    "IMAGE_KEYWORDS",
    "STAGE_NAMES",
    "AutoContinueGate",
    "ConfigError",
    "EmptyInputError",
    "ImageReferenceGate",
    "NoPreviousRunError",
    "PipelineConfig",
    "PipelineError",
    "PipelineOrchestrator",
    "PipelineRun",
    "PreflightGate",
    "RunStatus",
    "StageError",
    "StageFailure",
    "load_config",
    "mentions_images",
    "run_pipeline",
]
