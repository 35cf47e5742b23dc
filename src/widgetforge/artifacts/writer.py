"""Writing run outputs to disk."""

from __future__ import annotations

import re
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING

from ruamel.yaml import YAML

from widgetforge.models.audit import parse_audit_report
from widgetforge.models.pipeline import RunSummary
from widgetforge.observability.logging import get_logger

if TYPE_CHECKING:
    from widgetforge.pipeline.run import PipelineRun

log = get_logger(__name__)

_FENCE = re.compile(r"```[^\n`]*\n(?P<body>.*?)```", re.DOTALL)
_WIDGET_CLASS = re.compile(r"\bclass\s+(?P<name>[A-Z]\w*)\s+extends\s+State(?:less|ful)Widget\b")

DEFAULT_STEM = "widget"


def extract_code_block(text: str) -> str:
    """Return the body of the first fenced code block, else the trimmed text."""
    match = _FENCE.search(text)
    if match:
        return match.group("body").strip("\n")
    return text.strip()


def widget_file_stem(code: str) -> str:
    """File stem for generated code: the widget class in snake_case.

    Falls back to ``widget`` when no widget class is declared.
    """
    match = _WIDGET_CLASS.search(code)
    if not match:
        return DEFAULT_STEM
    name = match.group("name")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class ArtifactWriteError(Exception):
    """Raised when an artifact file can't be written."""

    def __init__(self, artifact: str, path: Path, reason: str) -> None:
        self.artifact = artifact
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {artifact} artifact at {path}: {reason}")


class ArtifactWriter:
    """Write the outputs of a run to an output directory.

    Layout::

        <out_dir>/spec.md        stage 1 output
        <out_dir>/<stem>.dart    code extracted from stage 2 output
        <out_dir>/audit.md       stage 3 output
        <out_dir>/run.yaml       RunSummary
    """

    def __init__(self, out_dir: Path) -> None:
        """Initialize writer with output directory.

        Args:
            out_dir: Directory to write into; created on first write.
        """
        self.out_dir = out_dir
        self._yaml = YAML()
        self._yaml.default_flow_style = False
        self._yaml.indent(mapping=2, sequence=4, offset=2)

    def write_run(self, run: PipelineRun, stem: str | None = None) -> dict[str, Path]:
        """Write every available output of a run plus its summary.

        Args:
            run: Finished (or failed) run.
            stem: File stem for the code file. Derived from the widget class
                name when omitted.

        Returns:
            Mapping of artifact name (spec, code, audit, summary) to path.

        Raises:
            ArtifactWriteError: If a file can't be written.
        """
        written: dict[str, Path] = {}

        if run.stage1_output is not None:
            written["spec"] = self._write_text("spec", "spec.md", run.stage1_output)

        if run.stage2_output is not None:
            code = extract_code_block(run.stage2_output)
            filename = f"{stem or widget_file_stem(code)}.dart"
            written["code"] = self._write_text("code", filename, code + "\n")

        audit_score = None
        if run.stage3_output is not None:
            written["audit"] = self._write_text("audit", "audit.md", run.stage3_output)
            audit_score = parse_audit_report(run.stage3_output).score

        summary = RunSummary.from_run(run, audit_score=audit_score)
        written["summary"] = self._write_summary(summary)

        log.debug("artifacts_written", out_dir=str(self.out_dir), files=sorted(written))
        return written

    def _write_text(self, artifact: str, filename: str, text: str) -> Path:
        path = self.out_dir / filename
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ArtifactWriteError(artifact, path, str(e)) from e
        return path

    def _write_summary(self, summary: RunSummary) -> Path:
        path = self.out_dir / "run.yaml"
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                self._yaml.dump(summary.model_dump(mode="json", exclude_none=True), f)
        except Exception as e:
            raise ArtifactWriteError("summary", path, str(e)) from e
        return path
