"""Tests for artifact writing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from ruamel.yaml import YAML

from widgetforge.artifacts import (
    ArtifactWriteError,
    ArtifactWriter,
    extract_code_block,
    widget_file_stem,
)
from widgetforge.pipeline import PipelineRun

if TYPE_CHECKING:
    from pathlib import Path

CODE = "class CircularGauge extends StatelessWidget {\n  const CircularGauge();\n}"


def _completed_run() -> PipelineRun:
    run = PipelineRun(input="a circular gauge 0-100")
    run.start()
    run.set_output(1, "# Spec\nA gauge.")
    run.set_output(2, f"Here you go:\n```dart\n{CODE}\n```\nEnjoy.")
    run.set_output(3, "## Overall Score\nScore: 88/100")
    run.complete()
    return run


def test_extract_code_block_fenced() -> None:
    """The first fenced block body is returned."""
    assert extract_code_block(f"text\n```dart\n{CODE}\n```\n```\nother\n```") == CODE


def test_extract_code_block_unfenced() -> None:
    """Text without a fence is returned trimmed."""
    assert extract_code_block(f"\n\n{CODE}\n  ") == CODE


def test_widget_file_stem() -> None:
    """The widget class name becomes a snake_case stem."""
    assert widget_file_stem(CODE) == "circular_gauge"
    assert widget_file_stem("void helper() {}") == "widget"


def test_write_run_writes_all_outputs(tmp_path: Path) -> None:
    """A completed run produces spec, code, audit and summary files."""
    written = ArtifactWriter(tmp_path / "out").write_run(_completed_run())

    assert set(written) == {"spec", "code", "audit", "summary"}
    assert written["code"].name == "circular_gauge.dart"
    assert written["code"].read_text() == CODE + "\n"
    assert written["spec"].read_text() == "# Spec\nA gauge."

    summary = YAML(typ="safe").load(written["summary"])
    assert summary["status"] == "completed"
    assert summary["audit_score"] == 88
    assert summary["completed_stages"] == 3


def test_write_run_custom_stem(tmp_path: Path) -> None:
    """An explicit stem names the code file."""
    written = ArtifactWriter(tmp_path).write_run(_completed_run(), stem="gauge")

    assert written["code"].name == "gauge.dart"


def test_write_partial_run(tmp_path: Path) -> None:
    """Only available outputs are written."""
    run = PipelineRun(input="gauge")
    run.set_output(1, "spec")

    written = ArtifactWriter(tmp_path).write_run(run)

    assert set(written) == {"spec", "summary"}
    assert not (tmp_path / "audit.md").exists()


def test_summary_contains_no_credentials(tmp_path: Path) -> None:
    """run.yaml holds metadata only."""
    written = ArtifactWriter(tmp_path).write_run(_completed_run())

    text = written["summary"].read_text()
    assert "key" not in text.lower()


def test_write_error_is_wrapped(tmp_path: Path) -> None:
    """Unwritable targets raise ArtifactWriteError."""
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")

    with pytest.raises(ArtifactWriteError) as exc_info:
        ArtifactWriter(blocker / "out").write_run(_completed_run())

    assert exc_info.value.artifact == "spec"
