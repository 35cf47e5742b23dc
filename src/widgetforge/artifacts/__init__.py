"""Writing pipeline outputs as files."""

from widgetforge.artifacts.writer import (
    ArtifactWriteError,
    ArtifactWriter,
    extract_code_block,
    widget_file_stem,
)

__all__ = [
    "ArtifactWriteError",
    "ArtifactWriter",
    "extract_code_block",
    "widget_file_stem",
]
