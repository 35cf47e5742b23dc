"""Observability module for WidgetForge.

Provides structured logging and provider call tracking.
"""

from widgetforge.observability.llm_logger import LLMLogEntry, LLMLogger
from widgetforge.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "LLMLogEntry",
    "LLMLogger",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
