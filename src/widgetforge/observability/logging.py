"""Structured logging for WidgetForge.

Console output is driven by ``-v`` (rich handler on stderr); ``--log`` adds a
JSONL event stream at ``{log_dir}/debug.jsonl``.

Provider keys travel in request headers and, for Gemini, in the URL query
string. Two measures keep them out of every log sink:

- Third-party HTTP loggers that print request URLs are held at WARNING.
- A structlog processor masks key-shaped values in event fields before any
  handler sees them.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

DEBUG_LOG_FILENAME = "debug.jsonl"

# Loggers that echo request URLs (with ?key=...) at INFO/DEBUG
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "asyncio")

# Event fields whose values are always masked
SECRET_FIELDS = frozenset({"api_key", "key", "x-api-key", "authorization"})

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s\"']+")
_BEARER = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)
MASK = "***"

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None


def _mask(value: str) -> str:
    value = _KEY_PARAM.sub(rf"\1{MASK}", value)
    return _BEARER.sub(rf"\1{MASK}", value)


def redact_secrets(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Mask API keys in event fields.

    Named secret fields are replaced outright; string values have ``key=``
    query parameters and bearer tokens masked.
    """
    for name, value in event_dict.items():
        if name.lower() in SECRET_FIELDS and value:
            event_dict[name] = MASK
        elif isinstance(value, str):
            event_dict[name] = _mask(value)
    return event_dict


def _jsonl_entry(record: logging.LogRecord) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
    }
    # wrap_for_formatter hands the structlog event dict over as record.msg
    if isinstance(record.msg, dict):
        fields = {k: v for k, v in record.msg.items() if k not in ("level", "timestamp")}
        entry["message"] = fields.pop("event", "")
        entry.update(fields)
    else:
        entry["message"] = _mask(record.getMessage())
    return entry


class JSONLFileHandler(logging.FileHandler):
    """File handler writing one JSON object per record."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(_jsonl_entry(record), default=str) + "\n"
            if self.stream:
                self.stream.write(line)
                self.stream.flush()
        except Exception:
            self.handleError(record)


def _console_handler(verbosity: int) -> RichHandler:
    levels = {0: logging.WARNING, 1: logging.INFO}
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        # Upstream bodies contain brackets that rich would read as markup
        markup=False,
        level=levels.get(verbosity, logging.DEBUG),
    )


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure console and optional file logging.

    Calling again replaces the previous setup, including any open log file.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG.
        log_to_file: Also write every event to ``log_dir/debug.jsonl``.
        log_dir: Directory for the JSONL log. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    global _configured, _file_handler, _logs_dir

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        _file_handler = JSONLFileHandler(str(log_dir / DEBUG_LOG_FILENAME), mode="a")
        _file_handler.setLevel(logging.DEBUG)
        handlers.append(_file_handler)
        _logs_dir = log_dir

    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def get_logs_dir() -> Path | None:
    """Directory receiving log files, or None when file logging is off."""
    return _logs_dir


def close_file_logging() -> None:
    """Close the JSONL handler, if any, and forget the logs directory."""
    global _file_handler, _logs_dir
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
    _logs_dir = None
