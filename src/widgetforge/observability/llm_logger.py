"""JSONL logger for provider calls.

Writes one structured entry per provider call attempt to llm_calls.jsonl.
Prompts and responses are preserved in full; credentials never reach this
module, since adapters resolve keys after the entry data is assembled.

Only active when --log flag is passed to CLI.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class LLMLogEntry:
    """Entry for provider call logging."""

    timestamp: str
    stage: str
    provider: str
    model: str

    # Request
    system_instruction: str
    prompt: str

    # Response
    content: str
    duration_seconds: float

    # "primary", "model_fallback" or "provider_fallback"
    attempt: str = "primary"

    # Optional fields
    error: str | None = None
    error_kind: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class LLMLogger:
    """Logger for provider calls in JSONL format.

    Attributes:
        log_path: Path to the JSONL log file.
        enabled: Whether logging is enabled.
    """

    def __init__(self, log_dir: Path, enabled: bool = True) -> None:
        """Initialize LLM logger.

        Args:
            log_dir: Directory that holds llm_calls.jsonl.
            enabled: Whether to actually write logs.
        """
        self.enabled = enabled
        self.log_path = log_dir / "llm_calls.jsonl"
        if enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: LLMLogEntry) -> None:
        """Append an entry to the JSONL log.

        Args:
            entry: Log entry to write.
        """
        if not self.enabled:
            return

        with self.log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(entry)) + "\n")

    @staticmethod
    def create_entry(
        stage: str,
        provider: str,
        model: str,
        system_instruction: str,
        prompt: str,
        content: str,
        duration_seconds: float,
        attempt: str = "primary",
        error: str | None = None,
        error_kind: str | None = None,
        **metadata: Any,
    ) -> LLMLogEntry:
        """Create a log entry with current timestamp.

        Args:
            stage: Pipeline stage name.
            provider: Provider name.
            model: Model identifier used.
            system_instruction: System instruction sent.
            prompt: User prompt sent.
            content: Response text ("" on failure).
            duration_seconds: Time taken for call.
            attempt: Which hop of the fallback policy made the call.
            error: Error message if call failed.
            error_kind: Error category if call failed.
            **metadata: Additional metadata.

        Returns:
            LLMLogEntry ready for logging.
        """
        return LLMLogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            stage=stage,
            provider=provider,
            model=model,
            system_instruction=system_instruction,
            prompt=prompt,
            content=content,
            duration_seconds=duration_seconds,
            attempt=attempt,
            error=error,
            error_kind=error_kind,
            metadata=dict(metadata),
        )

    def read_entries(self) -> list[LLMLogEntry]:
        """Read all entries from the log file.

        Returns:
            List of log entries.
        """
        if not self.log_path.exists():
            return []

        entries = []
        with self.log_path.open(encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    data = json.loads(line)
                    entries.append(LLMLogEntry(**data))
        return entries
