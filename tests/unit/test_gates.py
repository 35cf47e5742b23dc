"""Tests for pre-flight gates."""

from __future__ import annotations

import pytest

from widgetforge.pipeline import AutoContinueGate, ImageReferenceGate, mentions_images
from widgetforge.providers import Provider


class RecordingConfirm:
    """Confirmation callback that records prompts and returns a fixed answer."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.messages: list[str] = []

    def __call__(self, message: str, _provider: Provider) -> bool:
        self.messages.append(message)
        return self.answer


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Build a gauge like in my Screenshot", True),
        ("an IMAGE carousel", True),
        ("profile picture avatar", True),
        ("a circular gauge 0-100", False),
    ],
)
def test_mentions_images(text: str, expected: bool) -> None:
    """Keyword matching is case-insensitive."""
    assert mentions_images(text) is expected


@pytest.mark.asyncio
async def test_auto_continue_gate_always_continues() -> None:
    """AutoContinueGate never stops a run."""
    gate = AutoContinueGate()

    assert await gate.before_run("see screenshot", Provider.OPENAI) == "continue"


@pytest.mark.asyncio
async def test_image_gate_skips_default_provider() -> None:
    """The default provider handles images, so it is never gated."""
    confirm = RecordingConfirm(answer=False)
    gate = ImageReferenceGate(confirm)

    assert await gate.before_run("match this screenshot", Provider.GEMINI) == "continue"
    assert confirm.messages == []


@pytest.mark.asyncio
async def test_image_gate_skips_text_only_requests() -> None:
    """Requests without image terms are not gated."""
    confirm = RecordingConfirm(answer=False)
    gate = ImageReferenceGate(confirm)

    assert await gate.before_run("a circular gauge 0-100", Provider.ANTHROPIC) == "continue"
    assert confirm.messages == []


@pytest.mark.asyncio
async def test_image_gate_aborts_when_declined() -> None:
    """Declining the confirmation aborts."""
    confirm = RecordingConfirm(answer=False)
    gate = ImageReferenceGate(confirm)

    assert await gate.before_run("copy this image", Provider.ANTHROPIC) == "abort"
    assert len(confirm.messages) == 1
    assert "Claude" in confirm.messages[0]


@pytest.mark.asyncio
async def test_image_gate_continues_when_confirmed() -> None:
    """Accepting the confirmation continues."""
    gate = ImageReferenceGate(RecordingConfirm(answer=True))

    assert await gate.before_run("copy this image", Provider.OPENAI) == "continue"


@pytest.mark.asyncio
async def test_image_gate_accepts_async_confirm() -> None:
    """The confirmation callback may be a coroutine function."""

    async def confirm(_message: str, _provider: Provider) -> bool:
        return False

    gate = ImageReferenceGate(confirm)

    assert await gate.before_run("a picture frame", Provider.OPENAI) == "abort"


@pytest.mark.asyncio
async def test_image_gate_custom_keywords() -> None:
    """Keywords can be replaced."""
    gate = ImageReferenceGate(RecordingConfirm(answer=False), keywords=["Photo"])

    assert await gate.before_run("photo grid", Provider.OPENAI) == "abort"
    assert await gate.before_run("image grid", Provider.OPENAI) == "continue"
