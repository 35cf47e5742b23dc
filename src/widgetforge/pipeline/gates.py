"""Pre-flight gate hooks run before a pipeline starts."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Literal, Protocol

from widgetforge.observability.logging import get_logger
from widgetforge.providers.base import DEFAULT_PROVIDER, Provider

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

log = get_logger(__name__)

GateDecision = Literal["continue", "abort"]

IMAGE_KEYWORDS: tuple[str, ...] = ("screenshot", "image", "picture")


class PreflightGate(Protocol):
    """Protocol for gates that can stop a run before any network call."""

    async def before_run(self, user_input: str, provider: Provider) -> GateDecision:
        """Called once per run, before stage 1.

        Args:
            user_input: The free-text widget request.
            provider: Provider selected for code generation.

        Returns:
            "continue" to start the run or "abort" to drop it.
        """
        ...


class AutoContinueGate:
    """Gate that lets every run through."""

    async def before_run(self, _user_input: str, _provider: Provider) -> GateDecision:
        """Always continue.

        Args:
            _user_input: The widget request (unused).
            _provider: Selected provider (unused).

        Returns:
            Always returns "continue".
        """
        return "continue"


def mentions_images(text: str, keywords: Iterable[str] = IMAGE_KEYWORDS) -> bool:
    """Whether the text contains any image-related keyword (case-insensitive)."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


class ImageReferenceGate:
    """Ask for confirmation when a non-default provider gets an image-flavoured request.

    Non-default providers reject image-bearing prompts. Keyword matching is
    only a hint; the provider's own UnsupportedModality rejection remains the
    authoritative signal.

    Attributes:
        keywords: Lower-case terms that flag an image reference.
        default_provider: Provider that is never gated.
    """

    def __init__(
        self,
        confirm: Callable[[str, Provider], bool | Awaitable[bool]],
        keywords: Iterable[str] = IMAGE_KEYWORDS,
        default_provider: Provider = DEFAULT_PROVIDER,
    ) -> None:
        """Initialize the gate.

        Args:
            confirm: Called with a warning message and the provider; returns
                True to continue. May be sync or async.
            keywords: Terms that flag an image reference.
            default_provider: Provider that bypasses the check.
        """
        self._confirm = confirm
        self.keywords = tuple(k.lower() for k in keywords)
        self.default_provider = default_provider

    async def before_run(self, user_input: str, provider: Provider) -> GateDecision:
        if provider is self.default_provider or not mentions_images(user_input, self.keywords):
            return "continue"

        message = (
            "Your request mentions images.\n"
            f"{provider.display_name} doesn't support image input.\n"
            f"Use {self.default_provider.display_name} for image-based requests, "
            "or remove image references and continue."
        )
        answer = self._confirm(message, provider)
        if inspect.isawaitable(answer):
            answer = await answer

        decision: GateDecision = "continue" if answer else "abort"
        log.info("image_gate_decision", provider=provider.value, decision=decision)
        return decision
