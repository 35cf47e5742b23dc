"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from widgetforge.providers import (
    CredentialResolver,
    InMemoryCredentialStore,
    Provider,
)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real API keys and WF_* overrides out of tests."""
    for name in (
        "GEMINI_API_KEY",
        "VITE_GEMINI_API_KEY",
        "ANTHROPIC_API_KEY",
        "VITE_ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "VITE_OPENAI_API_KEY",
        "WF_RELAY_URL",
        "WF_TIMEOUT",
        "WF_CREDENTIALS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def all_keys() -> CredentialResolver:
    """Resolver with a user key for every provider and no environment."""
    store = InMemoryCredentialStore(
        {
            Provider.GEMINI: "gemini-test-key",
            Provider.ANTHROPIC: "anthropic-test-key",
            Provider.OPENAI: "openai-test-key",
        }
    )
    return CredentialResolver(store, environ={})
