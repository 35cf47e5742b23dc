"""Tests for credential resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from widgetforge.providers import (
    Credential,
    CredentialResolver,
    CredentialSource,
    InMemoryCredentialStore,
    Provider,
    YAMLCredentialStore,
)

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


def test_user_key_shadows_environment() -> None:
    """A user-configured key wins over the environment default."""
    store = InMemoryCredentialStore({Provider.GEMINI: "user-key"})
    resolver = CredentialResolver(store, environ={"GEMINI_API_KEY": "env-key"})

    credential = resolver.resolve(Provider.GEMINI)

    assert credential.key == "user-key"
    assert credential.source is CredentialSource.USER_CONFIGURED


def test_environment_used_when_no_user_key() -> None:
    """The environment default is used when the store has nothing."""
    resolver = CredentialResolver(
        InMemoryCredentialStore(), environ={"ANTHROPIC_API_KEY": "env-key"}
    )

    credential = resolver.resolve(Provider.ANTHROPIC)

    assert credential.key == "env-key"
    assert credential.source is CredentialSource.ENVIRONMENT_DEFAULT


def test_vite_prefixed_environment_name_is_accepted() -> None:
    """The VITE_-prefixed variable names are recognized."""
    resolver = CredentialResolver(environ={"VITE_OPENAI_API_KEY": "vite-key"})

    assert resolver.resolve(Provider.OPENAI).key == "vite-key"


def test_neither_source_is_absent() -> None:
    """No user key and no environment key resolves to ABSENT."""
    resolver = CredentialResolver(InMemoryCredentialStore(), environ={})

    credential = resolver.resolve(Provider.GEMINI)

    assert credential.source is CredentialSource.ABSENT
    assert credential.key is None
    assert not credential.is_present


def test_blank_values_count_as_absent() -> None:
    """Whitespace-only keys are ignored in both sources."""
    store = InMemoryCredentialStore({Provider.GEMINI: "   "})
    resolver = CredentialResolver(store, environ={"GEMINI_API_KEY": ""})

    assert resolver.resolve(Provider.GEMINI).source is CredentialSource.ABSENT


def test_environment_read_live(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without an explicit mapping, os.environ is read at resolve time."""
    resolver = CredentialResolver()
    assert not resolver.resolve(Provider.GEMINI).is_present

    monkeypatch.setenv("GEMINI_API_KEY", "late-key")

    assert resolver.resolve(Provider.GEMINI).key == "late-key"


def test_credential_repr_hides_key() -> None:
    """The key never appears in repr."""
    credential = Credential(Provider.OPENAI, "sk-secret", CredentialSource.USER_CONFIGURED)

    assert "sk-secret" not in repr(credential)


def test_describe_reports_sources_without_keys() -> None:
    """describe() maps each provider to its source."""
    store = InMemoryCredentialStore({Provider.ANTHROPIC: "user-key"})
    resolver = CredentialResolver(store, environ={"GEMINI_API_KEY": "env-key"})

    assert resolver.describe() == {
        Provider.GEMINI: CredentialSource.ENVIRONMENT_DEFAULT,
        Provider.ANTHROPIC: CredentialSource.USER_CONFIGURED,
        Provider.OPENAI: CredentialSource.ABSENT,
    }


# --- YAML store ---


def test_yaml_store_reads_keys(tmp_path: Path) -> None:
    """Keys are read by provider name."""
    path = tmp_path / "credentials.yaml"
    path.write_text("gemini: g-key\nopenai: o-key\n")
    store = YAMLCredentialStore(path)

    assert store.get(Provider.GEMINI) == "g-key"
    assert store.get(Provider.OPENAI) == "o-key"
    assert store.get(Provider.ANTHROPIC) is None


def test_yaml_store_rereads_file(tmp_path: Path) -> None:
    """Edits to the file are visible on the next lookup."""
    path = tmp_path / "credentials.yaml"
    path.write_text("gemini: old\n")
    store = YAMLCredentialStore(path)
    assert store.get(Provider.GEMINI) == "old"

    path.write_text("gemini: new\n")

    assert store.get(Provider.GEMINI) == "new"


def test_yaml_store_missing_file_is_empty(tmp_path: Path) -> None:
    """A missing file behaves like an empty store."""
    store = YAMLCredentialStore(tmp_path / "nope.yaml")

    assert store.get(Provider.GEMINI) is None


def test_yaml_store_invalid_file_is_empty(tmp_path: Path) -> None:
    """An unparseable file behaves like an empty store."""
    path = tmp_path / "credentials.yaml"
    path.write_text("gemini: [unclosed\n")
    store = YAMLCredentialStore(path)

    assert store.get(Provider.GEMINI) is None
