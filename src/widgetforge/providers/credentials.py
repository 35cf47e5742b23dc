"""API key resolution for providers.

Resolution order (highest priority first):
1. User-configured key from a credential store
2. Environment default (e.g. GEMINI_API_KEY, or the VITE_-prefixed name)
3. Absent

Keys are resolved on every call; nothing is cached, so edits to the user
store take effect on the next pipeline run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from widgetforge.observability.logging import get_logger
from widgetforge.providers.base import Provider

if TYPE_CHECKING:
    from collections.abc import Mapping

log = get_logger(__name__)

# XDG-compliant default location of the user credential file
DEFAULT_CREDENTIALS_PATH = Path.home() / ".config" / "widgetforge" / "credentials.yaml"

ENV_KEY_NAMES: dict[Provider, tuple[str, ...]] = {
    Provider.GEMINI: ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY"),
    Provider.ANTHROPIC: ("ANTHROPIC_API_KEY", "VITE_ANTHROPIC_API_KEY"),
    Provider.OPENAI: ("OPENAI_API_KEY", "VITE_OPENAI_API_KEY"),
}


class CredentialSource(Enum):
    """Where a resolved key came from."""

    USER_CONFIGURED = "user"
    ENVIRONMENT_DEFAULT = "environment"
    ABSENT = "absent"


@dataclass(frozen=True)
class Credential:
    """Resolved secret material for one provider.

    The key is excluded from repr so credentials never leak into logs
    or tracebacks.
    """

    provider: Provider
    key: str | None = field(repr=False)
    source: CredentialSource

    @property
    def is_present(self) -> bool:
        """Whether a usable key was found."""
        return self.source is not CredentialSource.ABSENT


class CredentialStore(Protocol):
    """User-facing secret storage (e.g. an encrypted local vault)."""

    def get(self, provider: Provider) -> str | None:
        """Return the user-configured key for a provider, if any."""
        ...


class InMemoryCredentialStore:
    """Credential store backed by a dict. Used for tests and embedding."""

    def __init__(self, keys: Mapping[Provider, str] | None = None) -> None:
        self._keys: dict[Provider, str] = dict(keys or {})

    def get(self, provider: Provider) -> str | None:
        return self._keys.get(provider)

    def set(self, provider: Provider, key: str | None) -> None:
        """Set or clear the key for a provider."""
        if key:
            self._keys[provider] = key
        else:
            self._keys.pop(provider, None)


class YAMLCredentialStore:
    """Credential store reading ``{provider: key}`` from a YAML file.

    The file is re-read on every lookup. A missing or unreadable file
    behaves like an empty store.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or DEFAULT_CREDENTIALS_PATH

    def get(self, provider: Provider) -> str | None:
        if not self.path.exists():
            return None

        from ruamel.yaml import YAML
        from ruamel.yaml.error import YAMLError

        yaml = YAML(typ="safe")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.load(f)
        except OSError as e:
            log.warning("credentials_load_failed", path=str(self.path), error=str(e))
            return None
        except YAMLError as e:
            log.warning("credentials_parse_failed", path=str(self.path), error=str(e))
            return None

        if not isinstance(data, dict):
            return None
        value = data.get(provider.value)
        return str(value) if value else None


class CredentialResolver:
    """Resolve the active key for a provider at call time.

    Attributes:
        store: Optional user credential store; shadows the environment.
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            store: User credential store. None means environment only.
            environ: Environment mapping. Defaults to os.environ (read live).
        """
        self.store = store
        self._environ = environ

    def resolve(self, provider: Provider) -> Credential:
        """Resolve the credential for a provider.

        Returns:
            Credential with source ABSENT and key None if nothing is configured.
        """
        if self.store is not None:
            user_key = (self.store.get(provider) or "").strip()
            if user_key:
                return Credential(provider, user_key, CredentialSource.USER_CONFIGURED)

        environ = self._environ if self._environ is not None else os.environ
        for name in ENV_KEY_NAMES.get(provider, ()):
            env_key = (environ.get(name) or "").strip()
            if env_key:
                return Credential(provider, env_key, CredentialSource.ENVIRONMENT_DEFAULT)

        return Credential(provider, None, CredentialSource.ABSENT)

    def describe(self) -> dict[Provider, CredentialSource]:
        """Report the credential source per provider, without keys."""
        return {provider: self.resolve(provider).source for provider in Provider}
