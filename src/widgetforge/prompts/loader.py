"""Template loading for stage prompts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

# Templates ship inside the package
PROMPTS_PATH = Path(__file__).parent


@dataclass
class PromptTemplate:
    """A loaded prompt template.

    Attributes:
        name: Template name.
        description: What the template is for.
        system: System instruction text.
        user: User prompt text with ``{placeholders}``.
        provider_hints: Extra system-instruction lines keyed by provider name.
    """

    name: str
    description: str
    system: str
    user: str
    provider_hints: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], name: str) -> PromptTemplate:
        """Create a template from dictionary data.

        Args:
            data: Dictionary containing template fields.
            name: Template name (usually from filename).

        Returns:
            PromptTemplate instance.
        """
        return cls(
            name=data.get("name", name),
            description=data.get("description", ""),
            system=str(data.get("system", "")).strip(),
            user=str(data.get("user", "")).strip(),
            provider_hints={
                str(k): str(v).strip() for k, v in dict(data.get("provider_hints") or {}).items()
            },
        )

    def system_for(self, provider: str | None = None) -> str:
        """System instruction, with the provider's hint appended if it has one."""
        hint = self.provider_hints.get(provider or "", "")
        if not hint:
            return self.system
        return f"{self.system}\n\n{hint}"

    def render_user(self, **values: str) -> str:
        """Fill the user prompt placeholders.

        Raises:
            TemplateParseError: If a placeholder has no value.
        """
        try:
            return self.user.format(**values)
        except (KeyError, IndexError) as e:
            raise TemplateParseError(self.name, f"missing value for placeholder {e}") from e


class TemplateNotFoundError(Exception):
    """Raised when a template file cannot be found."""

    def __init__(self, template_name: str, path: Path) -> None:
        self.template_name = template_name
        self.path = path
        super().__init__(f"Template not found: {template_name} at {path}")


class TemplateParseError(Exception):
    """Raised when a template file cannot be parsed."""

    def __init__(self, template_name: str, reason: str) -> None:
        self.template_name = template_name
        self.reason = reason
        super().__init__(f"Failed to parse template '{template_name}': {reason}")


class PromptLoader:
    """Load prompt templates from disk.

    Templates are YAML files in the templates/ subdirectory.

    Attributes:
        prompts_path: Path to the prompts directory.
    """

    def __init__(self, prompts_path: Path | None = None) -> None:
        """Initialize the loader.

        Args:
            prompts_path: Path to the prompts directory. Defaults to the
                templates bundled with the package.
        """
        self.prompts_path = prompts_path or PROMPTS_PATH
        self.templates_path = self.prompts_path / "templates"
        self._yaml = YAML(typ="safe")
        self._cache: dict[str, PromptTemplate] = {}

    def _get_template_path(self, template_name: str) -> Path:
        return self.templates_path / f"{template_name}.yaml"

    def load(self, template_name: str) -> PromptTemplate:
        """Load a template by name.

        Args:
            template_name: Name of the template (without .yaml extension).

        Returns:
            Loaded PromptTemplate.

        Raises:
            TemplateNotFoundError: If the template file doesn't exist.
            TemplateParseError: If the template cannot be parsed.
        """
        if template_name in self._cache:
            return self._cache[template_name]

        path = self._get_template_path(template_name)

        if not path.exists():
            raise TemplateNotFoundError(template_name, path)

        try:
            with path.open("r", encoding="utf-8") as f:
                data = self._yaml.load(f)

            if data is None:
                raise TemplateParseError(template_name, "Empty file")

            template = PromptTemplate.from_dict(dict(data), template_name)
            if not template.system:
                raise TemplateParseError(template_name, "Missing 'system' field")
            self._cache[template_name] = template
            return template

        except Exception as e:
            if isinstance(e, (TemplateNotFoundError, TemplateParseError)):
                raise
            raise TemplateParseError(template_name, str(e)) from e

    def exists(self, template_name: str) -> bool:
        """Check if a template exists."""
        return self._get_template_path(template_name).exists()

    def list_templates(self) -> list[str]:
        """List available template names (without .yaml extension)."""
        if not self.templates_path.exists():
            return []

        return sorted(p.stem for p in self.templates_path.glob("*.yaml") if p.is_file())

    def clear_cache(self) -> None:
        """Clear the template cache."""
        self._cache.clear()
