"""Prompt template loading."""

from widgetforge.prompts.loader import (
    PROMPTS_PATH,
    PromptLoader,
    PromptTemplate,
    TemplateNotFoundError,
    TemplateParseError,
)

__all__ = [
    "PROMPTS_PATH",
    "PromptLoader",
    "PromptTemplate",
    "TemplateNotFoundError",
    "TemplateParseError",
]
