"""Pydantic model for the stage 3 audit report.

The audit stage returns free Markdown. Parsing it is best effort: a report
that does not follow the expected layout yields an AuditReport with empty
sections, never an error.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*(?P<title>.+?)\s*#*\s*$")
_BULLET = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(?P<item>.+?)\s*$")
_SCORE = re.compile(r"(?P<score>\d{1,3})\s*/\s*100")
_SCORE_LABEL = re.compile(r"score\s*[:=]\s*\**\s*(?P<score>\d{1,3})\b", re.IGNORECASE)

# Section title keyword -> AuditReport field
_SECTIONS: dict[str, str] = {
    "critical": "critical_issues",
    "warning": "warnings",
    "recommendation": "recommendations",
    "score": "score_summary",
}


class AuditReport(BaseModel):
    """Structured view of an audit report."""

    score: int | None = Field(default=None, ge=0, le=100, description="Overall score 0-100")
    score_summary: list[str] = Field(
        default_factory=list, description="Lines of the Overall Score section"
    )
    critical_issues: list[str] = Field(default_factory=list, description="Compilation failures")
    warnings: list[str] = Field(default_factory=list, description="Potential runtime problems")
    recommendations: list[str] = Field(default_factory=list, description="Suggested fixes")
    raw: str = Field(default="", description="Report text as returned by the model")

    @property
    def passed(self) -> bool:
        """True when the report lists no critical issues."""
        return not self.critical_issues

    @property
    def issue_count(self) -> int:
        return len(self.critical_issues) + len(self.warnings)


def _section_for(title: str) -> str | None:
    lowered = title.lower()
    for keyword, field_name in _SECTIONS.items():
        if keyword in lowered:
            return field_name
    return None


def _find_score(text: str) -> int | None:
    for pattern in (_SCORE, _SCORE_LABEL):
        match = pattern.search(text)
        if match:
            value = int(match.group("score"))
            if 0 <= value <= 100:
                return value
    return None


def parse_audit_report(text: str) -> AuditReport:
    """Split audit Markdown into score and section items.

    Args:
        text: Raw stage 3 output.

    Returns:
        AuditReport; sections that cannot be found are left empty.
    """
    sections: dict[str, list[str]] = {name: [] for name in _SECTIONS.values()}
    current: str | None = None

    for line in text.splitlines():
        heading = _HEADING.match(line)
        if heading:
            current = _section_for(heading.group("title"))
            continue
        if current is None or not line.strip():
            continue
        if current == "score_summary":
            sections[current].append(line.strip())
            continue
        bullet = _BULLET.match(line)
        if bullet:
            sections[current].append(bullet.group("item"))

    score_text = "\n".join(sections["score_summary"]) or text
    return AuditReport(
        score=_find_score(score_text),
        raw=text,
        **sections,
    )
