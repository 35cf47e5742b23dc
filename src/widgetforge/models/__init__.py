"""Pydantic models for stage outputs and run summaries."""

from widgetforge.models.audit import AuditReport, parse_audit_report
from widgetforge.models.pipeline import FailureSummary, RunSummary

__all__ = [
    "AuditReport",
    "FailureSummary",
    "RunSummary",
    "parse_audit_report",
]
