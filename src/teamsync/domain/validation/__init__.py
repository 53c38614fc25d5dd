"""Validation of an expanded record snapshot."""

from __future__ import annotations

from teamsync.domain.validation.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    Severity,
    ValidationReport,
)
from teamsync.domain.validation.validator import CHECKS, check_names, structural_report, validate

__all__ = [
    "CHECKS",
    "Diagnostic",
    "DiagnosticKind",
    "Severity",
    "ValidationReport",
    "check_names",
    "structural_report",
    "validate",
]
