"""Diagnostics: codes, models, suggestions and formatting."""

from __future__ import annotations

from pipewright.diagnostics.codes import (
    DiagnosticCategory,
    DiagnosticCode,
    Severity,
    category_of,
)
from pipewright.diagnostics.formatter import format_diagnostic, format_diagnostics
from pipewright.diagnostics.models import Diagnostic, has_errors, make_diagnostic
from pipewright.diagnostics.suggest import did_you_mean, edit_distance, suggest_name

__all__ = [
    "Diagnostic",
    "DiagnosticCategory",
    "DiagnosticCode",
    "Severity",
    "category_of",
    "did_you_mean",
    "edit_distance",
    "format_diagnostic",
    "format_diagnostics",
    "has_errors",
    "make_diagnostic",
    "suggest_name",
]
