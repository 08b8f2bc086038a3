"""Plain-text rendering of diagnostics."""

from __future__ import annotations

from collections.abc import Iterable

from pipewright.diagnostics.codes import Severity
from pipewright.diagnostics.models import Diagnostic


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render one diagnostic as ``file:line:col: severity[code]: message``.

    A hint, when present, follows on its own indented line.
    """
    span = diagnostic.span
    location = f"{span.file or '<unknown>'}:{span.start_line}:{span.start_col}"
    text = (
        f"{location}: {diagnostic.severity.value}"
        f"[{diagnostic.code.value}]: {diagnostic.message}"
    )
    if diagnostic.hint:
        text += f"\n  hint: {diagnostic.hint}"
    return text


def format_diagnostics(diagnostics: Iterable[Diagnostic]) -> str:
    """Render diagnostics followed by a summary line."""
    diagnostics = list(diagnostics)
    lines = [format_diagnostic(d) for d in diagnostics]

    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    warnings = sum(1 for d in diagnostics if d.severity == Severity.WARNING)
    infos = len(diagnostics) - errors - warnings
    lines.append(f"{errors} error(s), {warnings} warning(s), {infos} info")
    return "\n".join(lines)
