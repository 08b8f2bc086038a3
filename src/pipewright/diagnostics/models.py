"""Diagnostic model.

Problems found in user workflows are reported as immutable Diagnostic
values, never raised.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pipewright.diagnostics.codes import DiagnosticCategory, DiagnosticCode, Severity
from pipewright.schemas.span import Span


class Diagnostic(BaseModel):
    """A single compiler finding.

    Attributes:
        code: Category-ranged code (e.g. PW2002).
        severity: error, warning or info.
        message: Human-readable description.
        span: Location of the offending construct.
        hint: Optional suggestion (e.g. "Did you mean 'Result'?").

    Example:
        >>> diag = Diagnostic(
        ...     code=DiagnosticCode.MISSING_TARGET,
        ...     severity=Severity.ERROR,
        ...     message="Job 'build' has no execution target",
        ...     span=Span(file="ci.pipe", start_line=4),
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: DiagnosticCode = Field(..., description="Diagnostic code")
    severity: Severity = Field(..., description="Diagnostic severity")
    message: str = Field(..., min_length=1, description="Diagnostic message")
    span: Span = Field(default_factory=Span, description="Source location")
    hint: str | None = Field(default=None, description="Optional hint")

    @property
    def category(self) -> DiagnosticCategory:
        """Category owning this diagnostic's code."""
        return self.code.category

    @property
    def is_error(self) -> bool:
        """Check if the diagnostic blocks a successful compile."""
        return self.severity == Severity.ERROR

    def to_wire(self) -> dict[str, Any]:
        """Return the wire shape consumed by editors and CI tooling."""
        wire: dict[str, Any] = {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
            "span": self.span.to_wire(),
        }
        if self.hint is not None:
            wire["hint"] = self.hint
        return wire


def make_diagnostic(
    code: DiagnosticCode,
    message: str,
    span: Span,
    *,
    hint: str | None = None,
    severity: Severity | None = None,
) -> Diagnostic:
    """Build a diagnostic using the code's default severity.

    Args:
        code: Diagnostic code.
        message: Human-readable message.
        span: Location of the offending construct.
        hint: Optional hint.
        severity: Override of the code's default severity.

    Returns:
        New Diagnostic.
    """
    return Diagnostic(
        code=code,
        severity=severity or code.default_severity,
        message=message,
        span=span,
        hint=hint,
    )


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    """Check if any diagnostic is error severity."""
    return any(d.is_error for d in diagnostics)
