"""Cycle termination safety checks."""

from __future__ import annotations

from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.schemas.workflow import WorkflowNode
from pipewright.typesystem.registry import TypeRegistry


def validate_cycle_termination(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Flag cycles that may never stop.

    A cycle with only a stop predicate can loop forever if the predicate
    never holds. A cycle with no termination at all is reported by the
    required-field validator instead.
    """
    diagnostics: list[Diagnostic] = []

    for cycle in workflow.cycles:
        if cycle.max_iters is not None and cycle.max_iters <= 0:
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.INVALID_MAX_ITERS,
                    f"Cycle '{cycle.name}' has max_iters {cycle.max_iters}; it must be positive",
                    cycle.span,
                )
            )
        if cycle.until is not None and cycle.max_iters is None:
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.UNBOUNDED_CYCLE,
                    f"Cycle '{cycle.name}' has a stop predicate but no iteration ceiling",
                    cycle.span,
                    hint="Add 'max_iters' so the cycle stops even if 'until' never holds",
                )
            )

    return diagnostics
