"""Structural checks the AST models cannot express."""

from __future__ import annotations

from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.schemas.workflow import WorkflowNode
from pipewright.typesystem.registry import TypeRegistry


def validate_structure(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Report job names used more than once.

    Names count as used by top-level jobs, cycle bodies and the jobs each
    cycle expands into (``<cycle>_hydrate``, ``<cycle>_body_<job>``,
    ``<cycle>_decide`` and ``<cycle>_dispatch``).
    """
    diagnostics: list[Diagnostic] = []
    first_seen: dict[str, int] = {}

    for job in workflow.all_jobs():
        if job.name in first_seen:
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.DUPLICATE_JOB,
                    f"Job '{job.name}' is defined more than once",
                    job.span,
                    hint=f"First defined at line {first_seen[job.name]}",
                )
            )
            continue
        first_seen[job.name] = job.span.start_line

    emitted = {job.name: job.span.start_line for job in workflow.jobs}
    for cycle in workflow.cycles:
        for name in cycle.generated_job_names():
            if name not in emitted:
                emitted[name] = cycle.span.start_line
                continue
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.DUPLICATE_JOB,
                    f"Job '{name}' generated for cycle '{cycle.name}' collides with "
                    "an existing job",
                    cycle.span,
                    hint=f"Rename the cycle or the job defined at line {emitted[name]}",
                )
            )

    return diagnostics
