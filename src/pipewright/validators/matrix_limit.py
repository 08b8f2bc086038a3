"""Matrix job-count limits.

The platform refuses matrices of more than 256 jobs. Matrices above the
configured warning threshold are flagged before they hit the ceiling.
"""

from __future__ import annotations

from pipewright.config import MATRIX_JOB_LIMIT, CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.matrix import count_matrix_jobs
from pipewright.schemas.workflow import MatrixJobNode, WorkflowNode
from pipewright.typesystem.registry import TypeRegistry


def check_matrix_job(
    job: MatrixJobNode,
    config: CompilerConfig,
    cycle_name: str | None = None,
) -> list[Diagnostic]:
    """Count one matrix job and compare it against the limits."""
    diagnostics: list[Diagnostic] = []
    context = f" in cycle '{cycle_name}'" if cycle_name else ""

    for key, values in job.axes.items():
        if not values:
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.EMPTY_MATRIX_AXIS,
                    f"Matrix axis '{key}' of job '{job.name}'{context} has no values",
                    job.span,
                    hint="An empty axis makes the matrix produce no jobs",
                )
            )

    count = count_matrix_jobs(job.axes, job.include, job.exclude)
    arithmetic = count.describe()

    if count.total > MATRIX_JOB_LIMIT:
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.MATRIX_LIMIT_EXCEEDED,
                f"Matrix job '{job.name}'{context} expands to {count.total} jobs, "
                f"exceeding the limit of {MATRIX_JOB_LIMIT} ({arithmetic})",
                job.span,
                hint="Reduce the axes or add exclude entries",
            )
        )
    elif count.total > config.matrix_warning_threshold:
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.MATRIX_NEAR_LIMIT,
                f"Matrix job '{job.name}'{context} expands to {count.total} jobs, "
                f"approaching the limit of {MATRIX_JOB_LIMIT} ({arithmetic})",
                job.span,
                hint=f"Warning threshold is {config.matrix_warning_threshold}",
            )
        )

    return diagnostics


def validate_matrix_limits(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Check every matrix job, including those in cycle bodies."""
    config = config or CompilerConfig()
    diagnostics: list[Diagnostic] = []

    for job in workflow.jobs:
        if isinstance(job, MatrixJobNode):
            diagnostics.extend(check_matrix_job(job, config))

    for cycle in workflow.cycles:
        for job in cycle.body:
            if isinstance(job, MatrixJobNode):
                diagnostics.extend(check_matrix_job(job, config, cycle.name))

    return diagnostics
