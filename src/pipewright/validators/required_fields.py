"""Required-field validation.

Every job-like construct needs an execution target, every cycle needs a
termination condition and every agent task needs a prompt and an output
schema.
"""

from __future__ import annotations

from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.schemas.workflow import (
    AgentJobNode,
    AgentTaskSpec,
    AgentTaskStep,
    AnyJobNode,
    FilePrompt,
    WorkflowNode,
    concrete_jobs,
    prompt_text,
)
from pipewright.typesystem.registry import TypeRegistry


def _check_task(task: AgentTaskSpec, owner: str) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    text = prompt_text(task.prompt)
    if not isinstance(task.prompt, FilePrompt) and not (text and text.strip()):
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.MISSING_PROMPT,
                f"Agent task in '{owner}' is missing required field 'prompt'",
                task.span,
                hint="Describe the task in a 'prompt' field",
            )
        )
    if task.output_schema is None:
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.MISSING_OUTPUT_SCHEMA,
                f"Agent task in '{owner}' is missing required field 'output_schema'",
                task.span,
                hint="Name a declared type or give an inline schema",
            )
        )
    return diagnostics


def _check_job(job: AnyJobNode) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []

    if job.target is None or not job.target.strip():
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.MISSING_TARGET,
                f"Job '{job.name}' is missing required field 'target'",
                job.span,
                hint="Add an execution target, e.g. target: ubuntu-latest",
            )
        )

    if isinstance(job, AgentJobNode):
        diagnostics.extend(_check_task(job.task, job.name))
    for step in job.steps:
        if isinstance(step, AgentTaskStep):
            diagnostics.extend(_check_task(step.task, job.name))

    return diagnostics


def validate_required_fields(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Report missing targets, termination conditions and agent task fields."""
    diagnostics: list[Diagnostic] = []

    if not workflow.jobs and not workflow.cycles:
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.EMPTY_WORKFLOW,
                f"Workflow '{workflow.name}' has no jobs",
                workflow.span,
            )
        )

    for job in concrete_jobs(workflow.jobs):
        diagnostics.extend(_check_job(job))

    for cycle in workflow.cycles:
        if cycle.until is None and cycle.max_iters is None:
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.MISSING_TERMINATION,
                    f"Cycle '{cycle.name}' has no termination condition",
                    cycle.span,
                    hint="Add 'until' (stop predicate) and/or 'max_iters' (iteration ceiling)",
                )
            )
        for job in concrete_jobs(cycle.body):
            diagnostics.extend(_check_job(job))

    return diagnostics
