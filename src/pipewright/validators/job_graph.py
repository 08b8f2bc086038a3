"""Job dependency graph checks.

Builds the ``needs`` graph over every job (cycle bodies included) with the
shared DirectedGraph and reports unknown dependencies, dependency cycles
and duplicate outputs. References of the form
``needs.<job>.outputs.<name>`` in conditions and step text must name a
job listed in ``needs`` and an output that job declares. Artifacts
consumed by agent tasks must be uploaded by a job listed in ``needs``.
"""

from __future__ import annotations

from collections.abc import Iterator

from pipewright.analysis.graph import DirectedGraph
from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, did_you_mean, make_diagnostic
from pipewright.diagnostics.suggest import DEFAULT_MAX_DISTANCE
from pipewright.schemas.expressions import (
    BinaryExpression,
    ExpressionNode,
    PropertyAccess,
    UnaryExpression,
)
from pipewright.schemas.span import Span
from pipewright.schemas.workflow import (
    AgentJobNode,
    AgentTaskSpec,
    AgentTaskStep,
    AnyJobNode,
    GuardStep,
    WorkflowNode,
)
from pipewright.typesystem.registry import TypeRegistry
from pipewright.validators.expression_types import iter_job_expressions


def build_job_graph(workflow: WorkflowNode) -> DirectedGraph[str]:
    """Graph with an edge ``job -> need`` for every known dependency."""
    graph: DirectedGraph[str] = DirectedGraph()
    names = {job.name for job in workflow.all_jobs()}
    for job in workflow.all_jobs():
        graph.add_node(job.name)
        for need in job.needs:
            if need in names:
                graph.add_edge(job.name, need)
    return graph


def validate_job_graph(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Report unknown ``needs``, dependency cycles and output problems."""
    max_distance = config.suggestion_max_distance if config else DEFAULT_MAX_DISTANCE
    jobs = workflow.all_jobs()
    names = [job.name for job in jobs]
    spans: dict[str, Span] = {}
    for job in jobs:
        spans.setdefault(job.name, job.span)

    diagnostics: list[Diagnostic] = []

    for job in jobs:
        for need in job.needs:
            if need not in spans:
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.UNKNOWN_NEEDS,
                        f"Job '{job.name}' needs unknown job '{need}'",
                        job.span,
                        hint=did_you_mean(need, names, max_distance=max_distance),
                    )
                )

        seen_outputs: set[str] = set()
        for output in job.outputs:
            if output.name in seen_outputs:
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.DUPLICATE_OUTPUT,
                        f"Job '{job.name}' declares output '{output.name}' more than once",
                        output.span,
                    )
                )
            seen_outputs.add(output.name)

    graph = build_job_graph(workflow)
    for component in graph.cyclic_components():
        cycle = graph.subgraph(component).find_cycle() or component
        diagnostics.append(
            make_diagnostic(
                DiagnosticCode.NEEDS_CYCLE,
                f"Jobs form a dependency cycle: {' -> '.join(cycle)}",
                spans[component[0]],
                hint="Remove one of the 'needs' entries to break the cycle",
            )
        )

    diagnostics.extend(validate_output_references(workflow, config))
    diagnostics.extend(validate_artifact_consumes(workflow, config))
    return diagnostics


def output_references(expression: ExpressionNode) -> Iterator[PropertyAccess]:
    """Every ``needs.<job>.outputs.<name>`` property inside an expression."""
    if isinstance(expression, BinaryExpression):
        yield from output_references(expression.left)
        yield from output_references(expression.right)
    elif isinstance(expression, UnaryExpression):
        yield from output_references(expression.operand)
    elif isinstance(expression, PropertyAccess):
        path = expression.path
        if len(path) >= 4 and path[0] == "needs" and path[2] == "outputs":
            yield expression


def available_outputs(job: AnyJobNode) -> list[str]:
    """Declared outputs of a job plus the implicit ``<guard>_result`` ones."""
    names = [output.name for output in job.outputs]
    names.extend(f"{step.id}_result" for step in job.steps if isinstance(step, GuardStep))
    return names


def validate_output_references(
    workflow: WorkflowNode,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Report output references outside ``needs`` and to undeclared outputs."""
    max_distance = config.suggestion_max_distance if config else DEFAULT_MAX_DISTANCE
    jobs: dict[str, AnyJobNode] = {}
    for job in workflow.all_jobs():
        jobs.setdefault(job.name, job)

    diagnostics: list[Diagnostic] = []
    for job in workflow.all_jobs():
        for expression in iter_job_expressions(job):
            for reference in output_references(expression):
                source, output = reference.path[1], reference.path[3]
                if source not in job.needs:
                    diagnostics.append(
                        make_diagnostic(
                            DiagnosticCode.REFERENCE_NOT_IN_NEEDS,
                            f"Job '{job.name}' references output '{output}' of job "
                            f"'{source}', which is not in its needs",
                            reference.span,
                            hint=f"Add '{source}' to the needs of '{job.name}'",
                        )
                    )
                    continue

                target = jobs.get(source)
                if target is None:
                    continue
                names = available_outputs(target)
                if output in names:
                    continue
                if names:
                    hint = did_you_mean(output, names, max_distance=max_distance)
                    hint = hint or f"Available outputs on '{source}': {', '.join(names)}"
                else:
                    hint = f"Job '{source}' declares no outputs"
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.UNKNOWN_JOB_OUTPUT,
                        f"Job '{source}' has no output '{output}'",
                        reference.span,
                        hint=hint,
                    )
                )
    return diagnostics


def agent_tasks(job: AnyJobNode) -> list[AgentTaskSpec]:
    """Agent tasks of a job: the job task first, then agent steps."""
    tasks = [job.task] if isinstance(job, AgentJobNode) else []
    tasks.extend(step.task for step in job.steps if isinstance(step, AgentTaskStep))
    return tasks


def validate_artifact_consumes(
    workflow: WorkflowNode,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Report consumed artifacts that no needed job uploads."""
    max_distance = config.suggestion_max_distance if config else DEFAULT_MAX_DISTANCE
    artifacts: dict[str, list[str]] = {}
    for job in workflow.all_jobs():
        uploads = artifacts.setdefault(job.name, [])
        uploads.extend(t.output_artifact for t in agent_tasks(job) if t.output_artifact)

    diagnostics: list[Diagnostic] = []
    for job in workflow.all_jobs():
        for task in agent_tasks(job):
            for consume in task.consumes:
                if consume.job not in job.needs:
                    diagnostics.append(
                        make_diagnostic(
                            DiagnosticCode.REFERENCE_NOT_IN_NEEDS,
                            f"Job '{job.name}' consumes artifact '{consume.artifact}' of "
                            f"job '{consume.job}', which is not in its needs",
                            consume.span,
                            hint=f"Add '{consume.job}' to the needs of '{job.name}'",
                        )
                    )
                    continue

                uploads = artifacts.get(consume.job)
                if uploads is None or consume.artifact in uploads:
                    continue
                if uploads:
                    hint = did_you_mean(consume.artifact, uploads, max_distance=max_distance)
                    hint = hint or f"Artifacts of '{consume.job}': {', '.join(uploads)}"
                else:
                    hint = f"Job '{consume.job}' uploads no artifacts"
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.UNKNOWN_ARTIFACT,
                        f"Job '{consume.job}' uploads no artifact '{consume.artifact}'",
                        consume.span,
                        hint=hint,
                    )
                )
    return diagnostics
