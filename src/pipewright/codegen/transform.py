"""AST to IR transformation.

Each job variant maps to one JobIR. Most step variants map to one StepIR;
an agent task also downloads the artifacts it consumes before it runs and
uploads its output artifact afterwards. Matrix strategies are carried
through unexpanded. Fragment instances are expanded first and cycles
expand into generated jobs through :mod:`pipewright.codegen.cycles`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

import structlog
from typing_extensions import assert_never

from pipewright.codegen.cycles import dispatch_inputs, expand_cycle
from pipewright.codegen.expressions import serialize_expression
from pipewright.codegen.ir import (
    ConcurrencyIR,
    JobIR,
    RunStepIR,
    ScriptStepIR,
    StepIR,
    StrategyIR,
    TriggerIR,
    UsesStepIR,
    WorkflowIR,
)
from pipewright.codegen.json_schema import render_json_schema
from pipewright.codegen.shell import normalize_shell
from pipewright.config import CompilerConfig
from pipewright.errors import CompilationError
from pipewright.fragments import FragmentRegistry, expand_fragments
from pipewright.schemas.workflow import (
    AgentJobNode,
    AgentTaskSpec,
    AgentTaskStep,
    CycleNode,
    FilePrompt,
    FragmentStepsStep,
    GuardStep,
    JobNode,
    MatrixJobNode,
    MatrixValue,
    PromptValue,
    ShellStep,
    StepNode,
    UsesStep,
    WorkflowNode,
    concrete_jobs,
    prompt_text,
)
from pipewright.typesystem.registry import TypeRegistry

logger = structlog.get_logger(__name__)

UPLOAD_ARTIFACT_ACTION = "actions/upload-artifact@v4"
DOWNLOAD_ARTIFACT_ACTION = "actions/download-artifact@v4"

_ARTIFACT_ACTIONS = frozenset({UPLOAD_ARTIFACT_ACTION, DOWNLOAD_ARTIFACT_ACTION})


def step_id(index: int) -> str:
    return f"step_{index}"


def matrix_fingerprint(axes: Mapping[str, list[MatrixValue]]) -> str:
    """Per-combination suffix built from the sorted axis keys.

    Example:
        >>> matrix_fingerprint({"os": ["linux"], "node": [20]})
        '${{ matrix.node }}-${{ matrix.os }}'
    """
    return "-".join(f"${{{{ matrix.{key} }}}}" for key in sorted(axes))


def resolve_prompt(prompt: PromptValue | None) -> str:
    """Prompt text passed to the agent action.

    File prompts are read when the workflow runs.
    """
    if isinstance(prompt, FilePrompt):
        return f"${{{{ file('{prompt.path}') }}}}"
    return prompt_text(prompt) or ""


def _agent_steps(
    job_name: str,
    task: AgentTaskSpec,
    registry: TypeRegistry,
    config: CompilerConfig,
    axes: Mapping[str, list[MatrixValue]] | None = None,
) -> list[StepIR]:
    steps: list[StepIR] = [
        UsesStepIR(
            name=f"Download {consume.name}",
            uses=DOWNLOAD_ARTIFACT_ACTION,
            with_={"name": consume.artifact, "path": consume.name},
        )
        for consume in task.consumes
    ]

    allowed = list(task.allowed_tools)
    disallowed = list(task.disallowed_tools)
    if task.mcp is not None:
        allowed.extend(task.mcp.allowed)
        disallowed.extend(task.mcp.disallowed)

    params: dict[str, Any] = {"prompt": resolve_prompt(task.prompt)}
    if task.system_prompt is not None:
        params["system_prompt"] = resolve_prompt(task.system_prompt)
    if task.model is not None:
        params["model"] = task.model
    if task.max_turns is not None:
        params["max_turns"] = task.max_turns
    if allowed:
        params["allowed_tools"] = json.dumps(allowed)
    if disallowed:
        params["disallowed_tools"] = json.dumps(disallowed)
    if task.mcp is not None and task.mcp.config_file is not None:
        params["mcp_config"] = task.mcp.config_file
    if task.output_schema is not None:
        params["output_schema"] = render_json_schema(task.output_schema, registry)
    steps.append(UsesStepIR(name=f"{job_name}-task", uses=config.agent_action, with_=params))

    if task.output_artifact is not None:
        artifact = task.output_artifact
        name = f"{artifact}-{matrix_fingerprint(axes)}" if axes else artifact
        steps.append(
            UsesStepIR(
                name=f"Upload {artifact}",
                uses=UPLOAD_ARTIFACT_ACTION,
                with_={"name": name, "path": artifact},
            )
        )
    return steps


def transform_step(
    step: StepNode,
    job_name: str,
    registry: TypeRegistry,
    config: CompilerConfig,
    axes: Mapping[str, list[MatrixValue]] | None = None,
) -> list[StepIR]:
    """Map one AST step to its IR steps.

    Args:
        step: Source step.
        job_name: Owning job, used to name agent steps.
        registry: Type registry for agent output schemas.
        config: Compiler configuration.
        axes: Matrix axes of the owning job, if any.

    Raises:
        CompilationError: If a steps fragment spread was not expanded.
    """
    if isinstance(step, ShellStep):
        return [RunStepIR(name=step.name, run=normalize_shell(step.content))]
    if isinstance(step, UsesStep):
        return [UsesStepIR(name=step.name, uses=step.action, with_=step.with_)]
    if isinstance(step, AgentTaskStep):
        return _agent_steps(job_name, step.task, registry, config, axes)
    if isinstance(step, GuardStep):
        return [ScriptStepIR(id=step.id, script=normalize_shell(step.code))]
    if isinstance(step, FragmentStepsStep):
        raise CompilationError(
            "Cannot transform step",
            internal_details=f"unexpanded steps fragment '{step.fragment}' in job '{job_name}'",
        )
    assert_never(step)


def _writes_output(step: StepIR, name: str) -> bool:
    if not isinstance(step, RunStepIR) or "GITHUB_OUTPUT" not in step.run:
        return False
    return re.search(rf"(?<![\w-]){re.escape(name)}=", step.run) is not None


def _transfers_artifact(step: StepIR) -> bool:
    return isinstance(step, UsesStepIR) and step.uses in _ARTIFACT_ACTIONS


def wire_outputs(output_names: list[str], steps: list[StepIR]) -> dict[str, str]:
    """Map each output to the last step that writes it.

    A step writes an output when its shell text appends ``<name>=`` to
    ``$GITHUB_OUTPUT``. Outputs no step visibly writes fall back to the last
    step that is not an artifact upload or download. Guard steps
    additionally expose ``<id>_result``.
    """
    outputs: dict[str, str] = {}
    if steps:
        fallback = next((s for s in reversed(steps) if not _transfers_artifact(s)), steps[-1])
        for name in output_names:
            writer = next((s for s in reversed(steps) if _writes_output(s, name)), fallback)
            outputs[name] = f"${{{{ steps.{writer.id}.outputs.{name} }}}}"
    for step in steps:
        if isinstance(step, ScriptStepIR) and step.id:
            outputs[f"{step.id}_result"] = f"${{{{ steps.{step.id}.outputs.result }}}}"
    return outputs


def transform_job(
    job: JobNode | MatrixJobNode | AgentJobNode,
    registry: TypeRegistry,
    config: CompilerConfig,
) -> JobIR:
    """Map one AST job to a JobIR.

    When the job declares outputs, every generated step without an
    identifier of its own gets a sequential ``step_<n>`` identifier so
    outputs can reference it.
    """
    axes = job.axes if isinstance(job, MatrixJobNode) else None
    steps: list[StepIR] = []
    for step in job.steps:
        steps.extend(transform_step(step, job.name, registry, config, axes))
    if isinstance(job, AgentJobNode):
        steps.extend(_agent_steps(job.name, job.task, registry, config))

    if job.outputs:
        steps = [
            s if s.id is not None else s.model_copy(update={"id": step_id(i)})
            for i, s in enumerate(steps)
        ]

    strategy = None
    if isinstance(job, MatrixJobNode):
        strategy = StrategyIR(
            matrix=job.axes,
            include=job.include,
            exclude=job.exclude,
            max_parallel=job.max_parallel,
            fail_fast=job.fail_fast,
        )
    elif not isinstance(job, (JobNode, AgentJobNode)):
        assert_never(job)

    return JobIR(
        runs_on=job.target or config.default_runner,
        needs=list(job.needs),
        condition=serialize_expression(job.condition) if job.condition else None,
        outputs=wire_outputs([o.name for o in job.outputs], steps),
        strategy=strategy,
        steps=steps,
    )


def cycle_concurrency(cycles: list[CycleNode]) -> ConcurrencyIR | None:
    """Concurrency group serializing the runs of a cycling workflow."""
    if not cycles:
        return None
    names = "-".join(cycle.name for cycle in cycles)
    return ConcurrencyIR(group=f"${{{{ github.workflow }}}}-{names}")


def transform(
    workflow: WorkflowNode,
    registry: TypeRegistry | None = None,
    config: CompilerConfig | None = None,
    fragments: FragmentRegistry | None = None,
) -> WorkflowIR:
    """Transform a workflow AST into the output IR.

    Generation proceeds even when validation reported errors: missing
    targets fall back to the configured default runner, unresolved
    schema references render as ``$ref`` placeholders and fragment
    instances that cannot be expanded are left out.

    Args:
        workflow: Workflow to transform.
        registry: Type registry of the owning file.
        config: Compiler configuration.
        fragments: Fragments of the owning file.

    Returns:
        WorkflowIR with jobs in declaration order, cycle jobs last.
    """
    if registry is None:
        registry = TypeRegistry.empty(workflow.span.file)
    config = config or CompilerConfig()
    workflow = expand_fragments(
        workflow,
        fragments if fragments is not None else FragmentRegistry.empty(),
        max_distance=config.suggestion_max_distance,
    ).workflow

    jobs: dict[str, JobIR] = {
        job.name: transform_job(job, registry, config) for job in concrete_jobs(workflow.jobs)
    }
    for cycle in workflow.cycles:
        jobs.update(
            expand_cycle(cycle, lambda job: transform_job(job, registry, config), config)
        )

    trigger = TriggerIR(
        events=list(workflow.trigger or []),
        dispatch_inputs=dispatch_inputs(workflow.cycles),
    )
    logger.debug(
        "workflow_transformed",
        workflow=workflow.name,
        jobs=len(jobs),
        cycles=len(workflow.cycles),
    )
    return WorkflowIR(
        name=workflow.name,
        trigger=trigger,
        concurrency=cycle_concurrency(workflow.cycles),
        jobs=jobs,
    )
