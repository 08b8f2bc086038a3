"""Expansion of cycles into re-dispatching jobs.

A cycle ``review`` becomes four kinds of jobs:

    review_hydrate       reads the iteration number from dispatch inputs
    review_body_<job>    one per body job, after hydrate
    review_decide        evaluates the stop predicate and iteration ceiling
    review_dispatch      re-triggers the workflow for the next iteration

The workflow trigger gains ``workflow_dispatch`` inputs for the iteration
key and the run id used to fetch the previous iteration's state.
"""

from __future__ import annotations

from collections.abc import Callable

from pipewright.codegen.ir import (
    DispatchInputIR,
    JobIR,
    RunStepIR,
    ScriptStepIR,
    UsesStepIR,
)
from pipewright.codegen.shell import normalize_shell
from pipewright.config import CompilerConfig
from pipewright.schemas.workflow import AnyJobNode, CycleNode, concrete_jobs

DEFAULT_CYCLE_KEY = "phase"

JobTransform = Callable[[AnyJobNode], JobIR]


def cycle_key(cycle: CycleNode) -> str:
    return cycle.key or DEFAULT_CYCLE_KEY


def dispatch_inputs(cycles: list[CycleNode]) -> list[DispatchInputIR]:
    """Dispatch inputs required by all cycles, without duplicates."""
    inputs: dict[str, DispatchInputIR] = {}
    for cycle in cycles:
        key = cycle_key(cycle)
        inputs.setdefault(
            key,
            DispatchInputIR(
                name=key,
                description=f"Current iteration of cycle {cycle.name}",
                default="0",
            ),
        )
        inputs.setdefault(
            "run_id",
            DispatchInputIR(name="run_id", description="Run ID holding the cycle state"),
        )
    return list(inputs.values())


def _hydrate_job(cycle: CycleNode, config: CompilerConfig) -> JobIR:
    key = cycle_key(cycle)
    state = f"{cycle.name}-state"
    return JobIR(
        runs_on=config.default_runner,
        outputs={key: f"${{{{ steps.init_state.outputs.{key} }}}}"},
        steps=[
            UsesStepIR(
                name="Download cycle state",
                condition=(
                    f"github.event.inputs.{key} != '' && github.event.inputs.{key} != '0'"
                ),
                uses="actions/download-artifact@v4",
                with_={
                    "name": state,
                    "path": ".cycle-state",
                    "run-id": "${{ github.event.inputs.run_id }}",
                    "github-token": "${{ secrets.GITHUB_TOKEN }}",
                },
            ),
            RunStepIR(
                name="Initialize cycle state",
                id="init_state",
                shell="bash",
                run=(
                    f"ITERATION=\"${{{{ github.event.inputs.{key} || '0' }}}}\"\n"
                    f'echo "{key}=$ITERATION" >> "$GITHUB_OUTPUT"'
                ),
            ),
        ],
    )


def _decide_script(cycle: CycleNode) -> str:
    guard = normalize_shell(cycle.until.code) if cycle.until else "return false;"
    max_iters = str(cycle.max_iters) if cycle.max_iters is not None else "null"
    body = "\n".join(f"  {line}" if line else "" for line in guard.splitlines())
    return "\n".join(
        [
            "const iteration = Number(process.env.ITERATION || '0');",
            f"const maxIters = {max_iters};",
            "const done = (() => {",
            body,
            "})();",
            "if (done) return 'false';",
            "if (maxIters !== null && iteration + 1 >= maxIters) return 'false';",
            "return 'true';",
        ]
    )


def _decide_job(cycle: CycleNode, after: str, config: CompilerConfig) -> JobIR:
    key = cycle_key(cycle)
    return JobIR(
        runs_on=config.default_runner,
        needs=[after] if after == f"{cycle.name}_hydrate" else [after, f"{cycle.name}_hydrate"],
        outputs={"continue": "${{ steps.decide.outputs.result }}"},
        steps=[
            ScriptStepIR(
                name="Evaluate stop condition",
                id="decide",
                result_encoding="string",
                env={"ITERATION": f"${{{{ needs.{cycle.name}_hydrate.outputs.{key} }}}}"},
                script=_decide_script(cycle),
            ),
            UsesStepIR(
                name="Upload cycle state",
                uses="actions/upload-artifact@v4",
                with_={
                    "name": f"{cycle.name}-state",
                    "path": ".cycle-state",
                    "if-no-files-found": "ignore",
                },
            ),
        ],
    )


def _dispatch_job(cycle: CycleNode, config: CompilerConfig) -> JobIR:
    key = cycle_key(cycle)
    hydrate = f"{cycle.name}_hydrate"
    decide = f"{cycle.name}_decide"
    return JobIR(
        runs_on=config.default_runner,
        needs=[decide, hydrate],
        condition=f"needs.{decide}.outputs.continue == 'true'",
        steps=[
            RunStepIR(
                name="Dispatch next iteration",
                shell="bash",
                env={"GH_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
                run="\n".join(
                    [
                        f"NEXT=$(( ${{{{ needs.{hydrate}.outputs.{key} }}}} + 1 ))",
                        'gh workflow run "${{ github.workflow }}" \\',
                        '  --ref "${{ github.ref }}" \\',
                        f"  -f {key}=$NEXT \\",
                        "  -f run_id=${{ github.run_id }}",
                    ]
                ),
            )
        ],
    )


def expand_cycle(
    cycle: CycleNode,
    transform_job: JobTransform,
    config: CompilerConfig,
) -> dict[str, JobIR]:
    """Generate the jobs of one cycle in execution order.

    Args:
        cycle: The cycle to expand.
        transform_job: Transform applied to each body job.
        config: Compiler configuration.

    Returns:
        Ordered job name -> JobIR.
    """
    hydrate = f"{cycle.name}_hydrate"
    jobs: dict[str, JobIR] = {hydrate: _hydrate_job(cycle, config)}
    body = concrete_jobs(cycle.body)
    body_names = {job.name for job in body}

    last = hydrate
    for body_job in body:
        name = f"{cycle.name}_body_{body_job.name}"
        needs = [f"{cycle.name}_body_{n}" if n in body_names else n for n in body_job.needs]
        transformed = transform_job(body_job)
        jobs[name] = transformed.model_copy(update={"needs": [hydrate, *needs]})
        last = name

    jobs[f"{cycle.name}_decide"] = _decide_job(cycle, last, config)
    jobs[f"{cycle.name}_dispatch"] = _dispatch_job(cycle, config)
    return jobs
