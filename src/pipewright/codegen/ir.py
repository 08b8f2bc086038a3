"""Intermediate representation of a generated workflow.

The IR mirrors the output document: a workflow with a trigger and an
ordered job map, each job with ordered steps. It is built fresh for every
compile and discarded after emission.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field

from pipewright.schemas.workflow import MatrixCombination, MatrixValue


class _IRModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class RunStepIR(_IRModel):
    """Shell step (``run:``)."""

    kind: Literal["run"] = "run"
    run: str
    id: str | None = None
    name: str | None = None
    condition: str | None = None
    shell: str | None = None
    env: dict[str, str] | None = None


class UsesStepIR(_IRModel):
    """Action step (``uses:`` with optional ``with:``)."""

    kind: Literal["uses"] = "uses"
    uses: str
    id: str | None = None
    name: str | None = None
    condition: str | None = None
    with_: dict[str, Any] | None = None
    env: dict[str, str] | None = None


class ScriptStepIR(_IRModel):
    """Inline script run by the github-script action."""

    kind: Literal["script"] = "script"
    script: str
    id: str | None = None
    name: str | None = None
    result_encoding: str | None = None
    env: dict[str, str] | None = None


StepIR = Annotated[RunStepIR | UsesStepIR | ScriptStepIR, Discriminator("kind")]


class StrategyIR(_IRModel):
    """Matrix strategy, passed through unexpanded."""

    matrix: dict[str, list[MatrixValue]]
    include: list[MatrixCombination] | None = None
    exclude: list[MatrixCombination] | None = None
    max_parallel: int | None = None
    fail_fast: bool | None = None


class JobIR(_IRModel):
    """One generated job.

    Attributes:
        runs_on: Execution target.
        needs: Jobs that must finish first.
        condition: Native condition expression (no ``${{ }}``).
        outputs: Output name -> step output expression.
        strategy: Matrix strategy, if any.
        steps: Steps in source order.
    """

    runs_on: str
    needs: list[str] = Field(default_factory=list)
    condition: str | None = None
    outputs: dict[str, str] = Field(default_factory=dict)
    strategy: StrategyIR | None = None
    steps: list[StepIR] = Field(default_factory=list)


class DispatchInputIR(_IRModel):
    name: str
    description: str
    required: bool = False
    default: str = ""


class TriggerIR(_IRModel):
    """Trigger events plus manual dispatch inputs added by cycles."""

    events: list[str] = Field(default_factory=list)
    dispatch_inputs: list[DispatchInputIR] = Field(default_factory=list)


class ConcurrencyIR(_IRModel):
    """Workflow-level concurrency group; runs queue instead of cancelling."""

    group: str
    cancel_in_progress: bool = False


class WorkflowIR(_IRModel):
    name: str
    trigger: TriggerIR = Field(default_factory=TriggerIR)
    concurrency: ConcurrencyIR | None = None
    jobs: dict[str, JobIR] = Field(default_factory=dict)
