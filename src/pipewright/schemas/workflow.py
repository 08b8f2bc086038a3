"""Workflow AST nodes: workflows, jobs, steps and cycles.

Jobs, steps and prompts are discriminated unions on ``kind``:

    jobs:    job | matrix_job | agent_job | fragment_job
    steps:   shell | uses | agent_task | guard | fragment_steps
    prompts: literal | file | template

``fragment_job`` and ``fragment_steps`` instantiate fragments declared in
the same file; see :mod:`pipewright.fragments`.

Source order of jobs, steps and matrix axes is preserved and significant.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, Literal

from pydantic import Discriminator, Field, field_validator

from pipewright.schemas.base import AstNode
from pipewright.schemas.expressions import ExpressionNode
from pipewright.schemas.types import SchemaTypeNode

MatrixValue = str | int | float | bool
"""Scalar value of a matrix axis or combination entry."""

MatrixCombination = dict[str, MatrixValue]
"""Axis key -> value mapping used by include/exclude entries."""

ParamValue = str | int | float | bool
"""Scalar argument passed to a fragment parameter."""


class LiteralPrompt(AstNode):
    """Prompt text written inline."""

    kind: Literal["literal"] = "literal"
    value: str


class FilePrompt(AstNode):
    """Prompt read from a repository file when the workflow runs."""

    kind: Literal["file"] = "file"
    path: str = Field(..., min_length=1)


class TemplatePrompt(AstNode):
    """Prompt text that may interpolate ``${{ ... }}`` expressions."""

    kind: Literal["template"] = "template"
    content: str


PromptValue = Annotated[
    LiteralPrompt | FilePrompt | TemplatePrompt,
    Discriminator("kind"),
]
"""Prompt with discriminated union on ``kind``."""


def prompt_text(prompt: PromptValue | None) -> str | None:
    """Inline text of a prompt; None for file prompts and missing ones."""
    if isinstance(prompt, LiteralPrompt):
        return prompt.value
    if isinstance(prompt, TemplatePrompt):
        return prompt.content
    return None


class McpConfig(AstNode):
    """MCP server configuration for an agent task.

    Attributes:
        config_file: Path of the MCP server configuration file.
        allowed: MCP tools the agent may use.
        disallowed: MCP tools the agent may not use.
    """

    config_file: str | None = None
    allowed: list[str] = Field(default_factory=list)
    disallowed: list[str] = Field(default_factory=list)


class ConsumeDeclaration(AstNode):
    """Artifact an agent task downloads before it runs.

    ``source`` has the form ``<job>.<artifact>``.
    """

    name: str = Field(..., min_length=1)
    source: str = Field(..., pattern=r"^[A-Za-z_][\w-]*\.[^.\s][^\s]*$")

    @property
    def job(self) -> str:
        return self.source.split(".", 1)[0]

    @property
    def artifact(self) -> str:
        return self.source.split(".", 1)[1]


class AgentTaskSpec(AstNode):
    """Agent task configuration.

    ``prompt`` and ``output_schema`` are required by the language but
    optional here, so their absence surfaces as a diagnostic rather than
    a structural failure. A string ``output_schema`` names a declared type
    and a string prompt is literal text.

    Attributes:
        prompt: Task prompt.
        system_prompt: Optional system prompt.
        output_schema: Type of the structured result.
        model: Optional model override.
        max_turns: Optional turn ceiling.
        allowed_tools: Tools the agent may use.
        disallowed_tools: Tools the agent may not use.
        mcp: Optional MCP server configuration.
        output_artifact: Path uploaded as an artifact after the task.
        consumes: Artifacts downloaded before the task.
    """

    prompt: PromptValue | None = None
    system_prompt: PromptValue | None = None
    output_schema: SchemaTypeNode | None = None
    model: str | None = None
    max_turns: int | None = Field(default=None, ge=1)
    allowed_tools: list[str] = Field(default_factory=list)
    disallowed_tools: list[str] = Field(default_factory=list)
    mcp: McpConfig | None = None
    output_artifact: str | None = Field(default=None, min_length=1)
    consumes: list[ConsumeDeclaration] = Field(default_factory=list)

    @field_validator("prompt", "system_prompt", mode="before")
    @classmethod
    def text_as_literal(cls, v: Any) -> Any:
        """Accept plain text as a literal prompt."""
        if isinstance(v, str):
            return {"kind": "literal", "value": v}
        return v

    @field_validator("output_schema", mode="before")
    @classmethod
    def name_as_reference(cls, v: Any) -> Any:
        """Accept a bare type name as a reference."""
        if isinstance(v, str):
            return {"kind": "reference", "name": v}
        return v


class OutputDeclaration(AstNode):
    """Typed output declared by a job."""

    name: str = Field(..., min_length=1)
    type: SchemaTypeNode


# Steps


class ShellStep(AstNode):
    """Shell step with verbatim (possibly indented) multi-line content."""

    kind: Literal["shell"] = "shell"
    content: str
    name: str | None = None


class UsesStep(AstNode):
    """Step invoking a reusable action."""

    kind: Literal["uses"] = "uses"
    action: str = Field(..., min_length=1)
    with_: dict[str, Any] | None = Field(default=None, alias="with")
    name: str | None = None


class AgentTaskStep(AstNode):
    kind: Literal["agent_task"] = "agent_task"
    task: AgentTaskSpec


class GuardStep(AstNode):
    """Escape-hatch script block; its result becomes a job output."""

    kind: Literal["guard"] = "guard"
    id: str = Field(..., pattern=r"^[A-Za-z_][A-Za-z0-9_-]*$")
    code: str


class FragmentStepsStep(AstNode):
    """Spread of a steps fragment into the enclosing step list.

    Attributes:
        fragment: Name of the steps fragment.
        params: Argument per fragment parameter.
    """

    kind: Literal["fragment_steps"] = "fragment_steps"
    fragment: str = Field(..., min_length=1)
    params: dict[str, ParamValue] = Field(default_factory=dict)


StepNode = Annotated[
    ShellStep | UsesStep | AgentTaskStep | GuardStep | FragmentStepsStep,
    Discriminator("kind"),
]
"""Step with discriminated union on ``kind``."""


# Jobs


class _JobBase(AstNode):
    name: str = Field(..., min_length=1)
    target: str | None = None
    needs: list[str] = Field(default_factory=list)
    condition: ExpressionNode | None = None
    outputs: list[OutputDeclaration] = Field(default_factory=list)

    @field_validator("needs", mode="before")
    @classmethod
    def single_need(cls, v: Any) -> Any:
        """Accept a single job name for ``needs``."""
        if isinstance(v, str):
            return [v]
        return v


class JobNode(_JobBase):
    """Plain job.

    Example:
        >>> job = JobNode(
        ...     name="build",
        ...     target="ubuntu-latest",
        ...     steps=[ShellStep(content="make build")],
        ... )
    """

    kind: Literal["job"] = "job"
    steps: list[StepNode]


class MatrixJobNode(_JobBase):
    """Job fanned out over the Cartesian product of its axes.

    Attributes:
        axes: Ordered axis key -> ordered value list.
        max_parallel: Optional concurrency ceiling.
        fail_fast: Optional fail-fast flag.
        include: Extra combinations.
        exclude: Removed combinations.
    """

    kind: Literal["matrix_job"] = "matrix_job"
    axes: dict[str, list[MatrixValue]]
    max_parallel: int | None = Field(default=None, ge=1)
    fail_fast: bool | None = None
    include: list[MatrixCombination] | None = None
    exclude: list[MatrixCombination] | None = None
    steps: list[StepNode]


class AgentJobNode(_JobBase):
    """Job whose main work is an agent task, run after any declared steps."""

    kind: Literal["agent_job"] = "agent_job"
    task: AgentTaskSpec
    steps: list[StepNode] = Field(default_factory=list)


AnyJobNode = Annotated[
    JobNode | MatrixJobNode | AgentJobNode,
    Discriminator("kind"),
]
"""Concrete job with discriminated union on ``kind``."""


class FragmentJobNode(AstNode):
    """Job instantiated from a job fragment.

    Attributes:
        name: Name of the resulting job.
        fragment: Name of the job fragment.
        params: Argument per fragment parameter.
        needs: Replaces the fragment's ``needs`` when given.
    """

    kind: Literal["fragment_job"] = "fragment_job"
    name: str = Field(..., min_length=1)
    fragment: str = Field(..., min_length=1)
    params: dict[str, ParamValue] = Field(default_factory=dict)
    needs: list[str] | None = None

    @field_validator("needs", mode="before")
    @classmethod
    def single_need(cls, v: Any) -> Any:
        """Accept a single job name for ``needs``."""
        if isinstance(v, str):
            return [v]
        return v


WorkflowJobNode = Annotated[
    JobNode | MatrixJobNode | AgentJobNode | FragmentJobNode,
    Discriminator("kind"),
]
"""Job as written in a workflow, fragment instances included."""


def concrete_jobs(
    jobs: Iterable[JobNode | MatrixJobNode | AgentJobNode | FragmentJobNode],
) -> list[JobNode | MatrixJobNode | AgentJobNode]:
    """Jobs that are not fragment instances, in order."""
    return [job for job in jobs if not isinstance(job, FragmentJobNode)]


class GuardBlock(AstNode):
    """Script returning true once a cycle should stop."""

    code: str


class CycleNode(AstNode):
    """Iterative block of jobs re-dispatched until it terminates.

    Attributes:
        name: Cycle name.
        max_iters: Iteration ceiling.
        key: Name of the iteration key input (default "phase").
        until: Stop predicate.
        body: Jobs run on each iteration.
    """

    name: str = Field(..., min_length=1)
    max_iters: int | None = None
    key: str | None = None
    until: GuardBlock | None = None
    body: list[WorkflowJobNode] = Field(default_factory=list)

    def generated_job_names(self) -> list[str]:
        """Names of the jobs this cycle expands into, in execution order."""
        return [
            f"{self.name}_hydrate",
            *(f"{self.name}_body_{job.name}" for job in self.body),
            f"{self.name}_decide",
            f"{self.name}_dispatch",
        ]


class WorkflowNode(AstNode):
    """Workflow definition.

    Attributes:
        name: Workflow name.
        trigger: Ordered trigger events.
        jobs: Ordered jobs.
        cycles: Ordered cycles.
    """

    name: str = Field(..., min_length=1)
    trigger: list[str] | None = None
    jobs: list[WorkflowJobNode] = Field(default_factory=list)
    cycles: list[CycleNode] = Field(default_factory=list)

    @field_validator("trigger", mode="before")
    @classmethod
    def single_trigger(cls, v: Any) -> Any:
        """Accept a single event name for ``trigger``."""
        if isinstance(v, str):
            return [v]
        return v

    def all_jobs(self) -> list[JobNode | MatrixJobNode | AgentJobNode]:
        """Top-level jobs followed by cycle body jobs, in source order.

        Fragment instances are skipped; expand them first to see their jobs.
        """
        jobs = concrete_jobs(self.jobs)
        for cycle in self.cycles:
            jobs.extend(concrete_jobs(cycle.body))
        return jobs
