"""Expansion of fragment instances into plain jobs and steps.

Expansion runs before validation, so validators and code generation only
ever see concrete jobs. Instances that cannot be expanded are reported
and dropped:

- a ``fragment_job`` becomes a ``job`` named after the instance, with the
  fragment's target, needs, condition and outputs
- a ``fragment_steps`` spread is replaced in place by the fragment's steps

Every ``${{ params.<name> }}`` in the fragment's steps is replaced by the
argument (or the parameter default) rendered as text. References to
unknown parameters are left untouched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import TypeAdapter

from pipewright.diagnostics import Diagnostic, DiagnosticCode, did_you_mean, make_diagnostic
from pipewright.diagnostics.suggest import DEFAULT_MAX_DISTANCE
from pipewright.fragments.registry import FragmentRegistry
from pipewright.schemas.fragments import JobFragmentNode, StepsFragmentNode
from pipewright.schemas.span import Span
from pipewright.schemas.types import LiteralType, PrimitiveType, SchemaTypeNode, UnionType
from pipewright.schemas.workflow import (
    FragmentJobNode,
    FragmentStepsStep,
    JobNode,
    ParamValue,
    StepNode,
    WorkflowJobNode,
    WorkflowNode,
)
from pipewright.typesystem.references import describe_type

logger = structlog.get_logger(__name__)

PARAM_PATTERN = re.compile(r"\$\{\{\s*params\.(\w+)\s*\}\}")

_STEPS = TypeAdapter(list[StepNode])


def format_param(value: ParamValue) -> str:
    """Text form of an argument as substituted into fragment text.

    Example:
        >>> format_param(True), format_param(3), format_param(2.0)
        ('true', '3', '2')
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def substitute_params(text: str, values: Mapping[str, str]) -> str:
    """Replace ``${{ params.<name> }}`` references with their values."""

    def _replace(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return PARAM_PATTERN.sub(_replace, text)


def _substitute(data: Any, values: Mapping[str, str]) -> Any:
    if isinstance(data, str):
        return substitute_params(data, values)
    if isinstance(data, list):
        return [_substitute(item, values) for item in data]
    if isinstance(data, dict):
        return {key: _substitute(item, values) for key, item in data.items()}
    return data


def _describe_value(value: ParamValue) -> str:
    if isinstance(value, bool):
        return f"bool {format_param(value)}"
    if isinstance(value, int):
        return f"int {value}"
    if isinstance(value, float):
        return f"float {value:g}"
    return f"string '{value}'"


def _accepts(node: SchemaTypeNode, value: ParamValue) -> bool:
    if isinstance(node, PrimitiveType):
        if node.name in {"string", "path"}:
            return isinstance(value, str)
        if node.name == "int":
            return isinstance(value, int) and not isinstance(value, bool)
        if node.name == "float":
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if node.name == "bool":
            return isinstance(value, bool)
        return True
    if isinstance(node, LiteralType):
        return value == node.value
    if isinstance(node, UnionType):
        return any(_accepts(member, value) for member in node.members)
    # Structured and named types are not checked against scalar arguments
    return True


@dataclass(frozen=True)
class FragmentExpansion:
    """Result of expanding the fragment instances of a workflow.

    Attributes:
        workflow: Workflow holding only concrete jobs and steps.
        diagnostics: Problems found while instantiating fragments.
    """

    workflow: WorkflowNode
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


class _Expander:
    def __init__(self, registry: FragmentRegistry, max_distance: int) -> None:
        self.registry = registry
        self.max_distance = max_distance
        self.diagnostics: list[Diagnostic] = []

    def report(self, code: DiagnosticCode, message: str, span: Span, hint: str | None) -> None:
        self.diagnostics.append(make_diagnostic(code, message, span, hint=hint))

    def not_found(self, kind: str, name: str, span: Span, available: list[str]) -> None:
        if available:
            hint = did_you_mean(name, available, max_distance=self.max_distance)
            hint = hint or f"Available {kind} fragments: {', '.join(available)}"
        else:
            hint = f"No {kind} fragments are defined in this file"
        self.report(
            DiagnosticCode.FRAGMENT_NOT_FOUND,
            f"{kind.capitalize()} fragment '{name}' not found",
            span,
            hint,
        )

    def bind(
        self,
        fragment: JobFragmentNode | StepsFragmentNode,
        arguments: Mapping[str, ParamValue],
        span: Span,
    ) -> dict[str, str]:
        """Check arguments against the fragment parameters and render them."""
        declared = {param.name: param for param in fragment.params}
        values: dict[str, str] = {}

        for name, value in arguments.items():
            param = declared.get(name)
            if param is None:
                names = fragment.param_names()
                if names:
                    hint = did_you_mean(name, names, max_distance=self.max_distance)
                    hint = hint or f"Available parameters: {', '.join(names)}"
                else:
                    hint = "This fragment has no parameters"
                self.report(
                    DiagnosticCode.UNKNOWN_FRAGMENT_PARAM,
                    f"Unknown parameter '{name}' for fragment '{fragment.name}'",
                    span,
                    hint,
                )
                continue
            if param.type is not None and not _accepts(param.type, value):
                self.report(
                    DiagnosticCode.FRAGMENT_PARAM_TYPE_MISMATCH,
                    f"Parameter '{name}' of fragment '{fragment.name}' expects "
                    f"'{describe_type(param.type)}', got {_describe_value(value)}",
                    span,
                    None,
                )
            values[name] = format_param(value)

        for param in fragment.params:
            if param.name in arguments:
                continue
            if param.default is not None:
                values[param.name] = format_param(param.default)
            else:
                self.report(
                    DiagnosticCode.MISSING_FRAGMENT_PARAM,
                    f"Missing required parameter '{param.name}' for fragment "
                    f"'{fragment.name}'",
                    span,
                    f"Pass a value for '{param.name}' in 'params'",
                )
        return values

    def steps(self, steps: Sequence[StepNode], chain: tuple[str, ...] = ()) -> list[StepNode]:
        """Replace every steps fragment spread, recursively."""
        expanded: list[StepNode] = []
        for step in steps:
            if not isinstance(step, FragmentStepsStep):
                expanded.append(step)
                continue

            fragment = self.registry.steps_fragment(step.fragment)
            if fragment is None:
                self.not_found(
                    "steps", step.fragment, step.span, self.registry.steps_fragment_names()
                )
                continue
            if fragment.name in chain:
                cycle = " -> ".join([*chain[chain.index(fragment.name) :], fragment.name])
                self.report(
                    DiagnosticCode.RECURSIVE_FRAGMENT,
                    f"Steps fragment '{fragment.name}' spreads itself: {cycle}",
                    step.span,
                    "Remove the spread that closes the loop",
                )
                continue

            values = self.bind(fragment, step.params, step.span)
            data = _substitute([s.model_dump(by_alias=True) for s in fragment.steps], values)
            expanded.extend(self.steps(_STEPS.validate_python(data), (*chain, fragment.name)))
        return expanded

    def job(self, job: WorkflowJobNode) -> WorkflowJobNode | None:
        if not isinstance(job, FragmentJobNode):
            steps = self.steps(job.steps)
            if steps == job.steps:
                return job
            return job.model_copy(update={"steps": steps})

        fragment = self.registry.job_fragment(job.fragment)
        if fragment is None:
            self.not_found("job", job.fragment, job.span, self.registry.job_fragment_names())
            return None

        values = self.bind(fragment, job.params, job.span)
        data = _substitute([s.model_dump(by_alias=True) for s in fragment.steps], values)
        return JobNode(
            name=job.name,
            target=fragment.target,
            needs=list(fragment.needs if job.needs is None else job.needs),
            condition=fragment.condition,
            outputs=fragment.outputs,
            steps=self.steps(_STEPS.validate_python(data), (fragment.name,)),
            span=job.span,
        )

    def jobs(self, jobs: Sequence[WorkflowJobNode]) -> list[WorkflowJobNode]:
        return [expanded for job in jobs if (expanded := self.job(job)) is not None]


def expand_fragments(
    workflow: WorkflowNode,
    registry: FragmentRegistry,
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> FragmentExpansion:
    """Expand every fragment instance of a workflow.

    Expanding an already expanded workflow returns it unchanged.

    Args:
        workflow: Workflow that may hold fragment instances.
        registry: Fragments of the owning file.
        max_distance: Edit distance limit for suggestions.

    Returns:
        FragmentExpansion with the concrete workflow and its diagnostics.
    """
    expander = _Expander(registry, max_distance)
    jobs = expander.jobs(workflow.jobs)
    cycles = [
        cycle.model_copy(update={"body": expander.jobs(cycle.body)}) for cycle in workflow.cycles
    ]
    expanded = workflow.model_copy(update={"jobs": jobs, "cycles": cycles})

    logger.debug(
        "fragments_expanded",
        workflow=workflow.name,
        diagnostics=len(expander.diagnostics),
    )
    return FragmentExpansion(workflow=expanded, diagnostics=tuple(expander.diagnostics))
