"""Best-effort type checking of expressions.

Expressions come from job conditions and from ``${{ ... }}``
interpolations in step text. Properties of the form
``needs.<job>.outputs.<output>[.<field>...]`` resolve to the declared
output type. The checker never raises errors of its own; it reports:
- comparisons against a literal of an incompatible type (warning)
- arithmetic on a non-numeric declared type (info)
Unknown properties on declared object types are type-system errors.
Unknown job outputs are left to the job graph checks.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from typing_extensions import assert_never

from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.diagnostics.suggest import DEFAULT_MAX_DISTANCE
from pipewright.expressions.parser import extract_interpolations
from pipewright.schemas.expressions import (
    ARITHMETIC_OPERATORS,
    COMPARISON_OPERATORS,
    BinaryExpression,
    BooleanLiteral,
    ExpressionNode,
    NullLiteral,
    NumberLiteral,
    PropertyAccess,
    StringLiteral,
    UnaryExpression,
)
from pipewright.schemas.types import (
    NUMERIC_PRIMITIVES,
    ArrayType,
    LiteralType,
    NullType,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    SchemaTypeNode,
    UnionType,
)
from pipewright.schemas.workflow import (
    AgentJobNode,
    AgentTaskSpec,
    AgentTaskStep,
    AnyJobNode,
    FragmentStepsStep,
    GuardStep,
    ShellStep,
    UsesStep,
    WorkflowNode,
    prompt_text,
)
from pipewright.typesystem.references import (
    ResolvedType,
    check_property_access,
    describe_type,
    resolve_type,
    unwrap_nullable,
)
from pipewright.typesystem.registry import TypeRegistry

LiteralNode = StringLiteral | NumberLiteral | BooleanLiteral | NullLiteral


@dataclass
class _Checker:
    jobs: dict[str, AnyJobNode]
    registry: TypeRegistry
    max_distance: int

    def __post_init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []
        self._resolved: dict[int, ResolvedType | None] = {}

    def check(self, expression: ExpressionNode) -> None:
        if isinstance(expression, BinaryExpression):
            self.check(expression.left)
            self.check(expression.right)
            if expression.operator in COMPARISON_OPERATORS:
                self.check_comparison(expression)
            elif expression.operator in ARITHMETIC_OPERATORS:
                self.check_arithmetic(expression)
        elif isinstance(expression, UnaryExpression):
            self.check(expression.operand)
        elif isinstance(expression, PropertyAccess):
            self._resolved[id(expression)] = self.resolve_property(expression)
        elif isinstance(expression, (StringLiteral, NumberLiteral, BooleanLiteral, NullLiteral)):
            pass
        else:
            assert_never(expression)

    def resolve_property(self, expression: PropertyAccess) -> ResolvedType | None:
        """Declared type of a ``needs.<job>.outputs.<name>`` path, if any."""
        path = expression.path
        if len(path) < 4 or path[0] != "needs" or path[2] != "outputs":
            return None
        job = self.jobs.get(path[1])
        if job is None:
            return None

        output = next((o for o in job.outputs if o.name == path[3]), None)
        if output is None:
            # Undeclared outputs are reported by the job graph checks
            return None

        result = check_property_access(
            path[4:],
            output.type,
            self.registry,
            expression.span,
            max_distance=self.max_distance,
        )
        self.diagnostics.extend(result.diagnostics)
        return result.resolved

    def declared_type(self, expression: ExpressionNode) -> ResolvedType | None:
        """Type resolved for a property operand by an earlier check()."""
        return self._resolved.get(id(expression))

    def check_comparison(self, expression: BinaryExpression) -> None:
        pairs = ((expression.left, expression.right), (expression.right, expression.left))
        for side, other in pairs:
            if not isinstance(side, PropertyAccess) or not isinstance(other, LiteralNode):
                continue
            declared = self.declared_type(side)
            if declared is None or _accepts_literal(declared, other):
                continue
            self.diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.COMPARISON_TYPE_MISMATCH,
                    f"Comparing '{'.'.join(side.path)}' of type "
                    f"'{describe_type(declared.node)}' with {_describe_literal(other)}",
                    expression.span,
                    hint="The comparison can never be true as declared",
                )
            )

    def check_arithmetic(self, expression: BinaryExpression) -> None:
        for side in (expression.left, expression.right):
            if not isinstance(side, PropertyAccess):
                continue
            declared = self.declared_type(side)
            if declared is None or _is_numeric(declared):
                continue
            self.diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.NON_NUMERIC_ARITHMETIC,
                    f"Operator '{expression.operator}' applied to '{'.'.join(side.path)}' "
                    f"of non-numeric type '{describe_type(declared.node)}'",
                    expression.span,
                )
            )


def _describe_literal(literal: LiteralNode) -> str:
    if isinstance(literal, StringLiteral):
        return f"string literal '{literal.value}'"
    if isinstance(literal, NumberLiteral):
        return f"number literal {literal.raw or f'{literal.value:g}'}"
    if isinstance(literal, BooleanLiteral):
        return f"boolean literal {'true' if literal.value else 'false'}"
    return "null"


def _members(resolved: ResolvedType) -> Iterator[ResolvedType]:
    """Flatten unions (through references) into their member types."""
    node = resolved.node
    if isinstance(node, UnionType):
        for member in node.members:
            inner = resolve_type(member, resolved.registry)
            if inner is not None:
                yield from _members(inner)
    else:
        yield resolved


def _accepts_literal(declared: ResolvedType, literal: LiteralNode) -> bool:
    if isinstance(literal, NullLiteral):
        return True
    return any(_member_accepts(m.node, literal) for m in _members(declared))


def _member_accepts(node: SchemaTypeNode, literal: LiteralNode) -> bool:
    if isinstance(node, PrimitiveType):
        if node.name == "json":
            return True
        if isinstance(literal, StringLiteral):
            return node.name in {"string", "path"}
        if isinstance(literal, NumberLiteral):
            return node.name in NUMERIC_PRIMITIVES
        if isinstance(literal, BooleanLiteral):
            return node.name == "bool"
        # Unrecognized primitive names are reported by the schema validator
        return True
    if isinstance(node, LiteralType):
        return isinstance(literal, StringLiteral) and literal.value == node.value
    if isinstance(node, (NullType, ObjectType, ArrayType)):
        return False
    if isinstance(node, (UnionType, ReferenceType)):
        return True
    assert_never(node)


def _is_numeric(declared: ResolvedType) -> bool:
    node = unwrap_nullable(declared.node)
    inner = resolve_type(node, declared.registry)
    if inner is None:
        return True
    members = list(_members(inner))
    return all(
        isinstance(m.node, PrimitiveType) and m.node.name in {*NUMERIC_PRIMITIVES, "json"}
        for m in members
        if not isinstance(m.node, NullType)
    )


def _task_texts(task: AgentTaskSpec) -> Iterator[str]:
    for prompt in (task.prompt, task.system_prompt):
        text = prompt_text(prompt)
        if text:
            yield text


def _job_texts(job: AnyJobNode) -> Iterator[str]:
    for step in job.steps:
        if isinstance(step, ShellStep):
            yield step.content
        elif isinstance(step, UsesStep):
            for value in (step.with_ or {}).values():
                if isinstance(value, str):
                    yield value
        elif isinstance(step, AgentTaskStep):
            yield from _task_texts(step.task)
        elif isinstance(step, (GuardStep, FragmentStepsStep)):
            pass
        else:
            assert_never(step)
    if isinstance(job, AgentJobNode):
        yield from _task_texts(job.task)


def iter_job_expressions(job: AnyJobNode) -> Iterator[ExpressionNode]:
    """Condition of a job followed by the interpolations in its steps."""
    if job.condition is not None:
        yield job.condition
    for text in _job_texts(job):
        yield from extract_interpolations(text, job.span)


def validate_expression_types(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Check every expression in a workflow against declared output types."""
    max_distance = config.suggestion_max_distance if config else DEFAULT_MAX_DISTANCE
    jobs: dict[str, AnyJobNode] = {}
    for job in workflow.all_jobs():
        jobs.setdefault(job.name, job)

    checker = _Checker(jobs, registry, max_distance)
    for job in workflow.all_jobs():
        for expression in iter_job_expressions(job):
            checker.check(expression)
    return checker.diagnostics
