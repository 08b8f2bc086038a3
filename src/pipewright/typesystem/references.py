"""Type reference resolution and checks.

This module provides:
- resolve_type: follow named references to a structural type
- check_type_references: every named type used by a file must exist
- check_property_access: property paths must name declared fields
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from typing_extensions import assert_never

from pipewright.diagnostics import Diagnostic, DiagnosticCode, did_you_mean, make_diagnostic
from pipewright.diagnostics.suggest import DEFAULT_MAX_DISTANCE
from pipewright.schemas.source_file import SourceFileNode
from pipewright.schemas.span import Span
from pipewright.schemas.types import (
    PRIMITIVE_TYPES,
    ArrayType,
    LiteralType,
    NullType,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    SchemaTypeNode,
    UnionType,
)
from pipewright.schemas.workflow import AgentJobNode, AgentTaskStep, AnyJobNode, WorkflowNode
from pipewright.typesystem.registry import TypeRegistry


@dataclass(frozen=True)
class ResolvedType:
    """A structural type with the scope its nested references resolve in.

    Attributes:
        node: Structural type (never a reference).
        registry: Scope of the file that declared the type.
        name: Declared name when reached through a reference.
    """

    node: SchemaTypeNode
    registry: TypeRegistry
    name: str | None = None


def resolve_type(node: SchemaTypeNode, registry: TypeRegistry) -> ResolvedType | None:
    """Follow references until a structural type is reached.

    A reference naming a primitive resolves to that primitive. Unknown and
    self-referential names resolve to None.
    """
    name: str | None = None
    seen: set[tuple[str, str]] = set()

    while isinstance(node, ReferenceType):
        if node.name in PRIMITIVE_TYPES:
            return ResolvedType(PrimitiveType(name=node.name, span=node.span), registry, name)
        registered = registry.resolve(node.name)
        if registered is None or registered.canonical_id in seen:
            return None
        seen.add(registered.canonical_id)
        name = registered.name
        registry = registry.scope_of(registered.origin)
        node = registered.declaration.body

    return ResolvedType(node, registry, name)


def unwrap_nullable(node: SchemaTypeNode) -> SchemaTypeNode:
    """Reduce ``T | null`` to ``T``; other types are returned unchanged."""
    if isinstance(node, UnionType):
        non_null = [m for m in node.members if not isinstance(m, NullType)]
        if len(non_null) == 1 and len(non_null) < len(node.members):
            return non_null[0]
    return node


def describe_type(node: SchemaTypeNode) -> str:
    """Short human-readable rendering of a type."""
    if isinstance(node, ObjectType):
        inner = ", ".join(f"{f.name}: {describe_type(f.type)}" for f in node.fields)
        return f"{{ {inner} }}"
    if isinstance(node, ArrayType):
        return f"[{describe_type(node.items)}]"
    if isinstance(node, UnionType):
        return " | ".join(describe_type(m) for m in node.members)
    if isinstance(node, PrimitiveType):
        return node.name
    if isinstance(node, LiteralType):
        return f'"{node.value}"'
    if isinstance(node, NullType):
        return "null"
    if isinstance(node, ReferenceType):
        return node.name
    assert_never(node)


def iter_references(node: SchemaTypeNode) -> Iterator[ReferenceType]:
    """Yield every reference inside a type, depth first in source order."""
    if isinstance(node, ReferenceType):
        yield node
    elif isinstance(node, ObjectType):
        for object_field in node.fields:
            yield from iter_references(object_field.type)
    elif isinstance(node, ArrayType):
        yield from iter_references(node.items)
    elif isinstance(node, UnionType):
        for member in node.members:
            yield from iter_references(member)
    elif isinstance(node, (PrimitiveType, LiteralType, NullType)):
        return
    else:
        assert_never(node)


def job_type_positions(job: AnyJobNode) -> Iterator[SchemaTypeNode]:
    """Types used by a job: outputs, then agent output schemas."""
    for output in job.outputs:
        yield output.type
    if isinstance(job, AgentJobNode) and job.task.output_schema is not None:
        yield job.task.output_schema
    for step in job.steps:
        if isinstance(step, AgentTaskStep) and step.task.output_schema is not None:
            yield step.task.output_schema


def workflow_type_positions(workflow: WorkflowNode) -> Iterator[SchemaTypeNode]:
    for job in workflow.all_jobs():
        yield from job_type_positions(job)


def check_type_references(
    source: SourceFileNode,
    registry: TypeRegistry,
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> list[Diagnostic]:
    """Report every reference to a type name that is not visible.

    Covers declaration bodies, fragment parameter types, job outputs and
    agent output schemas.
    """
    positions: list[SchemaTypeNode] = [d.body for d in source.types]
    for fragment in (*source.job_fragments, *source.steps_fragments):
        positions.extend(param.type for param in fragment.params if param.type is not None)
    if source.workflow is not None:
        positions.extend(workflow_type_positions(source.workflow))

    candidates = [*registry.names(), *PRIMITIVE_TYPES]
    diagnostics: list[Diagnostic] = []

    for position in positions:
        for reference in iter_references(position):
            if reference.name in PRIMITIVE_TYPES or registry.has(reference.name):
                continue
            hint = did_you_mean(reference.name, candidates, max_distance=max_distance)
            if hint is None and registry.names():
                hint = f"Available types: {', '.join(registry.names())}"
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.UNDEFINED_TYPE,
                    f"Unknown type '{reference.name}'",
                    reference.span,
                    hint=hint,
                )
            )

    return diagnostics


@dataclass(frozen=True)
class PropertyResolution:
    """Outcome of walking a property path over a type.

    Attributes:
        resolved: Type reached at the end of the path, or None when the walk
            stopped early (unknown property, or a type without fields).
        diagnostics: Unknown-property diagnostics.
    """

    resolved: ResolvedType | None
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


def check_property_access(
    segments: list[str],
    root: SchemaTypeNode,
    registry: TypeRegistry,
    span: Span,
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> PropertyResolution:
    """Walk ``segments`` across ``root`` checking each against declared fields.

    Nullable unions unwrap to their non-null member. Arrays, primitives,
    ``json``, literals and other unions stop the walk without a diagnostic.

    Example:
        >>> result = check_property_access(["scroe"], review_type, registry, span)
        >>> result.diagnostics[0].hint
        "Did you mean 'score'?"
    """
    current = resolve_type(root, registry)

    for segment in segments:
        if current is None:
            return PropertyResolution(None)
        node = unwrap_nullable(current.node)
        if node is not current.node:
            current = resolve_type(node, current.registry)
            if current is None:
                return PropertyResolution(None)
            node = current.node

        if not isinstance(node, ObjectType):
            return PropertyResolution(None)

        object_field = node.get_field(segment)
        if object_field is None:
            names = node.field_names()
            label = f"'{current.name}'" if current.name else "object type"
            hint = did_you_mean(segment, names, max_distance=max_distance)
            if hint is None:
                hint = f"Available properties: {', '.join(names)}" if names else None
            diagnostic = make_diagnostic(
                DiagnosticCode.UNKNOWN_PROPERTY,
                f"Property '{segment}' does not exist on {label}",
                span,
                hint=hint,
            )
            return PropertyResolution(None, (diagnostic,))

        current = resolve_type(object_field.type, current.registry)

    return PropertyResolution(current)
