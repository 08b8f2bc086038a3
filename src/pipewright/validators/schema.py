"""Schema validation of structural types.

Checks applied to every type body, output declaration and agent output
schema:
- primitive names come from the recognized set
- object types declare at least one field, with no duplicate names
- unions are either nullable (``T | null``) or string-literal enumerations
"""

from __future__ import annotations

from typing_extensions import assert_never

from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, did_you_mean, make_diagnostic
from pipewright.diagnostics.suggest import DEFAULT_MAX_DISTANCE
from pipewright.schemas.source_file import SourceFileNode
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
from pipewright.schemas.workflow import WorkflowNode
from pipewright.typesystem.references import describe_type, workflow_type_positions
from pipewright.typesystem.registry import TypeRegistry


def is_nullable_union(node: UnionType) -> bool:
    """``T | null`` with exactly one non-null member."""
    nulls = sum(1 for m in node.members if isinstance(m, NullType))
    return nulls == 1 and len(node.members) == 2


def is_literal_enum(node: UnionType) -> bool:
    """Union of string literals, optionally with ``null``."""
    non_null = [m for m in node.members if not isinstance(m, NullType)]
    return bool(non_null) and all(isinstance(m, LiteralType) for m in non_null)


def check_schema(
    node: SchemaTypeNode,
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> list[Diagnostic]:
    """Validate one type and everything nested inside it."""
    diagnostics: list[Diagnostic] = []

    if isinstance(node, PrimitiveType):
        if node.name not in PRIMITIVE_TYPES:
            hint = did_you_mean(node.name, PRIMITIVE_TYPES, max_distance=max_distance)
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.UNKNOWN_PRIMITIVE,
                    f"Unknown primitive type '{node.name}'",
                    node.span,
                    hint=hint or f"Valid primitives: {', '.join(PRIMITIVE_TYPES)}",
                )
            )
    elif isinstance(node, ObjectType):
        if not node.fields:
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.EMPTY_OBJECT,
                    "Object type must declare at least one field",
                    node.span,
                )
            )
        seen: set[str] = set()
        for object_field in node.fields:
            if object_field.name in seen:
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.DUPLICATE_FIELD,
                        f"Field '{object_field.name}' is declared more than once",
                        object_field.span,
                    )
                )
            seen.add(object_field.name)
            diagnostics.extend(check_schema(object_field.type, max_distance=max_distance))
    elif isinstance(node, ArrayType):
        diagnostics.extend(check_schema(node.items, max_distance=max_distance))
    elif isinstance(node, UnionType):
        if not is_nullable_union(node) and not is_literal_enum(node):
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.INVALID_UNION,
                    f"Union '{describe_type(node)}' is likely a misuse",
                    node.span,
                    hint="Unions should be 'T | null' or a set of string literals",
                )
            )
        for member in node.members:
            diagnostics.extend(check_schema(member, max_distance=max_distance))
    elif isinstance(node, (LiteralType, NullType, ReferenceType)):
        pass
    else:
        assert_never(node)

    return diagnostics


def validate_type_declarations(
    source: SourceFileNode,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Validate the bodies of the types a file declares."""
    max_distance = config.suggestion_max_distance if config else DEFAULT_MAX_DISTANCE
    diagnostics: list[Diagnostic] = []
    for declaration in source.types:
        diagnostics.extend(check_schema(declaration.body, max_distance=max_distance))
    return diagnostics


def validate_schemas(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Validate job output types and agent output schemas."""
    max_distance = config.suggestion_max_distance if config else DEFAULT_MAX_DISTANCE
    diagnostics: list[Diagnostic] = []
    for position in workflow_type_positions(workflow):
        diagnostics.extend(check_schema(position, max_distance=max_distance))
    return diagnostics
