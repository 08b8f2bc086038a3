"""Rendering of structural types as JSON Schema for agent output schemas."""

from __future__ import annotations

import json
from typing import Any

from typing_extensions import assert_never

from pipewright.schemas.types import (
    ArrayType,
    LiteralType,
    NullType,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    SchemaTypeNode,
    UnionType,
)
from pipewright.typesystem.references import resolve_type
from pipewright.typesystem.registry import TypeRegistry

_PRIMITIVE_SCHEMAS: dict[str, dict[str, Any]] = {
    "string": {"type": "string"},
    "int": {"type": "integer"},
    "float": {"type": "number"},
    "bool": {"type": "boolean"},
    "path": {"type": "string"},
    "json": {},
}


def to_json_schema(
    node: SchemaTypeNode,
    registry: TypeRegistry,
    _visiting: frozenset[tuple[str, str]] = frozenset(),
) -> dict[str, Any]:
    """Convert a type to a JSON Schema dict.

    References resolve through the registry. Unknown or recursive
    references render as ``{"$ref": name}``.
    """
    if isinstance(node, ReferenceType):
        registered = registry.resolve(node.name)
        resolved = resolve_type(node, registry)
        if resolved is None or (registered and registered.canonical_id in _visiting):
            return {"$ref": node.name}
        visiting = _visiting | {registered.canonical_id} if registered else _visiting
        return to_json_schema(resolved.node, resolved.registry, visiting)

    if isinstance(node, ObjectType):
        properties = {f.name: to_json_schema(f.type, registry, _visiting) for f in node.fields}
        return {
            "type": "object",
            "properties": properties,
            "required": [f.name for f in node.fields if not f.optional],
            "additionalProperties": False,
        }
    if isinstance(node, ArrayType):
        return {"type": "array", "items": to_json_schema(node.items, registry, _visiting)}
    if isinstance(node, UnionType):
        literals = [m for m in node.members if isinstance(m, LiteralType)]
        nulls = [m for m in node.members if isinstance(m, NullType)]
        if literals and len(literals) + len(nulls) == len(node.members):
            if nulls:
                return {"type": ["string", "null"], "enum": [m.value for m in literals] + [None]}
            return {"type": "string", "enum": [m.value for m in literals]}
        return {"oneOf": [to_json_schema(m, registry, _visiting) for m in node.members]}
    if isinstance(node, PrimitiveType):
        return dict(_PRIMITIVE_SCHEMAS.get(node.name, {}))
    if isinstance(node, LiteralType):
        return {"type": "string", "const": node.value}
    if isinstance(node, NullType):
        return {"type": "null"}
    assert_never(node)


def render_json_schema(node: SchemaTypeNode, registry: TypeRegistry) -> str:
    """Compact JSON text of a type's schema."""
    return json.dumps(to_json_schema(node, registry), separators=(",", ":"))
