"""Structural type AST nodes.

Types are structural: an object type is identified by its fields, an
array by its item type and a union by its members. Named user types are
referenced through ReferenceType and resolved by the TypeRegistry.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Discriminator, Field

from pipewright.schemas.base import AstNode

PRIMITIVE_TYPES: tuple[str, ...] = ("string", "int", "float", "bool", "path", "json")
"""Recognized primitive type names."""

NUMERIC_PRIMITIVES = frozenset({"int", "float"})


class ObjectField(AstNode):
    """One field of an object type.

    Attributes:
        name: Field name.
        type: Field type.
        optional: Whether the field may be absent.
    """

    name: str = Field(..., min_length=1)
    type: SchemaTypeNode
    optional: bool = False


class ObjectType(AstNode):
    """Object type with an ordered field list."""

    kind: Literal["object"] = "object"
    fields: list[ObjectField] = Field(default_factory=list)

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> ObjectField | None:
        """Return the first field called ``name``, if any."""
        for field in self.fields:
            if field.name == name:
                return field
        return None


class ArrayType(AstNode):
    kind: Literal["array"] = "array"
    items: SchemaTypeNode


class UnionType(AstNode):
    """Union of member types (``A | B``)."""

    kind: Literal["union"] = "union"
    members: list[SchemaTypeNode] = Field(..., min_length=1)


class PrimitiveType(AstNode):
    """Primitive type. Unknown names are reported by the schema validator."""

    kind: Literal["primitive"] = "primitive"
    name: str = Field(..., min_length=1)


class LiteralType(AstNode):
    """String constant type, used to build enumerations."""

    kind: Literal["literal"] = "literal"
    value: str


class NullType(AstNode):
    kind: Literal["null"] = "null"


class ReferenceType(AstNode):
    """Reference to a named user type."""

    kind: Literal["reference"] = "reference"
    name: str = Field(..., min_length=1)


SchemaTypeNode = Annotated[
    ObjectType | ArrayType | UnionType | PrimitiveType | LiteralType | NullType | ReferenceType,
    Discriminator("kind"),
]
"""Structural type with discriminated union on ``kind``."""


class TypeDeclarationNode(AstNode):
    """Named type declaration ``type <name> = <body>``."""

    name: str = Field(..., min_length=1)
    body: SchemaTypeNode


ObjectField.model_rebuild()
ObjectType.model_rebuild()
ArrayType.model_rebuild()
UnionType.model_rebuild()
TypeDeclarationNode.model_rebuild()
