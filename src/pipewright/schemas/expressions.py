"""Expression AST nodes used in job conditions and interpolations."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Discriminator, Field

from pipewright.schemas.base import AstNode

COMPARISON_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">="})
"""Operators comparing two values."""

ARITHMETIC_OPERATORS = frozenset({"+", "-", "*", "/", "%"})
"""Operators that expect numeric operands."""

LOGICAL_OPERATORS = frozenset({"&&", "||"})
"""Boolean connectives."""

BinaryOperator = Literal["==", "!=", "<", "<=", ">", ">=", "&&", "||", "+", "-", "*", "/", "%"]


class BinaryExpression(AstNode):
    """Infix operation ``left <operator> right``."""

    kind: Literal["binary"] = "binary"
    operator: BinaryOperator
    left: ExpressionNode
    right: ExpressionNode


class UnaryExpression(AstNode):
    """Logical negation ``!operand``."""

    kind: Literal["unary"] = "unary"
    operator: Literal["!"] = "!"
    operand: ExpressionNode


class PropertyAccess(AstNode):
    """Dotted property path such as ``needs.build.outputs.result``."""

    kind: Literal["property"] = "property"
    path: list[str] = Field(..., min_length=1)


class StringLiteral(AstNode):
    kind: Literal["string"] = "string"
    value: str


class NumberLiteral(AstNode):
    """Numeric literal. ``raw`` keeps the spelling used in the source."""

    kind: Literal["number"] = "number"
    value: float
    raw: str | None = None


class BooleanLiteral(AstNode):
    kind: Literal["boolean"] = "boolean"
    value: bool


class NullLiteral(AstNode):
    kind: Literal["null"] = "null"


ExpressionNode = Annotated[
    BinaryExpression
    | UnaryExpression
    | PropertyAccess
    | StringLiteral
    | NumberLiteral
    | BooleanLiteral
    | NullLiteral,
    Discriminator("kind"),
]
"""Expression with discriminated union on ``kind``."""

LiteralExpression = StringLiteral | NumberLiteral | BooleanLiteral | NullLiteral

BinaryExpression.model_rebuild()
UnaryExpression.model_rebuild()
