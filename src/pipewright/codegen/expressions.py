"""Serialization of condition expressions to native expression strings.

The result goes into an ``if:`` field, which the target evaluates as an
expression on its own, so it is never wrapped in ``${{ }}``.
"""

from __future__ import annotations

from typing_extensions import assert_never

from pipewright.schemas.expressions import (
    BinaryExpression,
    BooleanLiteral,
    ExpressionNode,
    NullLiteral,
    NumberLiteral,
    PropertyAccess,
    StringLiteral,
    UnaryExpression,
)

_PRECEDENCE: dict[str, int] = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}


def quote_string(value: str) -> str:
    """Single-quote a string literal, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


def format_number(literal: NumberLiteral) -> str:
    if literal.raw is not None:
        return literal.raw
    if literal.value.is_integer():
        return str(int(literal.value))
    return repr(literal.value)


def _operand(expression: ExpressionNode, parent: int, right: bool) -> str:
    text = serialize_expression(expression)
    if isinstance(expression, BinaryExpression):
        own = _PRECEDENCE[expression.operator]
        if own < parent or (right and own == parent):
            return f"({text})"
    return text


def serialize_expression(expression: ExpressionNode) -> str:
    """Render an expression as infix text.

    Example:
        >>> serialize_expression(parse_expression("needs.a.outputs.ok == 'yes'"))
        "needs.a.outputs.ok == 'yes'"
    """
    if isinstance(expression, BinaryExpression):
        level = _PRECEDENCE[expression.operator]
        left = _operand(expression.left, level, right=False)
        right = _operand(expression.right, level, right=True)
        return f"{left} {expression.operator} {right}"
    if isinstance(expression, UnaryExpression):
        operand = serialize_expression(expression.operand)
        if isinstance(expression.operand, BinaryExpression):
            operand = f"({operand})"
        return f"!{operand}"
    if isinstance(expression, PropertyAccess):
        return ".".join(expression.path)
    if isinstance(expression, StringLiteral):
        return quote_string(expression.value)
    if isinstance(expression, NumberLiteral):
        return format_number(expression)
    if isinstance(expression, BooleanLiteral):
        return "true" if expression.value else "false"
    if isinstance(expression, NullLiteral):
        return "null"
    assert_never(expression)
