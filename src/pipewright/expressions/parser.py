"""Parser for ``${{ ... }}`` interpolations in step text.

Interpolations are parsed best-effort: the checker only needs the
comparisons and arithmetic it can type, so anything this grammar does not
cover (function calls, indexing) raises ExpressionSyntaxError and the
caller skips it.

Grammar, loosest binding first::

    or         := and ("||" and)*
    and        := equality ("&&" equality)*
    equality   := relational (("==" | "!=") relational)*
    relational := additive (("<" | "<=" | ">" | ">=") additive)*
    additive   := term (("+" | "-") term)*
    term       := unary (("*" | "/" | "%") unary)*
    unary      := "!" unary | primary
    primary    := literal | property | "(" or ")"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pipewright.errors import ExpressionSyntaxError
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
from pipewright.schemas.span import Span

INTERPOLATION_PATTERN = re.compile(r"\$\{\{(.*?)\}\}", re.DOTALL)

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+(?:\.\d+)?)
  | (?P<string>'(?:[^']|'')*'|"(?:[^"\\]|\\.)*")
  | (?P<op>==|!=|<=|>=|&&|\|\||[<>!+\-*/%()])
  | (?P<ident>[A-Za-z_][A-Za-z0-9_-]*(?:\.[A-Za-z_*][A-Za-z0-9_-]*)*)
    """,
    re.VERBOSE,
)

_BINARY_LEVELS: tuple[frozenset[str], ...] = (
    frozenset({"||"}),
    frozenset({"&&"}),
    frozenset({"==", "!="}),
    frozenset({"<", "<=", ">", ">="}),
    frozenset({"+", "-"}),
    frozenset({"*", "/", "%"}),
)


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    position: int


def tokenize(source: str) -> list[_Token]:
    """Split expression text into tokens.

    Raises:
        ExpressionSyntaxError: On a character no token starts with.
    """
    tokens: list[_Token] = []
    position = 0
    while position < len(source):
        match = _TOKEN_PATTERN.match(source, position)
        if match is None:
            raise ExpressionSyntaxError(
                f"Unexpected character '{source[position]}'",
                source=source,
                position=position,
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append(_Token(kind, match.group(), position))
        position = match.end()
    return tokens


class _Parser:
    def __init__(self, source: str, span: Span) -> None:
        self.source = source
        self.span = span
        self.tokens = tokenize(source)
        self.index = 0

    def error(self, message: str) -> ExpressionSyntaxError:
        token = self.peek()
        position = token.position if token is not None else len(self.source)
        return ExpressionSyntaxError(message, source=self.source, position=position)

    def peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> _Token:
        token = self.peek()
        if token is None:
            raise self.error("Unexpected end of expression")
        self.index += 1
        return token

    def parse(self) -> ExpressionNode:
        if not self.tokens:
            raise self.error("Empty expression")
        expression = self.parse_binary(0)
        if self.peek() is not None:
            raise self.error(f"Unexpected token '{self.tokens[self.index].text}'")
        return expression

    def parse_binary(self, level: int) -> ExpressionNode:
        if level == len(_BINARY_LEVELS):
            return self.parse_unary()
        operators = _BINARY_LEVELS[level]
        left = self.parse_binary(level + 1)
        while True:
            token = self.peek()
            if token is None or token.kind != "op" or token.text not in operators:
                return left
            self.advance()
            right = self.parse_binary(level + 1)
            left = BinaryExpression(operator=token.text, left=left, right=right, span=self.span)

    def parse_unary(self) -> ExpressionNode:
        token = self.peek()
        if token is not None and token.kind == "op" and token.text == "!":
            self.advance()
            return UnaryExpression(operand=self.parse_unary(), span=self.span)
        return self.parse_primary()

    def parse_primary(self) -> ExpressionNode:
        token = self.advance()
        if token.kind == "number":
            return NumberLiteral(value=float(token.text), raw=token.text, span=self.span)
        if token.kind == "string":
            return StringLiteral(value=_unquote(token.text), span=self.span)
        if token.kind == "ident":
            if token.text == "true" or token.text == "false":
                return BooleanLiteral(value=token.text == "true", span=self.span)
            if token.text == "null":
                return NullLiteral(span=self.span)
            nxt = self.peek()
            if nxt is not None and nxt.text == "(":
                raise self.error(f"Function call '{token.text}' is not supported")
            return PropertyAccess(path=token.text.split("."), span=self.span)
        if token.kind == "op" and token.text == "(":
            inner = self.parse_binary(0)
            closing = self.advance()
            if closing.text != ")":
                raise self.error("Expected ')'")
            return inner
        raise self.error(f"Unexpected token '{token.text}'")


def _unquote(text: str) -> str:
    if text.startswith("'"):
        return text[1:-1].replace("''", "'")
    return re.sub(r"\\(.)", r"\1", text[1:-1])


def parse_expression(source: str, span: Span | None = None) -> ExpressionNode:
    """Parse one expression.

    Args:
        source: Expression text without the ``${{ }}`` delimiters.
        span: Span given to every node produced.

    Returns:
        Parsed ExpressionNode.

    Raises:
        ExpressionSyntaxError: If the text is outside the supported grammar.

    Example:
        >>> parse_expression("needs.test.outputs.score > 80").operator
        '>'
    """
    return _Parser(source.strip(), span or Span()).parse()


def extract_interpolations(text: str, span: Span | None = None) -> list[ExpressionNode]:
    """Parse every ``${{ ... }}`` in ``text``, skipping unparseable ones."""
    expressions: list[ExpressionNode] = []
    for match in INTERPOLATION_PATTERN.finditer(text):
        try:
            expressions.append(parse_expression(match.group(1), span))
        except ExpressionSyntaxError:
            continue
    return expressions
