"""Expression parsing for interpolations."""

from __future__ import annotations

from pipewright.expressions.parser import extract_interpolations, parse_expression, tokenize

__all__ = ["extract_interpolations", "parse_expression", "tokenize"]
