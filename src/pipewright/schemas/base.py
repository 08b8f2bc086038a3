"""Base class for AST nodes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pipewright.schemas.span import Span


class AstNode(BaseModel):
    """Immutable AST node carrying a source span.

    A node validated without a span still gets one, so the file path from
    the validation context reaches every node.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    span: Span = Field(default_factory=Span, description="Source location")

    @model_validator(mode="before")
    @classmethod
    def default_span(cls, data: Any) -> Any:
        """Insert an empty span so context stamping applies."""
        if isinstance(data, dict) and data.get("span") is None:
            return {**data, "span": {}}
        return data
