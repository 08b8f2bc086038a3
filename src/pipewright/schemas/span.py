"""Source span model shared by AST nodes and diagnostics."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator


class Span(BaseModel):
    """Location of a construct in a source file.

    Lines and columns are 1-based. When a span is validated with a
    ``{"file": path}`` validation context and carries no file of its own,
    the context path is stamped onto it.

    Attributes:
        file: Source file path.
        start_line: First line of the construct.
        start_col: First column of the construct.
        end_line: Last line of the construct.
        end_col: Column just past the construct.

    Example:
        >>> Span.model_validate({"start_line": 3}, context={"file": "ci.pipe"}).file
        'ci.pipe'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    file: str = Field(default="", description="Source file path")
    start_line: int = Field(default=1, ge=1, description="Start line (1-based)")
    start_col: int = Field(default=1, ge=1, description="Start column (1-based)")
    end_line: int = Field(default=1, ge=1, description="End line (1-based)")
    end_col: int = Field(default=1, ge=1, description="End column (1-based)")

    @model_validator(mode="before")
    @classmethod
    def stamp_file(cls, data: Any, info: ValidationInfo) -> Any:
        """Fill in the file path from validation context."""
        if not isinstance(data, dict) or data.get("file"):
            return data
        context = info.context or {}
        if "file" in context:
            return {**data, "file": context["file"]}
        return data

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase wire shape of this span."""
        return {
            "file": self.file,
            "startLine": self.start_line,
            "startCol": self.start_col,
            "endLine": self.end_line,
            "endCol": self.end_col,
        }
