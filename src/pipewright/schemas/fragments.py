"""Fragment definition AST nodes.

A fragment is a reusable, parameterized piece of a workflow declared at
file level. Job fragments stand in for a whole job; steps fragments are
spread into the step list of a job. Parameters are referenced in fragment
text as ``${{ params.<name> }}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from pipewright.schemas.base import AstNode
from pipewright.schemas.expressions import ExpressionNode
from pipewright.schemas.types import SchemaTypeNode
from pipewright.schemas.workflow import OutputDeclaration, ParamValue, StepNode


class ParamDeclaration(AstNode):
    """Fragment parameter.

    A parameter without a default must be passed by every instantiation.

    Attributes:
        name: Parameter name.
        type: Optional declared type; a bare name is a primitive.
        default: Value used when an instantiation omits the parameter.
    """

    name: str = Field(..., pattern=r"^\w+$")
    type: SchemaTypeNode | None = None
    default: ParamValue | None = None

    @field_validator("type", mode="before")
    @classmethod
    def name_as_primitive(cls, v: Any) -> Any:
        """Accept a bare primitive name for ``type``."""
        if isinstance(v, str):
            return {"kind": "primitive", "name": v}
        return v

    @property
    def required(self) -> bool:
        return self.default is None


class _FragmentBase(AstNode):
    name: str = Field(..., min_length=1)
    params: list[ParamDeclaration] = Field(default_factory=list)

    def param_names(self) -> list[str]:
        return [p.name for p in self.params]


class JobFragmentNode(_FragmentBase):
    """Reusable job body.

    Example:
        >>> fragment = JobFragmentNode(
        ...     name="lint",
        ...     params=[ParamDeclaration(name="path", default=".")],
        ...     target="ubuntu-latest",
        ...     steps=[ShellStep(content="ruff check ${{ params.path }}")],
        ... )
    """

    target: str | None = None
    needs: list[str] = Field(default_factory=list)
    condition: ExpressionNode | None = None
    outputs: list[OutputDeclaration] = Field(default_factory=list)
    steps: list[StepNode] = Field(default_factory=list)

    @field_validator("needs", mode="before")
    @classmethod
    def single_need(cls, v: Any) -> Any:
        """Accept a single job name for ``needs``."""
        if isinstance(v, str):
            return [v]
        return v


class StepsFragmentNode(_FragmentBase):
    """Reusable step sequence."""

    steps: list[StepNode] = Field(default_factory=list)
