"""Source file and import AST nodes."""

from __future__ import annotations

from pydantic import Field

from pipewright.schemas.base import AstNode
from pipewright.schemas.fragments import JobFragmentNode, StepsFragmentNode
from pipewright.schemas.types import TypeDeclarationNode
from pipewright.schemas.workflow import WorkflowNode


class ImportItem(AstNode):
    """One imported name, optionally bound under a local alias."""

    name: str = Field(..., min_length=1)
    alias: str | None = None

    @property
    def local_name(self) -> str:
        """Name the item is bound to in the importing file."""
        return self.alias or self.name


class ImportDeclarationNode(AstNode):
    """``import { A, B as C } from "./types.pipe"``."""

    path: str = Field(..., min_length=1)
    items: list[ImportItem] = Field(..., min_length=1)


class SourceFileNode(AstNode):
    """Parsed source file.

    A file may hold only type declarations; it then produces no output
    text but still yields diagnostics.

    Attributes:
        path: Path of the source file.
        workflow: Optional workflow definition.
        types: Type declarations in source order.
        imports: Import declarations in source order.
        job_fragments: Job fragment definitions in source order.
        steps_fragments: Steps fragment definitions in source order.
    """

    path: str = Field(..., min_length=1)
    workflow: WorkflowNode | None = None
    types: list[TypeDeclarationNode] = Field(default_factory=list)
    imports: list[ImportDeclarationNode] = Field(default_factory=list)
    job_fragments: list[JobFragmentNode] = Field(default_factory=list)
    steps_fragments: list[StepsFragmentNode] = Field(default_factory=list)
