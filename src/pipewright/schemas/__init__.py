"""AST models for pipewright.

This module exports the AST node models produced by the front end:
- SourceFileNode: one parsed file (workflow, types, imports, fragments)
- WorkflowNode: workflow with jobs and cycles
- Job, step, type and expression node variants (discriminated unions)
- Job and steps fragment definitions
"""

from __future__ import annotations

from pipewright.schemas.document import FrontEnd, load_source_file
from pipewright.schemas.expressions import (
    ARITHMETIC_OPERATORS,
    COMPARISON_OPERATORS,
    LOGICAL_OPERATORS,
    BinaryExpression,
    BooleanLiteral,
    ExpressionNode,
    NullLiteral,
    NumberLiteral,
    PropertyAccess,
    StringLiteral,
    UnaryExpression,
)
from pipewright.schemas.fragments import JobFragmentNode, ParamDeclaration, StepsFragmentNode
from pipewright.schemas.source_file import ImportDeclarationNode, ImportItem, SourceFileNode
from pipewright.schemas.span import Span
from pipewright.schemas.types import (
    PRIMITIVE_TYPES,
    ArrayType,
    LiteralType,
    NullType,
    ObjectField,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    SchemaTypeNode,
    TypeDeclarationNode,
    UnionType,
)
from pipewright.schemas.workflow import (
    AgentJobNode,
    AgentTaskSpec,
    AgentTaskStep,
    AnyJobNode,
    ConsumeDeclaration,
    CycleNode,
    FilePrompt,
    FragmentJobNode,
    FragmentStepsStep,
    GuardBlock,
    GuardStep,
    JobNode,
    LiteralPrompt,
    MatrixCombination,
    MatrixJobNode,
    MatrixValue,
    McpConfig,
    OutputDeclaration,
    ParamValue,
    PromptValue,
    ShellStep,
    StepNode,
    TemplatePrompt,
    UsesStep,
    WorkflowJobNode,
    WorkflowNode,
    concrete_jobs,
    prompt_text,
)

__all__ = [
    # Expressions
    "ARITHMETIC_OPERATORS",
    "COMPARISON_OPERATORS",
    "LOGICAL_OPERATORS",
    "BinaryExpression",
    "BooleanLiteral",
    "ExpressionNode",
    "NullLiteral",
    "NumberLiteral",
    "PropertyAccess",
    "StringLiteral",
    "UnaryExpression",
    # Types
    "PRIMITIVE_TYPES",
    "ArrayType",
    "LiteralType",
    "NullType",
    "ObjectField",
    "ObjectType",
    "PrimitiveType",
    "ReferenceType",
    "SchemaTypeNode",
    "TypeDeclarationNode",
    "UnionType",
    # Workflow
    "AgentJobNode",
    "AgentTaskSpec",
    "AgentTaskStep",
    "AnyJobNode",
    "ConsumeDeclaration",
    "CycleNode",
    "FilePrompt",
    "FragmentJobNode",
    "FragmentStepsStep",
    "GuardBlock",
    "GuardStep",
    "JobNode",
    "LiteralPrompt",
    "MatrixCombination",
    "MatrixJobNode",
    "MatrixValue",
    "McpConfig",
    "OutputDeclaration",
    "ParamValue",
    "PromptValue",
    "ShellStep",
    "StepNode",
    "TemplatePrompt",
    "UsesStep",
    "WorkflowJobNode",
    "WorkflowNode",
    "concrete_jobs",
    "prompt_text",
    # Fragments
    "JobFragmentNode",
    "ParamDeclaration",
    "StepsFragmentNode",
    # Files
    "FrontEnd",
    "ImportDeclarationNode",
    "ImportItem",
    "SourceFileNode",
    "Span",
    "load_source_file",
]
