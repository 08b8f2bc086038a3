"""Semantic validators.

Each workflow validator is a pure function
``(WorkflowNode, TypeRegistry, CompilerConfig | None) -> list[Diagnostic]``.
All of them run on every compile, in the order of WORKFLOW_VALIDATORS, and
none stops the others.
"""

from __future__ import annotations

from collections.abc import Callable

from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic
from pipewright.schemas.workflow import WorkflowNode
from pipewright.typesystem.registry import TypeRegistry
from pipewright.validators.cycle_termination import validate_cycle_termination
from pipewright.validators.expression_types import validate_expression_types
from pipewright.validators.job_graph import validate_job_graph
from pipewright.validators.matrix_limit import validate_matrix_limits
from pipewright.validators.required_fields import validate_required_fields
from pipewright.validators.schema import (
    check_schema,
    validate_schemas,
    validate_type_declarations,
)
from pipewright.validators.structural import validate_structure

Validator = Callable[[WorkflowNode, TypeRegistry, CompilerConfig | None], list[Diagnostic]]

WORKFLOW_VALIDATORS: tuple[Validator, ...] = (
    validate_structure,
    validate_required_fields,
    validate_cycle_termination,
    validate_schemas,
    validate_expression_types,
    validate_matrix_limits,
    validate_job_graph,
)


def run_workflow_validators(
    workflow: WorkflowNode,
    registry: TypeRegistry,
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Run every workflow validator and concatenate their diagnostics."""
    diagnostics: list[Diagnostic] = []
    for validator in WORKFLOW_VALIDATORS:
        diagnostics.extend(validator(workflow, registry, config))
    return diagnostics


__all__ = [
    "WORKFLOW_VALIDATORS",
    "Validator",
    "check_schema",
    "run_workflow_validators",
    "validate_cycle_termination",
    "validate_expression_types",
    "validate_job_graph",
    "validate_matrix_limits",
    "validate_required_fields",
    "validate_schemas",
    "validate_structure",
    "validate_type_declarations",
]
