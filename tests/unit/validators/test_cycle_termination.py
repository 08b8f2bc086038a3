"""Unit tests for cycle termination checks."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from conftest import shell_job

from pipewright.diagnostics import DiagnosticCode, Severity
from pipewright.schemas import WorkflowNode
from pipewright.typesystem import TypeRegistry
from pipewright.validators import validate_cycle_termination

MakeWorkflow = Callable[..., WorkflowNode]


def cycle(**fields: Any) -> dict[str, Any]:
    return {"name": "refine", "body": [shell_job("work")], **fields}


class TestValidateCycleTermination:
    """Tests for validate_cycle_termination."""

    @pytest.mark.parametrize(
        "fields",
        [
            {"max_iters": 5},
            {"max_iters": 5, "until": {"code": "return state.done;"}},
            {},
        ],
    )
    def test_accepted(self, make_workflow: MakeWorkflow, fields: dict[str, Any]) -> None:
        """A positive ceiling, a predicate or the default ceiling is accepted."""
        workflow = make_workflow(cycles=[cycle(**fields)])
        assert validate_cycle_termination(workflow, TypeRegistry.empty()) == []

    @pytest.mark.parametrize("max_iters", [0, -1])
    def test_non_positive_ceiling(self, make_workflow: MakeWorkflow, max_iters: int) -> None:
        """A zero or negative max_iters is an error."""
        workflow = make_workflow(cycles=[cycle(max_iters=max_iters)])
        (diagnostic,) = validate_cycle_termination(workflow, TypeRegistry.empty())
        assert diagnostic.code == DiagnosticCode.INVALID_MAX_ITERS
        assert diagnostic.severity == Severity.ERROR
        assert diagnostic.message == (
            f"Cycle 'refine' has max_iters {max_iters}; it must be positive"
        )

    def test_predicate_without_ceiling_warns(self, make_workflow: MakeWorkflow) -> None:
        """A predicate with no explicit ceiling only warns."""
        workflow = make_workflow(cycles=[cycle(until={"code": "return true;"})])
        (diagnostic,) = validate_cycle_termination(workflow, TypeRegistry.empty())
        assert diagnostic.code == DiagnosticCode.UNBOUNDED_CYCLE
        assert diagnostic.severity == Severity.WARNING
