"""Unit tests for compiler result models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pipewright.compiler import CompileResult, ProjectResult
from pipewright.diagnostics import DiagnosticCode, Severity, make_diagnostic
from pipewright.schemas import Span

ERROR = make_diagnostic(DiagnosticCode.MISSING_TARGET, "Job 'a' is missing", Span(file="a.pipe"))
WARNING = make_diagnostic(DiagnosticCode.EMPTY_WORKFLOW, "Workflow 'b' has no jobs", Span())
INFO = make_diagnostic(DiagnosticCode.NON_NUMERIC_ARITHMETIC, "Operator '+'", Span())


class TestCompileResult:
    """Tests for CompileResult."""

    def test_partitions_by_severity(self) -> None:
        """Diagnostics are split into errors and warnings."""
        result = CompileResult(path="a.pipe", diagnostics=[INFO, WARNING, ERROR], success=False)
        assert result.errors == [ERROR]
        assert result.warnings == [WARNING]
        assert INFO.severity == Severity.INFO

    def test_defaults(self) -> None:
        """Optional fields start empty."""
        result = CompileResult(success=True)
        assert result.text is None
        assert result.diagnostics == []
        assert result.source_hash is None

    def test_success_is_required(self) -> None:
        """success has no default."""
        with pytest.raises(ValidationError):
            CompileResult(path="a.pipe")  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        """Results cannot be mutated."""
        result = CompileResult(success=True)
        with pytest.raises(ValidationError):
            result.success = False  # type: ignore[misc]


class TestProjectResult:
    """Tests for ProjectResult."""

    def test_success_requires_every_file(self) -> None:
        """One failed file fails the project."""
        project = ProjectResult(
            results={
                "b.pipe": CompileResult(path="b.pipe", success=True),
                "a.pipe": CompileResult(path="a.pipe", diagnostics=[ERROR], success=False),
            },
            order=["b.pipe", "a.pipe"],
        )
        assert not project.success

    def test_diagnostics_follow_compile_order(self) -> None:
        """Project diagnostics follow the compile order, not the dict order."""
        project = ProjectResult(
            results={
                "a.pipe": CompileResult(path="a.pipe", diagnostics=[ERROR], success=False),
                "b.pipe": CompileResult(path="b.pipe", diagnostics=[WARNING], success=True),
            },
            order=["b.pipe", "a.pipe"],
        )
        assert project.diagnostics() == [WARNING, ERROR]

    def test_empty_project_succeeds(self) -> None:
        """A project with no files succeeds."""
        assert ProjectResult().success
