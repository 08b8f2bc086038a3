"""Unit tests for AST models and the document front end."""

from __future__ import annotations

import pytest
import yaml
from pydantic import ValidationError

from pipewright.errors import StructuralError
from pipewright.schemas import (
    AgentJobNode,
    AgentTaskSpec,
    ConsumeDeclaration,
    CycleNode,
    FragmentJobNode,
    GuardStep,
    JobFragmentNode,
    LiteralPrompt,
    ParamDeclaration,
    PrimitiveType,
    JobNode,
    MatrixJobNode,
    ReferenceType,
    ShellStep,
    SourceFileNode,
    Span,
    UsesStep,
    WorkflowNode,
    load_source_file,
)

SOURCE = """
path: ci.pipe
workflow:
  name: ci
  trigger: push
  span: {start_line: 1, end_line: 20}
  jobs:
    - kind: job
      name: build
      target: ubuntu-latest
      span: {start_line: 3, start_col: 3}
      steps:
        - kind: shell
          content: make build
        - kind: uses
          action: actions/checkout@v4
          with: {fetch-depth: 0}
    - kind: matrix_job
      name: test
      target: ubuntu-latest
      needs: build
      axes:
        os: [linux, mac]
        node: [18, 20]
      steps:
        - kind: shell
          content: npm test
    - kind: agent_job
      name: review
      target: ubuntu-latest
      task:
        prompt: Review the change
        output_schema: Review
types:
  - name: Review
    body:
      kind: object
      fields:
        - name: verdict
          type: {kind: primitive, name: string}
"""


class TestLoadSourceFile:
    """Tests for load_source_file."""

    def test_parses_job_variants(self) -> None:
        """Each job kind parses to its own node type."""
        node = load_source_file(SOURCE, "ci.pipe")
        assert isinstance(node, SourceFileNode)
        assert node.workflow is not None
        build, test, review = node.workflow.jobs
        assert isinstance(build, JobNode)
        assert isinstance(test, MatrixJobNode)
        assert isinstance(review, AgentJobNode)

    def test_preserves_step_order_and_uses_alias(self) -> None:
        """Steps keep their order and the with key maps to with_."""
        node = load_source_file(SOURCE, "ci.pipe")
        assert node.workflow is not None
        build = node.workflow.jobs[0]
        assert isinstance(build.steps[0], ShellStep)
        assert isinstance(build.steps[1], UsesStep)
        assert build.steps[1].with_ == {"fetch-depth": 0}

    def test_preserves_axis_order(self) -> None:
        """Matrix axes keep their written order."""
        node = load_source_file(SOURCE, "ci.pipe")
        assert node.workflow is not None
        matrix = node.workflow.jobs[1]
        assert isinstance(matrix, MatrixJobNode)
        assert list(matrix.axes) == ["os", "node"]
        assert matrix.needs == ["build"]

    def test_string_output_schema_becomes_reference(self) -> None:
        """A bare output schema name becomes a type reference."""
        node = load_source_file(SOURCE, "ci.pipe")
        assert node.workflow is not None
        review = node.workflow.jobs[2]
        assert isinstance(review, AgentJobNode)
        assert isinstance(review.task.output_schema, ReferenceType)
        assert review.task.output_schema.name == "Review"

    def test_spans_are_stamped_with_file(self) -> None:
        """Every span carries the file path passed in."""
        node = load_source_file(SOURCE, "workflows/ci.pipe")
        assert node.workflow is not None
        build = node.workflow.jobs[0]
        assert build.span == Span(file="workflows/ci.pipe", start_line=3, start_col=3)
        assert build.steps[0].span.file == "workflows/ci.pipe"
        assert node.types[0].body.span.file == "workflows/ci.pipe"

    def test_missing_path_defaults_to_argument(self) -> None:
        """A document without a path takes the one it was loaded from."""
        node = load_source_file("types: []", "lib/types.pipe")
        assert node.path == "lib/types.pipe"
        assert node.workflow is None

    def test_empty_document(self) -> None:
        """An empty document is an empty source file."""
        node = load_source_file("", "empty.pipe")
        assert node.path == "empty.pipe"
        assert node.types == []

    def test_invalid_yaml_raises(self) -> None:
        """Invalid YAML raises StructuralError with the file path."""
        with pytest.raises(StructuralError, match="not valid YAML") as exc_info:
            load_source_file("workflow: [unclosed", "ci.pipe")
        assert exc_info.value.file_path == "ci.pipe"

    def test_non_mapping_raises(self) -> None:
        """A top level that is not a mapping raises StructuralError."""
        with pytest.raises(StructuralError, match="must be a mapping"):
            load_source_file("- a\n- b\n", "ci.pipe")

    def test_null_step_list_raises(self) -> None:
        """A null step list is reported as a problem on steps."""
        document = {
            "workflow": {
                "name": "ci",
                "jobs": [{"kind": "job", "name": "build", "steps": None}],
            }
        }
        with pytest.raises(StructuralError) as exc_info:
            load_source_file(yaml.safe_dump(document), "ci.pipe")
        assert exc_info.value.problems
        assert "steps" in exc_info.value.problems[0]

    def test_unknown_kind_raises(self) -> None:
        """An unknown job kind raises StructuralError."""
        document = {
            "workflow": {"name": "ci", "jobs": [{"kind": "bogus", "name": "x", "steps": []}]}
        }
        with pytest.raises(StructuralError):
            load_source_file(yaml.safe_dump(document), "ci.pipe")


class TestWorkflowModels:
    """Tests for workflow model behavior."""

    def test_single_trigger_and_needs_become_lists(self) -> None:
        """A single trigger and a single need become lists."""
        workflow = WorkflowNode.model_validate(
            {
                "name": "ci",
                "trigger": "push",
                "jobs": [
                    {"kind": "job", "name": "a", "steps": []},
                    {"kind": "job", "name": "b", "needs": "a", "steps": []},
                ],
            }
        )
        assert workflow.trigger == ["push"]
        assert workflow.jobs[1].needs == ["a"]

    def test_all_jobs_includes_cycle_bodies(self) -> None:
        """all_jobs lists top-level jobs, then cycle body jobs."""
        workflow = WorkflowNode.model_validate(
            {
                "name": "ci",
                "jobs": [{"kind": "job", "name": "a", "steps": []}],
                "cycles": [
                    {
                        "name": "loop",
                        "max_iters": 3,
                        "body": [{"kind": "job", "name": "b", "steps": []}],
                    }
                ],
            }
        )
        assert [job.name for job in workflow.all_jobs()] == ["a", "b"]

    def test_models_are_frozen(self) -> None:
        """Nodes cannot be mutated."""
        job = JobNode(name="build", target="ubuntu-latest", steps=[ShellStep(content="make")])
        with pytest.raises(ValidationError):
            job.name = "other"  # type: ignore[misc]

    def test_guard_id_pattern(self) -> None:
        """Guard ids must be identifiers."""
        assert GuardStep(id="check_1", code="return true").id == "check_1"
        with pytest.raises(ValidationError):
            GuardStep(id="1bad", code="return true")

    def test_node_without_span_gets_default(self) -> None:
        """A node built without a span gets the default span."""
        assert ShellStep(content="make").span == Span()

    def test_span_wire_shape(self) -> None:
        """Spans serialize with camelCase keys."""
        span = Span(file="ci.pipe", start_line=2, start_col=5, end_line=2, end_col=9)
        assert span.to_wire() == {
            "file": "ci.pipe",
            "startLine": 2,
            "startCol": 5,
            "endLine": 2,
            "endCol": 9,
        }


class TestAgentAndFragmentModels:
    """Tests for prompt, artifact and fragment models."""

    def test_plain_prompt_becomes_literal(self) -> None:
        """Plain strings are literal prompts."""
        task = AgentTaskSpec.model_validate({"prompt": "Review", "system_prompt": "Be terse"})
        assert task.prompt == LiteralPrompt(value="Review")
        assert task.system_prompt == LiteralPrompt(value="Be terse")

    def test_consume_source_splits_on_first_dot(self) -> None:
        """The job is before the first dot, the artifact after it."""
        consume = ConsumeDeclaration(name="plan", source="plan.out/plan.md")
        assert consume.job == "plan"
        assert consume.artifact == "out/plan.md"
        with pytest.raises(ValidationError):
            ConsumeDeclaration(name="plan", source="plan")

    def test_param_type_name_becomes_primitive(self) -> None:
        """A bare type name on a parameter is a primitive."""
        param = ParamDeclaration(name="port", type="int")
        assert param.type == PrimitiveType(name="int")
        assert param.required
        assert not ParamDeclaration(name="env", default="staging").required

    def test_job_fragment_single_need(self) -> None:
        """Job fragments accept a single need like jobs do."""
        fragment = JobFragmentNode(name="lint", needs="setup")
        assert fragment.needs == ["setup"]

    def test_generated_cycle_job_names(self) -> None:
        """Cycle jobs are named after the cycle."""
        cycle = CycleNode.model_validate(
            {
                "name": "fix",
                "max_iters": 2,
                "body": [
                    {"kind": "job", "name": "a", "target": "x", "steps": []},
                    {"kind": "fragment_job", "name": "b", "fragment": "lint"},
                ],
            }
        )
        assert isinstance(cycle.body[1], FragmentJobNode)
        assert cycle.generated_job_names() == [
            "fix_hydrate",
            "fix_body_a",
            "fix_body_b",
            "fix_decide",
            "fix_dispatch",
        ]

    def test_all_jobs_skips_fragment_instances(self) -> None:
        """Unexpanded instances are not concrete jobs."""
        workflow = WorkflowNode.model_validate(
            {
                "name": "ci",
                "jobs": [
                    {"kind": "job", "name": "a", "target": "x", "steps": []},
                    {"kind": "fragment_job", "name": "b", "fragment": "lint"},
                ],
            }
        )
        assert [job.name for job in workflow.all_jobs()] == ["a"]
