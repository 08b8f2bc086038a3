"""Unit tests for the AST to IR transformation."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from conftest import object_type, shell_job

from pipewright.codegen import (
    DOWNLOAD_ARTIFACT_ACTION,
    UPLOAD_ARTIFACT_ACTION,
    RunStepIR,
    ScriptStepIR,
    UsesStepIR,
    matrix_fingerprint,
    resolve_prompt,
    transform,
    transform_job,
    wire_outputs,
)
from pipewright.config import CompilerConfig
from pipewright.fragments import build_fragment_registry
from pipewright.schemas import (
    FilePrompt,
    LiteralPrompt,
    SourceFileNode,
    TemplatePrompt,
    WorkflowNode,
)
from pipewright.typesystem import TypeRegistry, build_registry

MakeWorkflow = Callable[..., WorkflowNode]
CONFIG = CompilerConfig()
EMPTY = TypeRegistry.empty("ci.pipe")


def output(name: str) -> dict[str, Any]:
    return {"name": name, "type": {"kind": "primitive", "name": "string"}}


class TestTransformJob:
    """Tests for transform_job."""

    def test_plain_job(self, make_workflow: MakeWorkflow) -> None:
        """A shell job becomes one normalized run step."""
        job = shell_job("build", "  make build\n", needs=[])
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG)

        assert ir.runs_on == "ubuntu-latest"
        assert ir.outputs == {}
        (step,) = ir.steps
        assert isinstance(step, RunStepIR)
        assert step.run == "make build"
        assert step.id is None

    def test_missing_target_uses_default_runner(self, make_workflow: MakeWorkflow) -> None:
        """A job without a target runs on the configured default runner."""
        job = make_workflow([shell_job("build", target=None)]).jobs[0]
        config = CompilerConfig(default_runner="self-hosted")
        assert transform_job(job, EMPTY, config).runs_on == "self-hosted"

    def test_outputs_number_steps_and_use_last_step(self, make_workflow: MakeWorkflow) -> None:
        """Steps are numbered and outputs fall back to the last step."""
        job = shell_job("build", "make", "make package", outputs=[output("artifact")])
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG)

        assert [s.id for s in ir.steps] == ["step_0", "step_1"]
        assert ir.outputs == {"artifact": "${{ steps.step_1.outputs.artifact }}"}

    def test_output_wired_to_writing_step(self, make_workflow: MakeWorkflow) -> None:
        """An output is read from the step that writes it."""
        job = shell_job(
            "build",
            'echo "tag=v1" >> "$GITHUB_OUTPUT"',
            "make package",
            outputs=[output("tag")],
        )
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG)
        assert ir.outputs == {"tag": "${{ steps.step_0.outputs.tag }}"}

    def test_guard_result_output(self, make_workflow: MakeWorkflow) -> None:
        """A guard step exposes its result as an output."""
        job = shell_job("gate")
        job["steps"].append({"kind": "guard", "id": "approved", "code": "  return true;\n"})
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG)

        guard = ir.steps[-1]
        assert isinstance(guard, ScriptStepIR)
        assert guard.id == "approved"
        assert guard.script == "return true;"
        assert ir.outputs == {"approved_result": "${{ steps.approved.outputs.result }}"}

    def test_uses_step(self, make_workflow: MakeWorkflow) -> None:
        """A uses step keeps its action and inputs."""
        job = shell_job(
            "build",
            steps=[{"kind": "uses", "action": "actions/checkout@v4", "with": {"fetch-depth": 0}}],
        )
        (step,) = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG).steps
        assert isinstance(step, UsesStepIR)
        assert step.uses == "actions/checkout@v4"
        assert step.with_ == {"fetch-depth": 0}

    def test_condition_is_serialized(self, make_workflow: MakeWorkflow) -> None:
        """The job condition is written as a bare expression."""
        condition = {
            "kind": "binary",
            "operator": "==",
            "left": {"kind": "property", "path": ["github", "ref"]},
            "right": {"kind": "string", "value": "refs/heads/main"},
        }
        job = make_workflow([shell_job("deploy", condition=condition)]).jobs[0]
        ir = transform_job(job, EMPTY, CONFIG)
        assert ir.condition == "github.ref == 'refs/heads/main'"

    def test_matrix_strategy_is_not_expanded(self, make_workflow: MakeWorkflow) -> None:
        """The matrix is passed to the runner unexpanded."""
        job = {
            "kind": "matrix_job",
            "name": "test",
            "target": "${{ matrix.os }}",
            "axes": {"os": ["ubuntu-latest", "macos-latest"], "node": [18, 20]},
            "exclude": [{"os": "macos-latest", "node": 18}],
            "max_parallel": 2,
            "fail_fast": False,
            "steps": [{"kind": "shell", "content": "npm test"}],
        }
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG)

        assert ir.strategy is not None
        assert ir.strategy.matrix == {"os": ["ubuntu-latest", "macos-latest"], "node": [18, 20]}
        assert ir.strategy.exclude == [{"os": "macos-latest", "node": 18}]
        assert ir.strategy.max_parallel == 2
        assert ir.strategy.fail_fast is False
        assert len(ir.steps) == 1


class TestAgentTasks:
    """Tests for agent job and agent step generation."""

    def test_agent_step_runs_last(self, make_source: Callable[..., SourceFileNode]) -> None:
        """The agent step runs after the job's own steps."""
        source = make_source(
            types=[object_type("Review", score="int")],
            jobs=[
                {
                    "kind": "agent_job",
                    "name": "review",
                    "target": "ubuntu-latest",
                    "outputs": [output("verdict")],
                    "steps": [{"kind": "uses", "action": "actions/checkout@v4"}],
                    "task": {
                        "prompt": "Review the change",
                        "output_schema": "Review",
                        "model": "opus",
                        "max_turns": 5,
                        "allowed_tools": ["Read", "Grep"],
                    },
                }
            ],
        )
        registry = build_registry(source).registry
        assert source.workflow is not None
        ir = transform_job(source.workflow.jobs[0], registry, CONFIG)

        checkout, task = ir.steps
        assert isinstance(task, UsesStepIR)
        assert task.id == "step_1"
        assert task.name == "review-task"
        assert task.uses == CONFIG.agent_action
        assert task.with_ is not None
        assert task.with_["prompt"] == "Review the change"
        assert task.with_["model"] == "opus"
        assert task.with_["max_turns"] == 5
        assert json.loads(task.with_["allowed_tools"]) == ["Read", "Grep"]
        assert "disallowed_tools" not in task.with_
        assert json.loads(task.with_["output_schema"])["properties"] == {
            "score": {"type": "integer"}
        }
        assert ir.outputs == {"verdict": "${{ steps.step_1.outputs.verdict }}"}

    def test_agent_action_is_configurable(self, make_workflow: MakeWorkflow) -> None:
        """The agent action comes from the configuration."""
        job = {
            "kind": "agent_job",
            "name": "triage",
            "target": "ubuntu-latest",
            "task": {"prompt": "Triage"},
        }
        config = CompilerConfig(agent_action="acme/agent@v2")
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, config)
        (step,) = ir.steps
        assert isinstance(step, UsesStepIR)
        assert step.uses == "acme/agent@v2"
        assert step.with_ == {"prompt": "Triage"}

    def test_prompt_variants(self) -> None:
        """File prompts are read at run time; inline prompts pass through."""
        assert resolve_prompt(LiteralPrompt(value="Review")) == "Review"
        assert resolve_prompt(TemplatePrompt(content="Fix ${{ inputs.issue }}")) == (
            "Fix ${{ inputs.issue }}"
        )
        assert resolve_prompt(FilePrompt(path="prompts/review.md")) == (
            "${{ file('prompts/review.md') }}"
        )
        assert resolve_prompt(None) == ""

    def test_system_prompt_and_mcp(self, make_workflow: MakeWorkflow) -> None:
        """System prompt and MCP settings become action inputs."""
        job = {
            "kind": "agent_job",
            "name": "triage",
            "target": "ubuntu-latest",
            "task": {
                "prompt": {"kind": "file", "path": "prompts/triage.md"},
                "system_prompt": "You are a triage bot",
                "allowed_tools": ["Read"],
                "mcp": {
                    "config_file": ".mcp.json",
                    "allowed": ["mcp__github__get_issue"],
                    "disallowed": ["mcp__github__merge"],
                },
            },
        }
        (step,) = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG).steps
        assert isinstance(step, UsesStepIR)
        assert step.with_ is not None
        assert step.with_["prompt"] == "${{ file('prompts/triage.md') }}"
        assert step.with_["system_prompt"] == "You are a triage bot"
        assert step.with_["mcp_config"] == ".mcp.json"
        assert json.loads(step.with_["allowed_tools"]) == ["Read", "mcp__github__get_issue"]
        assert json.loads(step.with_["disallowed_tools"]) == ["mcp__github__merge"]

    def test_artifacts_wrap_the_agent_step(self, make_workflow: MakeWorkflow) -> None:
        """Consumed artifacts are downloaded first and the output uploaded last."""
        job = {
            "kind": "agent_job",
            "name": "review",
            "target": "ubuntu-latest",
            "needs": "plan",
            "outputs": [output("verdict")],
            "task": {
                "prompt": "Review the plan",
                "consumes": [{"name": "plan", "source": "plan.plan.md"}],
                "output_artifact": "review.md",
            },
        }
        ir = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG)

        download, task, upload = ir.steps
        assert isinstance(download, UsesStepIR)
        assert download.name == "Download plan"
        assert download.uses == DOWNLOAD_ARTIFACT_ACTION
        assert download.with_ == {"name": "plan.md", "path": "plan"}
        assert isinstance(upload, UsesStepIR)
        assert upload.name == "Upload review.md"
        assert upload.uses == UPLOAD_ARTIFACT_ACTION
        assert upload.with_ == {"name": "review.md", "path": "review.md"}
        assert [s.id for s in ir.steps] == ["step_0", "step_1", "step_2"]
        assert ir.outputs == {"verdict": "${{ steps.step_1.outputs.verdict }}"}

    def test_matrix_upload_names_are_unique(self, make_workflow: MakeWorkflow) -> None:
        """Each matrix combination uploads under its own artifact name."""
        job = {
            "kind": "matrix_job",
            "name": "review",
            "target": "ubuntu-latest",
            "axes": {"os": ["linux", "macos"], "model": ["a", "b"]},
            "steps": [
                {
                    "kind": "agent_task",
                    "task": {"prompt": "Review", "output_artifact": "review.md"},
                }
            ],
        }
        _, upload = transform_job(make_workflow([job]).jobs[0], EMPTY, CONFIG).steps
        assert isinstance(upload, UsesStepIR)
        assert upload.with_ == {
            "name": "review.md-${{ matrix.model }}-${{ matrix.os }}",
            "path": "review.md",
        }


def test_matrix_fingerprint_sorts_axes() -> None:
    """Axis keys are joined in sorted order."""
    assert matrix_fingerprint({"os": ["linux"], "node": [20]}) == (
        "${{ matrix.node }}-${{ matrix.os }}"
    )


class TestTransform:
    """Tests for whole-workflow transformation."""

    def test_jobs_keep_declaration_order(self, make_workflow: MakeWorkflow) -> None:
        """Jobs keep their declaration order."""
        workflow = make_workflow(
            [shell_job("zeta"), shell_job("alpha", needs="zeta"), shell_job("mid")],
            trigger=["push", "pull_request"],
        )
        ir = transform(workflow)
        assert list(ir.jobs) == ["zeta", "alpha", "mid"]
        assert ir.jobs["alpha"].needs == ["zeta"]
        assert ir.trigger.events == ["push", "pull_request"]
        assert ir.trigger.dispatch_inputs == []

    def test_cycle_jobs_follow_top_level_jobs(self, make_workflow: MakeWorkflow) -> None:
        """Generated cycle jobs come after the top-level jobs."""
        workflow = make_workflow(
            [shell_job("setup")],
            cycles=[{"name": "loop", "max_iters": 2, "body": [shell_job("work")]}],
        )
        ir = transform(workflow)
        assert list(ir.jobs) == [
            "setup",
            "loop_hydrate",
            "loop_body_work",
            "loop_decide",
            "loop_dispatch",
        ]
        assert [i.name for i in ir.trigger.dispatch_inputs] == ["phase", "run_id"]

    def test_missing_trigger(self, make_workflow: MakeWorkflow) -> None:
        """A workflow without a trigger has no events."""
        ir = transform(make_workflow([shell_job("build")], trigger=None))
        assert ir.trigger.events == []

    def test_cycles_serialize_runs(self, make_workflow: MakeWorkflow) -> None:
        """A workflow with cycles gets one concurrency group named after them."""
        workflow = make_workflow(
            [shell_job("setup")],
            cycles=[
                {"name": "fix", "max_iters": 2, "body": [shell_job("work")]},
                {"name": "polish", "max_iters": 2, "body": [shell_job("tidy")]},
            ],
        )
        concurrency = transform(workflow).concurrency
        assert concurrency is not None
        assert concurrency.group == "${{ github.workflow }}-fix-polish"
        assert concurrency.cancel_in_progress is False

    def test_no_concurrency_without_cycles(self, make_workflow: MakeWorkflow) -> None:
        """Workflows without cycles run unrestricted."""
        assert transform(make_workflow([shell_job("build")])).concurrency is None

    def test_fragments_are_expanded(self, make_source: Callable[..., SourceFileNode]) -> None:
        """Fragment instances are expanded before jobs are generated."""
        source = make_source(
            jobs=[{"kind": "fragment_job", "name": "lint_api", "fragment": "lint"}],
            job_fragments=[
                {
                    "name": "lint",
                    "target": "ubuntu-latest",
                    "steps": [{"kind": "shell", "content": "make lint"}],
                }
            ],
        )
        assert source.workflow is not None
        fragments = build_fragment_registry(source).registry
        ir = transform(source.workflow, fragments=fragments)
        (step,) = ir.jobs["lint_api"].steps
        assert isinstance(step, RunStepIR)
        assert step.run == "make lint"


def test_wire_outputs_without_steps() -> None:
    """No steps means no wired outputs."""
    assert wire_outputs(["a"], []) == {}


def test_wire_outputs_ignores_prefixed_names() -> None:
    """Output names only match whole names in GITHUB_OUTPUT writes."""
    steps = [
        RunStepIR(id="step_0", run='echo "tag=1" >> "$GITHUB_OUTPUT"'),
        RunStepIR(id="step_1", run='echo "image_tag=2" >> "$GITHUB_OUTPUT"'),
    ]
    assert wire_outputs(["tag"], steps) == {"tag": "${{ steps.step_0.outputs.tag }}"}
