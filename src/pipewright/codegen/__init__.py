"""Code generation: AST to IR transform and YAML emission."""

from __future__ import annotations

from pipewright.codegen.cycles import DEFAULT_CYCLE_KEY, dispatch_inputs, expand_cycle
from pipewright.codegen.emit import GUARD_ACTION, WorkflowDumper, emit, to_document
from pipewright.codegen.expressions import quote_string, serialize_expression
from pipewright.codegen.ir import (
    ConcurrencyIR,
    DispatchInputIR,
    JobIR,
    RunStepIR,
    ScriptStepIR,
    StepIR,
    StrategyIR,
    TriggerIR,
    UsesStepIR,
    WorkflowIR,
)
from pipewright.codegen.json_schema import render_json_schema, to_json_schema
from pipewright.codegen.shell import normalize_shell
from pipewright.codegen.transform import (
    DOWNLOAD_ARTIFACT_ACTION,
    UPLOAD_ARTIFACT_ACTION,
    cycle_concurrency,
    matrix_fingerprint,
    resolve_prompt,
    transform,
    transform_job,
    transform_step,
    wire_outputs,
)

__all__ = [
    "DEFAULT_CYCLE_KEY",
    "DOWNLOAD_ARTIFACT_ACTION",
    "GUARD_ACTION",
    "UPLOAD_ARTIFACT_ACTION",
    "ConcurrencyIR",
    "DispatchInputIR",
    "JobIR",
    "RunStepIR",
    "ScriptStepIR",
    "StepIR",
    "StrategyIR",
    "TriggerIR",
    "UsesStepIR",
    "WorkflowDumper",
    "WorkflowIR",
    "cycle_concurrency",
    "dispatch_inputs",
    "emit",
    "expand_cycle",
    "matrix_fingerprint",
    "normalize_shell",
    "quote_string",
    "render_json_schema",
    "resolve_prompt",
    "serialize_expression",
    "to_document",
    "to_json_schema",
    "transform",
    "transform_job",
    "transform_step",
    "wire_outputs",
]
