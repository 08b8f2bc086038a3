"""YAML emission of the workflow IR.

Output is deterministic: keys keep insertion order, sequences keep source
order, and the same IR always produces byte-identical text ending in a
single newline.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from pipewright.codegen.ir import (
    JobIR,
    RunStepIR,
    ScriptStepIR,
    StepIR,
    TriggerIR,
    UsesStepIR,
    WorkflowIR,
)
from pipewright.errors import CompilationError

GUARD_ACTION = "actions/github-script@v7"

_BOOL_TAG = "tag:yaml.org,2002:bool"


def _fits_literal_block(text: str) -> bool:
    # Tabs and trailing spaces survive a literal block; control characters
    # and line breaks other than \n do not
    return all(ch in "\n\t" or _printable(ord(ch)) for ch in text)


def _printable(code: int) -> bool:
    return (
        0x20 <= code <= 0x7E
        or 0xA0 <= code <= 0xD7FF
        or (0xE000 <= code <= 0xFFFD and code != 0xFEFF)
        or code >= 0x10000
    )


class WorkflowDumper(yaml.SafeDumper):
    """SafeDumper that only treats true/false as booleans.

    YAML 1.1 also reads ``on``, ``off``, ``yes`` and ``no`` as booleans,
    which would force quoting of the ``on`` trigger key.

    Multi-line text keeps its literal block style when it holds tabs or
    trailing spaces; PyYAML alone falls back to a double-quoted scalar.
    """

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
        for first, resolvers in yaml.SafeDumper.yaml_implicit_resolvers.items()
    }

    def choose_scalar_style(self) -> str:
        style = super().choose_scalar_style()
        if (
            style != "|"
            and self.event.style == "|"
            and not self.flow_level
            and not self.simple_key_context
            and _fits_literal_block(self.event.value)
        ):
            return "|"
        return style


WorkflowDumper.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _represent_none(dumper: yaml.SafeDumper, _: None) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:null", "")


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


WorkflowDumper.add_representer(type(None), _represent_none)
WorkflowDumper.add_representer(str, _represent_str)


def _step_document(step: StepIR) -> dict[str, Any]:
    doc: dict[str, Any] = {}
    if step.name is not None:
        doc["name"] = step.name
    if step.id is not None:
        doc["id"] = step.id

    if isinstance(step, RunStepIR):
        if step.condition is not None:
            doc["if"] = step.condition
        doc["run"] = step.run
        if step.shell is not None:
            doc["shell"] = step.shell
    elif isinstance(step, UsesStepIR):
        if step.condition is not None:
            doc["if"] = step.condition
        doc["uses"] = step.uses
        if step.with_:
            doc["with"] = dict(step.with_)
    elif isinstance(step, ScriptStepIR):
        doc["uses"] = GUARD_ACTION
        params: dict[str, Any] = {"script": step.script}
        if step.result_encoding is not None:
            params["result-encoding"] = step.result_encoding
        doc["with"] = params
    else:
        raise CompilationError(
            "Cannot emit step",
            internal_details=f"unknown step IR {type(step).__name__}",
        )

    if step.env:
        doc["env"] = dict(step.env)
    return doc


def _job_document(job: JobIR) -> dict[str, Any]:
    doc: dict[str, Any] = {"runs-on": job.runs_on}
    if job.needs:
        doc["needs"] = list(job.needs)
    if job.condition is not None:
        doc["if"] = job.condition
    if job.outputs:
        doc["outputs"] = dict(job.outputs)

    if job.strategy is not None:
        matrix: dict[str, Any] = {key: list(values) for key, values in job.strategy.matrix.items()}
        if job.strategy.include:
            matrix["include"] = [dict(entry) for entry in job.strategy.include]
        if job.strategy.exclude:
            matrix["exclude"] = [dict(entry) for entry in job.strategy.exclude]
        strategy: dict[str, Any] = {"matrix": matrix}
        if job.strategy.max_parallel is not None:
            strategy["max-parallel"] = job.strategy.max_parallel
        if job.strategy.fail_fast is not None:
            strategy["fail-fast"] = job.strategy.fail_fast
        doc["strategy"] = strategy

    doc["steps"] = [_step_document(step) for step in job.steps]
    return doc


def _trigger_document(trigger: TriggerIR) -> Any:
    if trigger.dispatch_inputs:
        doc: dict[str, Any] = {event: None for event in trigger.events}
        inputs: dict[str, Any] = {}
        for item in trigger.dispatch_inputs:
            inputs[item.name] = {
                "description": item.description,
                "required": item.required,
                "default": item.default,
            }
        doc["workflow_dispatch"] = {"inputs": inputs}
        return doc
    if len(trigger.events) == 1:
        return trigger.events[0]
    return list(trigger.events)


def to_document(ir: WorkflowIR) -> dict[str, Any]:
    """Plain-data form of the IR with output key names and order."""
    doc: dict[str, Any] = {"name": ir.name, "on": _trigger_document(ir.trigger)}
    if ir.concurrency is not None:
        doc["concurrency"] = {
            "group": ir.concurrency.group,
            "cancel-in-progress": ir.concurrency.cancel_in_progress,
        }
    doc["jobs"] = {name: _job_document(job) for name, job in ir.jobs.items()}
    return doc


def emit(ir: WorkflowIR) -> str:
    """Render the IR as workflow YAML.

    Args:
        ir: Workflow IR.

    Returns:
        YAML text ending in exactly one newline.

    Example:
        >>> text = emit(transform(workflow, registry))
        >>> text.splitlines()[0]
        'name: ci'
    """
    text = yaml.dump(
        to_document(ir),
        Dumper=WorkflowDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=2**31 - 1,
    )
    return text.rstrip("\n") + "\n"
