"""Shared pytest fixtures for pipewright tests.

This module provides common fixtures used across unit and integration
tests: structlog capture, AST document builders and in-memory projects.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pytest
import structlog
import yaml

from pipewright.compiler import Compiler, ProjectResult
from pipewright.config import ENV_PREFIX, CompilerConfig
from pipewright.imports import InMemoryFileResolver
from pipewright.schemas import SourceFileNode, WorkflowNode


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    This fixture ensures structlog outputs to stdout so that capsys
    can capture the output in tests.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture(autouse=True)
def clear_pipewright_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove PIPEWRIGHT_* variables so CompilerConfig() sees only defaults."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


class WorkflowLoader(yaml.SafeLoader):
    """SafeLoader reading only true/false as booleans, so ``on`` stays a string key."""

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:bool"]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }


WorkflowLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def load_workflow(text: str) -> Any:
    """Parse emitted workflow YAML."""
    return yaml.load(text, Loader=WorkflowLoader)  # noqa: S506


def shell_job(name: str, *commands: str, **extra: Any) -> dict[str, Any]:
    """Plain job document with one shell step per command."""
    job: dict[str, Any] = {
        "kind": "job",
        "name": name,
        "target": "ubuntu-latest",
        "steps": [{"kind": "shell", "content": c} for c in commands or ("echo ok",)],
    }
    job.update(extra)
    return job


def source_document(
    path: str,
    *,
    jobs: Iterable[dict[str, Any]] | None = None,
    types: Iterable[dict[str, Any]] | None = None,
    imports: Iterable[dict[str, Any]] | None = None,
    job_fragments: Iterable[dict[str, Any]] | None = None,
    steps_fragments: Iterable[dict[str, Any]] | None = None,
    workflow: dict[str, Any] | None = None,
    name: str = "ci",
    trigger: Any = "push",
) -> dict[str, Any]:
    """Source file document. A workflow is added when ``jobs`` is given."""
    doc: dict[str, Any] = {"path": path}
    if workflow is not None:
        doc["workflow"] = workflow
    elif jobs is not None:
        doc["workflow"] = {"name": name, "trigger": trigger, "jobs": list(jobs)}
    if types is not None:
        doc["types"] = list(types)
    if imports is not None:
        doc["imports"] = list(imports)
    if job_fragments is not None:
        doc["job_fragments"] = list(job_fragments)
    if steps_fragments is not None:
        doc["steps_fragments"] = list(steps_fragments)
    return doc


def object_type(name: str, **fields: Any) -> dict[str, Any]:
    """Type declaration of an object; field values are primitive names or type dicts."""
    return {
        "name": name,
        "body": {
            "kind": "object",
            "fields": [
                {
                    "name": field_name,
                    "type": (
                        {"kind": "primitive", "name": field_type}
                        if isinstance(field_type, str)
                        else field_type
                    ),
                }
                for field_name, field_type in fields.items()
            ],
        },
    }


def import_of(path: str, *names: str) -> dict[str, Any]:
    return {"path": path, "items": [{"name": n} for n in names]}


@pytest.fixture
def make_workflow() -> Callable[..., WorkflowNode]:
    """Factory validating a workflow document as if read from ``ci.pipe``."""

    def _make(
        jobs: Iterable[dict[str, Any]] = (),
        cycles: Iterable[dict[str, Any]] = (),
        name: str = "ci",
        trigger: Any = "push",
    ) -> WorkflowNode:
        data = {"name": name, "trigger": trigger, "jobs": list(jobs), "cycles": list(cycles)}
        return WorkflowNode.model_validate(data, context={"file": "ci.pipe"})

    return _make


@pytest.fixture
def make_source() -> Callable[..., SourceFileNode]:
    """Factory validating a source file document."""

    def _make(path: str = "ci.pipe", **kwargs: Any) -> SourceFileNode:
        return SourceFileNode.model_validate(
            source_document(path, **kwargs), context={"file": path}
        )

    return _make


@pytest.fixture
def make_resolver() -> Callable[[Mapping[str, dict[str, Any] | str]], InMemoryFileResolver]:
    """Factory turning path -> document (or raw text) into an in-memory resolver."""

    def _make(files: Mapping[str, dict[str, Any] | str]) -> InMemoryFileResolver:
        return InMemoryFileResolver(
            {
                path: doc if isinstance(doc, str) else yaml.safe_dump(doc, sort_keys=False)
                for path, doc in files.items()
            }
        )

    return _make


@pytest.fixture
def compile_project(
    make_resolver: Callable[[Mapping[str, dict[str, Any] | str]], InMemoryFileResolver],
) -> Callable[..., ProjectResult]:
    """Factory compiling in-memory documents from the given entry paths."""

    def _compile(
        files: Mapping[str, dict[str, Any] | str],
        entries: Iterable[str],
        config: CompilerConfig | None = None,
    ) -> ProjectResult:
        return Compiler(make_resolver(files), config=config).compile_project(entries)

    return _compile
