"""Default front end: load an AST document serialized as YAML or JSON.

The grammar front end is an external collaborator. This adapter lets the
compiler run on an AST that was produced elsewhere and written out as a
YAML (or JSON, a YAML subset) document:

    path: ci.pipe
    imports:
      - path: ./types.pipe
        items: [{name: Result}]
    workflow:
      name: ci
      trigger: push
      jobs:
        - kind: job
          name: build
          target: ubuntu-latest
          steps:
            - kind: shell
              content: make build
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from pipewright.errors import StructuralError
from pipewright.schemas.source_file import SourceFileNode

logger = structlog.get_logger(__name__)

FrontEnd = Callable[[str, str], SourceFileNode]
"""Callable turning ``(content, path)`` into a SourceFileNode."""


def _describe_errors(error: ValidationError) -> list[str]:
    problems: list[str] = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        problems.append(f"{location}: {err['msg']}")
    return problems


def load_source_file(content: str, path: str) -> SourceFileNode:
    """Parse an AST document into a SourceFileNode.

    Every span in the document is stamped with ``path``. A missing
    top-level ``path`` defaults to the given one.

    Args:
        content: YAML or JSON text of the AST document.
        path: Path the document was read from.

    Returns:
        Validated SourceFileNode.

    Raises:
        StructuralError: If the text is not YAML or violates the AST shape.
    """
    try:
        data: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise StructuralError(
            "Source document is not valid YAML",
            file_path=path,
            problems=[str(e)],
            internal_details=str(e),
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise StructuralError(
            f"Source document must be a mapping, got {type(data).__name__}",
            file_path=path,
        )
    data.setdefault("path", path)

    try:
        node = SourceFileNode.model_validate(data, context={"file": path})
    except ValidationError as e:
        problems = _describe_errors(e)
        raise StructuralError(
            f"Source document violates the AST shape: {problems[0]}",
            file_path=path,
            problems=problems,
        ) from e

    logger.debug("source_file_loaded", path=path, types=len(node.types))
    return node
